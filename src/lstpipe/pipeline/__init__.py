"""Pipeline modules.

- orchestrator: Batch run controller (all scenes, output, models)
- processor: Per-scene stage graph
"""

from lstpipe.pipeline.orchestrator import PipelineOrchestrator
from lstpipe.pipeline.processor import SceneProcessor, SceneResult

__all__ = [
    "PipelineOrchestrator",
    "SceneProcessor",
    "SceneResult",
]
