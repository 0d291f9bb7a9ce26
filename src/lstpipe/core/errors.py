"""Error taxonomy for the LST pipeline.

Every fatal condition raised by a stage derives from ``LSTPipelineError``.
The processor stamps the failing stage on the exception before it reaches
the orchestrator, so the final message always names stage and input.

Key distinction:
- ConfigurationError: structurally invalid run (missing constants, grids
  that do not line up). Also a ValueError so config callers can catch it.
- SpatialCoverageError: the data does not cover what was asked for.
- ContractViolation (in ``lstpipe.contracts``): pipeline bug.
- Numeric edge cases are never raised; those cells become no-data.
"""

from typing import Optional, Sequence

__all__ = [
    'LSTPipelineError',
    'ConfigurationError',
    'GridMismatchError',
    'SpatialCoverageError',
    'OutOfBoundsError',
    'EmptyFeatureError',
    'EmptyGridError',
]


class LSTPipelineError(Exception):
    """Base class for fatal pipeline errors."""

    def __init__(self, message: str, stage: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.stage = stage

    def __str__(self):
        if self.stage:
            return f"[{self.stage}] {self.message}"
        return self.message


class ConfigurationError(LSTPipelineError, ValueError):
    """Missing or inconsistent configuration."""


class GridMismatchError(ConfigurationError):
    """Grids combined in one operation differ in shape, transform or CRS."""


class SpatialCoverageError(LSTPipelineError):
    """Requested area or features are not covered by the inputs."""


class OutOfBoundsError(SpatialCoverageError):
    """Bounding box lies entirely outside a raster's extent."""

    def __init__(self, bbox: Sequence[float], source: str, stage: Optional[str] = None):
        self.bbox = tuple(bbox)
        self.source = str(source)
        super().__init__(
            f"Bounding box {self.bbox} does not intersect raster extent of {self.source}",
            stage=stage,
        )


class EmptyFeatureError(SpatialCoverageError):
    """A vector query or layer produced no usable geometries."""

    def __init__(self, tag: str, bbox: Optional[Sequence[float]] = None,
                 stage: Optional[str] = None):
        self.tag = tag
        self.bbox = tuple(bbox) if bbox is not None else None
        where = f" within {self.bbox}" if self.bbox is not None else ""
        super().__init__(f"No features for '{tag}'{where}", stage=stage)


class EmptyGridError(SpatialCoverageError):
    """A grid has no valid cell where at least one is required."""
