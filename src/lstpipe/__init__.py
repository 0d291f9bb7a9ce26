"""`lstpipe` - Landsat 8 Land Surface Temperature and feature-table pipeline.

Subpackages:
- core: Grid, BandSet, VectorLayer, error taxonomy
- geo: Band loading, indices, LST chain, proximity layers, feature tables
- modeling: Regression on the feature table
- pipeline: Scene processor and orchestrator
- schemas: Configuration (Param < User < CLI -> Internal)
- contracts: Stage invariants
"""

__version__ = "0.1.0"
