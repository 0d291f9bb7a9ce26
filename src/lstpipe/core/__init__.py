"""Core data types for the LST pipeline: grids, band sets, vector layers, errors."""

from lstpipe.core.errors import (
    LSTPipelineError,
    ConfigurationError,
    GridMismatchError,
    SpatialCoverageError,
    OutOfBoundsError,
    EmptyFeatureError,
    EmptyGridError,
)
from lstpipe.core.grid import Grid, BandSet, require_same_geometry, DEFAULT_NODATA
from lstpipe.core.vector import VectorLayer

__all__ = [
    'Grid',
    'BandSet',
    'VectorLayer',
    'require_same_geometry',
    'DEFAULT_NODATA',
    'LSTPipelineError',
    'ConfigurationError',
    'GridMismatchError',
    'SpatialCoverageError',
    'OutOfBoundsError',
    'EmptyFeatureError',
    'EmptyGridError',
]
