"""Raster and vector processing stages: loading, indices, LST, proximity, tables."""

from lstpipe.geo.loader import BandLoader
from lstpipe.geo.metadata import read_mtl_calibration
from lstpipe.geo.indices import IndexCalculator, normalized_difference, albedo
from lstpipe.geo.lst import LSTChain, LSTResult
from lstpipe.geo.feature_source import OSMFeatureSource, FileFeatureSource
from lstpipe.geo.proximity import (
    ProximityEngine,
    rasterize,
    distance_transform,
    kernel_density,
    standardize,
    min_max_normalize,
)
from lstpipe.geo.features import FeatureTable, FeatureTableAssembler, assemble

__all__ = [
    'BandLoader',
    'read_mtl_calibration',
    'IndexCalculator',
    'normalized_difference',
    'albedo',
    'LSTChain',
    'LSTResult',
    'OSMFeatureSource',
    'FileFeatureSource',
    'ProximityEngine',
    'rasterize',
    'distance_transform',
    'kernel_density',
    'standardize',
    'min_max_normalize',
    'FeatureTable',
    'FeatureTableAssembler',
    'assemble',
]
