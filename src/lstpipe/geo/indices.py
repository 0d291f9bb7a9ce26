"""Spectral indices from Landsat 8 OLI bands.

All formulas are elementwise over co-registered grids. A cell is no-data in
the output when any operand is no-data there or the denominator is zero.

Band roles (Landsat 8 OLI):
    B2 blue, B3 green, B4 red, B5 NIR, B6 SWIR-1, B7 SWIR-2
"""

import logging
from typing import Dict

import numpy as np

from lstpipe.core.grid import BandSet, Grid, require_same_geometry

__all__ = ['IndexCalculator', 'normalized_difference', 'albedo']

logger = logging.getLogger(__name__)

# Shortwave albedo, five-band form
ALBEDO_COEFFS = {"B2": 0.356, "B4": 0.0130, "B5": 0.373, "B6": 0.085, "B7": 0.072}
ALBEDO_OFFSET = 0.0018
ALBEDO_SCALE = 1.016


def normalized_difference(a: Grid, b: Grid) -> Grid:
    """(a - b) / (a + b) with explicit no-data propagation."""
    require_same_geometry(a, b, context="normalized difference")
    num = a.values - b.values
    den = a.values + b.values
    valid = a.valid_mask & b.valid_mask & (den != 0)

    out = np.full(a.shape, a.nodata, dtype=np.float64)
    np.divide(num, den, out=out, where=valid)
    return a.with_values(out)


def albedo(bands: BandSet) -> Grid:
    """Broadband albedo from B2, B4, B5, B6 and B7."""
    grids = [bands[b] for b in ALBEDO_COEFFS]
    require_same_geometry(*grids, context="albedo")

    template = grids[0]
    valid = np.logical_and.reduce([g.valid_mask for g in grids])
    total = sum(coef * bands[b].values for b, coef in ALBEDO_COEFFS.items())

    out = np.where(valid, (total - ALBEDO_OFFSET) / ALBEDO_SCALE, template.nodata)
    return template.with_values(out)


class IndexCalculator:
    """Compute NDVI, NDBI, NDWI and Albedo for one scene.

    NDWI here is the green/SWIR-2 variant, (B3 - B7) / (B3 + B7).
    """

    def compute(self, bands: BandSet) -> Dict[str, Grid]:
        indices = {
            "NDVI": normalized_difference(bands["B5"], bands["B4"]),
            "NDBI": normalized_difference(bands["B6"], bands["B5"]),
            "NDWI": normalized_difference(bands["B3"], bands["B7"]),
            "Albedo": albedo(bands),
        }
        for name, grid in indices.items():
            logger.debug("%s: %d valid cells", name, grid.valid_count)
        return indices
