"""Emissivity-corrected Land Surface Temperature from Landsat 8 band 10.

The derivation is a fixed chain of stages, each a public method so it can be
tested on its own:

1. DN -> top-of-atmosphere spectral radiance   L  = M_L * DN + A_L
2. radiance -> brightness temperature (K)      BT = K2 / ln(K1 / L + 1)
3. NDVI -> fractional vegetation               Pv = ((NDVI - min) / (max - min))^2
4. Pv -> surface emissivity                    e  = e_v * Pv + e_s * (1 - Pv) + C
5. BT, e -> LST (degrees C)                    Ts = BT / (1 + (lambda * BT / rho) * ln e) - 273.15

Step 3 needs the NDVI min/max over every valid cell of the scene before
any Pv value is computed; ``ndvi_extrema`` is that first pass.

Numeric edge cases never raise. Non-positive radiance, emissivity outside
(0, 1) and a non-positive LST denominator all yield no-data cells.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
from scipy.constants import Boltzmann, Planck, speed_of_light

from lstpipe.core.errors import EmptyGridError
from lstpipe.core.grid import Grid, require_same_geometry

__all__ = ['LSTChain', 'LSTResult', 'RHO', 'KELVIN_OFFSET']

logger = logging.getLogger(__name__)

# rho = h * c / k_B, in m K (about 1.438e-2)
RHO = Planck * speed_of_light / Boltzmann
KELVIN_OFFSET = 273.15


@dataclass(frozen=True)
class LSTResult:
    """Every intermediate of one LST derivation, all on the band grid."""

    radiance: Grid
    brightness_temperature: Grid
    fractional_vegetation: Grid
    emissivity: Grid
    lst: Grid
    ndvi_min: float
    ndvi_max: float

    def lst_kelvin(self) -> Grid:
        """LST in Kelvin (no-data preserved)."""
        values = np.where(self.lst.valid_mask, self.lst.values + KELVIN_OFFSET, self.lst.nodata)
        return self.lst.with_values(values)


class LSTChain:
    """Run the DN -> LST chain with explicit scene constants.

    Parameters
    ----------
    calibration
        Object with ``radiance_mult``, ``radiance_add``, ``k1``, ``k2``
        (band 10 values from the scene's MTL file).
    emissivity
        Object with ``vegetation``, ``soil`` and ``roughness``.
    thermal
        Object with ``wavelength_m``, the band's effective wavelength.

    Examples
    --------
    >>> chain = LSTChain(config.scenes[0].calibration, config.emissivity, config.thermal)
    >>> result = chain.derive(bands["B10"], indices["NDVI"])
    >>> result.lst.valid_values().mean()
    """

    def __init__(self, calibration, emissivity, thermal):
        self.radiance_mult = float(calibration.radiance_mult)
        self.radiance_add = float(calibration.radiance_add)
        self.k1 = float(calibration.k1)
        self.k2 = float(calibration.k2)
        self.eps_vegetation = float(emissivity.vegetation)
        self.eps_soil = float(emissivity.soil)
        self.eps_roughness = float(emissivity.roughness)
        self.wavelength = float(thermal.wavelength_m)

    def radiance(self, dn: Grid) -> Grid:
        valid = dn.valid_mask
        values = np.where(valid, self.radiance_mult * dn.values + self.radiance_add, dn.nodata)
        return dn.with_values(values)

    def brightness_temperature(self, radiance: Grid) -> Grid:
        """BT in Kelvin; cells with L <= 0 become no-data."""
        L = radiance.values
        valid = radiance.valid_mask & (L > 0)

        ratio = np.ones_like(L)
        np.divide(self.k1, L, out=ratio, where=valid)
        ratio += 1.0
        valid &= ratio > 1.0

        out = np.full(L.shape, radiance.nodata, dtype=np.float64)
        np.divide(self.k2, np.log(ratio, where=valid, out=np.ones_like(L)),
                  out=out, where=valid)
        return radiance.with_values(out)

    @staticmethod
    def ndvi_extrema(ndvi: Grid) -> Tuple[float, float]:
        """Min and max NDVI over all valid cells.

        Raises
        ------
        EmptyGridError
            If the NDVI grid has no valid cell.
        """
        valid = ndvi.valid_values()
        if valid.size == 0:
            raise EmptyGridError("NDVI grid has no valid cells; cannot scale vegetation fraction")
        return float(valid.min()), float(valid.max())

    def fractional_vegetation(self, ndvi: Grid,
                              extrema: Optional[Tuple[float, float]] = None) -> Grid:
        """Squared min-max scaled NDVI.

        A scene with constant NDVI (max == min) gets Pv = 0 everywhere.
        """
        lo, hi = extrema if extrema is not None else self.ndvi_extrema(ndvi)
        valid = ndvi.valid_mask

        if hi == lo:
            logger.warning("NDVI is constant (%.4f); vegetation fraction set to 0", lo)
            return ndvi.with_values(np.where(valid, 0.0, ndvi.nodata))

        scaled = (ndvi.values - lo) / (hi - lo)
        pv = np.clip(scaled, 0.0, 1.0) ** 2
        return ndvi.with_values(np.where(valid, pv, ndvi.nodata))

    def emissivity(self, pv: Grid) -> Grid:
        p = pv.values
        eps = self.eps_vegetation * p + self.eps_soil * (1.0 - p) + self.eps_roughness
        return pv.with_values(np.where(pv.valid_mask, eps, pv.nodata))

    def land_surface_temperature(self, bt: Grid, eps: Grid) -> Grid:
        """LST in degrees Celsius."""
        require_same_geometry(bt, eps, context="land surface temperature")
        e = eps.values
        T = bt.values
        valid = bt.valid_mask & eps.valid_mask & (e > 0) & (e < 1)

        log_e = np.log(e, where=valid, out=np.zeros_like(e))
        denom = 1.0 + (self.wavelength * T / RHO) * log_e
        valid &= denom > 0

        out = np.full(T.shape, bt.nodata, dtype=np.float64)
        np.divide(T, denom, out=out, where=valid)
        out[valid] -= KELVIN_OFFSET
        return bt.with_values(out)

    def derive(self, dn: Grid, ndvi: Grid) -> LSTResult:
        """Run all stages in order on one scene."""
        require_same_geometry(dn, ndvi, context="LST derivation")

        radiance = self.radiance(dn)
        bt = self.brightness_temperature(radiance)
        ndvi_min, ndvi_max = self.ndvi_extrema(ndvi)
        pv = self.fractional_vegetation(ndvi, (ndvi_min, ndvi_max))
        eps = self.emissivity(pv)
        lst = self.land_surface_temperature(bt, eps)

        logger.info("LST derived: %d valid cells, NDVI range [%.3f, %.3f]",
                    lst.valid_count, ndvi_min, ndvi_max)
        if lst.valid_count:
            values = lst.valid_values()
            logger.debug("LST (C): min=%.2f mean=%.2f max=%.2f",
                         values.min(), values.mean(), values.max())

        return LSTResult(
            radiance=radiance,
            brightness_temperature=bt,
            fractional_vegetation=pv,
            emissivity=eps,
            lst=lst,
            ndvi_min=ndvi_min,
            ndvi_max=ndvi_max,
        )
