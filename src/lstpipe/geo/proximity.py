"""Proximity and exposure layers from rasterized vector features.

Two kinds of covariate are produced on the band grid:

- **distance**: Euclidean distance (projected units) from each cell to the
  nearest feature cell, e.g. coast or road distance.
- **density**: Gaussian-smoothed feature presence, a heatmap of how much of
  a feature (buildings, tourism points) surrounds each cell.

Both are masked to land when a land grid is given. Normalisation
(z-score or min-max) is computed over valid cells only.
"""

import logging
from collections import OrderedDict
from typing import Optional, Sequence, Tuple, TYPE_CHECKING

import numpy as np
from scipy.ndimage import distance_transform_edt, gaussian_filter

from lstpipe.core.errors import ConfigurationError, EmptyFeatureError, EmptyGridError
from lstpipe.core.grid import Grid, require_same_geometry
from lstpipe.core.vector import VectorLayer
from lstpipe.geo.geo_utils import rasterize_layer

if TYPE_CHECKING:
    from lstpipe.schemas import InternalConfig

__all__ = [
    'ProximityEngine',
    'rasterize',
    'distance_transform',
    'kernel_density',
    'standardize',
    'min_max_normalize',
    'normalize_grid',
]

logger = logging.getLogger(__name__)


def rasterize(layer: VectorLayer, template: Grid, fg: float = 1.0, bg: float = 0.0,
              all_touched: bool = True) -> Grid:
    """Binary presence grid of ``layer`` on the template layout."""
    return rasterize_layer(layer, template, fg=fg, bg=bg, all_touched=all_touched)


def _apply_land(grid: Grid, land: Optional[Grid]) -> Grid:
    if land is None:
        return grid
    require_same_geometry(grid, land, context="land masking")
    return grid.masked_where(~land.valid_mask)


def distance_transform(binary: Grid, land: Optional[Grid] = None,
                       name: str = "features") -> Grid:
    """Distance from every cell to the nearest foreground (> 0) cell.

    Uses the cell size as sampling so the result is in projected units
    (metres for UTM scenes).

    Raises
    ------
    EmptyFeatureError
        If ``binary`` has no foreground cell.
    """
    foreground = binary.valid_mask & (binary.values > 0)
    if not foreground.any():
        raise EmptyFeatureError(name)

    cell_x, cell_y = binary.cell_size
    distance = distance_transform_edt(~foreground, sampling=(cell_y, cell_x))
    return _apply_land(binary.with_values(distance), land)


def kernel_density(binary: Grid, kernel_radius: int, land: Optional[Grid] = None,
                   sigma: Optional[float] = None, normalize: str = "zscore") -> Grid:
    """Gaussian-smoothed presence, masked to land, then normalised.

    Parameters
    ----------
    binary : Grid
        1 where a feature is present, 0 elsewhere. No-data counts as 0.
    kernel_radius : int
        Kernel half-width in cells.
    land : Grid, optional
        Cells that are no-data here are no-data in the output.
    sigma : float, optional
        Gaussian standard deviation in cells, default ``kernel_radius / 3``.
    normalize : {"zscore", "minmax", "none"}

    Notes
    -----
    Cells beyond the grid edge count as zero presence (``mode="constant"``).
    """
    if kernel_radius < 1:
        raise ConfigurationError(f"kernel_radius must be >= 1, got {kernel_radius}")
    sigma = kernel_radius / 3.0 if sigma is None else float(sigma)

    presence = binary.filled(0.0)
    presence = (presence > 0).astype(np.float64)
    smoothed = gaussian_filter(presence, sigma=sigma, mode="constant", cval=0.0,
                               radius=int(kernel_radius))

    density = _apply_land(binary.with_values(smoothed), land)
    return normalize_grid(density, normalize)


def standardize(grid: Grid) -> Grid:
    """(x - mean) / std over valid cells; constant grids become all zeros."""
    values = grid.valid_values()
    if values.size == 0:
        raise EmptyGridError("Cannot standardize a grid with no valid cells")

    mean = values.mean()
    std = values.std()
    if std == 0:
        logger.warning("Standardizing a constant grid (value %.4g); valid cells set to 0", mean)
        return grid.with_values(np.where(grid.valid_mask, 0.0, grid.nodata))

    out = np.where(grid.valid_mask, (grid.values - mean) / std, grid.nodata)
    return grid.with_values(out)


def min_max_normalize(grid: Grid) -> Grid:
    """Scale valid cells to [0, 1]; constant grids become all zeros."""
    values = grid.valid_values()
    if values.size == 0:
        raise EmptyGridError("Cannot normalize a grid with no valid cells")

    lo, hi = values.min(), values.max()
    if hi == lo:
        logger.warning("Min-max scaling a constant grid (value %.4g); valid cells set to 0", lo)
        return grid.with_values(np.where(grid.valid_mask, 0.0, grid.nodata))

    out = np.where(grid.valid_mask, (grid.values - lo) / (hi - lo), grid.nodata)
    return grid.with_values(out)


_NORMALIZERS = {
    "zscore": standardize,
    "minmax": min_max_normalize,
    "none": lambda grid: grid,
}


def normalize_grid(grid: Grid, method: str) -> Grid:
    try:
        return _NORMALIZERS[method](grid)
    except KeyError:
        raise ConfigurationError(f"Unknown normalisation: {method!r}") from None


class ProximityEngine:
    """Build every configured proximity/exposure layer for one scene.

    Feature fetching is done by the caller; the engine only turns vector
    layers into grids, so it has no I/O.

    Examples
    --------
    >>> engine = ProximityEngine(config)
    >>> grids = engine.build_layers([(layer_cfg, coast_layer)], template, land)
    >>> list(grids)
    ['Coast_Distance']
    """

    def __init__(self, config: "InternalConfig"):
        self.kernel_sigma = config.proximity.kernel_sigma

    def build_layer(self, layer_cfg, layer: VectorLayer, template: Grid,
                    land: Optional[Grid] = None) -> Grid:
        binary = rasterize(layer, template, all_touched=layer_cfg.all_touched)

        if layer_cfg.kind == "distance":
            grid = distance_transform(binary, land, name=layer_cfg.name)
            grid = normalize_grid(grid, layer_cfg.normalize)
        elif layer_cfg.kind == "density":
            grid = kernel_density(binary, layer_cfg.kernel_radius, land,
                                  sigma=self.kernel_sigma, normalize=layer_cfg.normalize)
        else:
            raise ConfigurationError(f"Unknown proximity kind: {layer_cfg.kind!r}")

        logger.info("Layer %s (%s, %s): %d valid cells",
                    layer_cfg.name, layer_cfg.kind, layer_cfg.normalize, grid.valid_count)
        return grid

    def build_layers(self, layers: Sequence[Tuple[object, VectorLayer]], template: Grid,
                     land: Optional[Grid] = None) -> "OrderedDict[str, Grid]":
        """Build layers in configuration order.

        Parameters
        ----------
        layers : sequence of (layer config, VectorLayer)
        template : Grid
            Band grid providing the cell layout.
        land : Grid, optional
            Land mask grid (no-data outside land).
        """
        grids = OrderedDict()
        for layer_cfg, layer in layers:
            if layer_cfg.name in grids:
                raise ConfigurationError(f"Duplicate proximity layer: {layer_cfg.name}")
            grids[layer_cfg.name] = self.build_layer(layer_cfg, layer, template, land)
        return grids
