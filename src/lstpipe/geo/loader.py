"""Read, crop and co-register Landsat 8 band rasters.

This module turns per-band GeoTIFF files into a ``BandSet`` of grids that
share one cell layout, so every downstream formula can run elementwise.

Key capabilities:
- Crops each band to a projected bounding box (window intersected with the
  raster extent)
- Converts source no-data and the Landsat DN fill value to the grid sentinel
- Reprojects/resamples auxiliary rasters (elevation) onto the band grid
- Rasterizes a land polygon and blanks every cell outside it

Source files are opened read-only and never modified.
"""

import logging
import math
from pathlib import Path
from typing import Dict, Mapping, Optional, Sequence, TYPE_CHECKING

import numpy as np
import rasterio
from rasterio.errors import RasterioIOError
from rasterio.warp import reproject
from rasterio.windows import Window, from_bounds

from lstpipe.core.errors import ConfigurationError, OutOfBoundsError, EmptyGridError
from lstpipe.core.grid import BandSet, Grid
from lstpipe.core.vector import VectorLayer
from lstpipe.geo.geo_utils import rasterize_layer, resampling_method

if TYPE_CHECKING:
    from lstpipe.schemas import InternalConfig

__all__ = ['BandLoader']

logger = logging.getLogger(__name__)

# Tolerance when snapping fractional window offsets to whole cells
_SNAP = 1e-6


class BandLoader:
    """Load Landsat band GeoTIFFs into a co-registered BandSet.

    Configuration
    =============
    Reads ``config.loader``:

    - `nodata` : float, sentinel written into every grid
    - `dn_fill` : float or None, source DN treated as fill (Landsat: 0)
    - `required_bands` : tuple of band ids that must be provided
    - `resampling` : default method for auxiliary rasters

    and ``config.auxiliary.land_mask_all_touched`` for land masking.

    Notes
    -----
    - All bands of a scene must come out on the same cell layout; a band
      delivered at a different resolution or origin raises GridMismatchError.
    - A bbox partially outside a raster is clipped to the raster extent.

    Examples
    --------
    >>> loader = BandLoader(config)
    >>> bands = loader.load({"B4": "LC08_B4.TIF", ...}, (500000, 4000000, 530000, 4030000))
    >>> bands["B4"].shape
    (1000, 1000)
    """

    def __init__(self, config: "InternalConfig"):
        self.nodata = config.loader.nodata
        self.dn_fill = config.loader.dn_fill
        self.resampling = config.loader.resampling
        self.required_bands = tuple(config.loader.required_bands)
        self.land_all_touched = config.auxiliary.land_mask_all_touched

    # ------------------------------------------------------------------
    # Bands
    # ------------------------------------------------------------------

    def load(self, scene_paths: Mapping[str, str], bbox: Sequence[float]) -> BandSet:
        """Read every band, crop to ``bbox`` and return a co-registered BandSet.

        Parameters
        ----------
        scene_paths : mapping of str -> path
            Band id (``"B4"``) to GeoTIFF path.
        bbox : (left, bottom, right, top)
            In the bands' projected CRS.

        Raises
        ------
        ConfigurationError
            A required band is missing, or a file does not exist or is not
            a readable raster.
        OutOfBoundsError
            ``bbox`` does not intersect a band's extent.
        GridMismatchError
            Cropped bands do not share one cell layout.
        """
        paths = {str(k).upper(): v for k, v in scene_paths.items()}
        missing = [b for b in self.required_bands if b not in paths]
        if missing:
            raise ConfigurationError(f"Scene is missing required bands: {missing}")

        grids = {}
        for band_id, path in paths.items():
            grids[band_id] = self._read_window(band_id, path, bbox)
            logger.debug("Loaded %s: %r", band_id, grids[band_id])

        bands = BandSet(grids)
        logger.info("Loaded %d bands, grid %dx%d", len(bands), *bands.template.shape)
        return bands

    def _read_window(self, band_id: str, path, bbox: Sequence[float]) -> Grid:
        path = Path(path)
        if not path.exists():
            raise ConfigurationError(f"Band file not found: {path}")

        try:
            src = rasterio.open(path)
        except RasterioIOError as e:
            raise ConfigurationError(f"Cannot read band {band_id}: {path} ({e})") from e

        with src:
            if src.crs is None:
                raise ConfigurationError(f"Raster has no CRS: {path}")

            window = self._clip_window(src, bbox, path)
            data = src.read(1, window=window).astype(np.float64)
            transform = src.window_transform(window)

            invalid = ~np.isfinite(data)
            if src.nodata is not None:
                invalid |= data == src.nodata
            if self.dn_fill is not None:
                invalid |= data == self.dn_fill
            data[invalid] = self.nodata

            return Grid(data, transform, src.crs.to_wkt(), self.nodata)

    @staticmethod
    def _clip_window(src, bbox: Sequence[float], path) -> Window:
        """Window covering ``bbox``, intersected with the dataset's index range."""
        win = from_bounds(*bbox, transform=src.transform)

        col_start = max(int(math.floor(win.col_off + _SNAP)), 0)
        row_start = max(int(math.floor(win.row_off + _SNAP)), 0)
        col_stop = min(int(math.ceil(win.col_off + win.width - _SNAP)), src.width)
        row_stop = min(int(math.ceil(win.row_off + win.height - _SNAP)), src.height)

        if col_start >= col_stop or row_start >= row_stop:
            raise OutOfBoundsError(bbox, str(path))

        return Window(col_start, row_start, col_stop - col_start, row_stop - row_start)

    # ------------------------------------------------------------------
    # Auxiliary rasters
    # ------------------------------------------------------------------

    def load_auxiliary(self, path, template: Grid, resampling: Optional[str] = None) -> Grid:
        """Reproject and resample an external raster onto the template grid.

        Cells the source does not cover become no-data.

        Raises
        ------
        ConfigurationError
            The file does not exist, cannot be read or has no CRS.
        OutOfBoundsError
            The raster does not overlap the template at all.
        """
        path = Path(path)
        if not path.exists():
            raise ConfigurationError(f"Auxiliary raster not found: {path}")

        method = resampling_method(resampling or self.resampling)
        destination = np.full(template.shape, template.nodata, dtype=np.float64)

        try:
            src = rasterio.open(path)
        except RasterioIOError as e:
            raise ConfigurationError(f"Cannot read auxiliary raster: {path} ({e})") from e

        with src:
            if src.crs is None:
                raise ConfigurationError(f"Raster has no CRS: {path}")
            reproject(
                source=rasterio.band(src, 1),
                destination=destination,
                src_transform=src.transform,
                src_crs=src.crs,
                src_nodata=src.nodata,
                dst_transform=template.transform,
                dst_crs=template.crs.to_wkt(),
                dst_nodata=template.nodata,
                resampling=method,
            )

        grid = template.with_values(destination)
        if grid.valid_count == 0:
            raise OutOfBoundsError(template.bounds, str(path))

        logger.info("Aligned %s onto band grid (%s, %d valid cells)",
                    path.name, method.name, grid.valid_count)
        return grid

    # ------------------------------------------------------------------
    # Land mask
    # ------------------------------------------------------------------

    def land_mask_grid(self, land_layer: VectorLayer, template: Grid) -> Grid:
        """1.0 inside the land polygon, no-data outside."""
        mask = rasterize_layer(land_layer, template, fg=1.0, bg=template.nodata,
                               all_touched=self.land_all_touched)
        if mask.valid_count == 0:
            raise EmptyGridError(f"Land layer '{land_layer.name}' covers no cell of the band grid")
        return mask

    def apply_land_mask(self, bands: BandSet, land_layer: VectorLayer) -> BandSet:
        """Set every band cell outside the land polygon to no-data."""
        outside = self.land_mask_grid(land_layer, bands.template).nodata_mask
        masked: Dict[str, Grid] = {
            band_id: grid.masked_where(outside) for band_id, grid in bands.items()
        }
        logger.info("Land mask applied: %d of %d cells inside '%s'",
                    int((~outside).sum()), outside.size, land_layer.name)
        return BandSet(masked)
