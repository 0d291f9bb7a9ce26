"""Small raster/vector helpers shared by the loader and the proximity engine."""

import logging
from typing import Sequence, Tuple

import numpy as np
from pyproj import CRS, Transformer
from rasterio import features
from rasterio.enums import Resampling

from lstpipe.core.errors import ConfigurationError
from lstpipe.core.grid import Grid
from lstpipe.core.vector import VectorLayer

__all__ = ['rasterize_layer', 'bbox_to_wgs84', 'resampling_method']

logger = logging.getLogger(__name__)

WGS84 = CRS.from_epsg(4326)


def resampling_method(name: str) -> Resampling:
    """Map a config name ("bilinear", "nearest", "cubic") to rasterio's enum."""
    try:
        return Resampling[name]
    except KeyError:
        raise ConfigurationError(f"Unknown resampling method: {name!r}") from None


def rasterize_layer(layer: VectorLayer, template: Grid, fg: float = 1.0,
                    bg: float = 0.0, all_touched: bool = True) -> Grid:
    """Burn a vector layer onto the template cell layout.

    The layer is reprojected to the template CRS first. Cells touched by a
    geometry get ``fg``; all others get ``bg``. Passing ``bg=template.nodata``
    produces a mask grid whose outside cells are no-data.

    Raises
    ------
    EmptyFeatureError
        If the layer holds no usable geometry.
    """
    layer = layer.to_crs(template.crs)
    geoms = layer.geometries()

    burned = features.rasterize(
        ((geom, fg) for geom in geoms),
        out_shape=template.shape,
        transform=template.transform,
        fill=bg,
        all_touched=all_touched,
        dtype="float64",
    )
    logger.debug("Rasterized '%s': %d geometries, %d foreground cells",
                 layer.name, len(geoms), int(np.count_nonzero(burned == fg)))
    return template.with_values(burned)


def bbox_to_wgs84(bbox: Sequence[float], crs) -> Tuple[float, float, float, float]:
    """Transform a projected (left, bottom, right, top) box to lon/lat bounds.

    Densifies the edges so curved projected edges are fully enclosed.
    """
    src = CRS.from_user_input(crs)
    if src == WGS84:
        return tuple(float(v) for v in bbox)
    transformer = Transformer.from_crs(src, WGS84, always_xy=True)
    west, south, east, north = transformer.transform_bounds(*bbox, densify_pts=21)
    return west, south, east, north
