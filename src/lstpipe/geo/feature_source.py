"""Vector feature sources for proximity layers and the land mask.

Two sources share one call shape, ``fetch(name, bbox, crs, tags)``, and
both return a ``VectorLayer`` in the requested projected CRS:

- ``OSMFeatureSource`` queries OpenStreetMap through osmnx. The projected
  bbox is converted to WGS84 lon/lat first.
- ``FileFeatureSource`` reads any file geopandas can open (GeoPackage,
  shapefile, GeoJSON) and applies the same tag semantics to its columns.
"""

import logging
from pathlib import Path
from typing import Dict, Optional, Sequence, Union

import geopandas as gpd
import osmnx as ox
# osmnx>=2 keeps its exception types in a private module and does not re-export them
from osmnx._errors import InsufficientResponseError

from lstpipe.core.errors import ConfigurationError, EmptyFeatureError
from lstpipe.core.vector import VectorLayer
from lstpipe.geo.geo_utils import bbox_to_wgs84

__all__ = ['OSMFeatureSource', 'FileFeatureSource', 'filter_by_tags', 'describe_tags']

logger = logging.getLogger(__name__)

TagValue = Union[bool, str, list]


def describe_tags(tags: Dict[str, TagValue]) -> str:
    """Compact ``key=value`` rendering used in log lines and errors."""
    parts = []
    for key, value in tags.items():
        if value is True:
            parts.append(key)
        elif isinstance(value, (list, tuple)):
            parts.append(f"{key}={'|'.join(map(str, value))}")
        else:
            parts.append(f"{key}={value}")
    return ",".join(parts) or "*"


def filter_by_tags(frame: gpd.GeoDataFrame, tags: Dict[str, TagValue]) -> gpd.GeoDataFrame:
    """Keep rows matching ANY tag, OSM style.

    ``True`` matches any non-null value, a string matches exactly, a list
    matches any member. Tags naming absent columns match nothing.
    """
    if not tags:
        return frame

    keep = None
    for key, value in tags.items():
        if key not in frame.columns:
            continue
        column = frame[key]
        if value is True:
            hit = column.notna()
        elif value is False:
            continue
        elif isinstance(value, (list, tuple)):
            hit = column.isin(list(value))
        else:
            hit = column == value
        keep = hit if keep is None else (keep | hit)

    if keep is None:
        return frame.iloc[0:0]
    return frame[keep]


class OSMFeatureSource:
    """Fetch OpenStreetMap features inside a projected bounding box.

    Parameters
    ----------
    config : InternalConfig
        Reads ``config.feature_source.requests_timeout`` and ``use_cache``.
    """

    def __init__(self, config):
        self.requests_timeout = config.feature_source.requests_timeout
        self.use_cache = config.feature_source.use_cache

    def fetch(self, name: str, bbox: Sequence[float], crs,
              tags: Optional[Dict[str, TagValue]] = None) -> VectorLayer:
        """Query features matching ``tags`` and project them to ``crs``.

        Raises
        ------
        ConfigurationError
            If no tags are given.
        EmptyFeatureError
            If OSM returns nothing for the box.
        """
        if not tags:
            raise ConfigurationError(f"OSM layer '{name}' needs at least one tag")

        ox.settings.requests_timeout = self.requests_timeout
        ox.settings.use_cache = self.use_cache

        # osmnx bbox order: (west, south, east, north)
        west, south, east, north = bbox_to_wgs84(bbox, crs)
        label = describe_tags(tags)
        logger.info("Querying OSM for '%s' (%s) in (%.4f, %.4f, %.4f, %.4f)",
                    name, label, west, south, east, north)

        try:
            frame = ox.features_from_bbox(bbox=(west, south, east, north), tags=dict(tags))
        except InsufficientResponseError:
            raise EmptyFeatureError(label, bbox) from None

        frame = gpd.GeoDataFrame(frame).reset_index()
        if frame.crs is None:
            frame = frame.set_crs("EPSG:4326")
        if frame.empty:
            raise EmptyFeatureError(label, bbox)

        logger.info("OSM '%s': %d features", name, len(frame))
        return VectorLayer(name, frame[["geometry"]].to_crs(crs))


class FileFeatureSource:
    """Read features from a local vector file."""

    def __init__(self, path):
        self.path = Path(path)

    def fetch(self, name: str, bbox: Optional[Sequence[float]] = None, crs=None,
              tags: Optional[Dict[str, TagValue]] = None) -> VectorLayer:
        if not self.path.exists():
            raise ConfigurationError(f"Vector file for '{name}' not found: {self.path}")

        try:
            frame = gpd.read_file(self.path)
        except (OSError, RuntimeError, ValueError) as e:
            raise ConfigurationError(f"Cannot read vector file for '{name}': {self.path} ({e})") from e
        if frame.crs is None:
            raise ConfigurationError(f"Vector file has no CRS: {self.path}")

        frame = filter_by_tags(frame, tags or {})
        if crs is not None:
            frame = frame.to_crs(crs)
        if bbox is not None and not frame.empty:
            frame = frame.cx[bbox[0]:bbox[2], bbox[1]:bbox[3]]

        if frame.empty:
            raise EmptyFeatureError(describe_tags(tags or {}) if tags else name, bbox)

        logger.info("Read '%s' from %s: %d features", name, self.path.name, len(frame))
        return VectorLayer(name, frame)
