"""Named vector layers (coastline, roads, buildings, tourism points, land polygon)."""

from dataclasses import dataclass

import geopandas as gpd

from lstpipe.core.errors import ConfigurationError, EmptyFeatureError

__all__ = ['VectorLayer']


@dataclass(frozen=True)
class VectorLayer:
    """A named, immutable set of geometries with a CRS."""

    name: str
    frame: gpd.GeoDataFrame

    def __post_init__(self):
        if self.frame.crs is None:
            raise ConfigurationError(f"Vector layer '{self.name}' has no CRS")

    @property
    def crs(self):
        return self.frame.crs

    @property
    def is_empty(self) -> bool:
        geoms = self.frame.geometry
        return len(geoms) == 0 or bool(geoms.is_empty.all())

    def to_crs(self, crs) -> "VectorLayer":
        if self.frame.crs == crs:
            return self
        return VectorLayer(self.name, self.frame.to_crs(crs))

    def geometries(self) -> list:
        """Non-empty, non-null geometries; EmptyFeatureError if none are left."""
        geoms = self.frame.geometry
        geoms = geoms[geoms.notna() & ~geoms.is_empty]
        if len(geoms) == 0:
            raise EmptyFeatureError(self.name)
        return list(geoms)

    def __len__(self):
        return len(self.frame)
