import geopandas as gpd
import pytest
from shapely.geometry import LineString, Point

from lstpipe.core import EmptyFeatureError, VectorLayer
from tests.helpers.fake_grid import CELL, ORIGIN
from tests.helpers.fake_raster import CALIBRATION, land_polygon, write_dem, write_vector


class FakeOSMSource:
    """Stands in for OSMFeatureSource: fixed building points, records calls."""

    def __init__(self, empty_tags=()):
        self.calls = []
        self.empty_tags = set(empty_tags)

    def fetch(self, name, bbox, crs, tags=None):
        self.calls.append((name, tuple(bbox), dict(tags or {})))
        if set(tags or {}) & self.empty_tags:
            raise EmptyFeatureError(",".join(tags), bbox)
        points = [
            Point(ORIGIN[0] + (c + 0.5) * CELL, ORIGIN[1] - (r + 0.5) * CELL)
            for r, c in [(5, 5), (5, 6), (6, 5), (14, 12)]
        ]
        return VectorLayer(name, gpd.GeoDataFrame(geometry=points, crs=crs))


@pytest.fixture
def fake_osm():
    return FakeOSMSource()


@pytest.fixture
def aux_files(temp_dir):
    """Land polygon, a road line and a coarse DEM over the synthetic scene."""
    land = write_vector(temp_dir / "land.gpkg", [land_polygon()])
    y = ORIGIN[1] - 10.5 * CELL
    road = LineString([(ORIGIN[0], y), (ORIGIN[0] + 20 * CELL, y)])
    roads = write_vector(temp_dir / "roads.gpkg", [road], highway=["primary"])
    dem = write_dem(temp_dir / "dem.tif")
    return {"land": str(land), "roads": str(roads), "dem": str(dem)}


LAYERS = [
    {"name": "Coast_Distance", "kind": "distance", "source": "land_boundary"},
    {"name": "Road_Distance", "kind": "distance", "source": "file",
     "tags": {"highway": True}},
    {"name": "Building_Exposure", "kind": "density", "tags": {"building": True}},
]


@pytest.fixture
def pipeline_config(make_config, scene_files, aux_files, temp_dir):
    """Factory: full pipeline config over the synthetic scene.

    Keyword arguments are UserConfig overrides applied on top.
    """
    paths, bbox = scene_files

    def _make(labels=("07",), **overrides):
        layers = [dict(layer) for layer in LAYERS]
        layers[1]["source_file"] = aux_files["roads"]
        user = {
            "base_dir": str(temp_dir / "out"),
            "scenes": [
                {"label": label, "bands": paths, "bbox": bbox, "calibration": CALIBRATION}
                for label in labels
            ],
            "land_mask_file": aux_files["land"],
            "elevation_file": aux_files["dem"],
            "proximity": {"kernel_radius": 3, "layers": layers},
        }
        user.update(overrides)
        return make_config(**user)

    return _make

