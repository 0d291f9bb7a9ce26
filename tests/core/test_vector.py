import geopandas as gpd
import pytest
from shapely.geometry import LineString, Point, Polygon

from lstpipe.core import ConfigurationError, EmptyFeatureError, VectorLayer

pytestmark = pytest.mark.unit


def test_layer_requires_crs():
    frame = gpd.GeoDataFrame(geometry=[Point(0, 0)])
    with pytest.raises(ConfigurationError, match="no CRS"):
        VectorLayer("roads", frame)


def test_geometries_skip_empty_and_null():
    frame = gpd.GeoDataFrame(
        geometry=[LineString([(0, 0), (1, 1)]), None, Polygon()], crs="EPSG:32634"
    )
    layer = VectorLayer("roads", frame)
    assert len(layer.geometries()) == 1
    assert not layer.is_empty


def test_empty_layer_raises_with_name():
    layer = VectorLayer("tourism", gpd.GeoDataFrame(geometry=[], crs="EPSG:32634"))
    assert layer.is_empty
    with pytest.raises(EmptyFeatureError) as exc:
        layer.geometries()
    assert exc.value.tag == "tourism"


def test_to_crs_returns_new_layer():
    layer = VectorLayer("pts", gpd.GeoDataFrame(geometry=[Point(21.0, 38.0)], crs="EPSG:4326"))
    projected = layer.to_crs("EPSG:32634")
    assert projected is not layer
    assert projected.crs.to_epsg() == 32634
    assert layer.crs.to_epsg() == 4326
    assert layer.to_crs(layer.crs) is layer
