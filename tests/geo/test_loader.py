"""Tests for BandLoader: cropping, fill handling, auxiliary alignment, land mask."""

import geopandas as gpd
import numpy as np
import pytest

from lstpipe.core import (
    ConfigurationError,
    EmptyGridError,
    GridMismatchError,
    OutOfBoundsError,
    VectorLayer,
)
from lstpipe.geo.loader import BandLoader
from tests.helpers.fake_grid import CELL, CRS, NODATA, ORIGIN, make_transform
from tests.helpers.fake_raster import land_polygon, write_dem, write_geotiff, write_scene

pytestmark = pytest.mark.unit


@pytest.fixture
def loader(internal_config):
    return BandLoader(internal_config)


class TestLoad:

    def test_full_extent(self, loader, scene_files):
        paths, bbox = scene_files
        bands = loader.load(paths, bbox)

        assert set(bands) == set(paths)
        assert bands.template.shape == (20, 20)
        assert bands.template.bounds == pytest.approx(bbox)

    def test_dn_fill_becomes_nodata(self, loader, scene_files):
        paths, bbox = scene_files
        bands = loader.load(paths, bbox)
        for grid in bands.values():
            assert grid.values[0, 0] == NODATA
            assert grid.valid_count == 399

    def test_crop_to_bbox(self, loader, scene_files):
        paths, _ = scene_files
        left, top = ORIGIN[0] + 5 * CELL, ORIGIN[1] - 2 * CELL
        bbox = (left, top - 4 * CELL, left + 3 * CELL, top)

        bands = loader.load(paths, bbox)

        assert bands.template.shape == (4, 3)
        assert bands.template.transform.c == left
        assert bands.template.transform.f == top

    def test_bbox_partially_outside_is_clipped(self, loader, scene_files):
        paths, bbox = scene_files
        bigger = (bbox[0] - 1000, bbox[1] - 1000, bbox[0] + 3 * CELL, bbox[3] + 1000)
        bands = loader.load(paths, bigger)
        assert bands.template.shape == (20, 3)

    def test_bbox_outside_raises(self, loader, scene_files):
        paths, _ = scene_files
        far = (0.0, 0.0, 1000.0, 1000.0)
        with pytest.raises(OutOfBoundsError) as exc:
            loader.load(paths, far)
        assert exc.value.bbox == far
        assert exc.value.source.endswith(".TIF")

    def test_missing_required_band(self, loader, scene_files):
        paths, bbox = scene_files
        del paths["B6"]
        with pytest.raises(ConfigurationError, match="B6"):
            loader.load(paths, bbox)

    def test_missing_file(self, loader, scene_files, temp_dir):
        paths, bbox = scene_files
        paths["B2"] = str(temp_dir / "missing.TIF")
        with pytest.raises(ConfigurationError, match="not found"):
            loader.load(paths, bbox)

    def test_band_on_different_grid_raises(self, loader, scene_files, temp_dir):
        paths, bbox = scene_files
        coarse = np.full((10, 10), 1000, dtype=np.uint16)
        paths["B10"] = str(write_geotiff(temp_dir / "B10_60m.TIF", coarse, make_transform(cell=60.0)))
        with pytest.raises(GridMismatchError):
            loader.load(paths, bbox)

    def test_unreadable_band_names_band_and_file(self, loader, scene_files):
        paths, bbox = scene_files
        with open(paths["B4"], "wb") as fh:
            fh.write(b"not a tiff")
        with pytest.raises(ConfigurationError, match="Cannot read band B4") as exc:
            loader.load(paths, bbox)
        assert paths["B4"] in str(exc.value)

    def test_source_files_untouched(self, loader, scene_files):
        import rasterio
        paths, bbox = scene_files
        with rasterio.open(paths["B4"]) as src:
            before = src.read(1)
        loader.load(paths, bbox)
        with rasterio.open(paths["B4"]) as src:
            np.testing.assert_array_equal(src.read(1), before)


class TestAuxiliary:

    def test_dem_is_resampled_onto_band_grid(self, loader, scene_files, temp_dir):
        paths, bbox = scene_files
        bands = loader.load(paths, bbox)
        dem = loader.load_auxiliary(write_dem(temp_dir / "dem.tif"), bands.template)

        assert dem.same_geometry(bands.template)
        assert dem.valid_count > 0
        # elevation rises eastwards in the source DEM
        row = dem.values[10]
        assert row[-2] > row[1]

    def test_nearest_resampling(self, loader, scene_files, temp_dir):
        paths, bbox = scene_files
        bands = loader.load(paths, bbox)
        dem = loader.load_auxiliary(write_dem(temp_dir / "dem.tif"), bands.template, "nearest")
        # nearest keeps source values only
        assert set(np.unique(dem.valid_values())) <= {100.0 + 10.0 * i for i in range(10)}

    def test_non_overlapping_raster_raises(self, loader, scene_files, temp_dir):
        paths, bbox = scene_files
        bands = loader.load(paths, bbox)
        far = write_geotiff(temp_dir / "far.tif", np.ones((5, 5)), make_transform(origin=(0.0, 1000.0)),
                            dtype="float32")
        with pytest.raises(OutOfBoundsError):
            loader.load_auxiliary(far, bands.template)

    def test_unreadable_raster(self, loader, scene_files, temp_dir):
        paths, bbox = scene_files
        bands = loader.load(paths, bbox)
        broken = temp_dir / "dem.tif"
        broken.write_bytes(b"not a tiff")
        with pytest.raises(ConfigurationError, match="Cannot read auxiliary raster"):
            loader.load_auxiliary(broken, bands.template)


class TestLandMask:

    def test_cells_outside_land_become_nodata(self, loader, scene_files):
        paths, bbox = scene_files
        bands = loader.load(paths, bbox)
        land = VectorLayer("land", gpd.GeoDataFrame(geometry=[land_polygon(margin=2)], crs=CRS))

        masked = loader.apply_land_mask(bands, land)

        for grid in masked.values():
            assert grid.valid_count == 16 * 16
            assert np.all(grid.values[:2, :] == NODATA)
        # inputs are not modified
        assert bands["B4"].valid_count == 399

    def test_land_layer_in_other_crs_is_reprojected(self, loader, scene_files):
        paths, bbox = scene_files
        bands = loader.load(paths, bbox)
        frame = gpd.GeoDataFrame(geometry=[land_polygon(margin=2)], crs=CRS).to_crs("EPSG:4326")
        mask = loader.land_mask_grid(VectorLayer("land", frame), bands.template)
        assert 200 < mask.valid_count < 300

    def test_land_outside_grid_raises(self, loader, scene_files):
        paths, bbox = scene_files
        bands = loader.load(paths, bbox)
        from shapely.geometry import box
        land = VectorLayer("land", gpd.GeoDataFrame(geometry=[box(0, 0, 10, 10)], crs=CRS))
        with pytest.raises(EmptyGridError):
            loader.apply_land_mask(bands, land)
