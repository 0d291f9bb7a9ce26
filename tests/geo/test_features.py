"""Tests for feature table assembly, filtering and writing."""

import numpy as np
import pandas as pd
import pytest

from lstpipe.core import ConfigurationError, GridMismatchError
from lstpipe.geo.features import FeatureTable, FeatureTableAssembler, assemble
from tests.helpers.fake_grid import CELL, NODATA, ORIGIN, make_grid

pytestmark = pytest.mark.unit


@pytest.fixture
def grids():
    lst = make_grid([[20.0, 25.0, 30.0], [NODATA, 35.0, 40.0]])
    ndvi = make_grid([[0.1, 0.2, NODATA], [0.4, 0.5, 0.6]])
    return [("LST", lst), ("NDVI", ndvi)]


class TestAssemble:

    def test_complete_case_rows(self, grids):
        table = assemble(grids)
        assert len(table) == 4
        assert table.cells_total == 6
        assert table.rows_dropped_nodata == 2
        assert table.columns == ["X", "Y", "LST", "NDVI"]

    def test_cell_centres(self, grids):
        frame = assemble(grids).frame
        first = frame.iloc[0]
        assert first["X"] == pytest.approx(ORIGIN[0] + CELL / 2)
        assert first["Y"] == pytest.approx(ORIGIN[1] - CELL / 2)
        last = frame.iloc[-1]
        assert last["X"] == pytest.approx(ORIGIN[0] + 2.5 * CELL)
        assert last["Y"] == pytest.approx(ORIGIN[1] - 1.5 * CELL)
        assert last["LST"] == 40.0

    def test_label_column(self, grids):
        table = FeatureTableAssembler("Month").assemble(grids, label="07")
        assert table.columns[-1] == "Month"
        assert set(table.frame["Month"]) == {"07"}

    def test_no_nodata_in_output(self, grids):
        frame = assemble(grids).frame
        assert not (frame[["LST", "NDVI"]] == NODATA).any().any()

    def test_duplicate_names(self, grids):
        with pytest.raises(ConfigurationError):
            assemble(grids + [("LST", grids[0][1])])

    def test_reserved_names(self, grids):
        with pytest.raises(ConfigurationError):
            assemble(grids + [("X", grids[0][1])])
        with pytest.raises(ConfigurationError):
            assemble(grids + [("Month", grids[0][1])], label="07")

    def test_mismatched_grids(self, grids):
        shifted = make_grid(np.ones((2, 3)), origin=(ORIGIN[0] + CELL, ORIGIN[1]))
        with pytest.raises(GridMismatchError):
            assemble(grids + [("Elevation", shifted)])

    def test_no_grids(self):
        with pytest.raises(ConfigurationError):
            assemble([])

    def test_all_nodata_gives_empty_table(self):
        table = assemble([("LST", make_grid([[NODATA, NODATA]]))])
        assert len(table) == 0
        assert table.columns == ["X", "Y", "LST"]


class TestFilter:

    def test_filter_keeps_matching_rows(self, grids):
        table = assemble(grids).filter("LST", ">", 25.0)
        assert list(table.frame["LST"]) == [35.0, 40.0]
        assert table.rows_before_filter == 4
        assert table.filters == ("LST > 25.0",)

    def test_inclusive_operator(self, grids):
        assert len(assemble(grids).filter("LST", ">=", 25.0)) == 3

    def test_unknown_column(self, grids):
        with pytest.raises(ConfigurationError):
            assemble(grids).filter("Albedo", ">", 0.1)


class TestConcat:

    def test_stacks_scenes(self, grids):
        july = assemble(grids, label="07")
        august = assemble(grids, label="08")
        table = FeatureTable.concat([july, august])
        assert len(table) == 8
        assert table.cells_total == 12
        assert list(table.frame["Month"].unique()) == ["07", "08"]

    def test_column_mismatch(self, grids):
        with pytest.raises(ConfigurationError):
            FeatureTable.concat([assemble(grids), assemble(grids[:1])])

    def test_empty_list(self):
        with pytest.raises(ConfigurationError):
            FeatureTable.concat([])


class TestWrite:

    def test_csv(self, grids, temp_dir):
        table = assemble(grids, label="07")
        path = table.write(temp_dir / "table.csv", fmt="csv")
        assert path.exists()
        assert not list(temp_dir.glob(".*.tmp"))
        frame = pd.read_csv(path, dtype={"Month": str})
        assert list(frame.columns) == table.columns
        assert len(frame) == 4
        assert set(frame["Month"]) == {"07"}

    def test_csv_gzip(self, grids, temp_dir):
        path = assemble(grids).write(temp_dir / "table.csv.gz", fmt="csv", compression="gzip")
        with open(path, "rb") as f:
            assert f.read(2) == b"\x1f\x8b"
        assert len(pd.read_csv(path)) == 4

    def test_parquet(self, grids, temp_dir):
        table = assemble(grids)
        path = table.write(temp_dir / "table.parquet", fmt="parquet", compression="snappy")
        frame = pd.read_parquet(path)
        pd.testing.assert_frame_equal(frame, table.frame)

    def test_unknown_format_leaves_nothing_behind(self, grids, temp_dir):
        with pytest.raises(ConfigurationError):
            assemble(grids).write(temp_dir / "table.xlsx", fmt="xlsx")
        assert list(temp_dir.iterdir()) == []

    def test_summary(self, grids):
        summary = assemble(grids).filter("LST", ">", 30.0).summary()
        assert summary["rows"] == 2
        assert summary["cells_total"] == 6
        assert summary["rows_before_filter"] == 4
        assert summary["filters"] == ["LST > 30.0"]
