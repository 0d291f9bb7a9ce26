"""Tests for the command line entry point and config file loading."""

import pandas as pd
import pytest

from lstpipe.cli import main, run_lst_pipeline
from lstpipe.cli.run_pipeline import build_parser, load_user_config_dict
from tests.helpers.fake_raster import CALIBRATION

pytestmark = pytest.mark.integration


@pytest.fixture
def config_file(temp_dir, scene_files):
    """User config file with two scenes and no OSM layers."""
    paths, bbox = scene_files
    scenes = [
        {"label": label, "bands": paths, "bbox": bbox, "calibration": CALIBRATION}
        for label in ("07", "08")
    ]
    path = temp_dir / "user_config.py"
    path.write_text(
        '"""Test config."""\n'
        f"CONFIG = {{\n"
        f"    'BASE_DIR': {str(temp_dir / 'out')!r},\n"
        f"    'scenes': {scenes!r},\n"
        f"    'proximity': {{'enabled': False}},\n"
        f"}}\n"
    )
    return path


class TestLoadUserConfig:

    def test_reads_config_dict(self, config_file):
        config = load_user_config_dict(config_file)
        assert config["proximity"] == {"enabled": False}
        assert len(config["scenes"]) == 2

    def test_missing_file(self, temp_dir):
        with pytest.raises(FileNotFoundError):
            load_user_config_dict(temp_dir / "nope.py")

    def test_no_config_dict(self, temp_dir):
        path = temp_dir / "empty.py"
        path.write_text("SETTINGS = {}\n")
        with pytest.raises(ValueError, match="No CONFIG"):
            load_user_config_dict(path)


class TestParser:

    def test_defaults_leave_config_alone(self):
        args = build_parser().parse_args(["cfg.py"])
        assert args.fit_models is None
        assert args.save_grids is None
        assert args.scenes is None

    def test_flags(self):
        args = build_parser().parse_args(
            ["cfg.py", "--scene", "07", "--scene", "08", "--format", "parquet",
             "--fit-models", "--no-grids", "--rerun", "-v"]
        )
        assert args.scenes == ["07", "08"]
        assert args.output_format == "parquet"
        assert args.fit_models is True
        assert args.save_grids is False
        assert args.rerun and args.verbose


def test_run_lst_pipeline(config_file, temp_dir):
    table = run_lst_pipeline(str(config_file), cli_args={"scenes": ["08"], "base_dir": None})

    assert set(table.frame["Month"]) == {"08"}
    assert len(table) == 399
    assert (temp_dir / "out" / "grids" / "08_grids.nc").exists()
    assert not (temp_dir / "out" / "grids" / "07_grids.nc").exists()


def test_main(config_file, temp_dir, capsys):
    out_dir = temp_dir / "cli_out"
    code = main([str(config_file), "--base-dir", str(out_dir), "--scene", "07,08",
                 "--format", "parquet", "--no-grids"])

    assert code == 0
    frame = pd.read_parquet(out_dir / "tables" / "feature_table.parquet")
    assert list(frame["Month"].unique()) == ["07", "08"]
    assert not list((out_dir / "grids").iterdir())
    assert "Scenes: 07, 08" in capsys.readouterr().out


def test_rerun_cleans_output(config_file, temp_dir):
    stale = temp_dir / "out" / "tables" / "old.csv"
    stale.parent.mkdir(parents=True)
    stale.write_text("x\n")

    run_lst_pipeline(str(config_file), rerun=True)

    assert not stale.exists()
    assert (temp_dir / "out" / "tables" / "feature_table.csv").exists()
