from pathlib import Path

from lstpipe.setup_directories import (
    get_grid_path,
    get_log_path,
    get_model_report_path,
    get_table_path,
    setup_output_directories,
)


def test_setup_output_directories_creates_all(tmp_path):
    dirs = setup_output_directories(tmp_path, verbose=False)

    assert set(dirs.keys()) == {"base", "grids", "tables", "models", "logs"}

    for path in dirs.values():
        assert isinstance(path, Path)
        assert path.is_dir()


def test_setup_output_directories_is_idempotent(tmp_path):
    dirs1 = setup_output_directories(tmp_path, verbose=False)
    dirs2 = setup_output_directories(tmp_path, verbose=False)

    assert dirs1 == dirs2


def test_verbose_prints_layout(tmp_path, capsys):
    setup_output_directories(tmp_path)
    out = capsys.readouterr().out
    assert "tables" in out
    assert str(tmp_path.resolve()) in out


def test_table_path_suffixes(tmp_path):
    dirs = setup_output_directories(tmp_path, verbose=False)

    assert get_table_path(dirs, "lst", "csv").name == "lst.csv"
    assert get_table_path(dirs, "lst", "csv", "gzip").name == "lst.csv.gz"
    assert get_table_path(dirs, "lst", "parquet", "snappy").name == "lst.parquet"
    assert get_table_path(dirs, "lst").parent == dirs["tables"]


def test_scene_labels_are_made_file_safe(tmp_path):
    dirs = setup_output_directories(tmp_path, verbose=False)

    path = get_grid_path(dirs, "2023/07 am")
    assert path.name == "2023_07_am_grids.nc"
    assert path.parent == dirs["grids"]


def test_model_and_log_paths(tmp_path):
    dirs = setup_output_directories(tmp_path, verbose=False)

    assert get_model_report_path(dirs, "feature_table").name == "feature_table_models.json"
    assert get_log_path(dirs, run_id="test").name == "lstpipe_test.log"
    default = get_log_path(dirs)
    assert default.parent == dirs["logs"]
    assert default.name.startswith("lstpipe_") and default.suffix == ".log"
