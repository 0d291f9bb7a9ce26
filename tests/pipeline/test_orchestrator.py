import json

import pandas as pd
import pytest

from lstpipe.core import ConfigurationError, OutOfBoundsError
from lstpipe.pipeline import PipelineOrchestrator

pytestmark = pytest.mark.integration


def test_orchestrator_stores_config(pipeline_config, output_dirs):
    config = pipeline_config()
    orch = PipelineOrchestrator(config, output_dirs, configure_logging=False)

    assert orch.config == config
    assert orch.output_dirs == output_dirs
    assert orch.table is None


def test_output_dirs_default_to_base_dir(pipeline_config, temp_dir):
    orch = PipelineOrchestrator(pipeline_config(), configure_logging=False)
    assert orch.output_dirs["base"] == (temp_dir / "out").resolve()
    assert orch.output_dirs["tables"].is_dir()


def test_single_scene_run(pipeline_config, output_dirs, fake_osm):
    orch = PipelineOrchestrator(pipeline_config(), output_dirs, feature_source=fake_osm,
                                configure_logging=False)
    table = orch.start()

    assert orch.table_path == output_dirs["tables"] / "feature_table.csv"
    written = pd.read_csv(orch.table_path, dtype={"Month": str})
    assert list(written.columns) == table.columns
    assert len(written) == len(table) == 256
    assert orch.reports == []


def test_scenes_are_labelled_and_stacked(pipeline_config, output_dirs, fake_osm):
    config = pipeline_config(labels=("07", "08"), output_format="parquet")
    orch = PipelineOrchestrator(config, output_dirs, feature_source=fake_osm,
                                configure_logging=False)
    table = orch.start()

    assert len(table) == 512
    assert table.cells_total == 800
    assert list(table.frame["Month"].unique()) == ["07", "08"]
    assert orch.table_path.suffix == ".parquet"
    assert len(pd.read_parquet(orch.table_path)) == 512
    assert [r.label for r in orch.results] == ["07", "08"]


def test_fit_models_writes_report(pipeline_config, output_dirs, fake_osm):
    config = pipeline_config(fit_models=True)
    orch = PipelineOrchestrator(config, output_dirs, feature_source=fake_osm,
                                configure_logging=False)
    orch.start()

    report_path = output_dirs["models"] / "feature_table_models.json"
    reports = json.loads(report_path.read_text())
    assert reports[0]["method"] == "linear"
    assert "NDVI" in reports[0]["features"]
    assert "Month" not in reports[0]["features"]
    assert orch.reports[0].n_train + orch.reports[0].n_test == 256


def test_no_scenes(make_config, output_dirs):
    orch = PipelineOrchestrator(make_config(), output_dirs, configure_logging=False)
    with pytest.raises(ConfigurationError, match="No scenes"):
        orch.start()


def test_failure_writes_no_table(pipeline_config, output_dirs, fake_osm, scene_files):
    paths, bbox = scene_files
    config = pipeline_config(scenes=[
        {"label": "07", "bands": paths, "bbox": bbox, "calibration":
            {"radiance_mult": 3.342e-4, "radiance_add": 0.1, "k1": 774.8853, "k2": 1321.0789}},
        {"label": "08", "bands": paths, "bbox": (0.0, 0.0, 600.0, 600.0), "calibration":
            {"radiance_mult": 3.342e-4, "radiance_add": 0.1, "k1": 774.8853, "k2": 1321.0789}},
    ])
    orch = PipelineOrchestrator(config, output_dirs, feature_source=fake_osm,
                                configure_logging=False)

    with pytest.raises(OutOfBoundsError) as exc:
        orch.start()
    assert exc.value.stage == "load"
    assert list(output_dirs["tables"].iterdir()) == []


def test_setup_logging_writes_log_file(pipeline_config, output_dirs, fake_osm):
    orch = PipelineOrchestrator(pipeline_config(), output_dirs, feature_source=fake_osm)
    orch.start()

    logs = list(output_dirs["logs"].glob("lstpipe_*.log"))
    assert len(logs) == 1
    text = logs[0].read_text()
    assert "Starting LST Pipeline" in text
    assert "Pipeline finished" in text
