"""Tests for regression and MLP fitting on feature tables."""

import json

import numpy as np
import pandas as pd
import pytest

from lstpipe.core import ConfigurationError
from lstpipe.geo.features import FeatureTable
from lstpipe.modeling import ModelReport, fit_models, save_reports, select_features

pytestmark = pytest.mark.unit


def _table(n=200, seed=0):
    rng = np.random.default_rng(seed)
    ndvi = rng.uniform(-0.1, 0.8, n)
    ndbi = rng.uniform(-0.4, 0.3, n)
    frame = pd.DataFrame({
        "X": np.arange(n, dtype=float),
        "Y": np.zeros(n),
        "LST": 40.0 - 12.0 * ndvi + 6.0 * ndbi + rng.normal(0.0, 0.1, n),
        "NDVI": ndvi,
        "NDBI": ndbi,
        "Month": "07",
    })
    return FeatureTable(frame, cells_total=n)


class TestSelectFeatures:

    def test_numeric_columns_except_target_and_coords(self):
        frame = _table().frame
        assert select_features(frame, "LST") == ["NDVI", "NDBI"]

    def test_explicit_list(self):
        frame = _table().frame
        assert select_features(frame, "LST", ["NDBI"]) == ["NDBI"]

    def test_missing_columns(self):
        frame = _table().frame
        with pytest.raises(ConfigurationError):
            select_features(frame, "Temperature")
        with pytest.raises(ConfigurationError):
            select_features(frame, "LST", ["Albedo"])


class TestFitModels:

    def test_linear_recovers_relationship(self, make_config):
        config = make_config(fit_models=True)
        (report,) = fit_models(_table(), config)

        assert report.method == "linear"
        assert report.features == ["NDVI", "NDBI"]
        assert report.r2 > 0.99
        assert report.rmse < 0.5
        assert report.n_train + report.n_test == 200
        assert report.n_test == 40
        # standardized coefficients keep the sign of the relationship
        assert report.coefficients["NDVI"] < 0
        assert report.coefficients["NDBI"] > 0

    def test_mlp(self, make_config):
        config = make_config(modeling={"enabled": True, "methods": ["linear", "mlp"],
                                       "hidden_layer_sizes": (16,), "max_iter": 2000})
        reports = fit_models(_table(), config)

        assert [r.method for r in reports] == ["linear", "mlp"]
        mlp = reports[1]
        assert mlp.coefficients is None
        assert mlp.params["hidden_layer_sizes"] == [16]
        assert np.isfinite(mlp.rmse)

    def test_seeded_split_is_reproducible(self, make_config):
        config = make_config(fit_models=True)
        first = fit_models(_table(), config)[0]
        second = fit_models(_table(), config)[0]
        assert first.to_dict() == second.to_dict()

    def test_too_few_rows(self, make_config):
        config = make_config(fit_models=True)
        table = FeatureTable(_table().frame.head(3), cells_total=3)
        with pytest.raises(ConfigurationError, match="Too few rows"):
            fit_models(table, config)


def test_save_reports(temp_dir):
    report = ModelReport(method="linear", target="LST", features=["NDVI"], r2=0.9,
                         rmse=1.0, mae=0.8, n_train=80, n_test=20,
                         coefficients={"NDVI": -3.0}, intercept=30.0)
    path = save_reports([report], temp_dir / "models" / "reports.json")

    data = json.loads(path.read_text())
    assert data[0]["method"] == "linear"
    assert data[0]["coefficients"] == {"NDVI": -3.0}
