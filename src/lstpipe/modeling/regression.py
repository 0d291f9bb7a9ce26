"""Fit LST regression models on the assembled feature table.

Two estimators, both behind a StandardScaler so coefficients and network
inputs see standardized covariates:

- ``linear``: ordinary least squares. Coefficients are per standard
  deviation of each covariate.
- ``mlp``: a small multilayer perceptron regressor.

Both use one seeded train/test split and report R2, RMSE and MAE on the
held-out rows.
"""

import json
import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, TYPE_CHECKING

import numpy as np
import pandas as pd
from sklearn.linear_model import LinearRegression
from sklearn.metrics import mean_absolute_error, mean_squared_error, r2_score
from sklearn.model_selection import train_test_split
from sklearn.neural_network import MLPRegressor
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import StandardScaler

from lstpipe.core.errors import ConfigurationError

if TYPE_CHECKING:
    from lstpipe.geo.features import FeatureTable
    from lstpipe.schemas import InternalConfig

__all__ = ['ModelReport', 'fit_models', 'select_features', 'save_reports']

logger = logging.getLogger(__name__)

# Never used as covariates unless listed explicitly
NON_FEATURE_COLS = {"X", "Y"}


@dataclass
class ModelReport:
    method: str
    target: str
    features: List[str]
    r2: float
    rmse: float
    mae: float
    n_train: int
    n_test: int
    coefficients: Optional[Dict[str, float]] = None
    intercept: Optional[float] = None
    params: Dict[str, object] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return asdict(self)


def select_features(frame: pd.DataFrame, target: str,
                    features: Optional[Sequence[str]] = None,
                    exclude: Sequence[str] = ()) -> List[str]:
    """Covariate columns: explicit list, or every numeric column but target/coords."""
    if target not in frame.columns:
        raise ConfigurationError(f"Target column '{target}' not in feature table")

    if features:
        missing = [c for c in features if c not in frame.columns]
        if missing:
            raise ConfigurationError(f"Feature columns not in table: {missing}")
        return list(features)

    skip = NON_FEATURE_COLS | {target} | set(exclude)
    numeric = frame.select_dtypes(include=[np.number]).columns
    return [c for c in numeric if c not in skip]


def _build_estimator(method: str, cfg) -> Pipeline:
    if method == "linear":
        model = LinearRegression()
    elif method == "mlp":
        model = MLPRegressor(
            hidden_layer_sizes=tuple(cfg.hidden_layer_sizes),
            max_iter=cfg.max_iter,
            random_state=cfg.random_state,
        )
    else:
        raise ConfigurationError(f"Unknown model method: {method!r}")
    return Pipeline([("scale", StandardScaler()), ("model", model)])


def fit_models(table: "FeatureTable", config: "InternalConfig") -> List[ModelReport]:
    """Fit every configured method and return one report per method.

    Raises
    ------
    ConfigurationError
        Unknown target/feature columns, no covariates, or fewer rows than
        ``len(features) + 2``.
    """
    cfg = config.modeling
    frame = table.frame
    features = select_features(frame, cfg.target, cfg.features,
                               exclude=[config.features.label_column])
    if not features:
        raise ConfigurationError("No numeric covariates to fit")

    n_rows = len(frame)
    if n_rows < len(features) + 2:
        raise ConfigurationError(
            f"Too few rows to fit {len(features)} covariates: {n_rows} (need >= {len(features) + 2})"
        )

    X = frame[features].to_numpy(dtype=np.float64)
    y = frame[cfg.target].to_numpy(dtype=np.float64)
    X_train, X_test, y_train, y_test = train_test_split(
        X, y, test_size=cfg.test_size, random_state=cfg.random_state
    )
    logger.info("Fitting %s on %d rows (%d train / %d test), %d covariates",
                cfg.methods, n_rows, len(y_train), len(y_test), len(features))

    reports = []
    for method in cfg.methods:
        pipeline = _build_estimator(method, cfg)
        pipeline.fit(X_train, y_train)
        y_pred = pipeline.predict(X_test)

        report = ModelReport(
            method=method,
            target=cfg.target,
            features=features,
            r2=float(r2_score(y_test, y_pred)) if len(y_test) > 1 else float("nan"),
            rmse=float(np.sqrt(mean_squared_error(y_test, y_pred))),
            mae=float(mean_absolute_error(y_test, y_pred)),
            n_train=len(y_train),
            n_test=len(y_test),
            params={"random_state": cfg.random_state, "test_size": cfg.test_size},
        )
        if method == "linear":
            estimator = pipeline.named_steps["model"]
            report.coefficients = dict(zip(features, map(float, estimator.coef_)))
            report.intercept = float(estimator.intercept_)
        else:
            report.params["hidden_layer_sizes"] = list(cfg.hidden_layer_sizes)

        logger.info("Model %s: R2=%.3f RMSE=%.3f MAE=%.3f",
                    method, report.r2, report.rmse, report.mae)
        reports.append(report)

    return reports


def save_reports(reports: Sequence[ModelReport], path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as fh:
        json.dump([r.to_dict() for r in reports], fh, indent=2)
    logger.info("Model reports saved: %s", path)
    return path
