"""Batch pipeline orchestration.

Runs every configured scene through the SceneProcessor, concatenates the
per-scene tables, writes the single output table and optionally fits
models on it. Single-threaded and synchronous: scenes run one after
another and the first fatal error aborts the run before any table is
written.
"""

import logging
import time
from pathlib import Path
from typing import Dict, List, Optional, TYPE_CHECKING

from lstpipe.core.errors import ConfigurationError
from lstpipe.geo.features import FeatureTable
from lstpipe.modeling.regression import ModelReport, fit_models, save_reports
from lstpipe.pipeline.processor import SceneProcessor, SceneResult
from lstpipe.setup_directories import (
    get_log_path,
    get_model_report_path,
    get_table_path,
    setup_output_directories,
)

if TYPE_CHECKING:
    from lstpipe.schemas import InternalConfig

__all__ = ['PipelineOrchestrator']

logger = logging.getLogger(__name__)


class PipelineOrchestrator:
    """Manages one batch run of the LST pipeline.

    This is the main entry point for running ``lstpipe``.

    **Run steps:**

    1. Configure logging (console + logs/lstpipe_<run>.log).
    2. Process each scene (load, indices, LST, proximity, elevation, assemble).
    3. Concatenate scene tables; each row carries its scene label.
    4. Write the table atomically to tables/<table_name>.<ext>.
    5. Fit models (``modeling.enabled``) and write models/<table_name>_models.json.

    Example usage::

        from lstpipe.pipeline.orchestrator import PipelineOrchestrator

        config = resolve_config(ParamConfig(), user_cfg)
        orch = PipelineOrchestrator(config)
        table = orch.start()
    """

    def __init__(self, config: "InternalConfig", output_dirs: Optional[Dict[str, Path]] = None,
                 feature_source=None, configure_logging: bool = True):
        """Initialize orchestrator.

        Parameters
        ----------
        config : InternalConfig
            Fully validated runtime configuration.
        output_dirs : dict, optional
            From setup_output_directories(); created under ``config.base_dir``
            when omitted.
        feature_source : optional
            Passed to SceneProcessor for OSM layers (tests inject a fake).
        configure_logging : bool, optional
            Install root console/file handlers (default True).
        """
        self.config = config
        self.output_dirs = output_dirs or setup_output_directories(config.base_dir, verbose=False)
        self.configure_logging = configure_logging
        self.processor = SceneProcessor(config, self.output_dirs, feature_source=feature_source)

        self.results: List[SceneResult] = []
        self.table: Optional[FeatureTable] = None
        self.table_path: Optional[Path] = None
        self.reports: List[ModelReport] = []
        self._start_time = None

    def _setup_logging(self):
        """Configure root logger with file and console handlers.

        Log level and paths derived from config.
        """
        log_level = getattr(logging, self.config.logging.level.upper(), logging.INFO)
        log_path = get_log_path(self.output_dirs)

        formatter = logging.Formatter(
            fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        # Clear existing handlers and add new ones
        root = logging.getLogger()
        root.setLevel(log_level)
        for handler in root.handlers[:]:
            root.removeHandler(handler)

        # File handler
        fh = logging.FileHandler(log_path)
        fh.setLevel(log_level)
        fh.setFormatter(formatter)
        root.addHandler(fh)

        # Console handler
        ch = logging.StreamHandler()
        ch.setLevel(log_level)
        ch.setFormatter(formatter)
        root.addHandler(ch)

        logger.info("Logging: level=%s, file=%s", logging.getLevelName(log_level), log_path)

    def start(self) -> FeatureTable:
        """Run every scene and write the output table.

        Returns
        -------
        FeatureTable
            The concatenated (and filtered) table that was written.

        Raises
        ------
        ConfigurationError
            No scenes are configured.
        LSTPipelineError
            Any fatal stage error; ``.stage`` names the failing stage. No
            output table is written in that case.
        """
        if self.configure_logging:
            self._setup_logging()

        scenes = self.config.scenes
        if not scenes:
            raise ConfigurationError("No scenes configured; set BANDS/BBOX or a 'scenes' list")

        logger.info("=" * 60)
        logger.info("Starting LST Pipeline: %d scene(s)", len(scenes))
        logger.info("=" * 60)
        self._start_time = time.time()

        for scene in scenes:
            self.results.append(self.processor.process(scene))

        tables = [r.table for r in self.results]
        self.table = tables[0] if len(tables) == 1 else FeatureTable.concat(tables)

        out = self.config.output
        self.table_path = get_table_path(self.output_dirs, out.table_name, out.format, out.compression)
        self.table.write(self.table_path, out.format, out.compression)

        if self.config.modeling.enabled:
            self.reports = fit_models(self.table, self.config)
            save_reports(self.reports, get_model_report_path(self.output_dirs, out.table_name))

        self._log_summary()
        return self.table

    def _log_summary(self):
        elapsed = time.time() - self._start_time if self._start_time else 0
        table = self.table
        logger.info("=" * 60)
        logger.info("Pipeline finished. Runtime: %.1f seconds", elapsed)
        logger.info("Rows: %d of %d cells (%d dropped for no-data%s)",
                    len(table), table.cells_total, table.rows_dropped_nodata,
                    f", filters: {'; '.join(table.filters)}" if table.filters else "")
        logger.info("Table: %s", self.table_path)
        for report in self.reports:
            logger.info("Model %s: R2=%.3f RMSE=%.3f", report.method, report.r2, report.rmse)
        logger.info("=" * 60)
