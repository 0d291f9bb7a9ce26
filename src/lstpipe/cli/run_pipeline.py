"""Core LST pipeline execution logic.

This module contains the actual pipeline runner, separated from argument parsing.
Scripts are thin wrappers; this is the real implementation.
"""

import argparse
import importlib.util
import json
import logging
import shutil
from pathlib import Path
from typing import Any, Dict, Optional

from lstpipe.geo.features import FeatureTable
from lstpipe.pipeline.orchestrator import PipelineOrchestrator
from lstpipe.schemas import resolve_config, ParamConfig, UserConfig, CLIConfig
from lstpipe.setup_directories import setup_output_directories

__all__ = ['load_user_config_dict', 'run_lst_pipeline', 'main']

logger = logging.getLogger(__name__)


def load_user_config_dict(config_path: str) -> dict:
    """Load user config dict from Python file.

    Returns the raw dict before Pydantic validation.

    Parameters
    ----------
    config_path : str
        Path to user config Python file containing CONFIG dict.

    Returns
    -------
    dict
        Raw user configuration dictionary.

    Raises
    ------
    FileNotFoundError
        If config file does not exist.
    ValueError
        If no CONFIG dict found in file.
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config not found: {path}")

    spec = importlib.util.spec_from_file_location("config_module", path)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)

    # Find CONFIG dict
    for name in dir(module):
        if name.startswith('CONFIG'):
            obj = getattr(module, name)
            if isinstance(obj, dict):
                return obj

    raise ValueError(f"No CONFIG dict found in {path}")


def run_lst_pipeline(
    user_config_path: str,
    cli_args: Optional[Dict[str, Any]] = None,
    rerun: bool = False,
    verbose: bool = False,
    feature_source=None,
) -> FeatureTable:
    """Execute the LST pipeline.

    1. Loads and resolves configuration (Param < User < CLI)
    2. Optionally cleans the output directory if rerun=True
    3. Sets up output directories
    4. Runs the orchestrator over every configured scene

    Parameters
    ----------
    user_config_path : str
        Path to user config file (Python file with CONFIG dict).
    cli_args : dict, optional
        CLI overrides. Keys: base_dir, log_level, scenes, output_format,
        fit_models, save_grids. All optional.
    rerun : bool, optional
        If True, delete the output directory before running.
    verbose : bool, optional
        If True, enable DEBUG logging and print the resolved config.
    feature_source : optional
        Replacement for the OSM feature source.

    Returns
    -------
    FeatureTable
        The table written to disk.

    Raises
    ------
    FileNotFoundError
        If user_config_path does not exist.
    ValueError
        If configuration validation fails.
    LSTPipelineError
        If a pipeline stage fails.

    Examples
    --------
    ::

        run_lst_pipeline("scripts/user_config.py", cli_args={"output_format": "parquet"})
    """
    param_cfg = ParamConfig()

    user_cfg_dict = load_user_config_dict(user_config_path)
    user_cfg = UserConfig.model_validate(user_cfg_dict)

    cli_args = dict(cli_args or {})
    if verbose and "log_level" not in cli_args:
        cli_args["log_level"] = "DEBUG"

    # Filter None values
    cli_dict = {k: v for k, v in cli_args.items() if v is not None}
    cli_cfg = CLIConfig.model_validate(cli_dict) if cli_dict else CLIConfig()

    config = resolve_config(param_cfg, user_cfg, cli_cfg)

    if rerun:
        base_dir_path = Path(config.base_dir)
        if base_dir_path.exists():
            print(f"Cleaning output directory: {base_dir_path}")
            shutil.rmtree(base_dir_path)

    output_dirs = setup_output_directories(config.base_dir)

    print(f"\n{'='*60}")
    print("lstpipe: Landsat 8 LST Feature Pipeline")
    print('='*60)
    print(f"Config: {user_config_path}")
    print(f"Scenes: {', '.join(s.label for s in config.scenes) or '(none)'}")
    print(f"Format: {config.output.format}")
    print(f"Output: {config.base_dir}")
    print('='*60)

    if verbose:
        print("\nFull Internal Configuration:")
        print(json.dumps(config.model_dump(), indent=2, default=str))
        print('='*60)

    orchestrator = PipelineOrchestrator(config, output_dirs, feature_source=feature_source)
    return orchestrator.start()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run the Landsat 8 LST feature pipeline")
    parser.add_argument("config", help="Path to user config file")
    parser.add_argument("--base-dir", help="Output directory")
    parser.add_argument("--scene", action="append", dest="scenes",
                        help="Process only this scene label (repeatable or comma separated)")
    parser.add_argument("--format", dest="output_format", choices=["csv", "parquet"],
                        help="Output table format")
    parser.add_argument("--fit-models", dest="fit_models", action="store_true", default=None,
                        help="Fit regression models on the output table")
    parser.add_argument("--no-grids", dest="save_grids", action="store_false", default=None,
                        help="Do not write per-scene NetCDF grids")
    parser.add_argument("--rerun", action="store_true", help="Delete output directory before running")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    scenes = None
    if args.scenes:
        scenes = [s.strip() for item in args.scenes for s in item.split(",") if s.strip()]

    run_lst_pipeline(
        args.config,
        cli_args={
            "base_dir": args.base_dir,
            "scenes": scenes,
            "output_format": args.output_format,
            "fit_models": args.fit_models,
            "save_grids": args.save_grids,
        },
        rerun=args.rerun,
        verbose=args.verbose,
    )
    return 0
