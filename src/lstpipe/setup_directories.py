"""
Directory setup for the LST pipeline.

Flat layout under one base directory:
- grids/   per-scene NetCDF lineage of every derived grid
- tables/  the assembled feature table (CSV or Parquet)
- models/  JSON model reports
- logs/    one log file per run
"""

from datetime import datetime, timezone
from pathlib import Path

DEFAULT_BASE_DIR = "lstpipe_output"

SUBDIRECTORIES = ("grids", "tables", "models", "logs")


def setup_output_directories(base_output_dir=None, verbose=True):
    """
    Create the output directory structure.

    Parameters
    ----------
    base_output_dir : str or Path, optional
        Base output directory. Defaults to ./lstpipe_output.
    verbose : bool, optional
        Print the created layout.

    Returns
    -------
    dict
        Paths keyed 'base', 'grids', 'tables', 'models', 'logs'
    """
    if base_output_dir is None:
        base_output_dir = Path.cwd() / DEFAULT_BASE_DIR

    base_output_dir = Path(base_output_dir).expanduser().resolve()

    directories = {"base": base_output_dir}
    for name in SUBDIRECTORIES:
        directories[name] = base_output_dir / name

    for path in directories.values():
        path.mkdir(parents=True, exist_ok=True)

    if verbose:
        print("\nOutput directories created:")
        for key, path in directories.items():
            print(f"  {key:8s}: {path}")

    return directories


def get_grid_path(output_dirs, scene_label):
    """
    NetCDF lineage path for one scene: grids/<label>_grids.nc
    """
    grid_dir = Path(output_dirs["grids"])
    grid_dir.mkdir(parents=True, exist_ok=True)
    return grid_dir / f"{_safe(scene_label)}_grids.nc"


def get_table_path(output_dirs, table_name, fmt="csv", compression="none"):
    """
    Feature table path: tables/<name>.csv, .csv.gz or .parquet
    """
    table_dir = Path(output_dirs["tables"])
    table_dir.mkdir(parents=True, exist_ok=True)
    if fmt == "parquet":
        suffix = ".parquet"
    elif compression == "gzip":
        suffix = ".csv.gz"
    else:
        suffix = ".csv"
    return table_dir / f"{_safe(table_name)}{suffix}"


def get_model_report_path(output_dirs, table_name):
    model_dir = Path(output_dirs["models"])
    model_dir.mkdir(parents=True, exist_ok=True)
    return model_dir / f"{_safe(table_name)}_models.json"


def get_log_path(output_dirs, run_id=None):
    """
    Log file path: logs/lstpipe_<run_id>.log, run_id defaults to a UTC timestamp.
    """
    log_dir = Path(output_dirs["logs"])
    log_dir.mkdir(parents=True, exist_ok=True)

    if run_id is None:
        run_id = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")

    return log_dir / f"lstpipe_{run_id}.log"


def _safe(name):
    # Scene labels come from user config and end up in file names
    return "".join(c if c.isalnum() or c in "-_." else "_" for c in str(name))
