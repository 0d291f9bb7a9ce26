#!/usr/bin/env python3
"""``lstpipe`` Landsat 8 LST Pipeline Runner.

Usage:
    python scripts/run_lst_pipeline.py scripts/user_config.py
    python scripts/run_lst_pipeline.py scripts/user_config.py --format parquet
    python scripts/run_lst_pipeline.py scripts/user_config.py --scene 07 --fit-models

Note: User config in scripts/user_config.py, expert defaults in lstpipe.schemas.param
"""

import sys

from lstpipe.cli.run_pipeline import main


if __name__ == "__main__":
    sys.exit(main())
