"""Command-line interface modules for lstpipe pipeline execution.

This package contains core execution logic, making scripts/ optional and deletable.
"""

from lstpipe.cli.run_pipeline import run_lst_pipeline, main

__all__ = ['run_lst_pipeline', 'main']
