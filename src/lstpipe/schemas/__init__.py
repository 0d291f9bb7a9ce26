"""Pydantic configuration schemas for the lstpipe pipeline.

This module provides strictly typed configuration models for the Landsat
LST pipeline. All configuration validation, coercion, and normalization
happens at schema validation time via Pydantic.

Exports
-------
resolve_config : function
    Single entrypoint for configuration resolution
InternalConfig : class
    Fully validated, authoritative runtime configuration
ParamConfig : class
    Expert defaults (complete)
UserConfig : class
    User-facing configuration (forgiving, minimal)
CLIConfig : class
    Command-line operational overrides
"""

from lstpipe.schemas.resolve import resolve_config
from lstpipe.schemas.internal import InternalConfig
from lstpipe.schemas.param import ParamConfig
from lstpipe.schemas.user import UserConfig
from lstpipe.schemas.cli import CLIConfig

__all__ = [
    'resolve_config',
    'InternalConfig',
    'ParamConfig',
    'UserConfig',
    'CLIConfig',
]
