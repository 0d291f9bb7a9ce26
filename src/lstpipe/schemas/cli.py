"""CLIConfig: Command-line operational overrides.

Minimal configuration for operational parameters that commonly change
between runs: output paths, verbosity, scene selection, output format.

This schema handles command-line arguments parsed by argparse.
"""

from typing import Literal, Optional
from pydantic import field_validator
from lstpipe.schemas.base import LSTBaseModel


class CLIConfig(LSTBaseModel):
    """Command-line configuration overrides.

    Operational-only settings that override user and param configs.
    Highest priority in config resolution.

    Usage
    -----
        cli_cfg = CLIConfig(
            base_dir="/scratch/lst_output",
            scenes=["2023-07"],
            output_format="parquet",
        )

        internal = resolve_config(param_cfg, user_cfg, cli_cfg)
    """

    base_dir: Optional[str] = None
    log_level: Optional[Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]] = None
    scenes: Optional[list[str]] = None
    output_format: Optional[Literal["csv", "parquet"]] = None
    fit_models: Optional[bool] = None
    save_grids: Optional[bool] = None

    @field_validator("scenes", mode="before")
    @classmethod
    def split_scene_labels(cls, v):
        """Accept a comma separated string as well as a list."""
        if isinstance(v, str):
            return [s.strip() for s in v.split(",") if s.strip()]
        return v

    def to_internal_overrides(self) -> dict:
        """Convert CLI config to internal config structure.

        Returns
        -------
        dict
            Nested dictionary matching InternalConfig structure. Scene selection
            is returned under the private key ``_scene_selection`` and applied by
            resolve_config().
        """
        overrides = {}

        if self.base_dir is not None:
            overrides["base_dir"] = str(self.base_dir)

        if self.log_level is not None:
            overrides["logging"] = {"level": self.log_level}

        output = {}
        if self.output_format is not None:
            output["format"] = self.output_format
        if self.save_grids is not None:
            output["save_grids"] = self.save_grids
        if output:
            overrides["output"] = output

        if self.fit_models is not None:
            overrides["modeling"] = {"enabled": self.fit_models}

        if self.scenes:
            overrides["_scene_selection"] = list(self.scenes)

        return overrides
