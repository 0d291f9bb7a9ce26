"""Configuration resolution and merging logic.

This module provides the single entrypoint for configuration resolution:
resolve_config(). It merges ParamConfig, UserConfig, and CLIConfig in
the correct precedence order and returns a validated InternalConfig.

Precedence (highest to lowest):
1. CLIConfig (command-line overrides)
2. UserConfig (user file)
3. ParamConfig (expert defaults)
"""

from typing import Union, Optional
from lstpipe.schemas.param import ParamConfig, SceneConfig, ProximityLayerConfig, LoaderConfig
from lstpipe.schemas.user import UserConfig
from lstpipe.schemas.cli import CLIConfig
from lstpipe.schemas.internal import InternalConfig


# Normalisation applied to a proximity layer when the config leaves it open
DEFAULT_NORMALIZATION = {
    "distance": "none",
    "density": "zscore",
}


def deep_merge(base: dict, *overrides: dict) -> dict:
    """Deep merge multiple dictionaries.

    Later dictionaries override earlier ones. Nested dictionaries are
    merged recursively; other values (including lists) are replaced.

    Parameters
    ----------
    base : dict
        Base dictionary (lowest priority)
    *overrides : dict
        Override dictionaries (higher priority, left to right)

    Returns
    -------
    dict
        Merged dictionary

    Examples
    --------
    >>> base = {"a": 1, "b": {"c": 2, "d": 3}}
    >>> override = {"b": {"d": 4, "e": 5}, "f": 6}
    >>> deep_merge(base, override)
    {'a': 1, 'b': {'c': 2, 'd': 4, 'e': 5}, 'f': 6}
    """
    result = base.copy()

    for override in overrides:
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                # Recursive merge for nested dicts
                result[key] = deep_merge(result[key], value)
            else:
                # Replace value
                result[key] = value

    return result


def _resolve_scenes(scenes: list, selection: Optional[list]) -> list:
    """Validate scene dicts, reject duplicate labels, apply CLI selection."""
    validated = [SceneConfig.model_validate(s).model_dump() for s in scenes]

    labels = [s["label"] for s in validated]
    duplicates = sorted({label for label in labels if labels.count(label) > 1})
    if duplicates:
        raise ValueError(f"Duplicate scene labels: {duplicates}")

    if selection:
        unknown = [label for label in selection if label not in labels]
        if unknown:
            raise ValueError(f"Selected scenes not configured: {unknown} (available: {labels})")
        validated = [s for s in validated if s["label"] in selection]

    return validated


def _resolve_layers(proximity: dict) -> dict:
    """Fill per-layer kernel radius and normalisation from section defaults."""
    layers = []
    for layer in proximity.get("layers", []):
        layer = ProximityLayerConfig.model_validate(layer).model_dump()
        if layer["kernel_radius"] is None:
            layer["kernel_radius"] = proximity["kernel_radius"]
        if layer["normalize"] is None:
            layer["normalize"] = DEFAULT_NORMALIZATION[layer["kind"]]
        layers.append(layer)

    names = [layer["name"] for layer in layers]
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        raise ValueError(f"Duplicate proximity layer names: {duplicates}")

    proximity = dict(proximity)
    proximity["layers"] = layers
    return proximity


def resolve_config(
    param_cfg: Union[dict, ParamConfig],
    user_cfg: Optional[Union[dict, UserConfig]] = None,
    cli_cfg: Optional[Union[dict, CLIConfig]] = None,
) -> InternalConfig:
    """Resolve final runtime configuration from param, user, and CLI configs.

    This is the SINGLE ENTRYPOINT for configuration resolution. It validates
    and merges configs in the correct precedence order, then returns an
    immutable InternalConfig for runtime use.

    Precedence (highest to lowest):
    1. CLIConfig (command-line overrides)
    2. UserConfig (user file overrides)
    3. ParamConfig (expert defaults)

    Parameters
    ----------
    param_cfg : dict or ParamConfig
        Expert configuration with complete defaults. Required.
    user_cfg : dict or UserConfig, optional
        User configuration with overrides. If None or empty, uses only param defaults.
    cli_cfg : dict or CLIConfig, optional
        Command-line overrides. If None or empty, no CLI overrides applied.

    Returns
    -------
    InternalConfig
        Fully validated, immutable runtime configuration

    Raises
    ------
    ValueError
        If any config fails Pydantic validation (pydantic.ValidationError is a
        ValueError), a scene lacks calibration, or labels collide.

    Examples
    --------
    >>> from lstpipe.schemas import resolve_config, ParamConfig, UserConfig
    >>>
    >>> param = ParamConfig()
    >>> user = UserConfig(KERNEL_RADIUS=15)
    >>> config = resolve_config(param, user)
    >>> config.proximity.kernel_radius
    15
    """
    # Validate/convert inputs to Pydantic models
    if not isinstance(param_cfg, ParamConfig):
        param = ParamConfig.model_validate(param_cfg)
    else:
        param = param_cfg

    if user_cfg is None or (isinstance(user_cfg, dict) and not user_cfg):
        user = UserConfig()
    elif not isinstance(user_cfg, UserConfig):
        user = UserConfig.model_validate(user_cfg)
    else:
        user = user_cfg

    if cli_cfg is None or (isinstance(cli_cfg, dict) and not cli_cfg):
        cli = CLIConfig()
    elif not isinstance(cli_cfg, CLIConfig):
        cli = CLIConfig.model_validate(cli_cfg)
    else:
        cli = cli_cfg

    # Convert to dicts for merging
    param_dict = param.model_dump()
    user_overrides = user.to_internal_overrides()
    cli_overrides = cli.to_internal_overrides()
    selection = cli_overrides.pop("_scene_selection", None)

    # Deep merge: param < user < cli
    merged = deep_merge(param_dict, user_overrides, cli_overrides)

    merged["loader"] = LoaderConfig.model_validate(merged["loader"]).model_dump()
    merged["scenes"] = _resolve_scenes(merged.get("scenes", []), selection)
    merged["proximity"] = _resolve_layers(merged["proximity"])

    # Validate and freeze as InternalConfig
    internal = InternalConfig.model_validate(merged)

    return internal
