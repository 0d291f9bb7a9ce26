"""Read thermal calibration constants from Landsat ``*_MTL.txt`` files.

Collection 2 MTL files are ``KEY = VALUE`` lines nested in
``GROUP = ... / END_GROUP = ...`` blocks. Only the four band 10 constants
the LST chain needs are extracted; group nesting is ignored.
"""

import logging
from pathlib import Path
from typing import Dict, Union

from pydantic import ValidationError

from lstpipe.core.errors import ConfigurationError
from lstpipe.schemas.param import CalibrationConfig

__all__ = ['read_mtl_calibration', 'parse_mtl']

logger = logging.getLogger(__name__)

# MTL key -> CalibrationConfig field, formatted with the thermal band number
MTL_KEYS = {
    "RADIANCE_MULT_BAND_{band}": "radiance_mult",
    "RADIANCE_ADD_BAND_{band}": "radiance_add",
    "K1_CONSTANT_BAND_{band}": "k1",
    "K2_CONSTANT_BAND_{band}": "k2",
}


def parse_mtl(path: Union[str, Path]) -> Dict[str, str]:
    """Flatten an MTL file into a ``{KEY: value}`` dict (quotes stripped)."""
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"MTL file not found: {path}")

    entries = {}
    with path.open("r", encoding="utf-8") as fh:
        for line in fh:
            if "=" not in line:
                continue
            key, _, value = line.partition("=")
            key = key.strip()
            if key in ("GROUP", "END_GROUP"):
                continue
            entries[key] = value.strip().strip('"')
    return entries


def read_mtl_calibration(path: Union[str, Path], thermal_band: str = "B10") -> CalibrationConfig:
    """Extract radiance rescaling and thermal constants for one band.

    Parameters
    ----------
    path : str or Path
        Landsat Level-1 metadata file (``LC08_..._MTL.txt``).
    thermal_band : str, optional
        Band id, ``"B10"`` (default) or ``"B11"``.

    Returns
    -------
    CalibrationConfig

    Raises
    ------
    ConfigurationError
        If the file is missing, a key is absent, or a value is not numeric
        or out of range (multiplier, K1 and K2 must be positive).
    """
    band = thermal_band.upper().lstrip("B")
    entries = parse_mtl(path)

    values = {}
    for template, field in MTL_KEYS.items():
        key = template.format(band=band)
        if key not in entries:
            raise ConfigurationError(f"MTL file {path} is missing {key}")
        try:
            values[field] = float(entries[key])
        except ValueError:
            raise ConfigurationError(
                f"MTL file {path}: {key} is not numeric ({entries[key]!r})"
            ) from None

    logger.debug("Calibration from %s: %s", Path(path).name, values)
    try:
        return CalibrationConfig(**values)
    except ValidationError as e:
        raise ConfigurationError(f"MTL file {path}: invalid calibration ({e})") from None
