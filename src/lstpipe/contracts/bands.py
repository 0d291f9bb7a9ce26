"""Band stage contract.

Enforces the guarantee that after loading, cropping and masking, every band
the downstream formulas need is present and co-registered.
"""

from typing import Iterable

import numpy as np

from lstpipe.contracts.base import require


def assert_band_set(bands, required_bands: Iterable[str]) -> None:
    """Enforce band stage contract.

    Called immediately after BandLoader.load() and land masking.

    Parameters
    ----------
    bands : BandSet
        Output of the loader.

    required_bands : iterable of str
        Band ids the index and LST stages consume (from config).

    Raises
    ------
    ContractViolation
        If any invariant is violated
    """
    for band_id in required_bands:
        require(
            band_id in bands,
            f"Band contract violated: missing band '{band_id}'"
        )

    template = bands.template
    for band_id, grid in bands.items():
        require(
            grid.same_geometry(template),
            f"Band contract violated: '{band_id}' is not co-registered with the band set"
        )
        require(
            bool(np.isfinite(grid.values).all()),
            f"Band contract violated: '{band_id}' contains non-finite values"
        )
