"""LST stage contract.

Enforces the guarantee that the derivation chain returns every intermediate
on the band grid, with a physically meaningful emissivity.
"""

import numpy as np

from lstpipe.contracts.base import require


def assert_lst(result, template) -> None:
    """Enforce LST stage contract.

    Called after LSTChain.derive().

    Parameters
    ----------
    result : LSTResult
        Output of the derivation chain.

    template : Grid
        Band grid the chain was run on.

    Raises
    ------
    ContractViolation
        If any invariant is violated
    """
    for name in ("radiance", "brightness_temperature", "fractional_vegetation",
                 "emissivity", "lst"):
        grid = getattr(result, name)
        require(
            grid.same_geometry(template),
            f"LST contract violated: '{name}' is not on the band grid"
        )
        require(
            bool(np.isfinite(grid.values).all()),
            f"LST contract violated: '{name}' contains non-finite values"
        )

    # Emissivity outside (0, 1) is allowed only where LST is no-data
    eps = result.emissivity.values[result.lst.valid_mask]
    if eps.size:
        require(
            eps.min() > 0 and eps.max() < 1,
            f"LST contract violated: emissivity outside (0, 1) "
            f"(min={eps.min():.4f}, max={eps.max():.4f})"
        )

    pv = result.fractional_vegetation.valid_values()
    if pv.size:
        require(
            pv.min() >= 0 and pv.max() <= 1 + 1e-12,
            "LST contract violated: fractional vegetation outside [0, 1]"
        )

    require(
        result.ndvi_min <= result.ndvi_max,
        f"LST contract violated: ndvi_min {result.ndvi_min} > ndvi_max {result.ndvi_max}"
    )
