"""Index stage contract.

Enforces the guarantee that normalised difference indices stay inside
[-1, 1] on valid cells and that nothing non-finite leaks out.
"""

from typing import Dict

import numpy as np

from lstpipe.contracts.base import require

NORMALIZED_DIFFERENCE_INDICES = ("NDVI", "NDBI", "NDWI")


def assert_indices(indices: Dict[str, "Grid"], tolerance: float = 1e-9) -> None:
    """Enforce index stage contract.

    Called after IndexCalculator.compute().

    Parameters
    ----------
    indices : dict of str -> Grid
        NDVI, NDBI, NDWI and Albedo grids.

    tolerance : float, optional
        Slack allowed on the [-1, 1] bounds for floating point rounding.

    Raises
    ------
    ContractViolation
        If any invariant is violated
    """
    for name in NORMALIZED_DIFFERENCE_INDICES + ("Albedo",):
        require(
            name in indices,
            f"Index contract violated: missing '{name}'"
        )

    for name, grid in indices.items():
        require(
            bool(np.isfinite(grid.values).all()),
            f"Index contract violated: '{name}' contains non-finite values"
        )

    for name in NORMALIZED_DIFFERENCE_INDICES:
        valid = indices[name].valid_values()
        if valid.size:
            require(
                valid.min() >= -1 - tolerance and valid.max() <= 1 + tolerance,
                f"Index contract violated: '{name}' outside [-1, 1] "
                f"(min={valid.min():.4f}, max={valid.max():.4f})"
            )
