"""Pipeline contracts: fail-fast enforcement of stage invariants.

This package enforces semantic guarantees between pipeline stages.
Contracts fail immediately and loudly when pipeline stages don't produce
their promised invariants.

Key principle:
- Pydantic validates config correctness
- Contracts validate pipeline correctness
- Formulas handle numeric edge cases (cells become no-data)
"""

from lstpipe.contracts.base import ContractViolation, require
from lstpipe.contracts.bands import assert_band_set
from lstpipe.contracts.indices import assert_indices
from lstpipe.contracts.lst import assert_lst
from lstpipe.contracts.table import assert_feature_table

__all__ = [
    "ContractViolation",
    "require",
    "assert_band_set",
    "assert_indices",
    "assert_lst",
    "assert_feature_table",
]
