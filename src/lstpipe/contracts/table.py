"""Feature table contract.

Enforces the guarantee that the assembled table has coordinates, the
requested columns, and only finite values (complete cases only).
"""

from typing import Iterable, Optional

import numpy as np
import pandas as pd

from lstpipe.contracts.base import require


def assert_feature_table(table, expected_columns: Optional[Iterable[str]] = None,
                         min_expected_rows: int = 0) -> None:
    """Enforce feature table contract.

    Called after FeatureTableAssembler.assemble() and any filtering.

    We do NOT validate the scientific content of the columns. We only check
    structural requirements.

    Parameters
    ----------
    table : FeatureTable
        Output of the assembler.

    expected_columns : iterable of str, optional
        Columns that must be present besides X and Y.

    min_expected_rows : int, optional
        Minimum number of rows expected (default 0)

    Raises
    ------
    ContractViolation
        If structural requirements are violated
    """
    df = table.frame
    require(
        isinstance(df, pd.DataFrame),
        f"Table contract violated: frame is {type(df)}, expected DataFrame"
    )

    for col in ["X", "Y"] + list(expected_columns or []):
        require(
            col in df.columns,
            f"Table contract violated: missing required column '{col}'"
        )

    numeric = df.select_dtypes(include=[np.number])
    require(
        bool(np.isfinite(numeric.to_numpy(dtype=np.float64)).all()),
        "Table contract violated: non-finite values in numeric columns"
    )

    require(
        len(df) <= table.cells_total,
        f"Table contract violated: {len(df)} rows exceed {table.cells_total} grid cells"
    )

    require(
        len(df) >= min_expected_rows,
        f"Table contract violated: got {len(df)} rows, expected >= {min_expected_rows}"
    )
