"""Flatten co-registered grids into a model-ready table.

One row per cell that is valid in every stacked grid (complete-case
policy), columns ``X``, ``Y`` (cell centre, projected) then one column per
grid in input order, plus an optional constant label column (``Month``).
"""

import logging
import operator
import os
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from lstpipe.core.errors import ConfigurationError
from lstpipe.core.grid import Grid, require_same_geometry

__all__ = ['FeatureTable', 'FeatureTableAssembler', 'assemble']

logger = logging.getLogger(__name__)

COORD_COLUMNS = ("X", "Y")

_FILTER_OPS = {
    ">": operator.gt,
    ">=": operator.ge,
    "<": operator.lt,
    "<=": operator.le,
}


class FeatureTable:
    """A flat table of per-cell covariates with row accounting.

    Attributes
    ----------
    frame : pandas.DataFrame
    cells_total : int
        Cells in the source grid(s).
    rows_before_filter : int
        Complete-case rows before any value filter was applied.
    rows_dropped_nodata : int
        Cells dropped because at least one grid was no-data there.
    filters : tuple of str
        Human readable description of filters applied, in order.
    """

    def __init__(self, frame: pd.DataFrame, cells_total: int,
                 rows_before_filter: Optional[int] = None,
                 rows_dropped_nodata: int = 0,
                 filters: Tuple[str, ...] = ()):
        self.frame = frame
        self.cells_total = int(cells_total)
        self.rows_before_filter = len(frame) if rows_before_filter is None else int(rows_before_filter)
        self.rows_dropped_nodata = int(rows_dropped_nodata)
        self.filters = tuple(filters)

    def __len__(self):
        return len(self.frame)

    @property
    def columns(self) -> List[str]:
        return list(self.frame.columns)

    def filter(self, column: str, op: str, threshold: float) -> "FeatureTable":
        """Rows where ``column op threshold`` holds, e.g. ``("LST", ">", 15)``."""
        if column not in self.frame.columns:
            raise ConfigurationError(f"Cannot filter on unknown column '{column}'")
        if op not in _FILTER_OPS:
            raise ConfigurationError(f"Unsupported filter operator '{op}'")

        keep = _FILTER_OPS[op](self.frame[column], threshold)
        frame = self.frame[keep].reset_index(drop=True)
        description = f"{column} {op} {threshold}"
        logger.info("Filter %s: kept %d of %d rows", description, len(frame), len(self.frame))

        return FeatureTable(frame, self.cells_total, self.rows_before_filter,
                            self.rows_dropped_nodata, self.filters + (description,))

    @classmethod
    def concat(cls, tables: Sequence["FeatureTable"]) -> "FeatureTable":
        """Stack per-scene tables with identical columns."""
        if not tables:
            raise ConfigurationError("No feature tables to concatenate")

        columns = tables[0].columns
        for table in tables[1:]:
            if table.columns != columns:
                raise ConfigurationError(
                    f"Cannot concatenate tables with different columns: {columns} vs {table.columns}"
                )

        frame = pd.concat([t.frame for t in tables], ignore_index=True)
        return cls(
            frame,
            cells_total=sum(t.cells_total for t in tables),
            rows_before_filter=sum(t.rows_before_filter for t in tables),
            rows_dropped_nodata=sum(t.rows_dropped_nodata for t in tables),
            filters=tables[0].filters,
        )

    def write(self, path, fmt: str = "csv", compression: str = "none") -> Path:
        """Write CSV or Parquet atomically (temp file, then rename).

        ``compression`` is ``"snappy"``, ``"gzip"`` or ``"none"``. CSV only
        honours gzip; snappy is a Parquet codec.
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_name(f".{path.name}.tmp")

        try:
            if fmt == "csv":
                codec = "gzip" if compression == "gzip" else None
                self.frame.to_csv(tmp, index=False, compression=codec)
            elif fmt == "parquet":
                codec = None if compression == "none" else compression
                self.frame.to_parquet(tmp, engine="pyarrow", compression=codec, index=False)
            else:
                raise ConfigurationError(f"Unsupported table format '{fmt}'")
            os.replace(tmp, path)
        finally:
            if tmp.exists():
                tmp.unlink()

        logger.info("Table written: %s (%d rows, %d columns)", path, len(self), len(self.columns))
        return path

    def summary(self) -> dict:
        return {
            "rows": len(self),
            "columns": self.columns,
            "cells_total": self.cells_total,
            "rows_before_filter": self.rows_before_filter,
            "rows_dropped_nodata": self.rows_dropped_nodata,
            "filters": list(self.filters),
        }

    def __repr__(self):
        return f"FeatureTable(rows={len(self)}, columns={self.columns})"


class FeatureTableAssembler:
    """Stack named grids into a FeatureTable.

    Parameters
    ----------
    label_column : str, optional
        Name of the constant label column (default ``"Month"``).
    """

    def __init__(self, label_column: str = "Month"):
        self.label_column = label_column

    def assemble(self, grids: Iterable[Tuple[str, Grid]],
                 label: Optional[str] = None) -> FeatureTable:
        """Flatten grids, keeping cells valid in every grid.

        Raises
        ------
        GridMismatchError
            If grids differ in shape, transform or CRS.
        ConfigurationError
            On duplicate or reserved column names, or no grids.
        """
        grids = list(grids)
        if not grids:
            raise ConfigurationError("No grids to assemble")

        names = [name for name, _ in grids]
        reserved = set(COORD_COLUMNS) | ({self.label_column} if label is not None else set())
        clashes = sorted({n for n in names if names.count(n) > 1 or n in reserved})
        if clashes:
            raise ConfigurationError(f"Duplicate or reserved feature columns: {clashes}")

        require_same_geometry(*(g for _, g in grids), context="feature table")

        template = grids[0][1]
        valid = np.logical_and.reduce([g.valid_mask for _, g in grids])
        xs, ys = template.cell_centers()

        columns = {"X": xs[valid], "Y": ys[valid]}
        for name, grid in grids:
            columns[name] = grid.values[valid]
        frame = pd.DataFrame(columns)
        if label is not None:
            frame[self.label_column] = str(label)

        cells_total = template.height * template.width
        dropped = cells_total - len(frame)
        logger.info("Complete-case rows: %d of %d cells kept (%d dropped for no-data)",
                    len(frame), cells_total, dropped)
        if frame.empty:
            logger.warning("Feature table is empty: no cell is valid in every layer")

        return FeatureTable(frame, cells_total, rows_before_filter=len(frame),
                            rows_dropped_nodata=dropped)


def assemble(grids: Iterable[Tuple[str, Grid]], label: Optional[str] = None,
             label_column: str = "Month") -> FeatureTable:
    """Module-level shortcut for ``FeatureTableAssembler(label_column).assemble``."""
    return FeatureTableAssembler(label_column).assemble(grids, label)
