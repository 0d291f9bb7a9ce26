"""Georeferenced 2-D grids with an explicit no-data sentinel.

``Grid`` is the unit every stage consumes and produces. Values are stored as
float64 in a read-only array. No-data is never represented by NaN inside a
Grid: any non-finite input value is normalised to the sentinel on
construction, and every formula checks ``valid_mask`` explicitly.

``BandSet`` is a read-only mapping of co-registered band grids.
"""

import math
from collections.abc import Mapping
from typing import Dict, Iterator, Optional, Tuple

import numpy as np
import xarray as xr
from pyproj import CRS
from rasterio.transform import Affine

from lstpipe.core.errors import GridMismatchError

__all__ = ['Grid', 'BandSet', 'require_same_geometry', 'DEFAULT_NODATA']

DEFAULT_NODATA = -9999.0


def _as_affine(transform) -> Affine:
    if isinstance(transform, Affine):
        return transform
    return Affine(*tuple(transform)[:6])


def _affine_coeffs(transform: Affine) -> Tuple[float, ...]:
    return (transform.a, transform.b, transform.c,
            transform.d, transform.e, transform.f)


class Grid:
    """Immutable 2-D raster: values, affine transform, CRS and no-data sentinel.

    Parameters
    ----------
    values : array-like
        2-D cell values. Copied and converted to float64.
    transform : rasterio.transform.Affine or 6-tuple
        Maps (col, row) of a cell's upper-left corner to projected (x, y).
    crs : str, int or pyproj.CRS
        Anything ``pyproj.CRS.from_user_input`` accepts.
    nodata : float, default -9999.0
        Finite sentinel marking invalid cells.

    Examples
    --------
    >>> g = Grid([[1.0, 2.0], [3.0, -9999.0]], Affine(30, 0, 500000, 0, -30, 4200000), "EPSG:32634")
    >>> int(g.valid_mask.sum())
    3
    """

    __slots__ = ("_values", "_transform", "_crs", "_nodata")

    def __init__(self, values, transform, crs, nodata: float = DEFAULT_NODATA):
        nodata = float(nodata)
        if not math.isfinite(nodata):
            raise ValueError(f"Grid nodata sentinel must be finite, got {nodata}")

        arr = np.array(values, dtype=np.float64, copy=True)
        if arr.ndim != 2:
            raise ValueError(f"Grid values must be 2-D, got {arr.ndim} dims")
        arr[~np.isfinite(arr)] = nodata
        arr.setflags(write=False)

        self._values = arr
        self._transform = _as_affine(transform)
        self._crs = CRS.from_user_input(crs)
        self._nodata = nodata

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def values(self) -> np.ndarray:
        return self._values

    @property
    def transform(self) -> Affine:
        return self._transform

    @property
    def crs(self) -> CRS:
        return self._crs

    @property
    def nodata(self) -> float:
        return self._nodata

    @property
    def shape(self) -> Tuple[int, int]:
        return self._values.shape

    @property
    def height(self) -> int:
        return self._values.shape[0]

    @property
    def width(self) -> int:
        return self._values.shape[1]

    @property
    def cell_size(self) -> Tuple[float, float]:
        """(x, y) cell size in projected units."""
        t = self._transform
        return math.hypot(t.a, t.d), math.hypot(t.b, t.e)

    @property
    def bounds(self) -> Tuple[float, float, float, float]:
        """(left, bottom, right, top) of the outer cell edges."""
        t = self._transform
        corners = [(0, 0), (self.width, 0), (0, self.height), (self.width, self.height)]
        xs = [t.a * col + t.b * row + t.c for col, row in corners]
        ys = [t.d * col + t.e * row + t.f for col, row in corners]
        return min(xs), min(ys), max(xs), max(ys)

    @property
    def nodata_mask(self) -> np.ndarray:
        return self._values == self._nodata

    @property
    def valid_mask(self) -> np.ndarray:
        return self._values != self._nodata

    @property
    def valid_count(self) -> int:
        return int(np.count_nonzero(self.valid_mask))

    def valid_values(self) -> np.ndarray:
        """1-D array of valid cell values (row-major order)."""
        return self._values[self.valid_mask]

    # ------------------------------------------------------------------
    # Derivation
    # ------------------------------------------------------------------

    def with_values(self, values, nodata: Optional[float] = None) -> "Grid":
        """New grid with the same geometry and different values."""
        values = np.asarray(values)
        if values.shape != self.shape:
            raise GridMismatchError(
                f"Cannot attach values of shape {values.shape} to grid of shape {self.shape}"
            )
        return Grid(values, self._transform, self._crs,
                    self._nodata if nodata is None else nodata)

    def filled(self, fill_value: float) -> np.ndarray:
        """Writable copy of the values with no-data replaced by ``fill_value``."""
        out = self._values.copy()
        out[self.nodata_mask] = fill_value
        return out

    def masked_where(self, mask: np.ndarray) -> "Grid":
        """New grid with cells under ``mask`` set to no-data."""
        out = self._values.copy()
        out[np.asarray(mask, dtype=bool)] = self._nodata
        return self.with_values(out)

    def same_geometry(self, other: "Grid", atol: float = 1e-6) -> bool:
        return (
            self.shape == other.shape
            and np.allclose(_affine_coeffs(self._transform),
                            _affine_coeffs(other._transform), rtol=0, atol=atol)
            and self._crs == other._crs
        )

    def cell_centers(self) -> Tuple[np.ndarray, np.ndarray]:
        """Projected (X, Y) coordinates of every cell centre, each of grid shape."""
        rows, cols = np.indices(self.shape, dtype=np.float64)
        t = self._transform
        cols += 0.5
        rows += 0.5
        xs = t.c + cols * t.a + rows * t.b
        ys = t.f + cols * t.d + rows * t.e
        return xs, ys

    def to_dataarray(self, name: str = "values") -> xr.DataArray:
        """Export as an xarray.DataArray with NaN for no-data.

        Unrotated grids get 1-D ``x``/``y`` centre coordinates; rotated grids
        carry 2-D ``x``/``y`` coordinates instead.
        """
        xs, ys = self.cell_centers()
        t = self._transform
        data = self.filled(np.nan)
        attrs = {
            "crs": self._crs.to_wkt(),
            "transform": list(_affine_coeffs(t)),
            "nodata": self._nodata,
        }
        if t.b == 0 and t.d == 0:
            coords = {"y": ys[:, 0], "x": xs[0, :]}
        else:
            coords = {"y": (("row", "col"), ys), "x": (("row", "col"), xs)}
            return xr.DataArray(data, dims=("row", "col"), coords=coords,
                                name=name, attrs=attrs)
        return xr.DataArray(data, dims=("y", "x"), coords=coords, name=name, attrs=attrs)

    def __repr__(self):
        return (f"Grid(shape={self.shape}, crs={self._crs.to_string()}, "
                f"nodata={self._nodata}, valid={self.valid_count})")


def require_same_geometry(*grids: Grid, context: str = "grid operation") -> None:
    """Raise GridMismatchError unless all grids share shape, transform and CRS."""
    if len(grids) < 2:
        return
    ref = grids[0]
    for i, other in enumerate(grids[1:], start=1):
        if not ref.same_geometry(other):
            raise GridMismatchError(
                f"{context}: input {i} {other!r} is not aligned with input 0 {ref!r}"
            )


class BandSet(Mapping):
    """Read-only mapping of band id (``"B4"``, ``"B10"``...) to co-registered Grid."""

    def __init__(self, bands: Dict[str, Grid]):
        if not bands:
            raise ValueError("BandSet requires at least one band")
        grids = dict(bands)
        require_same_geometry(*grids.values(), context="BandSet")
        self._bands = grids

    def __getitem__(self, band_id: str) -> Grid:
        return self._bands[band_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._bands)

    def __len__(self) -> int:
        return len(self._bands)

    @property
    def template(self) -> Grid:
        """Reference grid carrying the shared geometry."""
        return next(iter(self._bands.values()))

    def replace(self, **grids: Grid) -> "BandSet":
        """New BandSet with some bands swapped out."""
        merged = dict(self._bands)
        merged.update(grids)
        return BandSet(merged)

    def __repr__(self):
        return f"BandSet(bands={list(self._bands)}, template={self.template!r})"
