"""
tokdd.dd.arrays
===============

Field arrays: numeric array values attached to a node field.

Two flavors share one interface (FieldArray):

MaterializedArray
    Wraps a concrete numpy array. Element assignment works in place.

AnalyticArray
    Wraps a function of the field's first coordinate. Every read evaluates
    the function at the current coordinate samples, so the values follow the
    coordinate. Element assignment raises ImmutableFieldError.

Both behave like read-only numpy arrays for arithmetic and ufuncs
(NDArrayOperatorsMixin), support len()/indexing/iteration, and can be called
with new abscissae for linear interpolation along their first coordinate.

The owning node is held through a weak reference; a field array never keeps
its node alive.
"""

from __future__ import annotations

import weakref
from typing import Any, Callable, List, Optional

import numpy as np
from numpy.lib.mixins import NDArrayOperatorsMixin

from tokdd.errors import CoordinateNotSetError, ImmutableFieldError


class FieldArray(NDArrayOperatorsMixin):
    """Common behavior of materialized and analytic field arrays."""

    def __init__(self):
        self._owner_ref: Optional[weakref.ref] = None
        self._field: Optional[str] = None

    # ------------------------------------------------------------------
    # ownership
    # ------------------------------------------------------------------

    def _bind(self, owner: Any, field: str) -> None:
        self._owner_ref = weakref.ref(owner)
        self._field = field

    @property
    def owner(self):
        """Node holding this array (None when detached)."""
        return self._owner_ref() if self._owner_ref is not None else None

    @property
    def field(self) -> Optional[str]:
        return self._field

    # ------------------------------------------------------------------
    # array protocol
    # ------------------------------------------------------------------

    @property
    def values(self) -> np.ndarray:
        raise NotImplementedError

    def __array__(self, dtype=None, copy=None):
        v = self.values
        if dtype is not None:
            return v.astype(dtype)
        return v.copy() if copy else v

    def __array_ufunc__(self, ufunc, method, *inputs, **kwargs):
        if any(isinstance(o, FieldArray) for o in kwargs.get("out", ())):
            return NotImplemented
        args = [x.values if isinstance(x, FieldArray) else x for x in inputs]
        return getattr(ufunc, method)(*args, **kwargs)

    @property
    def shape(self):
        return self.values.shape

    @property
    def ndim(self) -> int:
        return self.values.ndim

    @property
    def size(self) -> int:
        return self.values.size

    @property
    def dtype(self):
        return self.values.dtype

    def __len__(self) -> int:
        return self.values.shape[0] if self.values.ndim else 0

    def __getitem__(self, index):
        return self.values[index]

    def __iter__(self):
        return iter(self.values)

    def tolist(self) -> list:
        return self.values.tolist()

    # ------------------------------------------------------------------
    # coordinates
    # ------------------------------------------------------------------

    def coordinate_arrays(self) -> List[np.ndarray]:
        """
        One array per dimension: the live coordinate data or, for implicit
        coordinates, a synthesized 1..N index.
        """
        owner = self.owner
        if owner is None:
            return [np.arange(1, n + 1, dtype=float) for n in self.shape]
        return owner._coordinate_arrays(self._field, self.shape)

    def __call__(self, x: Any):
        """Linear interpolation along the first coordinate."""
        v = self.values
        if v.ndim != 1:
            raise ValueError("interpolation is only defined for 1D field arrays")
        xc = np.asarray(self.coordinate_arrays()[0], dtype=float)
        order = np.argsort(xc, kind="stable")
        return np.interp(x, xc[order], np.asarray(v, dtype=float)[order])

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.values!r})"


class MaterializedArray(FieldArray):
    """Concrete backing array (shared, not copied, when read)."""

    def __init__(self, data: Any, dtype=None):
        super().__init__()
        self._data = np.array(data, dtype=dtype)

    @property
    def values(self) -> np.ndarray:
        return self._data

    def __setitem__(self, index, value) -> None:
        self._data[index] = value

    def _replace(self, data: Any) -> None:
        """Swap the backing array (used when the time axis grows)."""
        self._data = np.array(data, dtype=self._data.dtype if self._data.size else None)


class AnalyticArray(FieldArray):
    """Function of the field's first coordinate, evaluated lazily."""

    def __init__(self, func: Callable[[np.ndarray], Any]):
        super().__init__()
        if not callable(func):
            raise TypeError("AnalyticArray needs a callable")
        self.func = func

    @property
    def values(self) -> np.ndarray:
        owner = self.owner
        if owner is None:
            raise CoordinateNotSetError("Analytic array is not attached to a node, its coordinate is unknown")
        x = owner._analytic_coordinate(self._field)
        y = np.asarray(self.func(x), dtype=float)
        if y.ndim == 0:
            y = np.full(x.shape, float(y))
        if y.shape != x.shape:
            raise ValueError(f"analytic function returned shape {y.shape} for a coordinate of shape {x.shape}")
        return y

    def __setitem__(self, index, value) -> None:
        raise ImmutableFieldError(
            f"`{self._field}` is an analytic (function-valued) array and cannot be modified element-wise"
        )
