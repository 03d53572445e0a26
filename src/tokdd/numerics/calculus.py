"""
tokdd.numerics.calculus
=======================

Small vector-calculus helpers shared by the data tree and the flux-surface
engine.

Conventions
-----------
• 1D inputs are normalized with np.asarray(..., dtype=float).
• 2D arrays follow the IMAS layout: first index runs along dim1 (R),
  second index along dim2 (Z).
• Nothing here keeps state; every function is pure.

Public API
----------
gradient(arr, *coords)
integrate(x, y)
cumulative_integrate(x, y)
to_range(vector) -> UniformRange
norm01(x)
meshgrid(x, y)
same_length_vectors(*args)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Optional, Tuple, Union

import numpy as np
from scipy.integrate import cumulative_trapezoid, trapezoid

from tokdd.errors import NonUniformSpacingError


# -----------------------------------------------------------------------------
# Derivatives
# -----------------------------------------------------------------------------

def gradient(arr: Any, *coords: Any) -> Union[np.ndarray, Tuple[np.ndarray, np.ndarray]]:
    """
    Finite-difference derivative on a (possibly non-uniform) grid.

    Interior points use the second-order central difference for unequal
    spacing; both ends use a first-order one-sided difference. The output has
    the same shape as the input.

    Parameters
    ----------
    arr : array_like
        1D samples, or a 2D array of shape (len(x), len(y)).
    *coords : array_like
        Nothing (unit spacing), one coordinate for 1D input, or two
        coordinates (x, y) for 2D input.

    Returns
    -------
    ndarray, or (dF/dx, dF/dy) for 2D input
    """
    arr = np.asarray(arr, dtype=float)

    if arr.ndim == 1:
        if len(coords) > 1:
            raise ValueError("1D gradient takes at most one coordinate.")
        if arr.size < 2:
            raise ValueError("gradient needs at least 2 samples.")
        if not coords or coords[0] is None:
            return np.gradient(arr, edge_order=1)
        x = np.asarray(coords[0], dtype=float)
        if x.shape != arr.shape:
            raise ValueError(f"coordinate shape {x.shape} does not match array shape {arr.shape}")
        return np.gradient(arr, x, edge_order=1)

    if arr.ndim == 2:
        if len(coords) not in (0, 2):
            raise ValueError("2D gradient takes either no coordinates or both (x, y).")
        if not coords:
            dFdx, dFdy = np.gradient(arr, edge_order=1)
            return dFdx, dFdy
        x = np.asarray(coords[0], dtype=float)
        y = np.asarray(coords[1], dtype=float)
        if arr.shape != (x.size, y.size):
            raise ValueError(f"2D array must have shape ({x.size},{y.size}), got {arr.shape}")
        dFdx, dFdy = np.gradient(arr, x, y, edge_order=1)
        return dFdx, dFdy

    raise ValueError(f"gradient supports 1D and 2D arrays, got ndim={arr.ndim}")


# -----------------------------------------------------------------------------
# Integrals
# -----------------------------------------------------------------------------

def integrate(x: Any, y: Any) -> float:
    """Definite trapezoidal integral of y over x (x may be non-uniform)."""
    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)
    if x.shape != y.shape:
        raise ValueError(f"x and y must have the same shape, got {x.shape} and {y.shape}")
    if x.size < 2:
        return 0.0
    return float(trapezoid(y, x))


def cumulative_integrate(x: Any, y: Any) -> np.ndarray:
    """Running trapezoidal integral; same length as x and starts at 0."""
    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)
    if x.shape != y.shape:
        raise ValueError(f"x and y must have the same shape, got {x.shape} and {y.shape}")
    if x.size < 2:
        return np.zeros_like(x)
    return cumulative_trapezoid(y, x, initial=0.0)


# -----------------------------------------------------------------------------
# Uniform ranges
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class UniformRange:
    """
    Lightweight uniform-range descriptor (start, stop, length).

    Behaves like a read-only 1D array: supports len(), indexing, iteration
    and np.asarray().
    """
    start: float
    stop: float
    length: int

    @property
    def step(self) -> float:
        if self.length < 2:
            return 0.0
        return (self.stop - self.start) / (self.length - 1)

    def __len__(self) -> int:
        return self.length

    def __getitem__(self, i):
        return np.asarray(self)[i]

    def __iter__(self):
        return iter(np.asarray(self))

    def __array__(self, dtype=None, copy=None):
        out = np.linspace(self.start, self.stop, self.length)
        return out if dtype is None else out.astype(dtype)


def to_range(vector: Any, rtol: float = 1e-10) -> UniformRange:
    """
    Return the UniformRange equivalent of an evenly spaced vector.

    Raises
    ------
    NonUniformSpacingError
        When the spacing deviates from its mean by more than rtol.
    """
    v = np.asarray(vector, dtype=float)
    if v.ndim != 1 or v.size < 2:
        raise NonUniformSpacingError("to_range needs a 1D vector with at least 2 points.")
    dv = np.diff(v)
    step = float(np.mean(dv))
    if step == 0.0 or not np.allclose(dv, step, rtol=rtol, atol=0.0):
        raise NonUniformSpacingError(f"vector is not uniformly spaced (steps from {dv.min()} to {dv.max()})")
    return UniformRange(start=float(v[0]), stop=float(v[-1]), length=int(v.size))


# -----------------------------------------------------------------------------
# Misc helpers
# -----------------------------------------------------------------------------

def norm01(x: Any) -> np.ndarray:
    """Rescale x linearly onto [0, 1]."""
    x = np.asarray(x, dtype=float)
    span = float(np.max(x) - np.min(x))
    if span == 0.0:
        raise ValueError("norm01 needs a non-constant array.")
    return (x - np.min(x)) / span


def meshgrid(x: Any, y: Any) -> Tuple[np.ndarray, np.ndarray]:
    """Meshgrid in IMAS (ij) ordering: outputs have shape (len(x), len(y))."""
    return np.meshgrid(np.asarray(x, dtype=float), np.asarray(y, dtype=float), indexing="ij")


def same_length_vectors(*args: Any) -> List[np.ndarray]:
    """
    Bring scalars and short vectors to a common length.

    Every argument is tiled and truncated to the length of the longest one,
    so a scalar becomes a constant vector.
    """
    arrays = [np.atleast_1d(np.asarray(a)) for a in args]
    n = max(a.size for a in arrays)
    out = []
    for a in arrays:
        if a.size == 0:
            raise ValueError("same_length_vectors got an empty argument.")
        reps = int(np.ceil(n / a.size))
        out.append(np.tile(a, reps)[:n])
    return out
