"""
tokdd.numerics.interpolation
============================

Reusable 1D interpolants built on scipy.interpolate.

Schemes
-------
constant   : left-continuous step (value of the previous sample)
linear     : piecewise linear
quadratic  : quadratic spline
cubic      : cubic spline (not-a-knot)
lagrange   : one polynomial of degree N-1 through all N points

Extrapolation
-------------
None        -> evaluating outside [x0, xN] raises ValueError
"constant"  -> hold the end values
"linear"    -> continue along the end slope of the interpolant
"""

from __future__ import annotations

from typing import Any, Callable, Optional

import numpy as np
from scipy.interpolate import BarycentricInterpolator, CubicSpline, interp1d as _scipy_interp1d

from tokdd.errors import UnsupportedSchemeError


SCHEMES = ("constant", "linear", "quadratic", "cubic", "lagrange")
EXTRAPOLATIONS = (None, "constant", "linear")


class Interpolant1D:
    """
    Callable interpolant y(x) with an explicit scheme and extrapolation rule.

    The input samples are sorted by x at construction, so descending
    coordinates (for example psi decreasing outward) are accepted.
    """

    def __init__(self, x: Any, y: Any, scheme: str = "linear", extrapolation: Optional[str] = None):
        scheme = str(scheme).strip().lower()
        if scheme not in SCHEMES:
            raise UnsupportedSchemeError(f"Unsupported interpolation scheme {scheme!r}. Supported: {SCHEMES}")
        if extrapolation not in EXTRAPOLATIONS:
            raise ValueError(f"extrapolation must be one of {EXTRAPOLATIONS}, got {extrapolation!r}")

        x = np.asarray(x, dtype=float)
        y = np.asarray(y, dtype=float)
        if x.ndim != 1 or x.shape != y.shape:
            raise ValueError(f"x and y must be 1D with the same shape, got {x.shape} and {y.shape}")
        if x.size < 2:
            raise ValueError("interpolation needs at least 2 points.")

        order = np.argsort(x, kind="stable")
        x = x[order]
        y = y[order]
        if np.any(np.diff(x) == 0.0):
            raise ValueError("interpolation abscissae must be distinct.")

        self.x = x
        self.y = y
        self.scheme = scheme
        self.extrapolation = extrapolation
        self._fn = _build(scheme, x, y)
        self._slopes = self._end_slopes()

    # ---------------------------------------------------------------------

    def _end_slopes(self):
        if self.scheme == "cubic":
            d = self._fn.derivative()
            return float(d(self.x[0])), float(d(self.x[-1]))
        if self.scheme == "constant":
            return 0.0, 0.0
        h0 = self.x[1] - self.x[0]
        h1 = self.x[-1] - self.x[-2]
        left = (float(self._fn(self.x[0] + 1e-6 * h0)) - self.y[0]) / (1e-6 * h0)
        right = (self.y[-1] - float(self._fn(self.x[-1] - 1e-6 * h1))) / (1e-6 * h1)
        return left, right

    def __call__(self, xq: Any):
        xq_arr = np.asarray(xq, dtype=float)
        scalar = xq_arr.ndim == 0
        xq_arr = np.atleast_1d(xq_arr)

        lo = xq_arr < self.x[0]
        hi = xq_arr > self.x[-1]
        if (lo.any() or hi.any()) and self.extrapolation is None:
            raise ValueError(
                f"interpolation point(s) outside [{self.x[0]}, {self.x[-1]}] and extrapolation is disabled"
            )

        out = np.asarray(self._fn(np.clip(xq_arr, self.x[0], self.x[-1])), dtype=float)
        if self.extrapolation == "linear":
            out = np.where(lo, self.y[0] + self._slopes[0] * (xq_arr - self.x[0]), out)
            out = np.where(hi, self.y[-1] + self._slopes[1] * (xq_arr - self.x[-1]), out)

        return float(out[0]) if scalar else out

    def __repr__(self) -> str:
        return f"Interpolant1D(scheme={self.scheme!r}, n={self.x.size}, extrapolation={self.extrapolation!r})"


def _build(scheme: str, x: np.ndarray, y: np.ndarray) -> Callable:
    if scheme == "constant":
        return _scipy_interp1d(x, y, kind="previous", assume_sorted=True)
    if scheme == "linear":
        return _scipy_interp1d(x, y, kind="linear", assume_sorted=True)
    if scheme == "quadratic":
        if x.size < 3:
            raise ValueError("quadratic interpolation needs at least 3 points.")
        return _scipy_interp1d(x, y, kind="quadratic", assume_sorted=True)
    if scheme == "cubic":
        return CubicSpline(x, y, bc_type="not-a-knot" if x.size > 3 else "natural")
    return BarycentricInterpolator(x, y)


def interp1d(x: Any, y: Any, scheme: str = "linear", extrapolation: Optional[str] = None) -> Interpolant1D:
    """Build a reusable 1D interpolant (see module docstring for schemes)."""
    return Interpolant1D(x, y, scheme=scheme, extrapolation=extrapolation)
