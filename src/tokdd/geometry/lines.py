"""
tokdd.geometry.lines
====================

Polyline utilities used by the flux-surface engine.

Conventions
-----------
• A polyline is given as two 1D arrays (x, y) of equal length.
• A closed polyline repeats its first point at the end.
• Point-in-polygon uses matplotlib.path.Path, like the LCFS masking helpers.

Public API
----------
segment_intersection(l1_x, l1_y, l2_x, l2_y)
minimum_distance(ax, ay, bx, by, return_index=False)
resample_2d_line(x, y, step=None)
polygon_area(x, y)
point_in_polygon(x, y, point)
ensure_closed_polyline(x, y)
"""

from __future__ import annotations

from typing import Any, List, Optional, Tuple, Union

import numpy as np
from matplotlib.path import Path as MplPath

from tokdd.numerics.interpolation import interp1d


def _as_line(x: Any, y: Any, name: str) -> Tuple[np.ndarray, np.ndarray]:
    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)
    if x.ndim != 1 or x.shape != y.shape:
        raise ValueError(f"{name}: x and y must be 1D arrays of the same length, got {x.shape} and {y.shape}")
    return x, y


# =============================================================================
# Segment intersection
# =============================================================================

def _ccw(a, b, c) -> bool:
    return (c[1] - a[1]) * (b[0] - a[0]) >= (b[1] - a[1]) * (c[0] - a[0])


def _segments_cross(a1, a2, b1, b2) -> bool:
    return (_ccw(a1, b1, b2) != _ccw(a2, b1, b2)) and (_ccw(a1, a2, b1) != _ccw(a1, a2, b2))


def _crossing_point(a1, a2, b1, b2) -> Optional[Tuple[float, float]]:
    if not _segments_cross(a1, a2, b1, b2):
        return None
    da = a2 - a1
    db = b2 - b1
    dp = a1 - b1
    dap = np.array([-da[1], da[0]])
    denom = float(np.dot(dap, db))
    if denom == 0.0:
        # collinear overlap: no single crossing point
        return None
    p = (float(np.dot(dap, dp)) / denom) * db + b1
    return float(p[0]), float(p[1])


def segment_intersection(l1_x: Any, l1_y: Any, l2_x: Any, l2_y: Any) -> List[Tuple[float, float]]:
    """
    All crossing points between the segments of two polylines.

    Each pair of segments is tested with the orientation (ccw) predicate and,
    when they cross, the point is obtained from a determinant solve.

    Returns
    -------
    list of (x, y)
        One entry per crossing segment pair, in scan order of line 1.
    """
    x1, y1 = _as_line(l1_x, l1_y, "line 1")
    x2, y2 = _as_line(l2_x, l2_y, "line 2")

    crossings: List[Tuple[float, float]] = []
    for i in range(x1.size - 1):
        a1 = np.array([x1[i], y1[i]])
        a2 = np.array([x1[i + 1], y1[i + 1]])
        for j in range(x2.size - 1):
            b1 = np.array([x2[j], y2[j]])
            b2 = np.array([x2[j + 1], y2[j + 1]])
            p = _crossing_point(a1, a2, b1, b2)
            if p is not None:
                crossings.append(p)
    return crossings


# =============================================================================
# Distances
# =============================================================================

def minimum_distance(
    ax: Any,
    ay: Any,
    bx: Any,
    by: Any,
    return_index: bool = False,
) -> Union[float, Tuple[int, int]]:
    """
    Closest vertex-to-vertex distance between two polylines (brute force).

    Parameters
    ----------
    ax, ay, bx, by : array_like
        Vertices of shape A and shape B.
    return_index : bool
        If True return the index pair (i, j) of the closest vertices instead
        of the distance.
    """
    ax, ay = _as_line(ax, ay, "shape A")
    bx, by = _as_line(bx, by, "shape B")
    if ax.size == 0 or bx.size == 0:
        raise ValueError("minimum_distance needs non-empty shapes.")

    d2 = (ax[:, None] - bx[None, :]) ** 2 + (ay[:, None] - by[None, :]) ** 2
    i, j = np.unravel_index(int(np.argmin(d2)), d2.shape)
    if return_index:
        return int(i), int(j)
    return float(np.sqrt(d2[i, j]))


# =============================================================================
# Resampling
# =============================================================================

def resample_2d_line(x: Any, y: Any, step: Optional[float] = None) -> Tuple[np.ndarray, np.ndarray]:
    """
    Re-parametrize a polyline by arc length with uniform spacing.

    If step is None the number of points is kept; otherwise the point count is
    ceil(total_length / step).
    """
    x, y = _as_line(x, y, "line")
    if x.size < 2:
        raise ValueError("resample_2d_line needs at least 2 points.")

    ds = np.sqrt(np.diff(x) ** 2 + np.diff(y) ** 2)
    s = np.concatenate([[0.0], np.cumsum(ds)])

    # drop repeated vertices, which would give duplicate abscissae
    keep = np.concatenate([[True], ds > 0.0])
    s, xs, ys = s[keep], x[keep], y[keep]
    if s.size < 2:
        raise ValueError("resample_2d_line got a degenerate (zero-length) line.")

    if step is None:
        n = x.size
    else:
        if step <= 0:
            raise ValueError(f"step must be > 0, got {step}")
        n = max(int(np.ceil(s[-1] / step)), 2)

    t = np.linspace(s[0], s[-1], n)
    return interp1d(s, xs)(t), interp1d(s, ys)(t)


# =============================================================================
# Polygons
# =============================================================================

def ensure_closed_polyline(x: Any, y: Any) -> Tuple[np.ndarray, np.ndarray]:
    """Append the first vertex when the polyline is not already closed."""
    x, y = _as_line(x, y, "polyline")
    if x.size < 3:
        raise ValueError("polygon needs at least 3 points.")
    if x[0] != x[-1] or y[0] != y[-1]:
        x = np.append(x, x[0])
        y = np.append(y, y[0])
    return x, y


def polygon_area(x: Any, y: Any) -> float:
    """Signed shoelace area (positive for counter-clockwise polygons)."""
    x, y = ensure_closed_polyline(x, y)
    return 0.5 * float(np.sum(x[:-1] * y[1:] - x[1:] * y[:-1]))


def point_in_polygon(x: Any, y: Any, point: Tuple[float, float]) -> bool:
    """True when point lies strictly inside the polygon (x, y)."""
    x, y = ensure_closed_polyline(x, y)
    path = MplPath(np.column_stack([x, y]), closed=True)
    return bool(path.contains_point((float(point[0]), float(point[1]))))
