"""
tokdd.physics.contours
======================

Iso-psi contour tracing and last-closed-flux-surface search.

Purpose
-------
Turn a 2D flux map psi(R,Z) into flux-surface polylines:

• psi_interpolant()       : cubic spline of psi on the stored grid
• contour_lines()         : every iso-psi polyline at one level (contourpy)
• flux_surface()          : closed surface around the axis, or open legs
• find_psi_boundary()     : bisection for the psi of the LCFS
• reorder_flux_surface()  : counter-clockwise, start on the low-field side

Conventions
-----------
• PSI has shape (len(dim1), len(dim2)) = (nR, nZ)
• A line is closed when its first and last vertices coincide and it
  encloses the magnetic axis (R0, Z0)
• Returned polylines are float arrays; closed ones repeat the first vertex
"""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple, Union

import numpy as np
from contourpy import LineType, contour_generator
from scipy.interpolate import RectBivariateSpline

from tokdd.errors import BoundaryBracketError
from tokdd.geometry.lines import point_in_polygon


log = logging.getLogger(__name__)

Line = Tuple[np.ndarray, np.ndarray]


# ============================================================
# INTERPOLANT
# ============================================================

def psi_spline(dim1, dim2, PSI) -> RectBivariateSpline:
    """Cubic interpolating spline psi(R, Z) (no smoothing)."""
    return RectBivariateSpline(
        np.asarray(dim1, dtype=float),
        np.asarray(dim2, dtype=float),
        np.asarray(PSI, dtype=float),
        kx=3,
        ky=3,
        s=0,
    )


def psi_interpolant(eqt) -> Tuple[np.ndarray, np.ndarray, RectBivariateSpline]:
    """(dim1, dim2, spline) from profiles_2d[0] of an equilibrium time slice."""
    p2d = eqt.profiles_2d[0]
    r = np.asarray(p2d.grid.dim1, dtype=float)
    z = np.asarray(p2d.grid.dim2, dtype=float)
    return r, z, psi_spline(r, z, p2d.psi)


# ============================================================
# CONTOURS
# ============================================================

def contour_lines(dim1, dim2, PSI, level: float) -> List[Line]:
    """All polylines of PSI == level (closed ones repeat their first vertex)."""
    gen = contour_generator(
        x=np.asarray(dim1, dtype=float),
        y=np.asarray(dim2, dtype=float),
        z=np.asarray(PSI, dtype=float).T,
        line_type=LineType.Separate,
    )
    out: List[Line] = []
    for seg in gen.lines(float(level)):
        seg = np.asarray(seg, dtype=float)
        if seg.shape[0] < 2:
            continue
        out.append((seg[:, 0].copy(), seg[:, 1].copy()))
    return out


def _is_closed(pr: np.ndarray, pz: np.ndarray) -> bool:
    return pr[0] == pr[-1] and pz[0] == pz[-1]


def _encloses(pr: np.ndarray, pz: np.ndarray, R0: float, Z0: float) -> bool:
    return _is_closed(pr, pz) and pr.size > 3 and point_in_polygon(pr, pz, (R0, Z0))


def reorder_flux_surface(pr, pz, R0: float, Z0: float) -> Line:
    """
    Make a surface counter-clockwise; closed surfaces start at the
    low-field-side point nearest to Z0 (above it when possible).
    """
    pr = np.array(pr, dtype=float)
    pz = np.array(pz, dtype=float)

    istart = int(np.argmax(pr[:-1]))
    if pz[istart + 1] < pz[istart]:
        pr = pr[::-1].copy()
        pz = pz[::-1].copy()

    if _is_closed(pr, pz):
        key = np.abs(pz[:-1] - Z0) + (pr[:-1] < R0) + (pz[:-1] < Z0)
        istart = int(np.argmin(key))
        pr[:-1] = np.roll(pr[:-1], -istart)
        pz[:-1] = np.roll(pz[:-1], -istart)
        pr[-1] = pr[0]
        pz[-1] = pz[0]
    return pr, pz


def _box_center(pr: np.ndarray, pz: np.ndarray) -> Tuple[float, float]:
    return 0.5 * (pr.max() + pr.min()), 0.5 * (pz.max() + pz.min())


def _closed_contour(dim1, dim2, PSI, R0: float, Z0: float, level: float) -> Optional[Line]:
    for pr, pz in contour_lines(dim1, dim2, PSI, level):
        if _encloses(pr, pz, R0, Z0):
            return reorder_flux_surface(pr, pz, *_box_center(pr, pz))
    return None


def flux_surface(
    dim1,
    dim2,
    PSI,
    psi,
    R0: float,
    Z0: float,
    psi_level: float,
    closed: Optional[bool] = True,
    *,
    precision: float = 1e-6,
    max_iterations: int = 100,
) -> Union[Tuple[np.ndarray, np.ndarray, float], List[Line]]:
    """
    Trace the flux surface(s) at psi_level.

    The level psi[0] (the axis) is replaced by psi[1]. The level psi[-1] is
    replaced by the bisected LCFS psi when that lies within one psi step of
    the nominal value.

    Parameters
    ----------
    closed : None, True or False
        None  -> every line, reordered
        True  -> (pr, pz, level) of the first closed line around (R0, Z0);
                 pr and pz are empty when there is none
        False -> the lines that are open or do not enclose (R0, Z0)
    """
    psi = np.asarray(psi, dtype=float)
    level = float(psi_level)

    if level == psi[0]:
        level = float(psi[1])
    elif level == psi[-1]:
        boundary = find_psi_boundary(
            dim1, dim2, PSI, psi, R0, Z0,
            precision=precision,
            raise_error_on_not_open=False,
            max_iterations=max_iterations,
        )
        if boundary is not None and abs(boundary - level) < abs(psi[-1] - psi[-2]):
            log.debug("LCFS level %.10g replaced by bisected %.10g", level, boundary)
            level = boundary

    if closed is None:
        return [reorder_flux_surface(pr, pz, *_box_center(pr, pz)) for pr, pz in contour_lines(dim1, dim2, PSI, level)]

    if closed:
        line = _closed_contour(dim1, dim2, PSI, R0, Z0, level)
        if line is None:
            return np.zeros(0), np.zeros(0), level
        return line[0], line[1], level

    return [
        reorder_flux_surface(pr, pz, *_box_center(pr, pz))
        for pr, pz in contour_lines(dim1, dim2, PSI, level)
        if not _encloses(pr, pz, R0, Z0)
    ]


# ============================================================
# LCFS BISECTION
# ============================================================

def find_psi_boundary(
    dim1,
    dim2,
    PSI,
    psi,
    R0: float,
    Z0: float,
    *,
    precision: float = 1e-6,
    raise_error_on_not_open: bool = True,
    max_iterations: int = 100,
) -> Optional[float]:
    """
    psi of the last closed flux surface, by bisection.

    The bracket starts at [0.9 psi[0] + 0.1 psi[-1], psi[-1] + 0.5 (psi[-1] - psi[0])].
    Its inner end must be closed. If its outer end is still closed the
    function raises BoundaryBracketError (raise_error_on_not_open=True) or
    returns None.

    Raises
    ------
    BoundaryBracketError
        Bad bracket, or no convergence within max_iterations.
    """
    psi = np.asarray(psi, dtype=float)
    lo = 0.9 * psi[0] + 0.1 * psi[-1]
    hi = psi[-1] + 0.5 * (psi[-1] - psi[0])

    if _closed_contour(dim1, dim2, PSI, R0, Z0, lo) is None:
        raise BoundaryBracketError(f"Flux surface at psi={lo} is not closed", psi_level=lo)

    if _closed_contour(dim1, dim2, PSI, R0, Z0, hi) is not None:
        if raise_error_on_not_open:
            raise BoundaryBracketError(f"Flux surface at psi={hi} is not open", psi_level=hi)
        return None

    lo0, hi0 = lo, hi
    for _ in range(int(max_iterations)):
        mid = 0.5 * (lo + hi)
        if _closed_contour(dim1, dim2, PSI, R0, Z0, mid) is not None:
            lo = mid
            if abs(hi - lo) / abs(hi + lo) / 2.0 < precision:
                log.debug("LCFS psi=%.10g", mid)
                return mid
        else:
            hi = mid

    raise BoundaryBracketError(f"Could not find closed boundary between psi={lo0} and psi={hi0}", psi_level=lo)
