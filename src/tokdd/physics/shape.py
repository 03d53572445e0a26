"""
tokdd.physics.shape
===================

Shape descriptors of a single flux surface from its extrema.

Extrema
-------
The four extremal points of a surface:

    (max_r, z_at_max_r)  outboard
    (min_r, z_at_min_r)  inboard
    (r_at_max_z, max_z)  top
    (r_at_min_z, min_z)  bottom

Definitions
-----------
elongation           = (max_z - min_z) / (max_r - min_r)
triangularity_upper  = (Rm - r_at_max_z) / a
triangularity_lower  = (Rm - r_at_min_z) / a
squareness (Luce)    = (|OD| - |OC|) / (|OE| - |OC|) per quadrant

with Rm = (max_r + min_r)/2 and a = (max_r - min_r)/2. For squareness, O is
the inner corner spanned by the two extrema bounding the quadrant, E the
outer corner, C the 45° point of the ellipse through both extrema
(|OC| = |OE|/√2) and D the crossing of OE with the surface. An exact
ellipse has zero squareness.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict

import numpy as np

from tokdd.geometry.lines import segment_intersection


@dataclass(frozen=True)
class Extrema:
    max_r: float
    z_at_max_r: float
    min_r: float
    z_at_min_r: float
    r_at_max_z: float
    max_z: float
    r_at_min_z: float
    min_z: float

    @classmethod
    def from_polyline(cls, pr, pz) -> "Extrema":
        """Extrema on the polyline vertices (no refinement)."""
        pr = np.asarray(pr, dtype=float)
        pz = np.asarray(pz, dtype=float)
        imaxr, iminr = int(np.argmax(pr)), int(np.argmin(pr))
        imaxz, iminz = int(np.argmax(pz)), int(np.argmin(pz))
        return cls(
            max_r=float(pr[imaxr]), z_at_max_r=float(pz[imaxr]),
            min_r=float(pr[iminr]), z_at_min_r=float(pz[iminr]),
            r_at_max_z=float(pr[imaxz]), max_z=float(pz[imaxz]),
            r_at_min_z=float(pr[iminz]), min_z=float(pz[iminz]),
        )


def elongation_triangularity(ex: Extrema) -> Dict[str, float]:
    Rm = 0.5 * (ex.max_r + ex.min_r)
    a = 0.5 * (ex.max_r - ex.min_r)
    b = 0.5 * (ex.max_z - ex.min_z)
    return {
        "r_outboard": ex.max_r,
        "r_inboard": ex.min_r,
        "elongation": b / a,
        "triangularity_upper": (Rm - ex.r_at_max_z) / a,
        "triangularity_lower": (Rm - ex.r_at_min_z) / a,
    }


def _quadrant_squareness(pr, pz, ro: float, zo: float, re: float, ze: float) -> float:
    OE = float(np.hypot(re - ro, ze - zo))
    if OE == 0.0:
        return float("nan")
    # extend past E so a surface through the corner still crosses
    rx = ro + 1.05 * (re - ro)
    zx = zo + 1.05 * (ze - zo)
    crossings = segment_intersection([ro, rx], [zo, zx], pr, pz)
    if not crossings:
        return float("nan")
    OD = max(float(np.hypot(r - ro, z - zo)) for r, z in crossings)
    OC = OE / np.sqrt(2.0)
    return (OD - OC) / (OE - OC)


def luce_squareness(pr, pz, ex: Extrema) -> Dict[str, float]:
    """Squareness of the four quadrants (NaN when OE does not cross the surface)."""
    pr = np.asarray(pr, dtype=float)
    pz = np.asarray(pz, dtype=float)
    return {
        "squareness_upper_outer": _quadrant_squareness(pr, pz, ex.r_at_max_z, ex.z_at_max_r, ex.max_r, ex.max_z),
        "squareness_upper_inner": _quadrant_squareness(pr, pz, ex.r_at_max_z, ex.z_at_min_r, ex.min_r, ex.max_z),
        "squareness_lower_outer": _quadrant_squareness(pr, pz, ex.r_at_min_z, ex.z_at_max_r, ex.max_r, ex.min_z),
        "squareness_lower_inner": _quadrant_squareness(pr, pz, ex.r_at_min_z, ex.z_at_min_r, ex.min_r, ex.min_z),
    }
