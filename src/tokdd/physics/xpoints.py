"""
tokdd.physics.xpoints
=====================

X-point search around the last closed flux surface.

For each open contour ("leg") at the boundary psi that stays on one side of
the LCFS mid-height and passes close to the LCFS, seed an X-point halfway
between the leg tip and the nearest LCFS vertex, then minimize |Bp| with
Nelder-Mead. Results go to boundary.x_point[:].
"""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

import numpy as np
from scipy.optimize import minimize

from tokdd.geometry.lines import minimum_distance
from tokdd.io.config import FluxSurfaceSettings
from tokdd.physics.cocos import cocos
from tokdd.physics.contours import flux_surface, psi_interpolant
from tokdd.physics.fields import bp


log = logging.getLogger(__name__)


def find_x_points(eqt, settings: Optional[FluxSurfaceSettings] = None) -> List[Tuple[float, float]]:
    """
    Locate X-points of a slice whose flux surfaces were already traced.

    Needs boundary.outline, global_quantities.magnetic_axis and
    profiles_1d.psi. Returns the (r, z) pairs written to boundary.x_point.
    """
    settings = settings or FluxSurfaceSettings()
    cc = cocos(settings.cocos)

    dim1, dim2, spline = psi_interpolant(eqt)
    PSI = np.asarray(eqt.profiles_2d[0].psi, dtype=float)
    psi = np.asarray(eqt.profiles_1d.psi, dtype=float)
    Ra = eqt.global_quantities.magnetic_axis.r
    Za = eqt.global_quantities.magnetic_axis.z

    rl = np.asarray(eqt.boundary.outline.r, dtype=float)
    zl = np.asarray(eqt.boundary.outline.z, dtype=float)
    max_distance = np.sqrt((zl.max() - zl.min()) * (rl.max() - rl.min())) * settings.xpoint_distance_fraction
    Z0 = float(np.mean(zl))

    legs = flux_surface(
        dim1, dim2, PSI, psi, Ra, Za, psi[-1], False,
        precision=settings.boundary_precision,
        max_iterations=settings.boundary_max_iterations,
    )

    found: List[Tuple[float, float]] = []
    for pr, pz in legs:
        # legs crossing the mid-plane are not divertor legs
        if np.sign(pz[0] - Z0) != np.sign(pz[-1] - Z0):
            continue
        if minimum_distance(pr, pz, rl, zl) > max_distance:
            continue

        index = int(np.argmax(pz)) if np.mean(pz) - Z0 < 0 else int(np.argmin(pz))
        _, i2 = minimum_distance(np.array([pr[index]]), np.array([pz[index]]), rl, zl, return_index=True)
        seed = np.array([0.5 * (pr[index] + rl[i2]), 0.5 * (pz[index] + zl[i2])])

        res = minimize(lambda x: float(bp(spline, cc, x[0], x[1])), seed, method="Nelder-Mead")
        r, z = (float(res.x[0]), float(res.x[1])) if np.all(np.isfinite(res.x)) else (float(seed[0]), float(seed[1]))
        log.debug("x-point R=%.5g Z=%.5g (|Bp|=%.3g)", r, z, res.fun)
        found.append((r, z))

    eqt.boundary.x_point.resize(0)
    eqt.boundary.x_point.resize(len(found))
    for xp, (r, z) in zip(eqt.boundary.x_point, found):
        xp.r = r
        xp.z = z
    return found
