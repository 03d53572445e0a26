"""
tokdd.physics.equilibrium
=========================

Derived quantities of an equilibrium IDS, one time slice at a time.

Responsibilities
----------------
• Resolve r0/b0 for a slice
• Run the flux-surface engine (tokdd.physics.fluxsurfaces)
• Find X-points (tokdd.physics.xpoints)
• Assemble global quantities (beta, li_3, q metrics, volume, area)
• Convert between (pressure, j_tor) and (P', FF', F) profiles

Everything is written through the ordinary data-tree field assignment, so
coordinate checks apply to derived quantities as they do to inputs.

Typical use
-----------
    dd = DD()
    ... fill dd.equilibrium ...
    flux_surfaces(dd.equilibrium, upsample_factor=2)
    dd.equilibrium.time_slice[0].global_quantities.q_95
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Tuple

import numpy as np

from tokdd.constants import MU0, TWO_PI
from tokdd.dd.node import Node, top
from tokdd.io.config import FluxSurfaceSettings
from tokdd.numerics.calculus import cumulative_integrate, gradient
from tokdd.physics.cocos import cocos
from tokdd.physics.fluxsurfaces import trace_flux_surfaces
from tokdd.physics.metrics import beta_metrics, internal_inductance, q_metrics
from tokdd.physics.xpoints import find_x_points


log = logging.getLogger(__name__)

_EQUILIBRIUM = "equilibrium"
_TIME_SLICE = "equilibrium.time_slice[:]"


# ============================================================
# ENTRY POINT
# ============================================================

def flux_surfaces(
    eq_or_slice: Node,
    b0: Optional[float] = None,
    r0: Optional[float] = None,
    settings: Optional[FluxSurfaceSettings] = None,
    **overrides: Any,
) -> Node:
    """
    Compute flux surfaces and derived quantities.

    Parameters
    ----------
    eq_or_slice : equilibrium IDS or equilibrium time_slice node
        With an IDS, every time slice is processed in order.
    b0, r0 : float, optional
        Vacuum toroidal field and its reference radius. Defaults: r0 from
        boundary.geometric_axis.r, then vacuum_toroidal_field.r0; b0 from
        profiles_1d.f[-1] / r0.
    settings : FluxSurfaceSettings, optional
    **overrides
        Individual settings (e.g. upsample_factor=2) applied on top.

    Returns
    -------
    The node that was passed in.

    Raises
    ------
    FluxSurfaceError
        A flux surface could not be traced; nothing after the failing
        slice is processed.
    """
    settings = (settings or FluxSurfaceSettings()).with_overrides(**overrides)

    location = eq_or_slice._location
    if location == _EQUILIBRIUM:
        for eqt in eq_or_slice.time_slice:
            _flux_surfaces_slice(eqt, b0, r0, settings)
    elif location == _TIME_SLICE:
        _flux_surfaces_slice(eq_or_slice, b0, r0, settings)
    else:
        raise TypeError(f"flux_surfaces expects an equilibrium IDS or time slice, got `{location}`")
    return eq_or_slice


def _resolve_r0_b0(eqt: Node, b0: Optional[float], r0: Optional[float]) -> Tuple[float, float]:
    if r0 is None:
        r0 = eqt.boundary.geometric_axis.get("r")
    if r0 is None:
        eq = top(eqt)
        if eq._location == _EQUILIBRIUM:
            r0 = eq.vacuum_toroidal_field.get("r0")
    if r0 is None:
        raise ValueError("r0 is not given and neither boundary.geometric_axis.r nor vacuum_toroidal_field.r0 is set")
    if b0 is None:
        b0 = float(eqt.profiles_1d.f[-1]) / float(r0)
    return float(b0), float(r0)


def _flux_surfaces_slice(eqt: Node, b0: Optional[float], r0: Optional[float], settings: FluxSurfaceSettings) -> Node:
    b0, r0 = _resolve_r0_b0(eqt, b0, r0)

    result = trace_flux_surfaces(eqt, b0, settings)
    find_x_points(eqt, settings)

    p1d = eqt.profiles_1d
    gq = eqt.global_quantities
    psi = np.asarray(p1d.psi, dtype=float)

    gq.volume = float(p1d.volume[-1])
    gq.area = float(p1d.area[-1])

    betas = beta_metrics(
        psi=psi,
        pressure=np.asarray(p1d.pressure, dtype=float),
        dvolume_dpsi=np.asarray(p1d.dvolume_dpsi, dtype=float),
        volume=gq.volume,
        ip=gq.ip,
        length_pol=gq.length_pol,
        b0=b0,
        r0=r0,
        r_outboard=float(p1d.r_outboard[-1]),
        r_inboard=float(p1d.r_inboard[-1]),
    )
    for name, value in betas.items():
        setattr(gq, name, value)
    gq.li_3 = internal_inductance(psi, result.bpl, gq.ip, r0, result.cocos)

    qm = q_metrics(psi, np.asarray(p1d.q, dtype=float), np.asarray(p1d.rho_tor_norm, dtype=float))
    gq.q_axis = qm["q_axis"]
    gq.q_95 = qm["q_95"]
    gq.q_min.value = qm["q_min"]
    gq.q_min.rho_tor_norm = qm["rho_qmin"]

    log.info(
        "flux surfaces t=%s: Ip=%.4g A, q95=%.3g, li_3=%.3g, beta_N=%.3g, %d x-point(s)",
        eqt.get("time"), gq.ip, gq.q_95, gq.li_3, gq.beta_normal, len(eqt.boundary.x_point),
    )
    return eqt


# ============================================================
# PROFILE CONVERSIONS
# ============================================================

def calc_pprime_ffprim_f(
    psi,
    R,
    one_R,
    one_R2,
    R0: float,
    B0: float,
    pressure=None,
    pprime=None,
    jtor=None,
    jtor_over_R=None,
    fpol=None,
    cocos_index: int = 11,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    P', FF' and F from pressure (or P') and j_tor (or <j_tor/R>, or F).

    Parameters
    ----------
    psi : array
        Poloidal flux grid.
    R, one_R, one_R2 : array
        <R>, <1/R>, <1/R^2> on psi (gm8, gm9, gm1).
    R0, B0 : float
        F at the boundary is fixed to R0 * B0.
    pressure / pprime : array, optional
        Pressure, or its psi derivative.
    jtor / jtor_over_R / fpol : array, optional
        Source of FF' in that order of precedence.

    Returns
    -------
    pprime, ffprim, f : np.ndarray
    """
    cc = cocos(cocos_index)
    psi = np.asarray(psi, dtype=float)

    if pressure is not None:
        pprime = gradient(pressure, psi)
    if pprime is None:
        raise ValueError("calc_pprime_ffprim_f needs `pressure` or `pprime`")
    pprime = np.asarray(pprime, dtype=float)

    ffprim = None
    if fpol is not None:
        fpol = np.asarray(fpol, dtype=float)
        ffprim = gradient(fpol, psi) * fpol
    if jtor is not None:
        ffprim = (np.asarray(jtor) * cc.sigma_Bp / TWO_PI ** cc.exp_Bp + pprime * np.asarray(R)) * (-MU0 / np.asarray(one_R))
    elif jtor_over_R is not None:
        ffprim = (np.asarray(jtor_over_R) * cc.sigma_Bp / TWO_PI ** cc.exp_Bp + pprime) * (-MU0 / np.asarray(one_R2))
    if ffprim is None:
        raise ValueError("calc_pprime_ffprim_f needs one of `jtor`, `jtor_over_R` or `fpol`")

    # F from FF' with F[-1] = R0 * B0
    f = 2.0 * cumulative_integrate(psi, ffprim)
    if f.min() < f[0] and f.min() < f[-1]:
        f = f - f.max()
    else:
        f = f - f.min()
    C = (R0 * B0) ** 2 - f[-1]
    f = np.sqrt(np.abs(f + C))

    return pprime, ffprim, f


def p_jtor_to_pprime_ffprim_f(p1d: Node, R0: float, B0: float) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """calc_pprime_ffprim_f on an equilibrium profiles_1d node (pressure, j_tor, gm1/8/9)."""
    return calc_pprime_ffprim_f(
        p1d.psi,
        p1d.gm8,
        p1d.gm9,
        p1d.gm1,
        R0,
        B0,
        pressure=p1d.get("pressure"),
        jtor=p1d.get("j_tor"),
    )
