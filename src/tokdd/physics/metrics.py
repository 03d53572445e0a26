"""
tokdd.physics.metrics
=====================

Scalar equilibrium metrics from flux-surface profiles.

Inputs are 1D arrays on profiles_1d.psi plus a few boundary scalars; outputs
are plain floats. Nothing here touches the data tree, the assembly step in
tokdd.physics.equilibrium owns write-back.

Definitions
-----------
avg_press   = ∫ p dV                       (= ∫ p dV/dpsi dpsi)
beta_tor    = |avg_press / V / (Btvac^2 / 2 mu0)|
beta_pol    = |avg_press / V / (Bpave^2 / 2 mu0)|,  Bpave = mu0 Ip / length_pol
beta_normal = 100 beta_tor / |Ip[MA] / a / Btvac|
li_3        = 2 ∫ Bpl (2π)^(1-exp_Bp) dpsi / R0 / (mu0 Ip)^2

Btvac is the vacuum field b0 r0 / R evaluated at the LCFS geometric center.
"""

from __future__ import annotations

from typing import Dict

import numpy as np

from tokdd.constants import MA, MU0, TWO_PI
from tokdd.numerics.calculus import integrate
from tokdd.numerics.interpolation import interp1d
from tokdd.physics.cocos import Cocos


# =============================================================================
# Beta and internal inductance
# =============================================================================

def beta_metrics(
    *,
    psi: np.ndarray,
    pressure: np.ndarray,
    dvolume_dpsi: np.ndarray,
    volume: float,
    ip: float,
    length_pol: float,
    b0: float,
    r0: float,
    r_outboard: float,
    r_inboard: float,
) -> Dict[str, float]:
    """
    Toroidal, poloidal and normalized beta.

    Returns
    -------
    dict with keys "beta_tor", "beta_pol", "beta_normal"
    """
    R = 0.5 * (r_outboard + r_inboard)
    a = 0.5 * (r_outboard - r_inboard)
    Btvac = b0 * r0 / R
    Bpave = ip * MU0 / length_pol

    avg_press = integrate(psi, np.asarray(dvolume_dpsi) * np.asarray(pressure))

    beta_tor = abs(avg_press / (Btvac ** 2 / 2.0 / MU0) / volume)
    beta_pol = abs(avg_press / volume / (Bpave ** 2 / 2.0 / MU0))
    beta_normal = beta_tor / abs(ip / MA / a / Btvac) * 100.0
    return {"beta_tor": float(beta_tor), "beta_pol": float(beta_pol), "beta_normal": float(beta_normal)}


def internal_inductance(psi: np.ndarray, bpl: np.ndarray, ip: float, r0: float, cc: Cocos) -> float:
    """li_3 from the poloidal-field line integrals of every surface."""
    return float(2.0 * integrate(psi, np.asarray(bpl) * TWO_PI ** (1.0 - cc.exp_Bp)) / r0 / (ip * MU0) ** 2)


# =============================================================================
# q metrics
# =============================================================================

def q_metrics(psi: np.ndarray, q: np.ndarray, rho_tor_norm: np.ndarray) -> Dict[str, float]:
    """
    q_axis, q_95 (at normalized psi 0.95), q_min and its rho_tor_norm.
    """
    psi = np.asarray(psi, dtype=float)
    q = np.asarray(q, dtype=float)
    psi_norm = (psi - psi[0]) / (psi[-1] - psi[0])

    i_min = int(np.argmin(np.abs(q)))
    return {
        "q_axis": float(q[0]),
        "q_95": float(interp1d(psi_norm, q, "linear")(0.95)),
        "q_min": float(q[i_min]),
        "rho_qmin": float(np.asarray(rho_tor_norm)[i_min]),
    }
