"""
fields.py
=========

Magnetic field from the poloidal flux, under a COCOS convention.

Given psi(R,Z), the poloidal field is

    BR =  sigma_RpZ * (1/R) * ∂psi/∂Z / (2π)^exp_Bp
    BZ = -sigma_RpZ * (1/R) * ∂psi/∂R / (2π)^exp_Bp

and the toroidal field follows from F(psi):

    Bphi = F(psi) / R

Conventions
-----------
- R: dim1, shape (NR,)
- Z: dim2, shape (NZ,)
- 2D fields: shape (NR, NZ) with indexing [ir, iz] (IMAS layout)
- Pointwise evaluation goes through a scipy RectBivariateSpline of psi

Notes
-----
- Grid derivatives use tokdd.numerics.calculus.gradient (central interior,
  one-sided edges).
- eps_R guards against R≈0 in 1/R.
"""

from __future__ import annotations

from typing import Tuple

import numpy as np
from scipy.interpolate import RectBivariateSpline

from tokdd.numerics.calculus import gradient
from tokdd.physics.cocos import Cocos


def br_bz(
    psi_spline: RectBivariateSpline,
    cc: Cocos,
    r: np.ndarray,
    z: np.ndarray,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Evaluate (BR, BZ) at points (r[k], z[k]) from a psi spline.

    Parameters
    ----------
    psi_spline : RectBivariateSpline
        psi(R, Z) interpolant.
    cc : Cocos
        Sign/2π convention of psi.
    r, z : np.ndarray
        Point coordinates (same shape).

    Returns
    -------
    BR, BZ : np.ndarray
        Same shape as r.
    """
    r = np.asarray(r, dtype=float)
    z = np.asarray(z, dtype=float)
    dpsi_dR = psi_spline.ev(r, z, dx=1, dy=0)
    dpsi_dZ = psi_spline.ev(r, z, dx=0, dy=1)
    scale = cc.sigma_RpZ / r / (2.0 * np.pi) ** cc.exp_Bp
    return dpsi_dZ * scale, -dpsi_dR * scale


def bp(psi_spline: RectBivariateSpline, cc: Cocos, r: np.ndarray, z: np.ndarray) -> np.ndarray:
    """|Bp| at points (r[k], z[k])."""
    BR, BZ = br_bz(psi_spline, cc, r, z)
    return np.sqrt(BR * BR + BZ * BZ)


def br_bz_on_grid(
    R: np.ndarray,
    Z: np.ndarray,
    psi: np.ndarray,
    cc: Cocos,
    *,
    eps_R: float = 1e-12,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Compute (BR, BZ) from psi sampled on a rectilinear grid.

    Parameters
    ----------
    R : np.ndarray, shape (NR,)
    Z : np.ndarray, shape (NZ,)
    psi : np.ndarray, shape (NR, NZ)
    cc : Cocos
    eps_R : float
        Floor for R in 1/R.

    Returns
    -------
    BR, BZ : np.ndarray, shape (NR, NZ)
    """
    R = np.asarray(R, dtype=float)
    Z = np.asarray(Z, dtype=float)
    psi = np.asarray(psi, dtype=float)
    if psi.shape != (R.size, Z.size):
        raise ValueError(f"psi must have shape (NR,NZ)=({R.size},{Z.size}), got {psi.shape}")

    dpsi_dR, dpsi_dZ = gradient(psi, R, Z)

    RR = np.broadcast_to(R[:, np.newaxis], psi.shape)
    scale = cc.sigma_RpZ / np.maximum(RR, float(eps_R)) / (2.0 * np.pi) ** cc.exp_Bp
    return dpsi_dZ * scale, -dpsi_dR * scale


def bphi_from_f(RR: np.ndarray, F: np.ndarray, *, eps_R: float = 1e-12) -> np.ndarray:
    """
    Compute Bphi from F(psi) using Bphi = F / R.

    Parameters
    ----------
    RR : np.ndarray
        Radial mesh [m]
    F : np.ndarray, same shape as RR
        Toroidal field function [T*m]
    """
    RR = np.asarray(RR, dtype=float)
    F = np.asarray(F, dtype=float)
    if RR.shape != F.shape:
        raise ValueError(f"RR and F must have the same shape, got {RR.shape} vs {F.shape}")
    return F / np.maximum(RR, float(eps_R))
