"""
tokdd.physics.cocos
===================

COCOS sign and 2π conventions (Sauter & Medvedev 2013, Table 1).

    cc = cocos(11)
    Br =  cc.sigma_RpZ * dpsi_dZ / R / (2π)**cc.exp_Bp
    Bz = -cc.sigma_RpZ * dpsi_dR / R / (2π)**cc.exp_Bp

exp_Bp      : 0 for COCOS 1-8 (psi per radian), 1 for 11-18 (full flux)
sigma_Bp    : sign of psi increase for positive Ip and B0
sigma_RpZ   : +1 for (R, phi, Z) right-handed, -1 for (R, Z, phi)
sigma_rhotp : +1 when (rho, theta, phi) is right-handed
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache


@dataclass(frozen=True)
class Cocos:
    index: int
    exp_Bp: int
    sigma_Bp: int
    sigma_RpZ: int
    sigma_rhotp: int


@lru_cache(maxsize=None)
def cocos(index: int) -> Cocos:
    """
    Decode a COCOS number.

    Raises
    ------
    ValueError
        For anything outside 1-8 and 11-18.
    """
    index = int(index)
    if 1 <= index <= 8:
        exp_Bp, base = 0, index
    elif 11 <= index <= 18:
        exp_Bp, base = 1, index - 10
    else:
        raise ValueError(f"COCOS must be in 1-8 or 11-18, got {index}")

    # odd bases are (R, phi, Z)
    sigma_RpZ = 1 if base % 2 == 1 else -1
    sigma_Bp = 1 if base in (1, 2, 5, 6) else -1
    sigma_rhotp = 1 if base in (1, 2, 7, 8) else -1
    return Cocos(index=index, exp_Bp=exp_Bp, sigma_Bp=sigma_Bp, sigma_RpZ=sigma_RpZ, sigma_rhotp=sigma_rhotp)
