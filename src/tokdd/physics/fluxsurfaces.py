"""
tokdd.physics.fluxsurfaces
==========================

Flux-surface engine for one equilibrium time slice.

Purpose
-------
From profiles_2d[0].psi (2D flux map) and profiles_1d.psi/f/pressure, trace
every flux surface and fill the geometric and flux-surface-averaged 1D
profiles of the slice.

Steps
-----
1) Cubic spline of psi(R,Z); optional upsampled grid for contour tracing
2) Magnetic axis: trust-region Newton on psi_sign * psi from the grid center
3) Surfaces from the edge inward:
     k = 0     synthetic ellipse around the axis
     k > 0     closed contour at psi[k] (LCFS level bisected at k = N-1)
   per surface: refined extrema, shape, Bp, flux-surface averages,
   trapped fraction, j_tor, dV/dpsi, q
4) Cumulative area / volume / toroidal flux; rho_tor
5) 2D toroidal flux on the stored grid; gm2 = <|grad rho|^2 / R^2>
6) X-points on the LCFS (tokdd.physics.xpoints)

Flux-surface average
--------------------
<Q> = ∮ Q / |Bp| dl  /  ∮ 1 / |Bp| dl

Failure
-------
A surface that cannot be traced raises FluxSurfaceError carrying the
surface index and psi level. Optimizer non-convergence is not an error:
a refinement that leaves the grid or returns non-finite values keeps the
contour vertex instead.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

import numpy as np
from scipy.interpolate import RectBivariateSpline
from scipy.optimize import minimize

from tokdd.constants import MU0, TWO_PI
from tokdd.errors import FluxSurfaceError
from tokdd.geometry.grid import RZGrid, grid_from_node
from tokdd.io.config import FluxSurfaceSettings
from tokdd.numerics.calculus import cumulative_integrate, gradient, integrate
from tokdd.numerics.interpolation import interp1d
from tokdd.physics.cocos import Cocos, cocos
from tokdd.physics.contours import flux_surface, psi_spline
from tokdd.physics.fields import br_bz, br_bz_on_grid, bphi_from_f
from tokdd.physics.shape import Extrema, elongation_triangularity, luce_squareness


log = logging.getLogger(__name__)

_PROFILE_NAMES = (
    "r_outboard",
    "r_inboard",
    "elongation",
    "triangularity_upper",
    "triangularity_lower",
    "squareness_upper_outer",
    "squareness_upper_inner",
    "squareness_lower_outer",
    "squareness_lower_inner",
    "trapped_fraction",
    "b_field_average",
    "b_field_max",
    "b_field_min",
    "gm1",
    "gm4",
    "gm5",
    "gm8",
    "gm9",
    "j_tor",
    "dvolume_dpsi",
    "q",
)


# ============================================================
# RESULT CONTAINERS
# ============================================================

@dataclass
class SurfaceSample:
    """One traced surface with the quantities reused after the loop."""
    pr: np.ndarray
    pz: np.ndarray
    ll: np.ndarray
    fluxexpansion: np.ndarray
    int_fluxexpansion_dl: float
    bpl: float

    def average(self, values) -> float:
        return integrate(self.ll, np.asarray(values, dtype=float) * self.fluxexpansion) / self.int_fluxexpansion_dl


@dataclass
class FluxSurfaceResult:
    """What the assembly step needs beyond the data written to the slice."""
    surfaces: List[SurfaceSample] = field(default_factory=list)
    bpl: np.ndarray = field(default_factory=lambda: np.zeros(0))
    psi_boundary: float = float("nan")
    cocos: Optional[Cocos] = None


# ============================================================
# AXIS AND EXTREMA
# ============================================================

def _spline_derivs(spline: RectBivariateSpline, x: np.ndarray) -> Tuple[float, np.ndarray, np.ndarray]:
    r, z = float(x[0]), float(x[1])
    v = float(spline.ev(r, z))
    g = np.array([float(spline.ev(r, z, dx=1)), float(spline.ev(r, z, dy=1))])
    h_rr = float(spline.ev(r, z, dx=2))
    h_zz = float(spline.ev(r, z, dy=2))
    h_rz = float(spline.ev(r, z, dx=1, dy=1))
    return v, g, np.array([[h_rr, h_rz], [h_rz, h_zz]])


def find_magnetic_axis(
    spline: RectBivariateSpline,
    seed: Tuple[float, float],
    psi_sign: float,
    gtol: float = 1e-8,
) -> Tuple[float, float]:
    """Extremum of psi nearest to `seed` (minimum of psi_sign * psi)."""
    def fun(x):
        return psi_sign * _spline_derivs(spline, x)[0]

    def jac(x):
        return psi_sign * _spline_derivs(spline, x)[1]

    def hess(x):
        return psi_sign * _spline_derivs(spline, x)[2]

    res = minimize(fun, np.asarray(seed, dtype=float), method="trust-exact", jac=jac, hess=hess, options={"gtol": gtol})
    log.debug("magnetic axis R=%.6g Z=%.6g (%s)", res.x[0], res.x[1], res.message)
    return float(res.x[0]), float(res.x[1])


def refine_extremum(
    spline: RectBivariateSpline,
    level: float,
    start: Tuple[float, float],
    axis: Tuple[float, float],
    direction: int,
    grid: RZGrid,
    weight: float = 1e-4,
    gtol: float = 1e-8,
) -> Tuple[float, float]:
    """
    Move a contour vertex onto the geometric R (direction=0) or Z
    (direction=1) extremum of the surface psi == level.

    Minimizes (psi - level)^2 - weight * (x[direction] - axis[direction])^2.
    """
    e = np.zeros(2)
    e[direction] = 1.0
    a = float(axis[direction])

    def fun(x):
        d = _spline_derivs(spline, x)[0] - level
        return d * d - weight * (x[direction] - a) ** 2

    def jac(x):
        v, g, _ = _spline_derivs(spline, x)
        return 2.0 * (v - level) * g - 2.0 * weight * (x[direction] - a) * e

    def hess(x):
        v, g, H = _spline_derivs(spline, x)
        return 2.0 * np.outer(g, g) + 2.0 * (v - level) * H - 2.0 * weight * np.outer(e, e)

    x0 = np.asarray(start, dtype=float)
    res = minimize(fun, x0, method="trust-exact", jac=jac, hess=hess, options={"gtol": gtol})
    x = res.x
    if not (np.all(np.isfinite(x)) and grid.contains(x[0], x[1])):
        return float(x0[0]), float(x0[1])
    return float(x[0]), float(x[1])


# ============================================================
# PER-SURFACE QUANTITIES
# ============================================================

def _surface_sample(spline, cc: Cocos, pr, pz, axis) -> Tuple[SurfaceSample, np.ndarray, np.ndarray]:
    Br, Bz = br_bz(spline, cc, pr, pz)
    Bp2 = Br * Br + Bz * Bz
    Bp_abs = np.sqrt(Bp2)
    Bp = Bp_abs * cc.sigma_rhotp * cc.sigma_RpZ * np.sign((pz - axis[1]) * Br - (pr - axis[0]) * Bz)

    ll = np.concatenate([[0.0], np.cumsum(np.sqrt(np.diff(pr) ** 2 + np.diff(pz) ** 2))])
    fluxexpansion = 1.0 / Bp_abs
    sample = SurfaceSample(
        pr=pr,
        pz=pz,
        ll=ll,
        fluxexpansion=fluxexpansion,
        int_fluxexpansion_dl=integrate(ll, fluxexpansion),
        bpl=integrate(ll, Bp),
    )
    return sample, Bp, Bp2


def _trapped_fraction(avg: Callable, Btot: np.ndarray) -> Tuple[float, float, float, float]:
    Bmax = float(np.max(Btot))
    Bratio = Btot / Bmax
    avg_Btot = avg(Btot)
    avg_Btot2 = avg(Btot ** 2)
    hf = avg((1.0 - np.sqrt(1.0 - Bratio) * (1.0 + Bratio / 2.0)) / Bratio ** 2)
    h = avg_Btot / Bmax
    h2 = avg_Btot2 / Bmax ** 2
    ftu = 1.0 - h2 / (h ** 2) * (1.0 - np.sqrt(1.0 - h) * (1.0 + 0.5 * h))
    ftl = 1.0 - h2 * hf
    return 0.75 * ftu + 0.25 * ftl, avg_Btot, avg_Btot2, Bmax


def _pressure_derivatives(p1d, psi: np.ndarray, f: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    pprime = p1d.get("dpressure_dpsi")
    pprime = gradient(np.asarray(p1d.pressure, dtype=float), psi) if pprime is None else np.asarray(pprime, dtype=float)
    ffprim = p1d.get("f_df_dpsi")
    ffprim = gradient(f, psi) * f if ffprim is None else np.asarray(ffprim, dtype=float)
    return pprime, ffprim


# ============================================================
# ENGINE
# ============================================================

def trace_flux_surfaces(eqt, b0: float, settings: Optional[FluxSurfaceSettings] = None) -> FluxSurfaceResult:
    """
    Fill the flux-surface quantities of one equilibrium time slice.

    Parameters
    ----------
    eqt : equilibrium time_slice node
        Needs profiles_2d[0] (grid.dim1, grid.dim2, psi) and profiles_1d
        (psi, f, and pressure or dpressure_dpsi).
    b0 : float
        Vacuum toroidal field used for rho_tor = sqrt(|phi| / (pi b0)).
    settings : FluxSurfaceSettings, optional

    Returns
    -------
    FluxSurfaceResult
        Per-surface samples and the poloidal-field line integrals.

    Raises
    ------
    FluxSurfaceError
        A closed surface could not be traced at some psi level.
    """
    settings = settings or FluxSurfaceSettings()
    cc = cocos(settings.cocos)

    p2d = eqt.profiles_2d[0]
    p1d = eqt.profiles_1d
    gq = eqt.global_quantities

    stored = grid_from_node(p2d.grid)
    dim1, dim2 = stored.R, stored.Z
    PSI2D = np.asarray(p2d.psi, dtype=float)
    spline = psi_spline(dim1, dim2, PSI2D)

    # tracing grid (possibly upsampled)
    grid = stored.upsampled(settings.upsample_factor)
    PSI = PSI2D if grid is stored else spline(grid.R, grid.Z)

    psi = np.asarray(p1d.psi, dtype=float)
    n = psi.size
    if n < 3:
        raise ValueError(f"profiles_1d.psi needs at least 3 points, got {n}")
    psi_sign = float(np.sign(psi[-1] - psi[0]))
    f = np.asarray(p1d.f, dtype=float)
    pprime, ffprim = _pressure_derivatives(p1d, psi, f)

    # magnetic axis
    Ra, Za = find_magnetic_axis(spline, grid.center, psi_sign, settings.optimizer_gtol)
    gq.magnetic_axis.r = Ra
    gq.magnetic_axis.z = Za
    axis = (Ra, Za)

    prof = {name: np.zeros(n) for name in _PROFILE_NAMES}
    surfaces: List[Optional[SurfaceSample]] = [None] * n
    bpl = np.zeros(n)
    psi_boundary = float(psi[-1])

    for k in range(n - 1, -1, -1):
        if k == 0:
            # on-axis surface is a small synthetic ellipse
            for name in ("elongation", "squareness_upper_outer", "squareness_upper_inner",
                         "squareness_lower_outer", "squareness_lower_inner"):
                prof[name][0] = prof[name][1] - (prof[name][2] - prof[name][1])
            a = (prof["r_outboard"][1] - prof["r_inboard"][1]) / 100.0
            b = prof["elongation"][0] * a
            t = np.linspace(0.0, TWO_PI, settings.axis_seed_points)
            pr = np.cos(t) * a + Ra
            pz = np.sin(t) * b + Za
            ex = Extrema.from_polyline(pr, pz)
            geo = elongation_triangularity(ex)
            geo["triangularity_upper"] = 0.0
            geo["triangularity_lower"] = 0.0
            geo["elongation"] = prof["elongation"][0]
        else:
            pr, pz, level = flux_surface(
                grid.R, grid.Z, PSI, psi, Ra, Za, psi[k], True,
                precision=settings.boundary_precision,
                max_iterations=settings.boundary_max_iterations,
            )
            if pr.size == 0:
                raise FluxSurfaceError(
                    f"Could not trace closed flux surface {k} out of {n} at psi = {level}",
                    index=k,
                    psi_level=level,
                )

            ex = Extrema.from_polyline(pr, pz)
            max_r, z_at_max_r = refine_extremum(spline, level, (ex.max_r, ex.z_at_max_r), axis, 0, grid,
                                                settings.extrema_weight, settings.optimizer_gtol)
            min_r, z_at_min_r = refine_extremum(spline, level, (ex.min_r, ex.z_at_min_r), axis, 0, grid,
                                                settings.extrema_weight, settings.optimizer_gtol)
            r_at_max_z, max_z = ex.r_at_max_z, ex.max_z
            r_at_min_z, min_z = ex.r_at_min_z, ex.min_z
            if k != n - 1:
                # near an X-point the Z refinement walks off the separatrix
                r_at_max_z, max_z = refine_extremum(spline, level, (r_at_max_z, max_z), axis, 1, grid,
                                                    settings.extrema_weight, settings.optimizer_gtol)
                r_at_min_z, min_z = refine_extremum(spline, level, (r_at_min_z, min_z), axis, 1, grid,
                                                    settings.extrema_weight, settings.optimizer_gtol)
            ex = Extrema(max_r, z_at_max_r, min_r, z_at_min_r, r_at_max_z, max_z, r_at_min_z, min_z)
            geo = elongation_triangularity(ex)
            geo.update(luce_squareness(pr, pz, ex))

            if k == n - 1:
                psi_boundary = float(level)
                eqt.boundary.outline.z = None
                eqt.boundary.outline.r = pr
                eqt.boundary.outline.z = pz

        for name, value in geo.items():
            prof[name][k] = value

        # poloidal field and averages
        sample, Bp, Bp2 = _surface_sample(spline, cc, pr, pz, axis)
        surfaces[k] = sample
        bpl[k] = sample.bpl
        avg = sample.average

        Bt = f[k] / pr
        Btot = np.sqrt(Bp2 + Bt ** 2)
        ftrap, avg_Btot, avg_Btot2, Bmax = _trapped_fraction(avg, Btot)
        prof["trapped_fraction"][k] = ftrap
        prof["b_field_average"][k] = avg_Btot
        prof["b_field_max"][k] = Bmax
        prof["b_field_min"][k] = float(np.min(Btot))

        prof["gm1"][k] = avg(1.0 / pr ** 2)
        prof["gm4"][k] = avg(1.0 / Btot ** 2)
        prof["gm5"][k] = avg_Btot2
        prof["gm8"][k] = avg(pr)
        prof["gm9"][k] = avg(1.0 / pr)

        # <j_tor/R> / <1/R>
        prof["j_tor"][k] = (
            -cc.sigma_Bp * (pprime[k] + ffprim[k] * prof["gm1"][k] / MU0) * TWO_PI ** cc.exp_Bp
        ) / prof["gm9"][k]

        prof["dvolume_dpsi"][k] = (
            cc.sigma_rhotp * cc.sigma_Bp * np.sign(avg(Bp)) * sample.int_fluxexpansion_dl * TWO_PI ** (1.0 - cc.exp_Bp)
        )
        prof["q"][k] = (
            cc.sigma_rhotp * cc.sigma_Bp * prof["dvolume_dpsi"][k] * f[k] * prof["gm1"][k] / TWO_PI ** (2.0 - cc.exp_Bp)
        )

        if k == n - 1:
            gq.ip = cc.sigma_rhotp * sample.bpl / MU0
            gq.length_pol = float(sample.ll[-1])

        log.debug("surface %d/%d psi=%.6g q=%.4g", k, n - 1, psi[k], prof["q"][k])

    # cumulative quantities
    area = cumulative_integrate(psi, prof["dvolume_dpsi"] * prof["gm9"]) / TWO_PI
    volume = cumulative_integrate(psi, prof["dvolume_dpsi"])
    phi = cc.sigma_Bp * cc.sigma_rhotp * cumulative_integrate(psi, prof["q"]) * TWO_PI ** (1.0 - cc.exp_Bp)
    rho = np.sqrt(np.abs(phi / (np.pi * b0)))

    # 2D toroidal flux and gm2 on the stored grid
    PHI2D = interp1d(psi * psi_sign, phi, "cubic", extrapolation="linear")(PSI2D * psi_sign)
    RHO = np.sqrt(np.abs(PHI2D / (np.pi * b0)))
    dRHOdR, dRHOdZ = gradient(RHO, dim1, dim2)
    grad_rho2 = psi_spline(dim1, dim2, dRHOdR ** 2 + dRHOdZ ** 2)
    gm2 = np.zeros(n)
    for k, s in enumerate(surfaces):
        gm2[k] = s.average(grad_rho2.ev(s.pr, s.pz) / s.pr ** 2)
    gm2[0] = interp1d(psi[1:] * psi_sign, gm2[1:], "cubic", extrapolation="linear")(psi[0] * psi_sign)

    # write back (psi is the coordinate of every profile)
    for name, values in prof.items():
        setattr(p1d, name, values)
    p1d.area = area
    p1d.volume = volume
    p1d.phi = phi
    p1d.rho_tor = rho
    p1d.rho_tor_norm = rho / rho[-1]
    p1d.gm2 = gm2

    p2d.phi = PHI2D
    Br2d, Bz2d = br_bz_on_grid(dim1, dim2, PSI2D, cc)
    F2D = interp1d(psi * psi_sign, f, "cubic", extrapolation="constant")(PSI2D * psi_sign)
    p2d.b_field_r = Br2d
    p2d.b_field_z = Bz2d
    p2d.b_field_tor = bphi_from_f(np.broadcast_to(dim1[:, None], PSI2D.shape), F2D)

    eqt.boundary.psi = psi_boundary
    gq.psi_axis = float(spline.ev(Ra, Za))
    gq.psi_boundary = psi_boundary
    gq.magnetic_axis.b_field_tor = float(f[0] / Ra)

    return FluxSurfaceResult(surfaces=surfaces, bpl=bpl, psi_boundary=psi_boundary, cocos=cc)
