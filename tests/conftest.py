"""
Shared pytest fixtures for tokdd tests.

This file is automatically discovered by pytest and makes fixtures available
to all test files in this directory.

Equilibria
----------
The flux-surface tests run on analytic flux maps whose flux-surface
quantities are known in closed form:

    elliptic  : psi = psi_b * (u^2 + v^2)              u = (R - R0)/a, v = Z/(kappa a)
    x-point   : psi = psi_b * (u^2 + v^2 + v^3 / 2)     saddle at u = 0, v = -4/3

With F constant the elliptic surfaces give

    dV/dpsi = 2 pi^2 R0 a^2 kappa / psi_b
    q(rho)  = pi a^2 kappa F / (psi_b sqrt(R0^2 - rho^2 a^2)),  rho = sqrt(psi / psi_b)
    <1/R>   = 1 / R0
    <1/R^2> = 1 / (R0 sqrt(R0^2 - rho^2 a^2))

(COCOS 11, psi increasing outward).
"""

import numpy as np
import pytest
from scipy.integrate import quad

from tokdd.constants import MU0
from tokdd.dd import DD


# DIII-D-like shape
R0 = 1.7
A_MINOR = 0.6
KAPPA = 1.7
B0 = 2.0
F_VAC = R0 * B0
PSI_B = 1.0
P0 = 1.0e5

N_GRID = 65
N_PSI = 33

# X-point fixture: psi at the saddle
PSI_X = 16.0 / 27.0 * PSI_B


# ============================================================================
# Analytic references
# ============================================================================

def elliptic_psi(R, Z):
    return PSI_B * (((R - R0) / A_MINOR) ** 2 + (Z / (KAPPA * A_MINOR)) ** 2)


def xpoint_psi(R, Z):
    u = (R - R0) / A_MINOR
    v = Z / (KAPPA * A_MINOR)
    return PSI_B * (u ** 2 + v ** 2 + 0.5 * v ** 3)


def q_reference(psi):
    rho = np.sqrt(np.asarray(psi, dtype=float) / PSI_B)
    return np.pi * A_MINOR ** 2 * KAPPA * F_VAC / (PSI_B * np.sqrt(R0 ** 2 - (rho * A_MINOR) ** 2))


def gm1_reference(psi):
    rho = np.sqrt(np.asarray(psi, dtype=float) / PSI_B)
    return 1.0 / (R0 * np.sqrt(R0 ** 2 - (rho * A_MINOR) ** 2))


def ip_reference(psi=PSI_B):
    """Plasma current inside the surface psi from a theta quadrature of Bp."""
    rho2 = psi / PSI_B

    def integrand(theta):
        c, s = np.cos(theta), np.sin(theta)
        return (KAPPA ** 2 * c ** 2 + s ** 2) / (R0 + np.sqrt(rho2) * A_MINOR * c)

    value, _ = quad(integrand, 0.0, 2.0 * np.pi)
    return PSI_B * rho2 / (np.pi * KAPPA) * value / MU0


DVDPSI_REFERENCE = 2.0 * np.pi ** 2 * R0 * A_MINOR ** 2 * KAPPA / PSI_B
VOLUME_REFERENCE = 2.0 * np.pi ** 2 * R0 * A_MINOR ** 2 * KAPPA
AREA_REFERENCE = np.pi * A_MINOR ** 2 * KAPPA


# ============================================================================
# Builders
# ============================================================================

def build_equilibrium(psi_fn, r_span, z_lo, z_hi, psi_edge, n_grid=N_GRID, n_psi=N_PSI):
    """DD with one equilibrium time slice holding a 2D psi map and 1D profiles."""
    dd = DD()
    eq = dd.equilibrium
    eq.time = np.array([0.0])
    eq.vacuum_toroidal_field.r0 = R0
    eq.vacuum_toroidal_field.b0 = np.array([B0])

    eqt = eq.time_slice.resize()
    p2d = eqt.profiles_2d.resize(1)[0]
    r = np.linspace(R0 - r_span, R0 + r_span, n_grid)
    z = np.linspace(z_lo, z_hi, n_grid)
    p2d.grid.dim1 = r
    p2d.grid.dim2 = z
    RR, ZZ = np.meshgrid(r, z, indexing="ij")
    p2d.psi = psi_fn(RR, ZZ)

    psi = np.linspace(0.0, psi_edge, n_psi)
    p1d = eqt.profiles_1d
    p1d.psi = psi
    p1d.f = np.full(n_psi, F_VAC)
    p1d.pressure = P0 * (1.0 - psi / psi_edge)
    return dd


@pytest.fixture
def elliptic_dd():
    """Elliptic equilibrium on a grid extending to 1.5 minor radii."""
    return build_equilibrium(
        elliptic_psi,
        r_span=1.5 * A_MINOR,
        z_lo=-1.5 * KAPPA * A_MINOR,
        z_hi=1.5 * KAPPA * A_MINOR,
        psi_edge=PSI_B,
    )


@pytest.fixture
def elliptic_grid():
    """(dim1, dim2, PSI) of the elliptic map on a box ending at 1.15 minor radii."""
    r = np.linspace(R0 - 1.15 * A_MINOR, R0 + 1.15 * A_MINOR, N_GRID)
    z = np.linspace(-1.15 * KAPPA * A_MINOR, 1.15 * KAPPA * A_MINOR, N_GRID)
    RR, ZZ = np.meshgrid(r, z, indexing="ij")
    return r, z, elliptic_psi(RR, ZZ)


@pytest.fixture
def xpoint_dd():
    """Lower single-null equilibrium with the boundary on the separatrix."""
    return build_equilibrium(
        xpoint_psi,
        r_span=1.5 * A_MINOR,
        z_lo=-1.9 * KAPPA * A_MINOR,
        z_hi=1.5 * KAPPA * A_MINOR,
        psi_edge=PSI_X,
    )


@pytest.fixture
def solved_elliptic(elliptic_dd):
    """Elliptic equilibrium after flux_surfaces()."""
    from tokdd.physics.equilibrium import flux_surfaces

    flux_surfaces(elliptic_dd.equilibrium)
    return elliptic_dd
