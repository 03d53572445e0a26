"""
Tests for the flux-surface engine (tokdd.physics.fluxsurfaces) and the
X-point search (tokdd.physics.xpoints).

The elliptic map has closed-form surface averages (see conftest), so the
engine output is compared against them away from the axis, where the
contour resolution is coarse.
"""
import numpy as np
import pytest

from conftest import (
    A_MINOR,
    AREA_REFERENCE,
    B0,
    DVDPSI_REFERENCE,
    F_VAC,
    KAPPA,
    N_PSI,
    P0,
    PSI_B,
    R0,
    VOLUME_REFERENCE,
    build_equilibrium,
    elliptic_psi,
    gm1_reference,
    ip_reference,
    q_reference,
)
from tokdd.errors import FluxSurfaceError
from tokdd.geometry.grid import rect_grid
from tokdd.physics.contours import psi_spline
from tokdd.physics.fluxsurfaces import find_magnetic_axis, refine_extremum, trace_flux_surfaces
from tokdd.physics.xpoints import find_x_points


# surfaces compared against the analytic references
OUTER = slice(4, None)


@pytest.fixture(scope="module")
def traced():
    dd = build_equilibrium(
        elliptic_psi,
        r_span=1.5 * A_MINOR,
        z_lo=-1.5 * KAPPA * A_MINOR,
        z_hi=1.5 * KAPPA * A_MINOR,
        psi_edge=PSI_B,
    )
    eqt = dd.equilibrium.time_slice[0]
    result = trace_flux_surfaces(eqt, B0)
    return eqt, result


@pytest.fixture
def spline():
    r = np.linspace(R0 - 1.5 * A_MINOR, R0 + 1.5 * A_MINOR, 65)
    z = np.linspace(-1.5 * KAPPA * A_MINOR, 1.5 * KAPPA * A_MINOR, 65)
    RR, ZZ = np.meshgrid(r, z, indexing="ij")
    return psi_spline(r, z, elliptic_psi(RR, ZZ))


# ============================================================================
# axis and extrema
# ============================================================================

def test_find_magnetic_axis(spline):
    r, z = find_magnetic_axis(spline, (R0 + 0.1, 0.2), psi_sign=1.0)
    assert r == pytest.approx(R0, abs=1e-6)
    assert z == pytest.approx(0.0, abs=1e-6)


def test_refine_extremum_moves_to_outboard_point(spline):
    grid = rect_grid(R0 - 0.9, R0 + 0.9, 65, -1.53, 1.53, 65)
    r, z = refine_extremum(spline, 0.25, (R0 + 0.29, 0.03), (R0, 0.0), 0, grid)
    assert r == pytest.approx(R0 + 0.5 * A_MINOR, abs=1e-3)
    assert z == pytest.approx(0.0, abs=1e-3)


def test_refine_extremum_keeps_start_outside_grid(spline):
    small = rect_grid(R0 - 0.1, R0 + 0.1, 5, -0.1, 0.1, 5)
    assert refine_extremum(spline, 0.25, (R0 + 0.05, 0.0), (R0, 0.0), 0, small) == (R0 + 0.05, 0.0)


# ============================================================================
# engine against the elliptic references
# ============================================================================

def test_axis_and_boundary(traced):
    eqt, result = traced
    gq = eqt.global_quantities
    assert gq.magnetic_axis.r == pytest.approx(R0, abs=1e-6)
    assert gq.magnetic_axis.z == pytest.approx(0.0, abs=1e-6)
    assert gq.psi_axis == pytest.approx(0.0, abs=1e-8)
    # the box is wide enough that the nominal boundary is kept
    assert gq.psi_boundary == PSI_B
    assert eqt.boundary.psi == PSI_B
    assert result.psi_boundary == PSI_B
    assert gq.magnetic_axis.b_field_tor == pytest.approx(F_VAC / R0)


def test_boundary_outline(traced):
    eqt, _ = traced
    r = np.asarray(eqt.boundary.outline.r)
    z = np.asarray(eqt.boundary.outline.z)
    assert r[0] == r[-1] and z[0] == z[-1]
    np.testing.assert_allclose(elliptic_psi(r, z), PSI_B, atol=2e-3)


def test_dvolume_dpsi_volume_and_area(traced):
    eqt, _ = traced
    p1d = eqt.profiles_1d
    np.testing.assert_allclose(p1d.dvolume_dpsi[OUTER], DVDPSI_REFERENCE, rtol=5e-3)
    assert p1d.volume[0] == 0.0
    assert p1d.volume[-1] == pytest.approx(VOLUME_REFERENCE, rel=5e-3)
    assert p1d.area[-1] == pytest.approx(AREA_REFERENCE, rel=5e-3)


def test_safety_factor(traced):
    eqt, _ = traced
    p1d = eqt.profiles_1d
    psi = np.asarray(p1d.psi)
    np.testing.assert_allclose(p1d.q[OUTER], q_reference(psi[OUTER]), rtol=5e-3)
    assert p1d.q[0] == pytest.approx(float(q_reference(0.0)), rel=2e-2)


def test_geometric_averages(traced):
    eqt, _ = traced
    p1d = eqt.profiles_1d
    psi = np.asarray(p1d.psi)
    rho2 = psi / PSI_B
    np.testing.assert_allclose(p1d.gm9[OUTER], 1.0 / R0, rtol=1e-3)
    np.testing.assert_allclose(p1d.gm1[OUTER], gm1_reference(psi[OUTER]), rtol=5e-3)
    np.testing.assert_allclose(p1d.gm8[OUTER], (R0 ** 2 + rho2[OUTER] * A_MINOR ** 2 / 2.0) / R0, rtol=1e-3)
    assert np.all(np.asarray(p1d.gm2) > 0.0)
    assert np.all(np.isfinite(p1d.gm2))


def test_toroidal_current_density(traced):
    eqt, _ = traced
    np.testing.assert_allclose(eqt.profiles_1d.j_tor[OUTER], 2.0 * np.pi * P0 * R0 / PSI_B, rtol=1e-3)


def test_shape_profiles(traced):
    eqt, _ = traced
    p1d = eqt.profiles_1d
    np.testing.assert_allclose(p1d.elongation[OUTER], KAPPA, rtol=2e-3)
    np.testing.assert_allclose(p1d.triangularity_upper[OUTER], 0.0, atol=5e-3)
    np.testing.assert_allclose(p1d.triangularity_lower[OUTER], 0.0, atol=5e-3)
    np.testing.assert_allclose(p1d.squareness_upper_outer[OUTER], 0.0, atol=1e-2)
    np.testing.assert_allclose(p1d.squareness_lower_inner[OUTER], 0.0, atol=1e-2)
    assert p1d.r_outboard[-1] == pytest.approx(R0 + A_MINOR, abs=1e-3)
    assert p1d.r_inboard[-1] == pytest.approx(R0 - A_MINOR, abs=1e-3)


def test_field_profiles(traced):
    eqt, _ = traced
    p1d = eqt.profiles_1d
    assert np.all(np.asarray(p1d.b_field_min) <= np.asarray(p1d.b_field_average))
    assert np.all(np.asarray(p1d.b_field_average) <= np.asarray(p1d.b_field_max))
    ft = np.asarray(p1d.trapped_fraction)
    assert np.all((ft[1:] > 0.0) & (ft[1:] < 1.0))
    assert ft[-1] > ft[N_PSI // 4]


def test_plasma_current_and_line_integrals(traced):
    eqt, result = traced
    assert eqt.global_quantities.ip == pytest.approx(ip_reference(), rel=5e-3)
    assert result.bpl.shape == (N_PSI,)
    assert len(result.surfaces) == N_PSI
    assert eqt.global_quantities.length_pol == pytest.approx(result.surfaces[-1].ll[-1])


def test_toroidal_flux_and_rho(traced):
    eqt, _ = traced
    p1d = eqt.profiles_1d
    phi = np.asarray(p1d.phi)
    assert phi[0] == 0.0
    assert np.all(np.diff(phi) > 0.0)
    assert p1d.rho_tor_norm[-1] == pytest.approx(1.0)
    assert p1d.rho_tor[-1] == pytest.approx(np.sqrt(phi[-1] / (np.pi * B0)))


def test_two_dimensional_fields(traced):
    eqt, _ = traced
    p2d = eqt.profiles_2d[0]
    r = np.asarray(p2d.grid.dim1)
    z = np.asarray(p2d.grid.dim2)
    RR, ZZ = np.meshgrid(r, z, indexing="ij")

    np.testing.assert_allclose(p2d.b_field_tor, F_VAC / RR, rtol=1e-10)
    br_ref = 2.0 * ZZ / (KAPPA * A_MINOR) ** 2 / RR / (2.0 * np.pi)
    np.testing.assert_allclose(np.asarray(p2d.b_field_r)[1:-1, 1:-1], br_ref[1:-1, 1:-1], rtol=1e-8, atol=1e-12)
    assert p2d.phi.shape == RR.shape
    # toroidal flux vanishes on the axis grid point
    assert float(np.asarray(p2d.phi)[32, 32]) == pytest.approx(0.0, abs=1e-6)


def test_untraceable_surface_raises():
    dd = build_equilibrium(
        elliptic_psi,
        r_span=1.5 * A_MINOR,
        z_lo=-1.5 * KAPPA * A_MINOR,
        z_hi=1.5 * KAPPA * A_MINOR,
        psi_edge=3.0 * PSI_B,
    )
    with pytest.raises(FluxSurfaceError) as info:
        trace_flux_surfaces(dd.equilibrium.time_slice[0], B0)
    assert info.value.index == N_PSI - 1
    assert info.value.psi_level == pytest.approx(3.0 * PSI_B)


def test_too_few_psi_points(elliptic_dd):
    eqt = elliptic_dd.equilibrium.time_slice[0]
    p1d = eqt.profiles_1d
    p1d.f = None
    p1d.pressure = None
    p1d.psi = np.array([0.0, 1.0])
    with pytest.raises(ValueError):
        trace_flux_surfaces(eqt, B0)


# ============================================================================
# X-points
# ============================================================================

def test_no_x_point_inside_wide_box(traced):
    eqt, _ = traced
    assert find_x_points(eqt) == []
    assert len(eqt.boundary.x_point) == 0


def test_single_null_x_point(xpoint_dd):
    eqt = xpoint_dd.equilibrium.time_slice[0]
    trace_flux_surfaces(eqt, B0)
    found = find_x_points(eqt)
    assert len(found) == 1
    r, z = found[0]
    assert r == pytest.approx(R0, abs=0.02)
    assert z == pytest.approx(-4.0 / 3.0 * KAPPA * A_MINOR, abs=0.02)
    assert eqt.boundary.x_point[0].r == r
    assert eqt.boundary.x_point[0].z == z
    # bisected boundary sits just inside the separatrix
    assert eqt.boundary.psi == pytest.approx(16.0 / 27.0 * PSI_B, abs=2e-3)

    # a second search replaces rather than appends
    find_x_points(eqt)
    assert len(eqt.boundary.x_point) == 1
