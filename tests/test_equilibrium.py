"""
Tests for the equilibrium assembly (tokdd.physics.equilibrium) and the
scalar metrics it writes (tokdd.physics.metrics).
"""
import logging

import numpy as np
import pytest
from scipy.integrate import quad

from conftest import A_MINOR, B0, F_VAC, KAPPA, P0, PSI_B, R0, ip_reference, q_reference
from tokdd.constants import MU0
from tokdd.dd import DD
from tokdd.numerics.calculus import integrate
from tokdd.physics.cocos import cocos
from tokdd.physics.equilibrium import calc_pprime_ffprim_f, flux_surfaces, p_jtor_to_pprime_ffprim_f
from tokdd.physics.metrics import beta_metrics, internal_inductance, q_metrics


def _ellipse_perimeter():
    value, _ = quad(lambda t: A_MINOR * np.sqrt(np.sin(t) ** 2 + KAPPA ** 2 * np.cos(t) ** 2), 0.0, 2.0 * np.pi)
    return value


# ============================================================================
# metrics
# ============================================================================

def test_beta_metrics_from_flat_profiles():
    psi = np.linspace(0.0, 1.0, 11)
    out = beta_metrics(
        psi=psi,
        pressure=np.full(11, 2.0e4),
        dvolume_dpsi=np.full(11, 10.0),
        volume=10.0,
        ip=1.0e6,
        length_pol=5.0,
        b0=2.0,
        r0=1.7,
        r_outboard=2.3,
        r_inboard=1.1,
    )
    assert out["beta_tor"] == pytest.approx(2.0e4 / (2.0 ** 2 / 2.0 / MU0))
    bpave = MU0 * 1.0e6 / 5.0
    assert out["beta_pol"] == pytest.approx(2.0e4 / (bpave ** 2 / 2.0 / MU0))
    assert out["beta_normal"] == pytest.approx(100.0 * out["beta_tor"] / (1.0 / 0.6 / 2.0))


def test_internal_inductance_scales_with_line_integral():
    psi = np.linspace(0.0, 1.0, 5)
    bpl = np.linspace(0.0, 2.0, 5)
    li = internal_inductance(psi, bpl, 1.0e6, 1.7, cocos(11))
    assert li == pytest.approx(2.0 * 1.0 / 1.7 / (MU0 * 1.0e6) ** 2)
    li1 = internal_inductance(psi, bpl, 1.0e6, 1.7, cocos(1))
    assert li1 == pytest.approx(2.0 * np.pi * li)


def test_q_metrics_with_reversed_shear():
    psi = np.linspace(0.0, 2.0, 21)
    x = psi / 2.0
    q = 3.0 - 4.0 * x + 5.0 * x ** 2
    rho = np.sqrt(x)
    out = q_metrics(psi, q, rho)
    assert out["q_axis"] == 3.0
    assert out["q_95"] == pytest.approx(3.0 - 4.0 * 0.95 + 5.0 * 0.95 ** 2, abs=5e-3)
    assert out["q_min"] == pytest.approx(q[8])
    assert out["rho_qmin"] == pytest.approx(rho[8])


def test_q_metrics_uses_magnitude_for_negative_q():
    psi = np.linspace(0.0, 1.0, 5)
    q = -np.array([1.2, 1.0, 1.5, 2.0, 3.0])
    out = q_metrics(psi, q, np.linspace(0.0, 1.0, 5))
    assert out["q_min"] == -1.0
    assert out["rho_qmin"] == 0.25


# ============================================================================
# flux_surfaces assembly
# ============================================================================

def test_global_quantities(solved_elliptic):
    eqt = solved_elliptic.equilibrium.time_slice[0]
    gq = eqt.global_quantities

    assert gq.volume == pytest.approx(2.0 * np.pi ** 2 * R0 * A_MINOR ** 2 * KAPPA, rel=5e-3)
    assert gq.area == pytest.approx(np.pi * A_MINOR ** 2 * KAPPA, rel=5e-3)
    assert gq.ip == pytest.approx(ip_reference(), rel=5e-3)
    assert gq.length_pol == pytest.approx(_ellipse_perimeter(), rel=1e-3)

    # <p> = P0 / 2 for p linear in psi and dV/dpsi constant
    beta_tor = (P0 / 2.0) / (B0 ** 2 / 2.0 / MU0)
    assert gq.beta_tor == pytest.approx(beta_tor, rel=1e-2)
    bpave = MU0 * gq.ip / gq.length_pol
    assert gq.beta_pol == pytest.approx((P0 / 2.0) / (bpave ** 2 / 2.0 / MU0), rel=1e-2)
    assert gq.beta_normal == pytest.approx(100.0 * gq.beta_tor / (gq.ip / 1e6 / A_MINOR / B0), rel=5e-3)


def test_internal_inductance(solved_elliptic):
    eqt = solved_elliptic.equilibrium.time_slice[0]
    psi = np.asarray(eqt.profiles_1d.psi)
    bpl_ref = np.array([MU0 * ip_reference(p) for p in psi])
    li_ref = 2.0 * integrate(psi, bpl_ref) / R0 / (MU0 * ip_reference()) ** 2
    assert eqt.global_quantities.li_3 == pytest.approx(li_ref, rel=1e-2)


def test_q_global_quantities(solved_elliptic):
    eqt = solved_elliptic.equilibrium.time_slice[0]
    gq = eqt.global_quantities
    q = np.asarray(eqt.profiles_1d.q)

    assert gq.q_axis == q[0]
    assert gq.q_95 == pytest.approx(float(q_reference(0.95 * PSI_B)), rel=5e-3)
    i_min = int(np.argmin(np.abs(q)))
    assert gq.q_min.value == q[i_min]
    assert gq.q_min.rho_tor_norm == eqt.profiles_1d.rho_tor_norm[i_min]
    assert gq.q_min.rho_tor_norm < 0.2


def test_boundary_expressions_after_solve(solved_elliptic):
    eqt = solved_elliptic.equilibrium.time_slice[0]
    assert eqt.boundary.elongation == pytest.approx(KAPPA, rel=2e-3)
    assert eqt.boundary.minor_radius == pytest.approx(A_MINOR, rel=2e-3)
    assert eqt.boundary.geometric_axis.r == pytest.approx(R0, rel=1e-3)
    assert eqt.boundary.geometric_axis.z == pytest.approx(0.0, abs=1e-3)
    assert len(eqt.boundary.x_point) == 0
    assert eqt.global_quantities.energy_mhd == pytest.approx(1.5 * P0 / 2.0 * eqt.global_quantities.volume, rel=1e-2)


def test_rerun_on_time_slice_with_overrides(solved_elliptic):
    eqt = solved_elliptic.equilibrium.time_slice[0]
    q_before = np.array(eqt.profiles_1d.q)
    assert flux_surfaces(eqt, upsample_factor=2) is eqt
    np.testing.assert_allclose(eqt.profiles_1d.q[4:], q_before[4:], rtol=5e-3)
    assert eqt.global_quantities.ip == pytest.approx(ip_reference(), rel=5e-3)


def test_explicit_b0_r0(elliptic_dd):
    eq = elliptic_dd.equilibrium
    eq.vacuum_toroidal_field.r0 = None
    with pytest.raises(ValueError):
        flux_surfaces(eq)
    flux_surfaces(eq, b0=B0, r0=R0)
    assert eq.time_slice[0].global_quantities.beta_tor > 0.0


def test_rejects_other_nodes():
    dd = DD()
    with pytest.raises(TypeError):
        flux_surfaces(dd.core_profiles)
    with pytest.raises(TypeError):
        flux_surfaces(dd.equilibrium.time_slice.resize(1)[0].profiles_1d)


def test_flux_surfaces_logs_a_summary(elliptic_dd, caplog):
    with caplog.at_level(logging.INFO, logger="tokdd.physics.equilibrium"):
        flux_surfaces(elliptic_dd.equilibrium)
    assert any("flux surfaces" in rec.getMessage() for rec in caplog.records)


# ============================================================================
# profile conversions
# ============================================================================

def test_calc_pprime_ffprim_f_recovers_f():
    psi = np.linspace(0.0, 1.0, 51)
    one_R2 = np.full(51, 1.0 / R0 ** 2)
    pressure = P0 * (1.0 - psi)
    ffprim_true = -0.5 * (1.0 - psi)
    # <j_tor/R> consistent with Grad-Shafranov for (P', FF')
    jtor_over_R = -(-P0 + ffprim_true * one_R2 / MU0) * 2.0 * np.pi

    pprime, ffprim, f = calc_pprime_ffprim_f(
        psi, np.full(51, R0), np.full(51, 1.0 / R0), one_R2, R0, B0,
        pressure=pressure, jtor_over_R=jtor_over_R,
    )
    np.testing.assert_allclose(pprime, -P0)
    np.testing.assert_allclose(ffprim, ffprim_true, atol=1e-10)
    assert f[-1] == pytest.approx(F_VAC)
    assert f[0] == pytest.approx(np.sqrt(F_VAC ** 2 + 0.5))


def test_calc_pprime_ffprim_f_from_fpol():
    psi = np.linspace(0.0, 1.0, 21)
    fpol = np.full(21, F_VAC)
    _, ffprim, f = calc_pprime_ffprim_f(
        psi, np.ones(21), np.ones(21), np.ones(21), R0, B0, pprime=np.zeros(21), fpol=fpol,
    )
    np.testing.assert_allclose(ffprim, 0.0, atol=1e-10)
    np.testing.assert_allclose(f, F_VAC)


def test_calc_pprime_ffprim_f_missing_inputs():
    psi = np.linspace(0.0, 1.0, 5)
    ones = np.ones(5)
    with pytest.raises(ValueError):
        calc_pprime_ffprim_f(psi, ones, ones, ones, R0, B0, jtor=ones)
    with pytest.raises(ValueError):
        calc_pprime_ffprim_f(psi, ones, ones, ones, R0, B0, pressure=ones)


def test_p_jtor_to_pprime_ffprim_f(solved_elliptic):
    p1d = solved_elliptic.equilibrium.time_slice[0].profiles_1d
    pprime, ffprim, f = p_jtor_to_pprime_ffprim_f(p1d, R0, B0)
    n = len(p1d.psi)
    assert pprime.shape == ffprim.shape == f.shape == (n,)
    np.testing.assert_allclose(pprime, -P0 / PSI_B)
    assert f[-1] == pytest.approx(F_VAC)
