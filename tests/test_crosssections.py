"""Tests for the physical cross-section models.

Tests verify:
- Closed-form limits of the surface, sphere and aperture models
- Consistency between related models (dielectric vs laminated vs metal)
- External Mie solver invocation and error handling
"""

import subprocess

import numpy as np
import pytest

from powerbalance import C0, ConfigurationError, DataError
from powerbalance.constants import EPS0, ETA0, MU0
from powerbalance.crosssections import (
    aperture_tcs,
    circular_polarisabilities,
    dielectric_surface_acs,
    generic_cavity_wall_acs,
    laminated_sphere_acs,
    laminated_surface_acs,
    lucent_sheet_acs,
    metal_surface_acs,
    sphere_acs,
    square_polarisabilities,
)
from powerbalance.crosssections import spheres
from powerbalance.crosssections.materials import complex_permittivity, expand_material_array
from powerbalance.crosssections.spheres import mie_efficiencies, parse_mie_response
from powerbalance.crosssections.surfaces import angle_quadrature, diffuse_average

F = np.array([1e9, 3e9, 10e9])


# =============================================================================
# Materials
# =============================================================================


class TestMaterials:
    def test_scalar_expands_to_every_layer(self):
        arr = expand_material_array(2.0, 3, 2, "eps_r")
        assert arr.shape == (3, 2)
        assert np.all(arr == 2.0)

    def test_vector_runs_along_frequency_for_single_layer(self):
        arr = expand_material_array([1.0, 2.0, 3.0], 3, 1, "sigma")
        np.testing.assert_array_equal(arr[:, 0], [1.0, 2.0, 3.0])

    def test_vector_runs_along_layers_for_layered_body(self):
        arr = expand_material_array([1.0, 2.0], 3, 2, "sigma")
        np.testing.assert_array_equal(arr, [[1.0, 2.0]] * 3)

    def test_wrong_rows_rejected(self):
        with pytest.raises(ConfigurationError, match="rows"):
            expand_material_array(np.ones((2, 1)), 3, 1, "mu_r")

    def test_complex_permittivity(self):
        eps = complex_permittivity(np.array([1e9]), np.array([[4.0]]), np.array([[0.1]]))
        omega = 2 * np.pi * 1e9
        assert eps[0, 0] == pytest.approx(4.0 - 1j * 0.1 / (omega * EPS0))


# =============================================================================
# Surfaces
# =============================================================================


class TestQuadrature:
    def test_diffuse_weight_integrates_to_one(self):
        theta, weights = angle_quadrature(64)
        assert diffuse_average(np.ones((1, 64)), weights, theta)[0] == pytest.approx(1.0)

    def test_nodes_inside_interval(self):
        theta, _ = angle_quadrature(16)
        assert np.all(theta > 0) and np.all(theta < np.pi / 2)


class TestSurfaces:
    def test_metal_closed_form(self):
        ACS, AE = metal_surface_acs(F, 2.0, 5.8e7, 1.0)
        Rs = np.sqrt(np.pi * F * MU0 / 5.8e7)
        np.testing.assert_allclose(AE, 16.0 / 3.0 * Rs / ETA0)
        np.testing.assert_allclose(ACS, 0.5 * AE)

    def test_perfect_conductor_absorbs_nothing(self):
        ACS, AE = metal_surface_acs(F, 2.0, np.inf, 1.0)
        assert np.all(ACS == 0.0)
        assert np.all(AE == 0.0)

    def test_generic_cavity_wall_matches_hill_q(self):
        """Wall Q equals 3V/(2 μr A δ) for a good conductor."""
        area, volume, sigma = 22.0, 6.0, 1e6
        ACS, _ = generic_cavity_wall_acs(F, area, sigma, 1.0)
        q = 2 * np.pi * F * volume / (C0 * ACS)
        delta = 1.0 / np.sqrt(np.pi * F * MU0 * sigma)
        np.testing.assert_allclose(q, 3 * volume / (2 * area * delta), rtol=1e-3)

    def test_matched_half_space_absorbs_everything(self):
        """Free space behind the surface reflects nothing: AE = 1."""
        ACS, AE = dielectric_surface_acs(F, 4.0, 1.0, 0.0, 1.0)
        np.testing.assert_allclose(AE, 1.0, rtol=1e-6)
        np.testing.assert_allclose(ACS, 1.0, rtol=1e-6)

    def test_lossless_dielectric_half_space_below_one(self):
        _, AE = dielectric_surface_acs(F, 1.0, 4.0, 0.0, 1.0)
        assert np.all(AE > 0.0) and np.all(AE < 1.0)
        # Frequency independent for a non-dispersive half-space.
        np.testing.assert_allclose(AE, AE[0], rtol=1e-9)

    def test_good_conductor_half_space_approaches_metal_model(self):
        _, AE_diel = dielectric_surface_acs(F, 1.0, 1.0, 5.8e7, 1.0)
        _, AE_metal = metal_surface_acs(F, 1.0, 5.8e7, 1.0)
        np.testing.assert_allclose(AE_diel, AE_metal, rtol=1e-2)

    def test_layer_of_backing_material_changes_nothing(self):
        eps, sigma = 4.0 - 0.4j, 0.05
        _, AE_half = dielectric_surface_acs(F, 1.0, eps, sigma, 1.0)
        _, AE_lam = laminated_surface_acs(F, 1.0, [0.02], [eps, eps], [sigma, sigma], 1.0)
        np.testing.assert_allclose(AE_lam, AE_half, rtol=1e-6)

    def test_thick_lossy_layer_hides_backing(self):
        """A thick lossy coating makes the backing irrelevant."""
        coat_eps, coat_sigma = 4.0, 1.0
        _, AE_on_metal = laminated_surface_acs(F, 1.0, [0.5], [coat_eps, 1.0], [coat_sigma, 1e7], 1.0)
        _, AE_on_air = laminated_surface_acs(F, 1.0, [0.5], [coat_eps, 1.0], [coat_sigma, 0.0], 1.0)
        np.testing.assert_allclose(AE_on_metal, AE_on_air, rtol=1e-6)

    def test_absorption_bounded(self):
        _, AE = laminated_surface_acs(F, 1.0, [0.01, 0.003], [2.0, 5.0 - 1j, 3.0], [0.0, 0.1, 10.0], 1.0)
        assert np.all(AE >= 0.0) and np.all(AE <= 1.0)

    def test_lossless_lucent_sheet_absorbs_nothing(self):
        ACS, AE = lucent_sheet_acs(F, 1.0, [0.01], 4.0, 0.0, 1.0)
        np.testing.assert_allclose(ACS, 0.0, atol=1e-9)
        np.testing.assert_allclose(AE, 0.0, atol=1e-9)

    def test_lossy_lucent_sheet(self):
        ACS, AE = lucent_sheet_acs(F, 2.0, [0.001], 4.0, 1.0, 1.0)
        assert np.all(ACS > 0.0)
        # AE is referred to both faces.
        np.testing.assert_allclose(AE, ACS / (0.25 * 2 * 2.0))

    def test_air_lucent_sheet_is_transparent(self):
        ACS, _ = lucent_sheet_acs(F, 1.0, [0.05], 1.0, 0.0, 1.0)
        np.testing.assert_allclose(ACS, 0.0, atol=1e-9)


# =============================================================================
# Spheres
# =============================================================================


class TestMie:
    def test_small_lossy_sphere_rayleigh_limit(self):
        x = 0.01
        m = np.sqrt(4.0 + 1.0j)
        _, _, q_abs = mie_efficiencies(x, m)
        expected = 4 * x * np.imag((m**2 - 1) / (m**2 + 2))
        assert q_abs == pytest.approx(expected, rel=1e-2)

    def test_lossless_sphere_absorbs_nothing(self):
        _, _, q_abs = mie_efficiencies(1.5, 1.5 + 0j)
        assert abs(q_abs) < 1e-10

    def test_large_lossy_sphere_extinction_paradox(self):
        q_ext, _, _ = mie_efficiencies(200.0, 1.5 + 0.5j)
        assert q_ext == pytest.approx(2.0, rel=0.1)

    def test_invalid_size_parameter(self):
        with pytest.raises(ValueError, match="size parameter"):
            mie_efficiencies(0.0, 1.5)

    def test_sphere_acs_geometry(self):
        radius = 0.05
        ACS, AE = sphere_acs(F, radius, 4.0, 0.1, 1.0)
        np.testing.assert_allclose(ACS, np.pi * radius**2 * AE)
        assert np.all(AE > 0.0)


class TestLaminatedSphere:
    """The external solver is replaced by a fake subprocess."""

    @pytest.fixture
    def fake_solver(self, monkeypatch):
        calls = []

        def fake_run(cmd, **kwargs):
            calls.append(cmd)
            return subprocess.CompletedProcess(cmd, 0, stdout="2.0, 1.5, 0.5, 0.1\n", stderr="")

        monkeypatch.setattr(spheres.shutil, "which", lambda name: f"/usr/bin/{name}")
        monkeypatch.setattr(spheres.subprocess, "run", fake_run)
        return calls

    def test_parses_absorption_efficiency(self, fake_solver):
        ACS, AE = laminated_sphere_acs(F, [0.2, 0.1], [2.0, 3.0], [0.0, 0.0], 1.0)
        np.testing.assert_allclose(AE, 0.5)
        np.testing.assert_allclose(ACS, np.pi * 0.04 * 0.5)
        assert len(fake_solver) == len(F)

    def test_layers_passed_from_centre_outwards(self, fake_solver):
        laminated_sphere_acs(F[:1], [0.2, 0.1], [2.0, 3.0], [0.0, 0.0], 1.0, executable="mie")
        cmd = fake_solver[0]
        assert cmd[:3] == ["mie", "-l", "2"]
        x_inner, x_outer = float(cmd[3]), float(cmd[6])
        k = 2 * np.pi * F[0] / C0
        assert x_inner == pytest.approx(k * 0.1, rel=1e-5)
        assert x_outer == pytest.approx(k * 0.2, rel=1e-5)
        assert float(cmd[4]) == pytest.approx(np.sqrt(3.0), rel=1e-5)

    def test_missing_executable(self, monkeypatch):
        monkeypatch.setattr(spheres.shutil, "which", lambda name: None)
        with pytest.raises(DataError, match="not found"):
            laminated_sphere_acs(F, [0.2], [2.0], [0.0], 1.0)

    def test_solver_failure(self, monkeypatch):
        monkeypatch.setattr(spheres.shutil, "which", lambda name: name)
        monkeypatch.setattr(
            spheres.subprocess,
            "run",
            lambda cmd, **kw: subprocess.CompletedProcess(cmd, 2, stdout="", stderr="bad input"),
        )
        with pytest.raises(DataError, match="exit status 2"):
            laminated_sphere_acs(F, [0.2], [2.0], [0.0], 1.0)

    def test_solver_timeout(self, monkeypatch):
        def timeout(cmd, **kwargs):
            raise subprocess.TimeoutExpired(cmd, kwargs["timeout"])

        monkeypatch.setattr(spheres.shutil, "which", lambda name: name)
        monkeypatch.setattr(spheres.subprocess, "run", timeout)
        with pytest.raises(DataError, match="timed out"):
            laminated_sphere_acs(F, [0.2], [2.0], [0.0], 1.0, timeout=0.5)

    def test_malformed_response_names_frequency(self, monkeypatch):
        monkeypatch.setattr(spheres.shutil, "which", lambda name: name)
        monkeypatch.setattr(
            spheres.subprocess,
            "run",
            lambda cmd, **kw: subprocess.CompletedProcess(cmd, 0, stdout="Qext only 1.0", stderr=""),
        )
        with pytest.raises(DataError, match="frequency index 0"):
            laminated_sphere_acs(F, [0.2], [2.0], [0.0], 1.0)

    def test_parse_response(self):
        assert parse_mie_response("Qext Qsca Qabs\n2.1 1.1 1.0\n") == 1.0
        with pytest.raises(DataError, match="Malformed"):
            parse_mie_response("1.0 nan nan")


# =============================================================================
# Apertures
# =============================================================================


class TestApertures:
    def test_circular_low_frequency_limit(self):
        a = 1e-3
        f = np.array([1e6])
        TCS, _ = aperture_tcs(f, *circular_polarisabilities(a))
        k = 2 * np.pi * f / C0
        np.testing.assert_allclose(TCS, 16 * k**4 * a**6 / (9 * np.pi), rtol=1e-6)

    def test_circular_high_frequency_limit(self):
        a = 0.5
        TCS, TE = aperture_tcs(np.array([1e12]), *circular_polarisabilities(a))
        np.testing.assert_allclose(TCS, np.pi * a**2 / 4, rtol=1e-6)
        np.testing.assert_allclose(TE, 1.0, rtol=1e-6)

    def test_square_area(self):
        area, alpha_mxx, alpha_myy, alpha_ezz = square_polarisabilities(0.1)
        assert area == pytest.approx(0.01)
        assert alpha_mxx == alpha_myy
        assert alpha_ezz < alpha_mxx

    def test_transmission_efficiency_bounded(self):
        _, TE = aperture_tcs(np.logspace(6, 12, 13), *square_polarisabilities(0.05))
        assert np.all(TE >= 0.0) and np.all(TE <= 1.0 + 1e-12)
        assert np.all(np.diff(TE) >= 0)
