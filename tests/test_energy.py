"""Tests for conversions between loss representations.

Tests verify:
- Closed-form relations between CCS, decay rate, time constant and Q
- Round trips between every pair of representations
- Exact handling of the lossless (infinite cross-section) marker
"""

import warnings

import numpy as np
import pytest

from powerbalance import C0, ConfigurationError
from powerbalance.core.energy import (
    EnergyParameters,
    energy_params_from_ccs,
    energy_params_from_decay_rate,
    energy_params_from_q,
    energy_params_from_time_constant,
)

F = np.array([1e8, 1e9, 5e9])


class TestFromCrossSection:
    """Tests for energy_params_from_ccs."""

    def test_closed_form(self):
        Q, gamma, tau = energy_params_from_ccs(F, 0.5, volume=2.0)
        np.testing.assert_allclose(gamma, C0 * 0.5 / 2.0)
        np.testing.assert_allclose(tau, 2.0 / (C0 * 0.5))
        np.testing.assert_allclose(Q, 2 * np.pi * F * tau)

    def test_scalar_broadcasts_to_grid(self):
        Q, gamma, tau = energy_params_from_ccs(F, 1.0, volume=1.0)
        assert Q.shape == gamma.shape == tau.shape == F.shape

    def test_per_frequency_cross_section(self):
        ccs = np.array([0.1, 0.2, 0.4])
        _, gamma, _ = energy_params_from_ccs(F, ccs, volume=1.0)
        np.testing.assert_allclose(gamma, C0 * ccs)

    def test_infinite_cross_section_is_lossless(self):
        """An infinite CCS gives exactly zero decay rate and infinite τ and Q."""
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            Q, gamma, tau = energy_params_from_ccs(F, np.inf, volume=1.0)
        assert np.all(gamma == 0.0)
        assert np.all(np.isposinf(tau))
        assert np.all(np.isposinf(Q))

    def test_zero_cross_section_without_warnings(self):
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            Q, gamma, tau = energy_params_from_ccs(F, 0.0, volume=1.0)
        assert np.all(gamma == 0.0)
        assert np.all(np.isposinf(tau))
        assert np.all(np.isposinf(Q))

    def test_mixed_lossless_entries(self):
        ccs = np.array([1.0, np.inf, 2.0])
        Q, gamma, tau = energy_params_from_ccs(F, ccs, volume=1.0)
        assert gamma[1] == 0.0 and np.isposinf(Q[1])
        np.testing.assert_allclose(gamma[[0, 2]], C0 * ccs[[0, 2]])

    def test_input_not_modified(self):
        ccs = np.array([1.0, np.inf, 2.0])
        energy_params_from_ccs(F, ccs, volume=1.0)
        assert np.isinf(ccs[1])


class TestInverseConversions:
    """Tests for the Q, decay rate and time constant entry points."""

    @pytest.mark.parametrize("ccs", [1e-4, 0.3, 25.0])
    def test_round_trip_through_q(self, ccs):
        Q, _, _ = energy_params_from_ccs(F, ccs, volume=3.0)
        ccs2, _, _ = energy_params_from_q(F, Q, volume=3.0)
        np.testing.assert_allclose(ccs2, ccs, rtol=1e-12)

    def test_round_trip_through_decay_rate(self):
        _, gamma, _ = energy_params_from_ccs(F, 0.7, volume=0.5)
        ccs, Q, tau = energy_params_from_decay_rate(F, gamma, volume=0.5)
        np.testing.assert_allclose(ccs, 0.7)
        np.testing.assert_allclose(tau, 1.0 / gamma)
        np.testing.assert_allclose(Q, 2 * np.pi * F / gamma)

    def test_round_trip_through_time_constant(self):
        _, gamma, tau = energy_params_from_ccs(F, 0.7, volume=0.5)
        ccs, Q, gamma2 = energy_params_from_time_constant(F, tau, volume=0.5)
        np.testing.assert_allclose(ccs, 0.7)
        np.testing.assert_allclose(gamma2, gamma)

    def test_infinite_q_agrees_with_infinite_cross_section(self):
        ccs, gamma, tau = energy_params_from_q(F, np.inf, volume=1.0)
        assert np.all(np.isposinf(ccs))
        assert np.all(gamma == 0.0)
        assert np.all(np.isposinf(tau))

    @pytest.mark.parametrize("Q", [0.0, -50.0, np.nan])
    def test_non_positive_q_rejected(self, Q):
        """Q = 0 would otherwise map to an infinite CCS, the lossless marker."""
        with pytest.raises(ConfigurationError, match="strictly positive"):
            energy_params_from_q(F, Q, volume=1.0)

    def test_non_positive_q_rejected_per_frequency(self):
        with pytest.raises(ConfigurationError, match="strictly positive"):
            EnergyParameters.from_q(F, [100.0, 0.0, 100.0], 1.0)

    def test_zero_decay_rate_is_lossless(self):
        ccs, Q, tau = energy_params_from_decay_rate(F, 0.0, volume=1.0)
        assert np.all(np.isposinf(ccs))
        assert np.all(np.isposinf(Q))
        assert np.all(np.isposinf(tau))

    def test_infinite_time_constant_is_lossless(self):
        ccs, Q, gamma = energy_params_from_time_constant(F, np.inf, volume=1.0)
        assert np.all(gamma == 0.0)
        assert np.all(np.isposinf(ccs))


class TestEnergyParameters:
    """Tests for the EnergyParameters bundle."""

    def test_from_ccs(self):
        params = EnergyParameters.from_ccs(F, 2.0, volume=4.0)
        np.testing.assert_allclose(params.ccs, 2.0)
        np.testing.assert_allclose(params.decay_rate, C0 * 2.0 / 4.0)

    def test_all_constructors_agree(self):
        reference = EnergyParameters.from_ccs(F, 0.25, volume=2.0)
        for other in (
            EnergyParameters.from_q(F, reference.Q, 2.0),
            EnergyParameters.from_decay_rate(F, reference.decay_rate, 2.0),
            EnergyParameters.from_time_constant(F, reference.time_const, 2.0),
        ):
            np.testing.assert_allclose(other.ccs, reference.ccs)
            np.testing.assert_allclose(other.Q, reference.Q)
            np.testing.assert_allclose(other.decay_rate, reference.decay_rate)
            np.testing.assert_allclose(other.time_const, reference.time_const)

    def test_lossless_marker_kept(self):
        params = EnergyParameters.from_ccs(F, np.inf, volume=1.0)
        assert np.all(np.isposinf(params.ccs))
        assert np.all(params.decay_rate == 0.0)

    def test_frozen(self):
        params = EnergyParameters.from_ccs(F, 1.0, volume=1.0)
        with pytest.raises(AttributeError):
            params.Q = None
