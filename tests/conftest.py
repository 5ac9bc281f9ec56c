"""Pytest configuration and shared fixtures for the powerbalance test suite."""

import os

import numpy as np
import pytest

from powerbalance import PowerBalanceModel

# =============================================================================
# Environment isolation
# =============================================================================
# Settings.from_env() reads POWERBALANCE_* variables; tests must not pick up
# overrides from the developer's shell.
# =============================================================================
for _key in [k for k in os.environ if k.startswith("POWERBALANCE_")]:
    del os.environ[_key]


@pytest.fixture
def frequencies():
    """Frequency grid from 1 to 10 GHz."""
    return np.linspace(1e9, 10e9, 10)


@pytest.fixture
def single_cavity_model():
    """Lossless-wall cavity with one matched absorber and a 1 W source.

    The absorber has area 4 m² and AE = 1, hence ACS = 1 m².
    """
    model = PowerBalanceModel([1e9, 2e9, 3e9], "Single")
    model.add_cavity("C1", "Generic", [1.0, 1.0, np.inf, 1.0])
    model.add_absorber("AB1", "C1", 1, "AE", [4.0, 1.0])
    model.add_source("S1", "Direct", "C1", [1.0])
    return model


@pytest.fixture
def two_cavity_model():
    """Two lossless-wall cavities joined by an aperture.

    Cavity C1 holds the 1 W source and an absorber of ACS 1 m², cavity C2
    holds an absorber of ACS 1 m², and the aperture has TCS 1 m². The
    solution is S1 = 2/3 W/m² and S2 = 1/3 W/m².
    """
    model = PowerBalanceModel([1e9, 2e9], "Pair")
    model.add_cavity("C1", "Generic", [1.0, 2.0, np.inf, 1.0])
    model.add_cavity("C2", "Generic", [1.0, 5.0, np.inf, 1.0])
    model.add_absorber("AB1", "C1", 1, "ACS", [4.0, 1.0])
    model.add_absorber("AB2", "C2", 1, "ACS", [4.0, 1.0])
    model.add_aperture("AP1", "C1", "C2", "TCS", [4.0, 1.0])
    model.add_source("S1", "Direct", "C1", [1.0])
    return model


@pytest.fixture
def write_table(tmp_path):
    """Factory writing a whitespace separated numeric table under tmp_path."""

    def _write(rows, name="data.dat"):
        path = tmp_path / name
        lines = ["# f [Hz]    value"]
        lines += ["  ".join(f"{v:.12g}" for v in row) for row in rows]
        path.write_text("\n".join(lines) + "\n")
        return path

    return _write
