"""Conversion between the equivalent representations of an energy loss channel.

A dissipative or coupling element in a cavity of volume V can be described
by any one of four frequency-dependent quantities:

    CCS(f)  coupling (or absorption) cross-section [m²]
    γ(f)    energy decay rate [1/s]          γ = c0·CCS / V
    τ(f)    energy time constant [s]         τ = 1 / γ
    Q(f)    composite quality factor [-]     Q = 2π·f·τ

An infinite cross-section is used as the marker of an idealised lossless
element and maps to γ = 0, τ = ∞, Q = ∞. It is clamped to a large finite
value before the arithmetic and the exact values are restored afterwards,
so no overflow or invalid-value warnings escape.

Example:
    >>> import numpy as np
    >>> f = np.array([1e9, 2e9])
    >>> Q, gamma, tau = energy_params_from_ccs(f, 0.5, volume=2.0)
    >>> ccs, gamma2, tau2 = energy_params_from_q(f, Q, volume=2.0)
    >>> np.allclose(ccs, 0.5)
    True
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from numpy.typing import ArrayLike, NDArray

from ..constants import C0
from ..errors import ConfigurationError

# Stand-in for infinity while evaluating the conversion formulas.
_CLAMP = 1e20


def _broadcast(f: ArrayLike, values: ArrayLike) -> tuple[NDArray[np.floating], NDArray[np.floating]]:
    f = np.atleast_1d(np.asarray(f, dtype=float))
    values = np.broadcast_to(np.asarray(values, dtype=float), f.shape).copy()
    return f, values


def energy_params_from_ccs(
    f: ArrayLike, ccs: ArrayLike, volume: float
) -> tuple[NDArray[np.floating], NDArray[np.floating], NDArray[np.floating]]:
    """Determine energy loss parameters from a cross-section.

    Args:
        f: Frequencies in Hz
        ccs: Coupling/absorption cross-section in m² (scalar or per frequency)
        volume: Cavity volume in m³ (may be infinite)

    Returns:
        Tuple (Q, decay_rate, time_const), each the length of ``f``
    """
    f, ccs = _broadcast(f, ccs)
    lossless = np.isinf(ccs)
    ccs[lossless] = _CLAMP

    with np.errstate(divide="ignore", invalid="ignore"):
        decay_rate = C0 * ccs / volume
        time_const = 1.0 / decay_rate
        Q = 2.0 * np.pi * f * time_const

    idle = lossless | (decay_rate == 0.0)
    decay_rate[idle] = 0.0
    time_const[idle] = np.inf
    Q[idle] = np.inf
    return Q, decay_rate, time_const


def energy_params_from_q(
    f: ArrayLike, Q: ArrayLike, volume: float
) -> tuple[NDArray[np.floating], NDArray[np.floating], NDArray[np.floating]]:
    """Determine energy loss parameters from a composite Q-factor.

    Args:
        f: Frequencies in Hz
        Q: Composite quality factor (scalar or per frequency)
        volume: Cavity volume in m³

    Returns:
        Tuple (ccs, decay_rate, time_const), each the length of ``f``

    Raises:
        ConfigurationError: If any Q-factor is zero, negative or NaN
    """
    f, Q = _broadcast(f, Q)
    if not np.all(Q > 0):
        raise ConfigurationError(f"Q-factor must be strictly positive, got {float(Q[~(Q > 0)][0])}")
    lossless = np.isinf(Q)
    Q[lossless] = _CLAMP

    with np.errstate(divide="ignore"):
        time_const = Q / (2.0 * np.pi * f)
        decay_rate = 1.0 / time_const
    ccs = decay_rate * volume / C0

    decay_rate[lossless] = 0.0
    time_const[lossless] = np.inf
    ccs[lossless] = np.inf
    return ccs, decay_rate, time_const


def energy_params_from_decay_rate(
    f: ArrayLike, decay_rate: ArrayLike, volume: float
) -> tuple[NDArray[np.floating], NDArray[np.floating], NDArray[np.floating]]:
    """Determine (ccs, Q, time_const) from an energy decay rate."""
    f, decay_rate = _broadcast(f, decay_rate)
    lossless = decay_rate == 0.0
    with np.errstate(divide="ignore"):
        time_const = 1.0 / decay_rate
    Q = 2.0 * np.pi * f * time_const
    ccs = decay_rate * volume / C0
    ccs[lossless] = np.inf
    Q[lossless] = np.inf
    return ccs, Q, time_const


def energy_params_from_time_constant(
    f: ArrayLike, time_const: ArrayLike, volume: float
) -> tuple[NDArray[np.floating], NDArray[np.floating], NDArray[np.floating]]:
    """Determine (ccs, Q, decay_rate) from an energy time constant."""
    f, time_const = _broadcast(f, time_const)
    with np.errstate(divide="ignore"):
        decay_rate = 1.0 / time_const
    ccs, Q, _ = energy_params_from_decay_rate(f, decay_rate, volume)
    return ccs, Q, decay_rate


@dataclass(frozen=True)
class EnergyParameters:
    """The four equivalent representations of one loss channel.

    Attributes:
        ccs: Cross-section in m²
        Q: Composite quality factor
        decay_rate: Energy decay rate in 1/s
        time_const: Energy time constant in s
    """

    ccs: NDArray[np.floating]
    Q: NDArray[np.floating]
    decay_rate: NDArray[np.floating]
    time_const: NDArray[np.floating]

    @classmethod
    def from_ccs(cls, f: ArrayLike, ccs: ArrayLike, volume: float) -> EnergyParameters:
        f, ccs = _broadcast(f, ccs)
        Q, decay_rate, time_const = energy_params_from_ccs(f, ccs, volume)
        return cls(ccs=ccs, Q=Q, decay_rate=decay_rate, time_const=time_const)

    @classmethod
    def from_q(cls, f: ArrayLike, Q: ArrayLike, volume: float) -> EnergyParameters:
        f, Q = _broadcast(f, Q)
        ccs, decay_rate, time_const = energy_params_from_q(f, Q, volume)
        return cls(ccs=ccs, Q=Q, decay_rate=decay_rate, time_const=time_const)

    @classmethod
    def from_decay_rate(cls, f: ArrayLike, decay_rate: ArrayLike, volume: float) -> EnergyParameters:
        f, decay_rate = _broadcast(f, decay_rate)
        ccs, Q, time_const = energy_params_from_decay_rate(f, decay_rate, volume)
        return cls(ccs=ccs, Q=Q, decay_rate=decay_rate, time_const=time_const)

    @classmethod
    def from_time_constant(cls, f: ArrayLike, time_const: ArrayLike, volume: float) -> EnergyParameters:
        f, time_const = _broadcast(f, time_const)
        ccs, Q, decay_rate = energy_params_from_time_constant(f, time_const, volume)
        return cls(ccs=ccs, Q=Q, decay_rate=decay_rate, time_const=time_const)
