"""Average absorption of planar surfaces in a diffuse field.

In a reverberant cavity the field incident on a surface is a uniform
angular spectrum of plane waves. The average absorption efficiency of a
one-sided surface of area A is the angle average

    AE = ∫₀^{π/2} (1 - ½(|r_TE|² + |r_TM|²)) · 2 sinθ cosθ dθ

and its absorption cross-section is ACS = AE · A / 4. Reflection and
transmission coefficients of layered structures are built from symmetric
slab scattering matrices combined with the Redheffer star product, which
stays finite for thick lossy layers. An exp(jωt) time convention is used.

References:
    - D. A. Hill, "Electromagnetic Fields in Cavities", IEEE Press (2009)
    - I. D. Flintoft et al., "Measurement and modelling of the absorption
      cross-section of lossy dielectric panels", IEEE Trans. EMC (2016)
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from numpy.typing import ArrayLike, NDArray

from ..constants import C0, ETA0, MU0
from .materials import complex_permittivity, expand_material_array

DEFAULT_QUADRATURE_ORDER = 256


def angle_quadrature(order: int = DEFAULT_QUADRATURE_ORDER) -> tuple[NDArray, NDArray]:
    """Gauss-Legendre nodes and weights on [0, π/2]."""
    x, w = np.polynomial.legendre.leggauss(order)
    theta = 0.25 * np.pi * (x + 1.0)
    return theta, 0.25 * np.pi * w


def diffuse_average(values: NDArray, weights: NDArray, theta: NDArray) -> NDArray:
    """Average a (n_freq, n_theta) quantity over a diffuse field."""
    return np.sum(values * (2.0 * np.sin(theta) * np.cos(theta) * weights), axis=-1)


@dataclass
class _Slab:
    """Normalised wave quantities of one layer at every (frequency, angle)."""

    kz: NDArray[np.complexfloating]
    z_te: NDArray[np.complexfloating]
    z_tm: NDArray[np.complexfloating]


def _layer_waves(eps: NDArray, mu: NDArray, sin_theta: NDArray) -> _Slab:
    # eps, mu: (n_freq, 1); sin_theta: (n_theta,)
    kz = np.sqrt(eps * mu - sin_theta**2 + 0j)
    # Decaying branch for exp(jωt - jkz·z): Im(kz) <= 0.
    kz = np.where(kz.imag > 0, -kz, kz)
    return _Slab(kz=kz, z_te=mu / kz, z_tm=kz / eps)


def _slab_sparams(
    z: NDArray, z0: NDArray, phase: NDArray
) -> tuple[NDArray, NDArray]:
    """Reflection and transmission of a symmetric slab in a reference medium."""
    gamma = (z - z0) / (z + z0)
    p = np.exp(-1j * phase)
    denom = 1.0 - gamma**2 * p**2
    s11 = gamma * (1.0 - p**2) / denom
    s21 = p * (1.0 - gamma**2) / denom
    return s11, s21


def _star(a: tuple, b: tuple) -> tuple:
    """Redheffer star product of two reciprocal two-ports (s11, s21, s22)."""
    a11, a21, a22 = a
    b11, b21, b22 = b
    d = 1.0 - a22 * b11
    s11 = a11 + a21 * a21 * b11 / d
    s21 = a21 * b21 / d
    s22 = b22 + b21 * b21 * a22 / d
    return s11, s21, s22


def _stack_sparams(
    f: NDArray,
    thicknesses: NDArray,
    eps: NDArray,
    mu: NDArray,
    theta: NDArray,
) -> dict[str, tuple]:
    """Scattering parameters of a stack of finite layers in free space.

    Returns:
        Dict keyed by polarisation ('TE', 'TM') of (s11, s21, s22) arrays of
        shape (n_freq, n_theta)
    """
    k0 = 2.0 * np.pi * f[:, np.newaxis] / C0
    sin_theta = np.sin(theta)
    cos_theta = np.cos(theta)[np.newaxis, :]
    shape = (len(f), len(theta))
    identity = (np.zeros(shape, complex), np.ones(shape, complex), np.zeros(shape, complex))
    result = {"TE": identity, "TM": identity}
    z0 = {"TE": 1.0 / cos_theta, "TM": cos_theta}

    for layer, d in enumerate(thicknesses):
        slab = _layer_waves(eps[:, layer : layer + 1], mu[:, layer : layer + 1], sin_theta)
        phase = k0 * slab.kz * d
        for pol, z in (("TE", slab.z_te), ("TM", slab.z_tm)):
            s11, s21 = _slab_sparams(z, z0[pol], phase)
            result[pol] = _star(result[pol], (s11, s21, s11))
    return result


def _material_stack(f, n_layers, eps_r, sigma, mu_r):
    n_freq = len(f)
    eps_r = expand_material_array(eps_r, n_freq, n_layers, "eps_r", dtype=complex)
    sigma = expand_material_array(sigma, n_freq, n_layers, "sigma")
    mu_r = expand_material_array(mu_r, n_freq, n_layers, "mu_r", dtype=complex)
    return complex_permittivity(f, eps_r, sigma), mu_r


def laminated_surface_reflection(
    f: ArrayLike,
    thicknesses: ArrayLike,
    eps_r: ArrayLike,
    sigma: ArrayLike,
    mu_r: ArrayLike,
    theta: NDArray,
) -> tuple[NDArray, NDArray]:
    """Plane-wave reflection of a layered surface backed by a half-space.

    Args:
        f: Frequencies in Hz
        thicknesses: Thicknesses of the finite layers in m (may be empty)
        eps_r: Relative permittivity, (1 or n_freq, n_layers)
        sigma: Conductivity in S/m, (1 or n_freq, n_layers)
        mu_r: Relative permeability, (1 or n_freq, n_layers)
        theta: Angles of incidence in rad

    The number of layers is len(thicknesses) + 1; the last layer is the
    semi-infinite backing.

    Returns:
        Tuple (r_te, r_tm) of shape (n_freq, n_theta)
    """
    f = np.atleast_1d(np.asarray(f, dtype=float))
    thicknesses = np.atleast_1d(np.asarray(thicknesses, dtype=float)).ravel()
    n_layers = len(thicknesses) + 1
    eps, mu = _material_stack(f, n_layers, eps_r, sigma, mu_r)

    stack = _stack_sparams(f, thicknesses, eps, mu, theta)
    backing = _layer_waves(eps[:, -1:], mu[:, -1:], np.sin(theta))
    cos_theta = np.cos(theta)[np.newaxis, :]

    r = {}
    for pol, z_back, z0 in (("TE", backing.z_te, 1.0 / cos_theta), ("TM", backing.z_tm, cos_theta)):
        gamma_back = (z_back - z0) / (z_back + z0)
        s11, s21, s22 = stack[pol]
        r[pol] = s11 + s21 * s21 * gamma_back / (1.0 - s22 * gamma_back)
    return r["TE"], r["TM"]


def laminated_surface_acs(
    f: ArrayLike,
    area: float,
    thicknesses: ArrayLike,
    eps_r: ArrayLike,
    sigma: ArrayLike,
    mu_r: ArrayLike,
    quadrature_order: int = DEFAULT_QUADRATURE_ORDER,
) -> tuple[NDArray[np.floating], NDArray[np.floating]]:
    """Average absorption cross-section of a laminated surface.

    Args:
        f: Frequencies in Hz
        area: One-sided area of the surface in m²
        thicknesses: Finite layer thicknesses in m; the final layer is
            semi-infinite
        eps_r: Relative permittivity of each layer
        sigma: Conductivity of each layer in S/m
        mu_r: Relative permeability of each layer
        quadrature_order: Number of angular quadrature nodes

    Returns:
        Tuple (ACS, AE)
    """
    theta, weights = angle_quadrature(quadrature_order)
    r_te, r_tm = laminated_surface_reflection(f, thicknesses, eps_r, sigma, mu_r, theta)
    reflectance = 0.5 * (np.abs(r_te) ** 2 + np.abs(r_tm) ** 2)
    AE = diffuse_average(1.0 - reflectance, weights, theta)
    ACS = 0.25 * area * AE
    return ACS, AE


def dielectric_surface_acs(
    f: ArrayLike,
    area: float,
    eps_r: ArrayLike,
    sigma: ArrayLike,
    mu_r: ArrayLike,
    quadrature_order: int = DEFAULT_QUADRATURE_ORDER,
) -> tuple[NDArray[np.floating], NDArray[np.floating]]:
    """Average absorption cross-section of a lossy dielectric half-space.

    This is the single layer case of :func:`laminated_surface_acs`.
    """
    return laminated_surface_acs(f, area, [], eps_r, sigma, mu_r, quadrature_order)


def metal_surface_acs(
    f: ArrayLike, area: float, sigma: ArrayLike, mu_r: ArrayLike
) -> tuple[NDArray[np.floating], NDArray[np.floating]]:
    """Average absorption cross-section of a good conductor.

    Uses the surface impedance approximation, which integrates in closed
    form to AE = 16/3 · Rs/η0 with Rs = √(πfμ0μr/σ). An infinite
    conductivity gives zero absorption.

    Args:
        f: Frequencies in Hz
        area: Area of the surface in m²
        sigma: Conductivity in S/m (scalar or per frequency, may be inf)
        mu_r: Relative permeability (scalar or per frequency)

    Returns:
        Tuple (ACS, AE)
    """
    f = np.atleast_1d(np.asarray(f, dtype=float))
    sigma = np.broadcast_to(np.asarray(sigma, dtype=float), f.shape)
    mu_r = np.broadcast_to(np.asarray(mu_r, dtype=float), f.shape)
    with np.errstate(divide="ignore"):
        Rs = np.sqrt(np.pi * f * MU0 * mu_r / sigma)
    AE = 16.0 / 3.0 * Rs / ETA0
    ACS = 0.25 * area * AE
    return ACS, AE


def lucent_sheet_acs(
    f: ArrayLike,
    area: float,
    thicknesses: ArrayLike,
    eps_r: ArrayLike,
    sigma: ArrayLike,
    mu_r: ArrayLike,
    quadrature_order: int = DEFAULT_QUADRATURE_ORDER,
) -> tuple[NDArray[np.floating], NDArray[np.floating]]:
    """Average absorption of a free-standing layered sheet illuminated on both sides.

    ACS = A/4 · (1 - RE₁ - TE) + A/4 · (1 - RE₂ - TE)

    where RE₁, RE₂ are the diffuse reflection efficiencies from each side
    and TE the diffuse transmission efficiency.

    Args:
        f: Frequencies in Hz
        area: Area of one face of the sheet in m²
        thicknesses: Thickness of every layer in m
        eps_r: Relative permittivity of each layer
        sigma: Conductivity of each layer in S/m
        mu_r: Relative permeability of each layer
        quadrature_order: Number of angular quadrature nodes

    Returns:
        Tuple (ACS, AE); AE is relative to the area of both faces
    """
    f = np.atleast_1d(np.asarray(f, dtype=float))
    thicknesses = np.atleast_1d(np.asarray(thicknesses, dtype=float)).ravel()
    eps, mu = _material_stack(f, len(thicknesses), eps_r, sigma, mu_r)
    theta, weights = angle_quadrature(quadrature_order)
    stack = _stack_sparams(f, thicknesses, eps, mu, theta)

    def efficiency(index: int) -> NDArray:
        power = 0.5 * (np.abs(stack["TE"][index]) ** 2 + np.abs(stack["TM"][index]) ** 2)
        return diffuse_average(power, weights, theta)

    RE1, TE, RE2 = efficiency(0), efficiency(1), efficiency(2)
    G = 0.25 * area
    ACS = G * (1.0 - RE1 - TE) + G * (1.0 - RE2 - TE)
    AE = ACS / (2.0 * G)
    return ACS, AE
