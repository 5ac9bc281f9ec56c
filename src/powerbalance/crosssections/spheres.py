"""Absorption of spheres in a diffuse field.

For a sphere the absorption cross-section does not depend on the angle of
incidence, so the diffuse field average equals the plane-wave value
ACS = πa²·Qabs, and the absorption efficiency relative to A/4 with
A = 4πa² is simply AE = Qabs.

Homogeneous spheres are solved here with the Bohren-Huffman formulation of
the Mie series (logarithmic derivative by downward recurrence). Layered
spheres are delegated to an external multilayer Mie program, invoked once
per frequency.

Both Mie codes use an exp(-iωt) time convention, so refractive indices are
passed as n + iκ with κ >= 0.

References:
    - C. F. Bohren and D. R. Huffman, "Absorption and Scattering of Light
      by Small Particles", Wiley (1983)
    - O. Peña and U. Pal, "Scattering of electromagnetic radiation by a
      multilayered sphere", Comput. Phys. Commun. 180 (2009)
"""

from __future__ import annotations

import logging
import shutil
import subprocess

import numpy as np
from numpy.typing import ArrayLike, NDArray

from ..constants import C0, EPS0
from ..errors import DataError
from .materials import expand_material_array

logger = logging.getLogger(__name__)


def refractive_index(
    f: NDArray[np.floating], eps_r: NDArray, sigma: NDArray, mu_r: NDArray
) -> NDArray[np.complexfloating]:
    """Complex refractive index with non-negative imaginary part.

    Args:
        f: Frequencies in Hz, shape (n_freq,)
        eps_r, sigma, mu_r: Material arrays of shape (n_freq, n_layers)

    Returns:
        Refractive index n + iκ, shape (n_freq, n_layers)
    """
    omega = 2.0 * np.pi * np.asarray(f)[:, np.newaxis]
    m = np.sqrt((eps_r + sigma / (1j * omega * EPS0)) * mu_r)
    return np.real(m) + 1j * np.abs(np.imag(m))


def mie_efficiencies(x: float, m: complex, mu_r: complex = 1.0) -> tuple[float, float, float]:
    """Mie extinction, scattering and absorption efficiencies of a sphere.

    Args:
        x: Size parameter k·a of the sphere in the surrounding medium
        m: Relative refractive index (imaginary part >= 0)
        mu_r: Relative permeability of the sphere

    Returns:
        Tuple (Qext, Qsca, Qabs)
    """
    if x <= 0:
        raise ValueError("size parameter must be positive")

    n_stop = int(np.ceil(x + 4.0 * x ** (1.0 / 3.0) + 2.0))
    mx = m * x
    n_mx = int(max(n_stop, abs(mx))) + 16

    # Logarithmic derivative D_n(mx) by downward recurrence.
    D = np.zeros(n_mx + 1, dtype=complex)
    for n in range(n_mx, 0, -1):
        D[n - 1] = n / mx - 1.0 / (D[n] + n / mx)

    # Riccati-Bessel functions ψ_n(x), χ_n(x) by upward recurrence.
    psi_prev, psi = np.cos(x), np.sin(x)
    chi_prev, chi = -np.sin(x), np.cos(x)
    xi_prev = psi_prev - 1j * chi_prev
    xi = psi - 1j * chi

    q_ext = 0.0
    q_sca = 0.0
    for n in range(1, n_stop + 1):
        psi_prev, psi = psi, (2.0 * n - 1.0) / x * psi - psi_prev
        chi_prev, chi = chi, (2.0 * n - 1.0) / x * chi - chi_prev
        xi_prev, xi = xi, psi - 1j * chi

        da = mu_r * D[n] / m + n / x
        db = m * D[n] / mu_r + n / x
        a_n = (da * psi - psi_prev) / (da * xi - xi_prev)
        b_n = (db * psi - psi_prev) / (db * xi - xi_prev)

        q_ext += (2.0 * n + 1.0) * np.real(a_n + b_n)
        q_sca += (2.0 * n + 1.0) * (abs(a_n) ** 2 + abs(b_n) ** 2)

    q_ext *= 2.0 / x**2
    q_sca *= 2.0 / x**2
    return float(q_ext), float(q_sca), float(q_ext - q_sca)


def sphere_acs(
    f: ArrayLike, radius: float, eps_r: ArrayLike, sigma: ArrayLike, mu_r: ArrayLike
) -> tuple[NDArray[np.floating], NDArray[np.floating]]:
    """Average absorption cross-section of a homogeneous sphere.

    Args:
        f: Frequencies in Hz
        radius: Sphere radius in m
        eps_r: Relative permittivity (scalar or per frequency)
        sigma: Conductivity in S/m (scalar or per frequency)
        mu_r: Relative permeability (scalar or per frequency)

    Returns:
        Tuple (ACS, AE)
    """
    f = np.atleast_1d(np.asarray(f, dtype=float))
    n_freq = len(f)
    eps_r = expand_material_array(eps_r, n_freq, 1, "eps_r", dtype=complex)
    sigma = expand_material_array(sigma, n_freq, 1, "sigma")
    mu_r = expand_material_array(mu_r, n_freq, 1, "mu_r", dtype=complex)
    m = refractive_index(f, eps_r, sigma, mu_r)[:, 0]

    x = 2.0 * np.pi * f * radius / C0
    AE = np.array([mie_efficiencies(x[i], m[i], mu_r[i, 0])[2] for i in range(n_freq)])
    ACS = np.pi * radius**2 * AE
    return ACS, AE


def _run_mie_solver(executable: str, args: list[str], timeout: float) -> str:
    try:
        completed = subprocess.run(
            [executable, *args],
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except FileNotFoundError as e:
        raise DataError(
            f"External Mie solver '{executable}' not found - is it installed and in the path?"
        ) from e
    except subprocess.TimeoutExpired as e:
        raise DataError(f"External Mie solver '{executable}' timed out after {timeout} s") from e

    if completed.returncode != 0:
        raise DataError(
            f"External Mie solver '{executable}' failed with exit status "
            f"{completed.returncode}: {completed.stderr.strip()}"
        )
    return completed.stdout


def parse_mie_response(output: str) -> float:
    """Extract the absorption efficiency from the external solver output.

    The solver prints the efficiencies as whitespace or comma separated
    numbers (Qext, Qsca, Qabs, ...); the third is the absorption efficiency.

    Raises:
        DataError: If the response does not contain a finite third value
    """
    fields = output.replace(",", " ").split()
    numbers = []
    for token in fields:
        try:
            numbers.append(float(token))
        except ValueError:
            continue
    if len(numbers) < 3 or not np.isfinite(numbers[2]):
        raise DataError(f"Malformed response from external Mie solver: {output.strip()!r}")
    return numbers[2]


def laminated_sphere_acs(
    f: ArrayLike,
    radii: ArrayLike,
    eps_r: ArrayLike,
    sigma: ArrayLike,
    mu_r: ArrayLike,
    executable: str = "scattnlay",
    timeout: float = 60.0,
) -> tuple[NDArray[np.floating], NDArray[np.floating]]:
    """Average absorption cross-section of a multilayer sphere.

    Args:
        f: Frequencies in Hz
        radii: Layer radii in m ordered from the outer surface inwards
        eps_r: Relative permittivity, (1 or n_freq, n_layers)
        sigma: Conductivity in S/m, (1 or n_freq, n_layers)
        mu_r: Relative permeability, (1 or n_freq, n_layers)
        executable: External multilayer Mie program
        timeout: Seconds allowed per call

    Returns:
        Tuple (ACS, AE)

    Raises:
        DataError: If the external program is missing, fails, or returns a
            malformed response
    """
    f = np.atleast_1d(np.asarray(f, dtype=float))
    radii = np.atleast_1d(np.asarray(radii, dtype=float))
    n_freq = len(f)
    n_layers = len(radii)
    eps_r = expand_material_array(eps_r, n_freq, n_layers, "eps_r", dtype=complex)
    sigma = expand_material_array(sigma, n_freq, n_layers, "sigma")
    mu_r = expand_material_array(mu_r, n_freq, n_layers, "mu_r", dtype=complex)
    m = refractive_index(f, eps_r, sigma, mu_r)

    if shutil.which(executable) is None:
        raise DataError(
            f"External Mie solver '{executable}' not found - is it installed and in the path?"
        )

    wavelength = C0 / f
    AE = np.zeros(n_freq)
    for i in range(n_freq):
        args = ["-l", str(n_layers)]
        # The external solver expects layers from the centre outwards.
        for layer in range(n_layers - 1, -1, -1):
            x = 2.0 * np.pi * radii[layer] / wavelength[i]
            args += [f"{x:e}", f"{m[i, layer].real:e}", f"{m[i, layer].imag:e}"]
        output = _run_mie_solver(executable, args, timeout)
        try:
            AE[i] = parse_mie_response(output)
        except DataError as e:
            raise DataError(f"{e} (frequency index {i}, f = {f[i]:g} Hz)") from e
        logger.debug("Mie solver: f=%g Hz, Qabs=%g", f[i], AE[i])

    ACS = np.pi * radii[0] ** 2 * AE
    return ACS, AE
