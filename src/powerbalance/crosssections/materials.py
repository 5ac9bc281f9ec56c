"""Material parameter handling shared by the cross-section models.

Material parameters (relative permittivity, conductivity, relative
permeability) are accepted as scalars, per-frequency vectors, or for
layered bodies as 2-D arrays of shape (1 or n_freq, n_layers). They are
expanded here to full (n_freq, n_layers) arrays.
"""

from __future__ import annotations

import numpy as np
from numpy.typing import ArrayLike, NDArray

from ..constants import EPS0
from ..errors import ConfigurationError


def expand_material_array(
    value: ArrayLike, n_freq: int, n_layers: int, name: str, dtype=float
) -> NDArray:
    """Expand a material parameter to shape (n_freq, n_layers).

    Args:
        value: Scalar, vector or 2-D array
        n_freq: Number of model frequencies
        n_layers: Number of material layers
        name: Parameter name used in error messages
        dtype: Output dtype (complex for permittivities)

    Returns:
        Array of shape (n_freq, n_layers)

    Raises:
        ConfigurationError: If the array cannot be broadcast
    """
    arr = np.asarray(value, dtype=dtype)
    if arr.ndim == 0:
        arr = np.full((1, n_layers), arr, dtype=dtype)
    elif arr.ndim == 1:
        # A vector runs along frequency for single layer bodies and along
        # the layers for frequency independent layered bodies.
        if n_layers == 1:
            arr = arr.reshape(-1, 1)
        else:
            arr = arr.reshape(1, -1)
    elif arr.ndim != 2:
        raise ConfigurationError(f"{name} must be at most two dimensional")

    if arr.shape[1] != n_layers:
        raise ConfigurationError(
            f"{name} must have number of columns equal to number of layers ({n_layers}), "
            f"got {arr.shape[1]}"
        )
    if arr.shape[0] not in (1, n_freq):
        raise ConfigurationError(
            f"{name} must have 1 or {n_freq} rows along the frequency axis, got {arr.shape[0]}"
        )
    return np.broadcast_to(arr, (n_freq, n_layers)).copy()


def complex_permittivity(
    f: NDArray[np.floating], eps_r: NDArray, sigma: NDArray[np.floating]
) -> NDArray[np.complexfloating]:
    """Complex relative permittivity for an exp(jωt) time convention.

    εc = εr - jσ/(ωε0)

    Args:
        f: Frequencies in Hz, shape (n_freq,)
        eps_r: Relative permittivity, shape (n_freq, n_layers), may be complex
        sigma: Conductivity in S/m, shape (n_freq, n_layers)

    Returns:
        Complex relative permittivity, shape (n_freq, n_layers)
    """
    omega = 2.0 * np.pi * np.asarray(f)[:, np.newaxis]
    return eps_r - 1j * sigma / (omega * EPS0)
