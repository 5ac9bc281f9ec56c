"""Wall losses of cavities."""

from __future__ import annotations

import numpy as np
from numpy.typing import ArrayLike, NDArray

from .surfaces import metal_surface_acs


def generic_cavity_wall_acs(
    f: ArrayLike, area: float, sigma: ArrayLike, mu_r: ArrayLike
) -> tuple[NDArray[np.floating], NDArray[np.floating]]:
    """Wall absorption cross-section of a metal cavity of arbitrary shape.

    The walls are treated as a good conductor with the diffuse-field
    surface impedance model, equivalent to Hill's high frequency wall
    Q-factor Q = 3V / (2 μr A δ).

    Args:
        f: Frequencies in Hz
        area: Total wall area in m²
        sigma: Wall conductivity in S/m (inf for lossless walls)
        mu_r: Wall relative permeability

    Returns:
        Tuple (ACS, AE)
    """
    return metal_surface_acs(f, area, sigma, mu_r)
