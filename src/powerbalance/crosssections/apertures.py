"""Transmission cross-sections of apertures in a diffuse field.

An electrically small aperture in a perfectly conducting screen couples
through its electric and magnetic polarisabilities; its average
transmission cross-section (TCS) grows as k⁴. An electrically large
aperture transmits a quarter of its area. The two limits are joined by

    TCS = TCS_l · TCS_h / (TCS_l + TCS_h)

with

    TCS_l = 4k⁴/(9π) · (α_ezz² + α_mxx² + α_myy²)
    TCS_h = A / 4

For a circular aperture of radius a (α_m = 4a³/3, α_e = 2a³/3) the low
frequency limit reduces to 16k⁴a⁶/(9π).

References:
    - D. A. Hill et al., "Aperture excitation of electrically large, lossy
      cavities", IEEE Trans. EMC 36(3) (1994)
"""

from __future__ import annotations

import numpy as np
from numpy.typing import ArrayLike, NDArray

from ..constants import C0


def circular_polarisabilities(radius: float) -> tuple[float, float, float, float]:
    """Area and polarisabilities of a circular aperture.

    Args:
        radius: Aperture radius in m

    Returns:
        Tuple (area, alpha_mxx, alpha_myy, alpha_ezz)
    """
    area = np.pi * radius**2
    alpha_m = 4.0 * radius**3 / 3.0
    alpha_e = 2.0 * radius**3 / 3.0
    return area, alpha_m, alpha_m, alpha_e


def square_polarisabilities(side: float) -> tuple[float, float, float, float]:
    """Area and polarisabilities of a square aperture.

    Args:
        side: Side length in m

    Returns:
        Tuple (area, alpha_mxx, alpha_myy, alpha_ezz)
    """
    area = side**2
    alpha_m = 0.2590 * side**3
    alpha_e = 0.1296 * side**3
    return area, alpha_m, alpha_m, alpha_e


def aperture_tcs(
    f: ArrayLike, area: float, alpha_mxx: float, alpha_myy: float, alpha_ezz: float
) -> tuple[NDArray[np.floating], NDArray[np.floating]]:
    """Average transmission cross-section of a single aperture.

    Args:
        f: Frequencies in Hz
        area: Aperture area in m²
        alpha_mxx, alpha_myy: Magnetic polarisabilities in m³
        alpha_ezz: Electric polarisability in m³

    Returns:
        Tuple (TCS, TE)
    """
    f = np.atleast_1d(np.asarray(f, dtype=float))
    k = 2.0 * np.pi * f / C0
    tcs_low = 4.0 * k**4 / (9.0 * np.pi) * (alpha_ezz**2 + alpha_mxx**2 + alpha_myy**2)
    tcs_high = 0.25 * area
    TCS = tcs_low * tcs_high / (tcs_low + tcs_high)
    TE = 4.0 * TCS / area
    return TCS, TE
