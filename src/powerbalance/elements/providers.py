"""Cross-section providers for every element variant.

Each provider maps a variant and the model frequency grid to arrays
aligned with the grid. Dispatch is on the variant type, so adding a model
means adding a variant class and registering a provider for it here.
"""

from __future__ import annotations

from functools import singledispatch

import numpy as np
from numpy.typing import NDArray

from ..config import DEFAULT_SETTINGS, Settings
from ..crosssections import (
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
from ..errors import ConfigurationError, DataError
from ..io.tabular import import_and_interpolate
from .variants import (
    ConvexHomogeneousBody,
    CircularAperture,
    DielectricSurface,
    DirectACS,
    DirectAE,
    DirectSource,
    DirectTCS,
    DirectTE,
    ElementType,
    FileACS,
    FileAE,
    FileTCS,
    FileTE,
    GenericCavity,
    LaminatedSphere,
    LaminatedSurface,
    LucentSheet,
    MetalSurface,
    PolarisableAperture,
    SquareAperture,
)

CrossSection = tuple[NDArray[np.floating], NDArray[np.floating]]


def _on_grid(f: NDArray, values) -> NDArray[np.floating]:
    return np.broadcast_to(np.asarray(values, dtype=float), f.shape).copy()


def _tabulated(f: NDArray, element) -> NDArray[np.floating]:
    values = import_and_interpolate(f, element.file_name)[:, 0]
    if np.any(values < 0):
        raise DataError(f"Data file {element.file_name} contains negative values")
    return values


def _unsupported(kind: str, element: ElementType) -> ConfigurationError:
    return ConfigurationError(f"Unsupported {kind} type {type(element).__name__}")


# =============================================================================
# Cavities
# =============================================================================


@singledispatch
def cavity_wall_cross_section(cavity, f: NDArray, settings: Settings = DEFAULT_SETTINGS) -> CrossSection:
    """Wall (ACS, AE) of a cavity variant."""
    raise _unsupported("cavity", cavity)


@cavity_wall_cross_section.register
def _(cavity: GenericCavity, f, settings=DEFAULT_SETTINGS):
    return generic_cavity_wall_acs(f, cavity.area, cavity.sigma, cavity.mu_r)


# =============================================================================
# Absorbers
# =============================================================================


@singledispatch
def absorber_cross_section(absorber, f: NDArray, settings: Settings = DEFAULT_SETTINGS) -> CrossSection:
    """Single-instance (ACS, AE) of an absorber variant.

    Args:
        absorber: Absorber variant
        f: Model frequencies in Hz
        settings: Quadrature and external solver settings

    Returns:
        Tuple (ACS, AE), both aligned with ``f``

    Raises:
        DataError: If tabulated data or an external solver is unusable
    """
    raise _unsupported("absorber", absorber)


@absorber_cross_section.register
def _(absorber: DirectACS, f, settings=DEFAULT_SETTINGS):
    ACS = _on_grid(f, absorber.acs)
    return ACS, 4.0 * ACS / absorber.area


@absorber_cross_section.register
def _(absorber: DirectAE, f, settings=DEFAULT_SETTINGS):
    AE = _on_grid(f, absorber.ae)
    return 0.25 * AE * absorber.area, AE


@absorber_cross_section.register
def _(absorber: FileACS, f, settings=DEFAULT_SETTINGS):
    ACS = _tabulated(f, absorber)
    return ACS, 4.0 * ACS / absorber.area


@absorber_cross_section.register
def _(absorber: FileAE, f, settings=DEFAULT_SETTINGS):
    AE = _tabulated(f, absorber)
    return 0.25 * AE * absorber.area, AE


@absorber_cross_section.register
def _(absorber: MetalSurface, f, settings=DEFAULT_SETTINGS):
    return metal_surface_acs(f, absorber.area, absorber.sigma, absorber.mu_r)


@absorber_cross_section.register
def _(absorber: DielectricSurface, f, settings=DEFAULT_SETTINGS):
    return dielectric_surface_acs(
        f, absorber.area, absorber.eps_r, absorber.sigma, absorber.mu_r, settings.quadrature_order
    )


@absorber_cross_section.register
def _(absorber: ConvexHomogeneousBody, f, settings=DEFAULT_SETTINGS):
    # Sphere of the same surface area as the body.
    return sphere_acs(f, absorber.radius, absorber.eps_r, absorber.sigma, absorber.mu_r)


@absorber_cross_section.register
def _(absorber: LaminatedSurface, f, settings=DEFAULT_SETTINGS):
    return laminated_surface_acs(
        f,
        absorber.area,
        absorber.thicknesses,
        absorber.eps_r,
        absorber.sigma,
        absorber.mu_r,
        settings.quadrature_order,
    )


@absorber_cross_section.register
def _(absorber: LucentSheet, f, settings=DEFAULT_SETTINGS):
    return lucent_sheet_acs(
        f,
        absorber.area,
        absorber.thicknesses,
        absorber.eps_r,
        absorber.sigma,
        absorber.mu_r,
        settings.quadrature_order,
    )


@absorber_cross_section.register
def _(absorber: LaminatedSphere, f, settings=DEFAULT_SETTINGS):
    return laminated_sphere_acs(
        f,
        absorber.radii,
        absorber.eps_r,
        absorber.sigma,
        absorber.mu_r,
        executable=settings.mie_executable,
        timeout=settings.mie_timeout,
    )


@singledispatch
def absorber_area(absorber) -> float:
    """Area the absorption efficiency of a variant is referred to."""
    return float(absorber.area)


@absorber_area.register
def _(absorber: LucentSheet) -> float:
    # Both faces are illuminated.
    return 2.0 * absorber.area


# =============================================================================
# Apertures
# =============================================================================


@singledispatch
def aperture_cross_section(aperture, f: NDArray, settings: Settings = DEFAULT_SETTINGS) -> CrossSection:
    """(TCS, TE) of an aperture variant."""
    raise _unsupported("aperture", aperture)


@aperture_cross_section.register
def _(aperture: DirectTCS, f, settings=DEFAULT_SETTINGS):
    TCS = _on_grid(f, aperture.tcs)
    return TCS, 4.0 * TCS / aperture.area


@aperture_cross_section.register
def _(aperture: DirectTE, f, settings=DEFAULT_SETTINGS):
    TE = _on_grid(f, aperture.te)
    return 0.25 * TE * aperture.area, TE


@aperture_cross_section.register
def _(aperture: FileTCS, f, settings=DEFAULT_SETTINGS):
    TCS = _tabulated(f, aperture)
    return TCS, 4.0 * TCS / aperture.area


@aperture_cross_section.register
def _(aperture: FileTE, f, settings=DEFAULT_SETTINGS):
    TE = _tabulated(f, aperture)
    return 0.25 * TE * aperture.area, TE


@aperture_cross_section.register
def _(aperture: PolarisableAperture, f, settings=DEFAULT_SETTINGS):
    return aperture_tcs(f, aperture.area, aperture.alpha_mxx, aperture.alpha_myy, aperture.alpha_ezz)


@aperture_cross_section.register
def _(aperture: CircularAperture, f, settings=DEFAULT_SETTINGS):
    return aperture_tcs(f, *circular_polarisabilities(aperture.radius))


@aperture_cross_section.register
def _(aperture: SquareAperture, f, settings=DEFAULT_SETTINGS):
    return aperture_tcs(f, *square_polarisabilities(aperture.side))


@singledispatch
def aperture_area(aperture) -> float:
    """Physical area of an aperture variant."""
    return float(aperture.area)


@aperture_area.register
def _(aperture: CircularAperture) -> float:
    return circular_polarisabilities(aperture.radius)[0]


@aperture_area.register
def _(aperture: SquareAperture) -> float:
    return square_polarisabilities(aperture.side)[0]


# =============================================================================
# Sources
# =============================================================================


@singledispatch
def source_power(source, f: NDArray, settings: Settings = DEFAULT_SETTINGS) -> NDArray[np.floating]:
    """Injected power of a source variant, aligned with ``f``."""
    raise _unsupported("source", source)


@source_power.register
def _(source: DirectSource, f, settings=DEFAULT_SETTINGS):
    return _on_grid(f, source.power)
