"""Element type variants and their cross-section providers."""

from powerbalance.elements.providers import (
    absorber_cross_section,
    aperture_cross_section,
    cavity_wall_cross_section,
    source_power,
)
from powerbalance.elements.variants import (
    ConvexHomogeneousBody,
    CircularAperture,
    DielectricSurface,
    DirectACS,
    DirectAE,
    DirectSource,
    DirectTCS,
    DirectTE,
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
    absorber_from_parameters,
    aperture_from_parameters,
    cavity_from_parameters,
    source_from_parameters,
)

__all__ = [
    # Cavities
    "GenericCavity",
    # Absorbers
    "DirectACS",
    "DirectAE",
    "FileACS",
    "FileAE",
    "MetalSurface",
    "DielectricSurface",
    "LaminatedSurface",
    "LucentSheet",
    "LaminatedSphere",
    "ConvexHomogeneousBody",
    # Sources
    "DirectSource",
    # Apertures
    "DirectTCS",
    "DirectTE",
    "FileTCS",
    "FileTE",
    "PolarisableAperture",
    "CircularAperture",
    "SquareAperture",
    # Positional front end
    "cavity_from_parameters",
    "absorber_from_parameters",
    "source_from_parameters",
    "aperture_from_parameters",
    # Providers
    "cavity_wall_cross_section",
    "absorber_cross_section",
    "aperture_cross_section",
    "source_power",
]
