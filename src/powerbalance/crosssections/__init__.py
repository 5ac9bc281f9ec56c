"""Closed-form cross-section models for cavities, absorbers and apertures.

Every model is a pure function of the frequency grid, the geometry and the
material parameters, returning a (cross-section, efficiency) pair aligned
to the frequency grid.

Models:
    - generic_cavity_wall_acs: Metal cavity walls
    - metal_surface_acs: Good conductor surface
    - dielectric_surface_acs: Lossy dielectric half-space
    - laminated_surface_acs: Layered surface on a half-space
    - lucent_sheet_acs: Free-standing layered sheet
    - sphere_acs: Homogeneous sphere (Mie series)
    - laminated_sphere_acs: Layered sphere (external Mie solver)
    - aperture_tcs: Small-to-large aperture transmission
"""

from .apertures import aperture_tcs, circular_polarisabilities, square_polarisabilities
from .cavities import generic_cavity_wall_acs
from .materials import complex_permittivity, expand_material_array
from .spheres import laminated_sphere_acs, mie_efficiencies, sphere_acs
from .surfaces import (
    dielectric_surface_acs,
    laminated_surface_acs,
    lucent_sheet_acs,
    metal_surface_acs,
)

__all__ = [
    "aperture_tcs",
    "circular_polarisabilities",
    "square_polarisabilities",
    "generic_cavity_wall_acs",
    "complex_permittivity",
    "expand_material_array",
    "laminated_sphere_acs",
    "mie_efficiencies",
    "sphere_acs",
    "dielectric_surface_acs",
    "laminated_surface_acs",
    "lucent_sheet_acs",
    "metal_surface_acs",
]
