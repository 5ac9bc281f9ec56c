"""
powerbalance - Power balance models of coupled reverberant cavities.

Predicts the steady-state distribution of electromagnetic power among
cavities, wall losses, absorbers and apertures as a function of frequency.

Main exports:
- PowerBalanceModel: Incremental model builder and solver
- PowerBalanceResult: Immutable snapshot of a solved model
- Element variants: GenericCavity, DirectAE, MetalSurface, CircularAperture, ...
- EnergyParameters: Conversions between cross-section, Q, decay rate and time constant
- HDF5ResultWriter, HDF5ResultReader: Results persistence
- Settings: Numerical and environment settings
"""

from powerbalance._version import __version__
from powerbalance.config import Settings
from powerbalance.constants import C0, EXT, REF
from powerbalance.core import (
    EdgeRecord,
    ElementKind,
    EnergyParameters,
    ModelState,
    PowerBalanceModel,
    PowerBalanceResult,
    energy_params_from_ccs,
    energy_params_from_decay_rate,
    energy_params_from_q,
    energy_params_from_time_constant,
)
from powerbalance.elements import (
    CircularAperture,
    ConvexHomogeneousBody,
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
)
from powerbalance.errors import (
    ConfigurationError,
    DataError,
    PowerBalanceError,
    QueryError,
    SolverError,
)
from powerbalance.io import HDF5ResultReader, HDF5ResultWriter, save_result

# Submodules for more specific imports
from . import core, crosssections, elements, io

__all__ = [
    # Model
    "PowerBalanceModel",
    "PowerBalanceResult",
    "ModelState",
    "ElementKind",
    "EdgeRecord",
    "Settings",
    # Energy parameters
    "EnergyParameters",
    "energy_params_from_ccs",
    "energy_params_from_q",
    "energy_params_from_decay_rate",
    "energy_params_from_time_constant",
    # Element variants
    "GenericCavity",
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
    "DirectSource",
    "DirectTCS",
    "DirectTE",
    "FileTCS",
    "FileTE",
    "PolarisableAperture",
    "CircularAperture",
    "SquareAperture",
    # Errors
    "PowerBalanceError",
    "ConfigurationError",
    "DataError",
    "SolverError",
    "QueryError",
    # I/O
    "HDF5ResultWriter",
    "HDF5ResultReader",
    "save_result",
    # Constants
    "C0",
    "EXT",
    "REF",
    # Submodules
    "core",
    "crosssections",
    "elements",
    "io",
    "__version__",
]
