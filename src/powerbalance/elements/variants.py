"""Element type variants for cavities, absorbers, sources and apertures.

Each physical model is a frozen dataclass carrying its own validated
parameters. Frequency independent checks (signs, dimensions, layer
counts) run at construction; checks against the model frequency grid run
through :meth:`ElementType.check_frequency_axis` when the element is added
to a model. Every violation raises :class:`ConfigurationError`.

The original positional interface (a type name plus a parameter list) is
still available through :func:`absorber_from_parameters` and friends:

    >>> absorber_from_parameters("AE", [4.0, 1.0])
    DirectAE(area=4.0, ae=array([1.]))
"""

from __future__ import annotations

from dataclasses import MISSING, dataclass, fields
from pathlib import Path
from typing import ClassVar

import numpy as np
from numpy.typing import ArrayLike, NDArray

from ..errors import ConfigurationError

# =============================================================================
# Parameter validation helpers
# =============================================================================


def _scalar(
    value, name: str, *, positive: bool = False, allow_inf: bool = False
) -> float:
    arr = np.asarray(value)
    if arr.ndim != 0 or not np.isrealobj(arr):
        raise ConfigurationError(f"{name} must be a real scalar")
    x = float(arr)
    if np.isnan(x) or (np.isinf(x) and not allow_inf):
        raise ConfigurationError(f"{name} must be finite, got {x}")
    if positive and x <= 0:
        raise ConfigurationError(f"{name} must be positive, got {x}")
    if x < 0:
        raise ConfigurationError(f"{name} must be non-negative, got {x}")
    return x


def _vector(
    value,
    name: str,
    *,
    positive: bool = False,
    allow_inf: bool = False,
    upper: float | None = None,
) -> NDArray[np.floating]:
    arr = np.atleast_1d(np.asarray(value))
    if arr.ndim != 1 or arr.size == 0:
        raise ConfigurationError(f"{name} must be a non-empty scalar or vector")
    if not np.isrealobj(arr):
        raise ConfigurationError(f"{name} must be real")
    arr = arr.astype(float)
    if np.any(np.isnan(arr)) or (not allow_inf and np.any(np.isinf(arr))):
        raise ConfigurationError(f"{name} must be finite")
    if positive and np.any(arr <= 0):
        raise ConfigurationError(f"{name} must be positive")
    if np.any(arr < 0):
        raise ConfigurationError(f"{name} must be non-negative")
    if upper is not None and np.any(arr > upper):
        raise ConfigurationError(f"{name} must not exceed {upper}")
    return arr


def _material(
    value,
    name: str,
    n_layers: int,
    *,
    complex_valued: bool = False,
    positive_real: bool = False,
    nonnegative: bool = False,
    allow_inf: bool = False,
) -> NDArray:
    """Normalise a material parameter to shape (rows, n_layers)."""
    arr = np.asarray(value)
    if not complex_valued and not np.isrealobj(arr):
        raise ConfigurationError(f"{name} must be real")
    arr = arr.astype(complex if complex_valued else float)
    if arr.ndim == 0:
        arr = np.full((1, n_layers), arr)
    elif arr.ndim == 1:
        arr = arr.reshape(-1, 1) if n_layers == 1 else arr.reshape(1, -1)
    elif arr.ndim != 2:
        raise ConfigurationError(f"{name} must be at most two dimensional")
    if arr.shape[0] == 0:
        raise ConfigurationError(f"{name} must not be empty")
    if arr.shape[1] != n_layers:
        raise ConfigurationError(
            f"{name} must have number of columns equal to number of layers ({n_layers}), "
            f"got {arr.shape[1]}"
        )
    if np.any(np.isnan(arr)) or (not allow_inf and np.any(np.isinf(arr))):
        raise ConfigurationError(f"{name} must be finite")
    if positive_real and np.any(np.real(arr) <= 0):
        raise ConfigurationError(f"{name} must be positive")
    if nonnegative and np.any(np.real(arr) < 0):
        raise ConfigurationError(f"{name} must be non-negative")
    return arr


def _check_rows(arr: NDArray, name: str, n_freq: int) -> None:
    if arr.shape[0] not in (1, n_freq):
        raise ConfigurationError(
            f"{name} must be a scalar or the same size as the frequency grid "
            f"({n_freq}), got {arr.shape[0]} values"
        )


def _set(obj, name: str, value) -> None:
    object.__setattr__(obj, name, value)


# =============================================================================
# Base class
# =============================================================================


@dataclass(frozen=True, eq=False)
class ElementType:
    """Base class of all element type variants."""

    type_name: ClassVar[str] = ""

    def check_frequency_axis(self, n_freq: int) -> None:
        """Check every per-frequency parameter is length 1 or ``n_freq``.

        Raises:
            ConfigurationError: On a length mismatch
        """
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, np.ndarray) and f.name not in self._layer_geometry:
                _check_rows(value, f.name, n_freq)

    # Array parameters that describe layers rather than frequencies.
    _layer_geometry: ClassVar[tuple[str, ...]] = ()


# =============================================================================
# Cavities
# =============================================================================


@dataclass(frozen=True, eq=False)
class GenericCavity(ElementType):
    """Cavity of arbitrary shape with metal walls.

    Args:
        area: Total wall area in m²
        volume: Volume in m³ (may be inf)
        sigma: Wall conductivity in S/m (may be inf for lossless walls)
        mu_r: Wall relative permeability
    """

    type_name: ClassVar[str] = "Generic"

    area: float
    volume: float
    sigma: ArrayLike
    mu_r: ArrayLike = 1.0

    def __post_init__(self):
        _set(self, "area", _scalar(self.area, "area"))
        _set(self, "volume", _scalar(self.volume, "volume", positive=True, allow_inf=True))
        _set(self, "sigma", _vector(self.sigma, "sigma", positive=True, allow_inf=True))
        _set(self, "mu_r", _vector(self.mu_r, "mu_r", positive=True))


# =============================================================================
# Absorbers
# =============================================================================


@dataclass(frozen=True, eq=False)
class AbsorberType(ElementType):
    """Base class of absorber variants."""


@dataclass(frozen=True, eq=False)
class DirectACS(AbsorberType):
    """Absorber given directly by its average absorption cross-section."""

    type_name: ClassVar[str] = "ACS"

    area: float
    acs: ArrayLike

    def __post_init__(self):
        _set(self, "area", _scalar(self.area, "area", positive=True))
        _set(self, "acs", _vector(self.acs, "ACS"))


@dataclass(frozen=True, eq=False)
class DirectAE(AbsorberType):
    """Absorber given directly by its average absorption efficiency."""

    type_name: ClassVar[str] = "AE"

    area: float
    ae: ArrayLike

    def __post_init__(self):
        _set(self, "area", _scalar(self.area, "area", positive=True))
        _set(self, "ae", _vector(self.ae, "AE", upper=1.0))


@dataclass(frozen=True, eq=False)
class _FileTable(ElementType):
    """Element whose cross-section is tabulated in a two-column ASCII file."""

    area: float
    file_name: str | Path

    def __post_init__(self):
        _set(self, "area", _scalar(self.area, "area", positive=True))
        if not isinstance(self.file_name, (str, Path)) or not str(self.file_name):
            raise ConfigurationError("file_name must be a non-empty path")
        _set(self, "file_name", Path(self.file_name))


@dataclass(frozen=True, eq=False)
class FileACS(_FileTable, AbsorberType):
    """Absorber with ACS tabulated in a two-column ASCII file."""

    type_name: ClassVar[str] = "FileACS"


@dataclass(frozen=True, eq=False)
class FileAE(_FileTable, AbsorberType):
    """Absorber with AE tabulated in a two-column ASCII file."""

    type_name: ClassVar[str] = "FileAE"


@dataclass(frozen=True, eq=False)
class MetalSurface(AbsorberType):
    """Good conductor surface."""

    type_name: ClassVar[str] = "MetalSurface"

    area: float
    sigma: ArrayLike
    mu_r: ArrayLike = 1.0

    def __post_init__(self):
        _set(self, "area", _scalar(self.area, "area"))
        _set(self, "sigma", _vector(self.sigma, "sigma", positive=True, allow_inf=True))
        _set(self, "mu_r", _vector(self.mu_r, "mu_r", positive=True))


@dataclass(frozen=True, eq=False)
class DielectricSurface(AbsorberType):
    """Lossy dielectric half-space."""

    type_name: ClassVar[str] = "DielSurface"

    area: float
    eps_r: ArrayLike
    sigma: ArrayLike
    mu_r: ArrayLike = 1.0

    def __post_init__(self):
        _set(self, "area", _scalar(self.area, "area"))
        _set(self, "eps_r", _material(self.eps_r, "eps_r", 1, complex_valued=True, positive_real=True))
        _set(self, "sigma", _material(self.sigma, "sigma", 1, nonnegative=True))
        _set(self, "mu_r", _material(self.mu_r, "mu_r", 1, positive_real=True))


@dataclass(frozen=True, eq=False)
class ConvexHomogeneousBody(DielectricSurface):
    """Convex homogeneous lossy body, modelled as a sphere of equal surface area."""

    type_name: ClassVar[str] = "ConvexHomoBody"

    @property
    def radius(self) -> float:
        return float(np.sqrt(self.area / (4.0 * np.pi)))


@dataclass(frozen=True, eq=False)
class LaminatedSurface(AbsorberType):
    """Layered surface on a semi-infinite backing.

    ``thicknesses`` lists the finite layers; the material arrays have one
    more column than there are thicknesses, the last being the backing.
    """

    type_name: ClassVar[str] = "LaminatedSurface"
    _layer_geometry: ClassVar[tuple[str, ...]] = ("thicknesses",)

    area: float
    thicknesses: ArrayLike
    eps_r: ArrayLike
    sigma: ArrayLike
    mu_r: ArrayLike = 1.0

    @property
    def n_layers(self) -> int:
        return len(self.thicknesses) + 1

    def __post_init__(self):
        _set(self, "area", _scalar(self.area, "area"))
        thicknesses = np.asarray(self.thicknesses, dtype=float).ravel()
        if np.any(~np.isfinite(thicknesses)) or np.any(thicknesses <= 0):
            raise ConfigurationError("thicknesses must be positive and finite")
        _set(self, "thicknesses", thicknesses)
        n = self.n_layers
        _set(self, "eps_r", _material(self.eps_r, "eps_r", n, complex_valued=True, positive_real=True))
        _set(self, "sigma", _material(self.sigma, "sigma", n, nonnegative=True))
        _set(self, "mu_r", _material(self.mu_r, "mu_r", n, positive_real=True))


@dataclass(frozen=True, eq=False)
class LucentSheet(LaminatedSurface):
    """Free-standing layered sheet illuminated from both sides."""

    type_name: ClassVar[str] = "LucentSheet"

    @property
    def n_layers(self) -> int:
        return len(self.thicknesses)

    def __post_init__(self):
        if np.asarray(self.thicknesses).size == 0:
            raise ConfigurationError("a lucent sheet needs at least one layer")
        super().__post_init__()


@dataclass(frozen=True, eq=False)
class LaminatedSphere(AbsorberType):
    """Multilayer sphere; radii run from the outer surface inwards."""

    type_name: ClassVar[str] = "LaminatedSphere"
    _layer_geometry: ClassVar[tuple[str, ...]] = ("radii",)

    radii: ArrayLike
    eps_r: ArrayLike
    sigma: ArrayLike
    mu_r: ArrayLike = 1.0

    def __post_init__(self):
        radii = _vector(self.radii, "radii", positive=True)
        if np.any(np.diff(radii) >= 0):
            raise ConfigurationError("radii must be strictly decreasing from the outer layer")
        _set(self, "radii", radii)
        n = len(radii)
        _set(self, "eps_r", _material(self.eps_r, "eps_r", n, complex_valued=True, positive_real=True))
        _set(self, "sigma", _material(self.sigma, "sigma", n, nonnegative=True))
        _set(self, "mu_r", _material(self.mu_r, "mu_r", n, positive_real=True))

    @property
    def area(self) -> float:
        return float(4.0 * np.pi * self.radii[0] ** 2)


# =============================================================================
# Sources
# =============================================================================


@dataclass(frozen=True, eq=False)
class SourceType(ElementType):
    """Base class of source variants."""


@dataclass(frozen=True, eq=False)
class DirectSource(SourceType):
    """Source injecting a known power, constant or per frequency."""

    type_name: ClassVar[str] = "Direct"

    power: ArrayLike

    def __post_init__(self):
        _set(self, "power", _vector(self.power, "power"))


# =============================================================================
# Apertures
# =============================================================================


@dataclass(frozen=True, eq=False)
class ApertureType(ElementType):
    """Base class of aperture variants."""


@dataclass(frozen=True, eq=False)
class DirectTCS(ApertureType):
    """Aperture given directly by its average transmission cross-section."""

    type_name: ClassVar[str] = "TCS"

    area: float
    tcs: ArrayLike

    def __post_init__(self):
        _set(self, "area", _scalar(self.area, "area", positive=True))
        _set(self, "tcs", _vector(self.tcs, "TCS"))


@dataclass(frozen=True, eq=False)
class DirectTE(ApertureType):
    """Aperture given directly by its average transmission efficiency."""

    type_name: ClassVar[str] = "TE"

    area: float
    te: ArrayLike

    def __post_init__(self):
        _set(self, "area", _scalar(self.area, "area", positive=True))
        _set(self, "te", _vector(self.te, "TE", upper=1.0))


@dataclass(frozen=True, eq=False)
class FileTCS(_FileTable, ApertureType):
    """Aperture with TCS tabulated in a two-column ASCII file."""

    type_name: ClassVar[str] = "FileTCS"


@dataclass(frozen=True, eq=False)
class FileTE(_FileTable, ApertureType):
    """Aperture with TE tabulated in a two-column ASCII file."""

    type_name: ClassVar[str] = "FileTE"


@dataclass(frozen=True, eq=False)
class PolarisableAperture(ApertureType):
    """Aperture described by its area and polarisabilities."""

    type_name: ClassVar[str] = "Polarisable"

    area: float
    alpha_mxx: float
    alpha_myy: float
    alpha_ezz: float

    def __post_init__(self):
        _set(self, "area", _scalar(self.area, "area", positive=True))
        for name in ("alpha_mxx", "alpha_myy", "alpha_ezz"):
            _set(self, name, _scalar(getattr(self, name), name))


@dataclass(frozen=True, eq=False)
class CircularAperture(ApertureType):
    """Circular aperture in a thin conducting screen."""

    type_name: ClassVar[str] = "Circular"

    radius: float

    def __post_init__(self):
        _set(self, "radius", _scalar(self.radius, "radius", positive=True))


@dataclass(frozen=True, eq=False)
class SquareAperture(ApertureType):
    """Square aperture in a thin conducting screen."""

    type_name: ClassVar[str] = "Square"

    side: float

    def __post_init__(self):
        _set(self, "side", _scalar(self.side, "side", positive=True))


# =============================================================================
# Positional front end
# =============================================================================

CAVITY_TYPES: dict[str, type[ElementType]] = {c.type_name: c for c in (GenericCavity,)}

ABSORBER_TYPES: dict[str, type[AbsorberType]] = {
    c.type_name: c
    for c in (
        DirectACS,
        DirectAE,
        FileACS,
        FileAE,
        MetalSurface,
        DielectricSurface,
        LaminatedSurface,
        LucentSheet,
        LaminatedSphere,
        ConvexHomogeneousBody,
    )
}

SOURCE_TYPES: dict[str, type[SourceType]] = {c.type_name: c for c in (DirectSource,)}

APERTURE_TYPES: dict[str, type[ApertureType]] = {
    c.type_name: c
    for c in (
        DirectTCS,
        DirectTE,
        FileTCS,
        FileTE,
        PolarisableAperture,
        CircularAperture,
        SquareAperture,
    )
}


def _from_parameters(registry: dict, kind: str, type_name: str, parameters) -> ElementType:
    if type_name not in registry:
        raise ConfigurationError(
            f"Unknown {kind} type '{type_name}'. Supported types: {', '.join(registry)}"
        )
    cls = registry[type_name]
    if parameters is None:
        parameters = ()
    if isinstance(parameters, (str, bytes)) or not hasattr(parameters, "__len__"):
        raise ConfigurationError(f"{kind} parameters must be a sequence")
    names = [f.name for f in fields(cls)]
    required = [
        f.name
        for f in fields(cls)
        if f.default is MISSING and f.default_factory is MISSING
    ]
    if not len(required) <= len(parameters) <= len(names):
        raise ConfigurationError(
            f"{type_name} {kind} type requires {len(names)} parameters "
            f"({', '.join(names)}), got {len(parameters)}"
        )
    try:
        return cls(*parameters)
    except (TypeError, ValueError) as e:
        if isinstance(e, ConfigurationError):
            raise
        raise ConfigurationError(f"Invalid parameters for {type_name} {kind}: {e}") from e


def cavity_from_parameters(type_name: str, parameters) -> ElementType:
    """Build a cavity variant from a type name and positional parameters."""
    return _from_parameters(CAVITY_TYPES, "cavity", type_name, parameters)


def absorber_from_parameters(type_name: str, parameters) -> AbsorberType:
    """Build an absorber variant from a type name and positional parameters."""
    return _from_parameters(ABSORBER_TYPES, "absorber", type_name, parameters)


def source_from_parameters(type_name: str, parameters) -> SourceType:
    """Build a source variant from a type name and positional parameters."""
    return _from_parameters(SOURCE_TYPES, "source", type_name, parameters)


def aperture_from_parameters(type_name: str, parameters) -> ApertureType:
    """Build an aperture variant from a type name and positional parameters."""
    return _from_parameters(APERTURE_TYPES, "aperture", type_name, parameters)
