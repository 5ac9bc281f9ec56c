"""Incremental construction and solution of power balance models.

A model is created on a fixed frequency grid and grown one element at a
time. Every builder call validates its arguments, evaluates the element's
cross-sections on the grid and derives its energy loss parameters before
anything is inserted, so a failing call leaves the model untouched.

Example:
    >>> from powerbalance import PowerBalanceModel
    >>> model = (
    ...     PowerBalanceModel([1e9, 2e9, 3e9], "Box")
    ...     .add_cavity("C1", "Generic", [1.0, 1.0, float("inf"), 1.0])
    ...     .add_absorber("AB1", "C1", 1, "AE", [4.0, 1.0])
    ...     .add_source("S1", "Direct", "C1", [1.0])
    ... )
    >>> result = model.solve()
    >>> values, units = result.get_output("Cavity", "C1", "powerDensity")
"""

from __future__ import annotations

import keyword
import logging
import warnings
from enum import Enum
from typing import Callable, Sequence

import numpy as np
from numpy.typing import ArrayLike, NDArray

from ..config import Settings
from ..constants import EXT, REF
from ..elements.providers import (
    absorber_area,
    absorber_cross_section,
    aperture_area,
    aperture_cross_section,
    cavity_wall_cross_section,
    source_power,
)
from ..elements.variants import (
    CAVITY_TYPES,
    AbsorberType,
    ApertureType,
    ElementType,
    SourceType,
    absorber_from_parameters,
    aperture_from_parameters,
    cavity_from_parameters,
    source_from_parameters,
)
from ..errors import ConfigurationError, QueryError
from .assembler import assemble_network
from .energy import EnergyParameters
from .graph import (
    Absorber,
    Aperture,
    Cavity,
    EdgeRecord,
    ElementKind,
    ModelGraph,
    Source,
)
from .results import PowerBalanceResult
from .solver import solve_network

logger = logging.getLogger(__name__)


class ModelState(Enum):
    """Lifecycle of a model."""

    UNINITIALIZED = "uninitialized"
    BUILDING = "building"
    SOLVED = "solved"


def _readonly(values: ArrayLike) -> NDArray[np.floating]:
    arr = np.array(values, dtype=float)
    arr.flags.writeable = False
    return arr


def _is_identifier(tag) -> bool:
    return isinstance(tag, str) and tag.isidentifier() and not keyword.iskeyword(tag)


def _energy(f: NDArray, ccs: NDArray, volume: float) -> EnergyParameters:
    params = EnergyParameters.from_ccs(f, ccs, volume)
    for arr in (params.ccs, params.Q, params.decay_rate, params.time_const):
        arr.flags.writeable = False
    return params


class PowerBalanceModel:
    """Power balance model of coupled reverberant cavities.

    Args:
        frequencies: Strictly positive frequencies in Hz
        name: Model name (a valid identifier)
        settings: Numerical and environment settings (default:
            Settings.from_env(), i.e. defaults with POWERBALANCE_* overrides)

    Attributes:
        frequencies: Read-only frequency grid
        name: Model name
        settings: Settings used for cross-section evaluation and solving
        state: Current ModelState
    """

    def __init__(
        self,
        frequencies: ArrayLike,
        name: str = "model",
        settings: Settings | None = None,
    ):
        self._state = ModelState.UNINITIALIZED

        f = np.atleast_1d(np.asarray(frequencies))
        if f.ndim != 1 or f.size == 0:
            raise ConfigurationError("frequencies must be a non-empty vector")
        if not np.isrealobj(f):
            raise ConfigurationError("frequencies must be real")
        f = f.astype(float)
        if not np.all(np.isfinite(f)) or np.any(f <= 0):
            raise ConfigurationError("frequencies must be finite and strictly positive")
        if not _is_identifier(name):
            raise ConfigurationError(f"Model name must be a valid identifier, got {name!r}")

        self.frequencies = _readonly(f)
        self.name = name
        self.settings = settings if settings is not None else Settings.from_env()
        self._graph = ModelGraph()
        self._result: PowerBalanceResult | None = None
        self._state = ModelState.BUILDING
        logger.info("Created model %s with %d frequencies", name, len(f))

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def state(self) -> ModelState:
        return self._state

    @property
    def num_frequencies(self) -> int:
        return len(self.frequencies)

    @property
    def num_cavities(self) -> int:
        return self._graph.num_cavities

    @property
    def num_absorbers(self) -> int:
        return self._graph.num_absorbers

    @property
    def num_sources(self) -> int:
        return self._graph.num_sources

    @property
    def num_apertures(self) -> int:
        return self._graph.num_apertures

    @property
    def cavity_tags(self) -> list[str]:
        return self._graph.cavity_tags

    @property
    def edges(self) -> list[EdgeRecord]:
        """Edge ledger: (cavity_tag, peer_tag, element_tag, kind) records."""
        return self._graph.edges

    @property
    def result(self) -> PowerBalanceResult:
        """Result of the latest successful solve.

        Raises:
            QueryError: If the model is not in the solved state
        """
        if self._state is not ModelState.SOLVED or self._result is None:
            raise QueryError(
                f"Model {self.name} has no valid solution; call solve() after the last change"
            )
        return self._result

    def __repr__(self) -> str:
        return (
            f"PowerBalanceModel(name={self.name!r}, frequencies={self.num_frequencies}, "
            f"cavities={self.num_cavities}, absorbers={self.num_absorbers}, "
            f"sources={self.num_sources}, apertures={self.num_apertures}, "
            f"state={self._state.value})"
        )

    # -------------------------------------------------------------------------
    # Validation helpers
    # -------------------------------------------------------------------------

    def _check_new_tag(self, tag: str, kind: ElementKind) -> None:
        if not _is_identifier(tag):
            raise ConfigurationError(f"{kind.value} tag must be a valid identifier, got {tag!r}")
        if tag in (EXT, REF):
            raise ConfigurationError(f"{kind.value} tag '{tag}' is reserved")
        if self._graph.tag_in_use(tag):
            raise ConfigurationError(f"{kind.value} with tag '{tag}' clashes with an existing element")

    def _check_cavity(self, cavity_tag: str, kind: ElementKind, tag: str) -> None:
        if not _is_identifier(cavity_tag):
            raise ConfigurationError(f"Cavity tag must be a valid identifier, got {cavity_tag!r}")
        if cavity_tag == EXT:
            raise ConfigurationError(f"{kind.value.lower()} '{tag}' cannot be placed in the EXT cavity")
        if cavity_tag not in self._graph.handles:
            raise ConfigurationError(f"Unknown cavity with tag '{cavity_tag}'")

    def _variant(
        self,
        element_type: str | ElementType,
        parameters: Sequence | None,
        expected: tuple[type, ...],
        parse: Callable[[str, Sequence | None], ElementType],
        kind: ElementKind,
    ) -> ElementType:
        if isinstance(element_type, str):
            variant = parse(element_type, parameters)
        elif isinstance(element_type, expected):
            if parameters is not None:
                raise ConfigurationError(
                    f"parameters must be omitted when passing a {kind.value.lower()} type instance"
                )
            variant = element_type
        else:
            raise ConfigurationError(
                f"Invalid {kind.value.lower()} type {type(element_type).__name__}"
            )
        variant.check_frequency_axis(self.num_frequencies)
        return variant

    def _checked(self, values: ArrayLike, name: str, tag: str) -> NDArray[np.floating]:
        arr = np.asarray(values, dtype=float)
        if arr.shape != self.frequencies.shape:
            raise ConfigurationError(
                f"{name} of '{tag}' has shape {arr.shape}, expected {self.frequencies.shape}"
            )
        if np.any(np.isnan(arr)) or np.any(arr < 0):
            raise ConfigurationError(f"{name} of '{tag}' must be non-negative")
        return arr

    def _invalidate(self) -> None:
        self._result = None
        self._state = ModelState.BUILDING

    # -------------------------------------------------------------------------
    # Builder
    # -------------------------------------------------------------------------

    def add_cavity(
        self,
        tag: str,
        cavity_type: str | ElementType,
        parameters: Sequence | None = None,
    ) -> PowerBalanceModel:
        """Add a cavity.

        Args:
            tag: Cavity identifier
            cavity_type: Variant instance, or type name ("Generic")
            parameters: Positional parameters when ``cavity_type`` is a name

        Returns:
            The model, to allow chaining

        Raises:
            ConfigurationError: For invalid tags, types or parameters
        """
        self._check_new_tag(tag, ElementKind.CAVITY)
        variant = self._variant(
            cavity_type, parameters, tuple(CAVITY_TYPES.values()), cavity_from_parameters, ElementKind.CAVITY
        )
        f = self.frequencies
        acs, ae = cavity_wall_cross_section(variant, f, self.settings)
        acs = self._checked(acs, "wall ACS", tag)
        cavity = Cavity(
            tag=tag,
            variant=variant,
            area=variant.area,
            volume=variant.volume,
            wall_ae=_readonly(ae),
            wall=_energy(f, acs, variant.volume),
        )

        self._graph.insert_cavity(cavity)
        self._invalidate()
        logger.debug("Added cavity %s (%s, V=%g m^3)", tag, variant.type_name, variant.volume)
        return self

    def add_absorber(
        self,
        tag: str,
        cavity_tag: str,
        multiplicity: int,
        absorber_type: str | AbsorberType,
        parameters: Sequence | None = None,
    ) -> PowerBalanceModel:
        """Add ``multiplicity`` identical absorbers to a cavity.

        The absorption cross-section and the derived loss parameters scale
        with the multiplicity; the absorption efficiency does not.

        Args:
            tag: Absorber identifier
            cavity_tag: Owning cavity (not EXT)
            multiplicity: Number of identical absorbers (integer >= 1)
            absorber_type: Variant instance, or type name such as "AE"
            parameters: Positional parameters when ``absorber_type`` is a name

        Returns:
            The model, to allow chaining

        Raises:
            ConfigurationError: For invalid tags, cavities, multiplicity,
                types or parameters
            DataError: If tabulated data or an external solver is unusable
        """
        self._check_new_tag(tag, ElementKind.ABSORBER)
        self._check_cavity(cavity_tag, ElementKind.ABSORBER, tag)
        if (
            isinstance(multiplicity, bool)
            or not isinstance(multiplicity, (int, np.integer, float, np.floating))
            or not float(multiplicity).is_integer()
            or multiplicity < 1
        ):
            raise ConfigurationError(f"multiplicity must be a positive integer, got {multiplicity!r}")
        multiplicity = int(multiplicity)
        variant = self._variant(
            absorber_type, parameters, (AbsorberType,), absorber_from_parameters, ElementKind.ABSORBER
        )

        f = self.frequencies
        acs, ae = absorber_cross_section(variant, f, self.settings)
        acs = self._checked(acs, "ACS", tag)
        ae = self._checked(ae, "AE", tag)
        volume = self._graph.cavity(cavity_tag).volume
        absorber = Absorber(
            tag=tag,
            cavity_tag=cavity_tag,
            multiplicity=multiplicity,
            variant=variant,
            area=absorber_area(variant),
            ae=_readonly(ae),
            energy=_energy(f, multiplicity * acs, volume),
        )

        self._graph.insert_absorber(absorber)
        self._invalidate()
        logger.debug(
            "Added absorber %s (%s x%d) to cavity %s", tag, variant.type_name, multiplicity, cavity_tag
        )
        return self

    def add_source(
        self,
        tag: str,
        source_type: str | SourceType,
        cavity_tag: str,
        parameters: Sequence | None = None,
    ) -> PowerBalanceModel:
        """Add a source injecting power into a cavity.

        Args:
            tag: Source identifier
            source_type: Variant instance, or type name ("Direct")
            cavity_tag: Cavity receiving the power (not EXT)
            parameters: Positional parameters when ``source_type`` is a name

        Returns:
            The model, to allow chaining
        """
        self._check_new_tag(tag, ElementKind.SOURCE)
        self._check_cavity(cavity_tag, ElementKind.SOURCE, tag)
        variant = self._variant(
            source_type, parameters, (SourceType,), source_from_parameters, ElementKind.SOURCE
        )
        power = self._checked(source_power(variant, self.frequencies, self.settings), "power", tag)
        source = Source(tag=tag, cavity_tag=cavity_tag, variant=variant, power=_readonly(power))

        self._graph.insert_source(source)
        self._invalidate()
        logger.debug("Added source %s (%s) to cavity %s", tag, variant.type_name, cavity_tag)
        return self

    def add_aperture(
        self,
        tag: str,
        cavity_tag_a: str,
        cavity_tag_b: str,
        aperture_type: str | ApertureType,
        parameters: Sequence | None = None,
    ) -> PowerBalanceModel:
        """Add an aperture between two cavities, or a cavity and EXT.

        The transmission cross-section is shared by both directions. The
        decay rate contributed to each side is c0·TCS/V of that side.

        Args:
            tag: Aperture identifier
            cavity_tag_a: First cavity (not EXT)
            cavity_tag_b: Second cavity, or EXT
            aperture_type: Variant instance, or type name such as "TCS"
            parameters: Positional parameters when ``aperture_type`` is a name

        Returns:
            The model, to allow chaining

        Raises:
            ConfigurationError: For invalid tags, endpoints, types or parameters
            DataError: If tabulated data is unusable
        """
        self._check_new_tag(tag, ElementKind.APERTURE)
        self._check_cavity(cavity_tag_a, ElementKind.APERTURE, tag)
        if not _is_identifier(cavity_tag_b):
            raise ConfigurationError(f"Cavity tag must be a valid identifier, got {cavity_tag_b!r}")
        if cavity_tag_b != EXT and cavity_tag_b not in self._graph.handles:
            raise ConfigurationError(f"Unknown cavity with tag '{cavity_tag_b}'")
        if cavity_tag_a == cavity_tag_b:
            raise ConfigurationError(f"aperture '{tag}' cannot connect cavity '{cavity_tag_a}' to itself")
        variant = self._variant(
            aperture_type, parameters, (ApertureType,), aperture_from_parameters, ElementKind.APERTURE
        )

        f = self.frequencies
        tcs, te = aperture_cross_section(variant, f, self.settings)
        tcs = self._checked(tcs, "TCS", tag)
        te = self._checked(te, "TE", tag)
        volume_a = self._graph.cavity(cavity_tag_a).volume
        volume_b = np.inf if cavity_tag_b == EXT else self._graph.cavity(cavity_tag_b).volume
        aperture = Aperture(
            tag=tag,
            cavity_tag_a=cavity_tag_a,
            cavity_tag_b=cavity_tag_b,
            variant=variant,
            area=aperture_area(variant),
            tcs=_readonly(tcs),
            te=_readonly(te),
            energy_a=_energy(f, tcs, volume_a),
            energy_b=_energy(f, tcs, volume_b),
        )

        self._graph.insert_aperture(aperture)
        self._invalidate()
        logger.debug(
            "Added aperture %s (%s) between %s and %s", tag, variant.type_name, cavity_tag_a, cavity_tag_b
        )
        return self

    # -------------------------------------------------------------------------
    # Solution and queries
    # -------------------------------------------------------------------------

    def solve(self, callback: Callable[[int], None] | None = None) -> PowerBalanceResult:
        """Solve the network at every frequency.

        Args:
            callback: Function called after each frequency with signature
                callback(freq_index)

        Returns:
            Immutable snapshot of the solved model

        Raises:
            ConfigurationError: If the model has no cavities
            SolverError: If any frequency's system is singular or
                indeterminate; the model stays in the building state
        """
        if self._state is ModelState.UNINITIALIZED:
            raise ConfigurationError("Model has not been initialized")
        if self.num_cavities == 0:
            raise ConfigurationError(f"Model {self.name} has no cavities to solve")

        system = assemble_network(self._graph, self.num_frequencies)
        energy_density = solve_network(
            system,
            self.frequencies,
            callback=callback,
            ill_conditioning_limit=self.settings.ill_conditioning_limit,
        )
        result = PowerBalanceResult(
            name=self.name,
            frequencies=self.frequencies,
            graph=self._graph.snapshot(),
            energy_density=energy_density,
        )

        report = result.energy_balance_report(self.settings.energy_balance_rtol)
        if report["conservation_status"] != "conserved":
            warnings.warn(
                f"Energy balance residual {report['max_relative_residual']:.3e} exceeds "
                f"{self.settings.energy_balance_rtol:.1e}",
                UserWarning,
                stacklevel=2,
            )

        self._result = result
        self._state = ModelState.SOLVED
        logger.info("Solved model %s", self.name)
        return result

    def get_output(
        self, kind: str | ElementKind, tag: str, quantities: str | Sequence[str]
    ) -> tuple[NDArray[np.floating], str | list[str]]:
        """Report quantities of one element of the solved model.

        See :meth:`PowerBalanceResult.get_output`.

        Raises:
            QueryError: If the model has not been solved since its last
                change, or for an unknown kind, tag or quantity
        """
        return self.result.get_output(kind, tag, quantities)
