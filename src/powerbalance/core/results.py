"""Solved power balance results and output queries.

A :class:`PowerBalanceResult` is an immutable snapshot taken when a model
is solved: the frequency grid, the element records and the solved cavity
energy densities. All reportable quantities are derived from these on
demand by :meth:`PowerBalanceResult.get_output`.

Quantities by element kind (units in brackets):

    Cavity     powerDensity [W/m^2], energyDensity [J/m^3], storedEnergy [J],
               wallACS [m^2], wallAE [-], wallPower [W], wallQ [-],
               wallDecayRate [/s], wallTimeConst [s], totalCCS [m^2],
               totalQ [-], totalDecayRate [/s], totalTimeConst [s]
    Absorber   ACS [m^2], AE [-], absorbedPower [W], Q [-], decayRate [/s],
               timeConst [s]
    Aperture   TCS [m^2], TE [-], powerAtoB [W], powerBtoA [W],
               netPowerAtoB [W], QA [-], QB [-], decayRateA [/s],
               decayRateB [/s], timeConstA [s], timeConstB [s]
    Source     power [W]

storedEnergy of an infinite-volume cavity is inf where its energy density
is positive and 0 where it is zero.

Example:
    >>> result = model.solve()
    >>> values, units = result.get_output("Absorber", "AB1", ["absorbedPower", "ACS"])
    >>> values.shape
    (3, 2)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Sequence

import numpy as np
from numpy.typing import NDArray

from ..constants import C0, EXT
from ..errors import QueryError, SolverError
from .assembler import finite_loss
from .energy import energy_params_from_ccs
from .graph import EdgeRecord, ElementKind, ModelGraph

logger = logging.getLogger(__name__)

CAVITY_QUANTITIES = {
    "powerDensity": "W/m^2",
    "energyDensity": "J/m^3",
    "storedEnergy": "J",
    "wallACS": "m^2",
    "wallAE": "-",
    "wallPower": "W",
    "wallQ": "-",
    "wallDecayRate": "/s",
    "wallTimeConst": "s",
    "totalCCS": "m^2",
    "totalQ": "-",
    "totalDecayRate": "/s",
    "totalTimeConst": "s",
}

ABSORBER_QUANTITIES = {
    "ACS": "m^2",
    "AE": "-",
    "absorbedPower": "W",
    "Q": "-",
    "decayRate": "/s",
    "timeConst": "s",
}

APERTURE_QUANTITIES = {
    "TCS": "m^2",
    "TE": "-",
    "powerAtoB": "W",
    "powerBtoA": "W",
    "netPowerAtoB": "W",
    "QA": "-",
    "QB": "-",
    "decayRateA": "/s",
    "decayRateB": "/s",
    "timeConstA": "s",
    "timeConstB": "s",
}

SOURCE_QUANTITIES = {"power": "W"}

QUANTITIES: dict[ElementKind, dict[str, str]] = {
    ElementKind.CAVITY: CAVITY_QUANTITIES,
    ElementKind.ABSORBER: ABSORBER_QUANTITIES,
    ElementKind.APERTURE: APERTURE_QUANTITIES,
    ElementKind.SOURCE: SOURCE_QUANTITIES,
}


@dataclass(frozen=True, eq=False)
class PowerBalanceResult:
    """Immutable snapshot of a solved model.

    Attributes:
        name: Model name
        frequencies: Frequency grid in Hz
        graph: Copy of the model topology at solve time
        energy_density: Solved energy densities, shape (n_freq, n_cavities)
    """

    name: str
    frequencies: NDArray[np.floating]
    graph: ModelGraph
    energy_density: NDArray[np.floating]

    def __post_init__(self):
        self.energy_density.flags.writeable = False

    @property
    def cavity_tags(self) -> list[str]:
        return self.graph.cavity_tags

    @property
    def edges(self) -> list[EdgeRecord]:
        return self.graph.edges

    def element_tags(self, kind: str | ElementKind) -> list[str]:
        """Tags of all elements of one kind, in insertion order."""
        kind = _parse_kind(kind)
        if kind is ElementKind.CAVITY:
            return self.graph.cavity_tags
        return list(self._table(kind))

    def _table(self, kind: ElementKind) -> dict:
        return {
            ElementKind.ABSORBER: self.graph.absorbers,
            ElementKind.SOURCE: self.graph.sources,
            ElementKind.APERTURE: self.graph.apertures,
        }[kind]

    def _density(self, cavity_tag: str) -> NDArray[np.floating]:
        if cavity_tag == EXT:
            return np.zeros(len(self.frequencies))
        return self.energy_density[:, self.graph.handles[cavity_tag]]

    # -------------------------------------------------------------------------
    # Per-kind quantity tables
    # -------------------------------------------------------------------------

    def _cavity_quantities(self, tag: str) -> dict[str, Callable[[], NDArray]]:
        handle = self.graph.handles[tag]
        cavity = self.graph.cavities[handle]
        u = self._density(tag)

        def total():
            ccs = finite_loss(cavity.wall.ccs).copy()
            for edge in self.graph.adjacency[handle]:
                if edge.kind is ElementKind.ABSORBER:
                    ccs += finite_loss(self.graph.absorbers[edge.element_tag].acs)
                elif edge.kind is ElementKind.APERTURE:
                    ccs += finite_loss(self.graph.apertures[edge.element_tag].tcs)
            return ccs

        def total_params(index: int):
            return lambda: energy_params_from_ccs(self.frequencies, total(), cavity.volume)[index]

        return {
            "powerDensity": lambda: C0 * u,
            "energyDensity": lambda: u,
            "storedEnergy": lambda: _stored_energy(u, cavity.volume),
            "wallACS": lambda: cavity.wall.ccs,
            "wallAE": lambda: cavity.wall_ae,
            "wallPower": lambda: C0 * finite_loss(cavity.wall.ccs) * u,
            "wallQ": lambda: cavity.wall.Q,
            "wallDecayRate": lambda: cavity.wall.decay_rate,
            "wallTimeConst": lambda: cavity.wall.time_const,
            "totalCCS": total,
            "totalQ": total_params(0),
            "totalDecayRate": total_params(1),
            "totalTimeConst": total_params(2),
        }

    def _absorber_quantities(self, tag: str) -> dict[str, Callable[[], NDArray]]:
        absorber = self.graph.absorbers[tag]
        u = self._density(absorber.cavity_tag)
        return {
            "ACS": lambda: absorber.acs,
            "AE": lambda: absorber.ae,
            "absorbedPower": lambda: C0 * finite_loss(absorber.acs) * u,
            "Q": lambda: absorber.energy.Q,
            "decayRate": lambda: absorber.energy.decay_rate,
            "timeConst": lambda: absorber.energy.time_const,
        }

    def _aperture_quantities(self, tag: str) -> dict[str, Callable[[], NDArray]]:
        aperture = self.graph.apertures[tag]
        coupling = C0 * finite_loss(aperture.tcs)
        u_a = self._density(aperture.cavity_tag_a)
        u_b = self._density(aperture.cavity_tag_b)
        return {
            "TCS": lambda: aperture.tcs,
            "TE": lambda: aperture.te,
            "powerAtoB": lambda: coupling * u_a,
            "powerBtoA": lambda: coupling * u_b,
            "netPowerAtoB": lambda: coupling * (u_a - u_b),
            "QA": lambda: aperture.energy_a.Q,
            "QB": lambda: aperture.energy_b.Q,
            "decayRateA": lambda: aperture.energy_a.decay_rate,
            "decayRateB": lambda: aperture.energy_b.decay_rate,
            "timeConstA": lambda: aperture.energy_a.time_const,
            "timeConstB": lambda: aperture.energy_b.time_const,
        }

    def _source_quantities(self, tag: str) -> dict[str, Callable[[], NDArray]]:
        source = self.graph.sources[tag]
        return {"power": lambda: source.power}

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get_output(
        self, kind: str | ElementKind, tag: str, quantities: str | Sequence[str]
    ) -> tuple[NDArray[np.floating], str | list[str]]:
        """Report quantities of one element.

        Args:
            kind: "Cavity", "Absorber", "Aperture" or "Source"
            tag: Element identifier
            quantities: A quantity name, or a sequence of names

        Returns:
            Tuple (values, units). For a single name, values has shape
            (n_freq,) and units is a string; for a sequence, values has
            shape (n_freq, len(quantities)) and units is a list.

        Raises:
            QueryError: For an unknown kind, tag or quantity name
        """
        kind = _parse_kind(kind)
        known = self.graph.handles if kind is ElementKind.CAVITY else self._table(kind)
        if tag not in known:
            raise QueryError(f"Unknown {kind.value.lower()} with tag '{tag}'")

        table = {
            ElementKind.CAVITY: self._cavity_quantities,
            ElementKind.ABSORBER: self._absorber_quantities,
            ElementKind.APERTURE: self._aperture_quantities,
            ElementKind.SOURCE: self._source_quantities,
        }[kind](tag)
        units = QUANTITIES[kind]

        names = [quantities] if isinstance(quantities, str) else list(quantities)
        if not names:
            raise QueryError("No quantities requested")
        for name in names:
            if name not in table:
                raise QueryError(
                    f"Unknown {kind.value.lower()} quantity '{name}'. "
                    f"Available: {', '.join(table)}"
                )

        columns = [np.array(table[name](), dtype=float) for name in names]
        if isinstance(quantities, str):
            return columns[0], units[quantities]
        return np.column_stack(columns), [units[name] for name in names]

    # -------------------------------------------------------------------------
    # Energy conservation
    # -------------------------------------------------------------------------

    def energy_balance_report(self, rtol: float = 1e-6) -> dict:
        """Generate energy conservation diagnostic report.

        For every cavity the injected power is compared with the power
        absorbed in the cavity plus the net power leaving it through
        apertures. Globally the injected power must equal the power
        absorbed everywhere plus the power leaked to the exterior.

        Returns:
            Dict with keys:
            - injected_power: Total source power per frequency
            - absorbed_power: Total wall and absorber power per frequency
            - leaked_power: Net power through apertures to EXT per frequency
            - residual: injected - absorbed - leaked per frequency
            - max_relative_residual: Largest |residual| / injected power
            - cavity_residuals: Dict mapping cavity tag to its residual
            - conservation_status: "conserved" or "violated"

        Example:
            >>> report = result.energy_balance_report()
            >>> print(f"Worst residual: {report['max_relative_residual']:.2e}")
        """
        n_freq = len(self.frequencies)
        cavity_residuals = {}
        absorbed = np.zeros(n_freq)
        leaked = np.zeros(n_freq)

        for handle, cavity in enumerate(self.graph.cavities):
            u = self.energy_density[:, handle]
            injected_i = np.zeros(n_freq)
            absorbed_i = C0 * finite_loss(cavity.wall.ccs) * u
            outflow_i = np.zeros(n_freq)
            for edge in self.graph.adjacency[handle]:
                if edge.kind is ElementKind.SOURCE:
                    injected_i += self.graph.sources[edge.element_tag].power
                elif edge.kind is ElementKind.ABSORBER:
                    absorbed_i += C0 * finite_loss(self.graph.absorbers[edge.element_tag].acs) * u
                elif edge.kind is ElementKind.APERTURE:
                    coupling = C0 * finite_loss(self.graph.apertures[edge.element_tag].tcs)
                    if edge.peer == EXT:
                        flow = coupling * u
                        leaked += flow
                    else:
                        flow = coupling * (u - self.energy_density[:, edge.peer])
                    outflow_i += flow
            cavity_residuals[cavity.tag] = injected_i - absorbed_i - outflow_i
            absorbed += absorbed_i

        injected = np.zeros(n_freq)
        for source in self.graph.sources.values():
            injected += source.power
        residual = injected - absorbed - leaked

        scale = np.where(injected > 0, injected, 1.0)
        worst = max(
            [float(np.max(np.abs(residual) / scale))]
            + [float(np.max(np.abs(r) / scale)) for r in cavity_residuals.values()]
        )
        return {
            "injected_power": injected,
            "absorbed_power": absorbed,
            "leaked_power": leaked,
            "residual": residual,
            "max_relative_residual": worst,
            "cavity_residuals": cavity_residuals,
            "conservation_status": "conserved" if worst <= rtol else "violated",
        }

    def check_energy_balance(self, rtol: float = 1e-6) -> None:
        """Raise if injected and dissipated powers disagree.

        Raises:
            SolverError: If the largest relative residual exceeds ``rtol``
        """
        report = self.energy_balance_report(rtol)
        if report["max_relative_residual"] > rtol:
            raise SolverError(
                f"Energy balance violated: relative residual "
                f"{report['max_relative_residual']:.3e} exceeds {rtol:.1e}"
            )
        logger.debug("Energy balance residual %.3e", report["max_relative_residual"])


def _stored_energy(u: NDArray[np.floating], volume: float) -> NDArray[np.floating]:
    if np.isinf(volume):
        return np.where(u > 0, np.inf, 0.0)
    return u * volume


def _parse_kind(kind: str | ElementKind) -> ElementKind:
    try:
        return ElementKind(kind)
    except ValueError as e:
        names = ", ".join(k.value for k in ElementKind)
        raise QueryError(f"Unknown element kind '{kind}'. Available: {names}") from e
