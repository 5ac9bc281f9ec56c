"""Topology of a power balance model.

Cavities are nodes held in an arena and addressed by integer handle.
Absorbers, sources and apertures are edges: absorbers run from a cavity to
the implicit ground node ``REF``, sources from ``REF`` into a cavity, and
apertures join two cavities or a cavity and the exterior ``EXT``.

Each cavity keeps an adjacency list of typed :class:`Edge` entries so the
assembler can walk the network directly. The flat edge ledger exposed by
:attr:`ModelGraph.edges` is derived from the same Edge entries, kept in
insertion order.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

from ..constants import EXT, REF
from .energy import EnergyParameters

if TYPE_CHECKING:
    from ..elements.variants import AbsorberType, ApertureType, ElementType, SourceType


class ElementKind(str, Enum):
    """Kinds of network element, named as in output queries."""

    CAVITY = "Cavity"
    ABSORBER = "Absorber"
    SOURCE = "Source"
    APERTURE = "Aperture"


@dataclass(frozen=True, eq=False)
class Cavity:
    """A cavity node with its derived wall loss.

    Attributes:
        tag: Cavity identifier
        variant: Cavity type and parameters
        area: Wall area in m²
        volume: Volume in m³
        wall_ae: Wall absorption efficiency per frequency
        wall: Wall loss in all four representations
    """

    tag: str
    variant: ElementType
    area: float
    volume: float
    wall_ae: NDArray[np.floating]
    wall: EnergyParameters


@dataclass(frozen=True, eq=False)
class Absorber:
    """An absorber edge; ``acs`` and ``energy`` include the multiplicity."""

    tag: str
    cavity_tag: str
    multiplicity: int
    variant: AbsorberType
    area: float
    ae: NDArray[np.floating]
    energy: EnergyParameters

    @property
    def acs(self) -> NDArray[np.floating]:
        return self.energy.ccs


@dataclass(frozen=True, eq=False)
class Source:
    """A source edge injecting ``power`` into its cavity."""

    tag: str
    cavity_tag: str
    variant: SourceType
    power: NDArray[np.floating]


@dataclass(frozen=True, eq=False)
class Aperture:
    """An aperture edge between ``cavity_tag_a`` and ``cavity_tag_b``.

    The transmission cross-section is shared by both directions; the
    energy parameters are referred to the volume of each side. When side B
    is ``EXT`` its parameters are those of an infinite volume.
    """

    tag: str
    cavity_tag_a: str
    cavity_tag_b: str
    variant: ApertureType
    area: float
    tcs: NDArray[np.floating]
    te: NDArray[np.floating]
    energy_a: EnergyParameters
    energy_b: EnergyParameters


@dataclass(frozen=True)
class Edge:
    """Adjacency entry of a cavity.

    ``peer`` is the handle of the cavity at the other end, or ``REF`` or
    ``EXT``.
    """

    kind: ElementKind
    element_tag: str
    peer: int | str


@dataclass(frozen=True)
class EdgeRecord:
    """Row of the edge ledger."""

    cavity_tag: str
    peer_tag: str
    element_tag: str
    kind: ElementKind


@dataclass
class ModelGraph:
    """Cavity arena, element tables and adjacency lists."""

    cavities: list[Cavity] = field(default_factory=list)
    handles: dict[str, int] = field(default_factory=dict)
    absorbers: dict[str, Absorber] = field(default_factory=dict)
    sources: dict[str, Source] = field(default_factory=dict)
    apertures: dict[str, Aperture] = field(default_factory=dict)
    adjacency: list[list[Edge]] = field(default_factory=list)
    _ledger: list[tuple[int, Edge]] = field(default_factory=list, repr=False)

    @property
    def num_cavities(self) -> int:
        return len(self.cavities)

    @property
    def num_absorbers(self) -> int:
        return len(self.absorbers)

    @property
    def num_sources(self) -> int:
        return len(self.sources)

    @property
    def num_apertures(self) -> int:
        return len(self.apertures)

    @property
    def cavity_tags(self) -> list[str]:
        return [cavity.tag for cavity in self.cavities]

    def tag_in_use(self, tag: str) -> bool:
        """True if ``tag`` names any node or element, or is reserved."""
        return (
            tag in (EXT, REF)
            or tag in self.handles
            or tag in self.absorbers
            or tag in self.sources
            or tag in self.apertures
        )

    def cavity(self, tag: str) -> Cavity:
        return self.cavities[self.handles[tag]]

    # -------------------------------------------------------------------------
    # Insertion (callers validate first)
    # -------------------------------------------------------------------------

    def insert_cavity(self, cavity: Cavity) -> int:
        handle = len(self.cavities)
        self.cavities.append(cavity)
        self.handles[cavity.tag] = handle
        self.adjacency.append([])
        return handle

    def _link(self, handle: int, edge: Edge) -> None:
        self.adjacency[handle].append(edge)
        self._ledger.append((handle, edge))

    def insert_absorber(self, absorber: Absorber) -> None:
        self.absorbers[absorber.tag] = absorber
        self._link(self.handles[absorber.cavity_tag], Edge(ElementKind.ABSORBER, absorber.tag, REF))

    def insert_source(self, source: Source) -> None:
        self.sources[source.tag] = source
        self._link(self.handles[source.cavity_tag], Edge(ElementKind.SOURCE, source.tag, REF))

    def insert_aperture(self, aperture: Aperture) -> None:
        self.apertures[aperture.tag] = aperture
        a = self.handles[aperture.cavity_tag_a]
        if aperture.cavity_tag_b == EXT:
            self._link(a, Edge(ElementKind.APERTURE, aperture.tag, EXT))
            return
        b = self.handles[aperture.cavity_tag_b]
        self._link(a, Edge(ElementKind.APERTURE, aperture.tag, b))
        self._link(b, Edge(ElementKind.APERTURE, aperture.tag, a))

    # -------------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------------

    def _peer_tag(self, peer: int | str) -> str:
        return self.cavities[peer].tag if isinstance(peer, int) else peer

    @property
    def edges(self) -> list[EdgeRecord]:
        """Edge ledger in insertion order, one record per aperture direction."""
        return [
            EdgeRecord(
                cavity_tag=self.cavities[handle].tag,
                peer_tag=self._peer_tag(edge.peer),
                element_tag=edge.element_tag,
                kind=edge.kind,
            )
            for handle, edge in self._ledger
        ]

    def snapshot(self) -> ModelGraph:
        """Copy of the containers; the element records themselves are immutable."""
        return ModelGraph(
            cavities=list(self.cavities),
            handles=dict(self.handles),
            absorbers=dict(self.absorbers),
            sources=dict(self.sources),
            apertures=dict(self.apertures),
            adjacency=[list(edges) for edges in self.adjacency],
            _ledger=list(self._ledger),
        )
