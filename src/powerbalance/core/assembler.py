"""Assembly of the per-frequency power balance equations.

The unknowns are the cavity energy densities u [J/m³]. Row i of the system
is the steady-state energy balance of cavity i multiplied through by its
volume, so every term is a power:

    c0·(ACS_wall + Σ ACS_abs + Σ TCS_ap)·u_i - Σ_j c0·TCS_ij·u_j = Σ P_src

The diagonal collects every loss channel of the cavity, including
apertures to other cavities and to the exterior. Off-diagonal terms are
the power brought in from neighbours. Since the same TCS appears in both
directions the matrix is symmetric. The exterior has zero energy density
and therefore contributes to the diagonal only.

An infinite cross-section marks an idealised lossless element and
contributes nothing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from ..constants import C0, EXT
from .graph import ElementKind, ModelGraph

logger = logging.getLogger(__name__)


def finite_loss(ccs: NDArray[np.floating]) -> NDArray[np.floating]:
    """Cross-section with the lossless marker (inf) replaced by zero."""
    return np.where(np.isinf(ccs), 0.0, ccs)


@dataclass(frozen=True)
class NetworkSystem:
    """Linear systems for every frequency of a model.

    Attributes:
        matrix: Balance matrices, shape (n_freq, n, n), in W/(J/m³)
        rhs: Injected powers, shape (n_freq, n), in W
        ground_loss: Part of the diagonal that leaves the network (walls,
            absorbers, apertures to EXT), shape (n_freq, n)
        cavity_tags: Cavity order of the rows and columns
    """

    matrix: NDArray[np.floating]
    rhs: NDArray[np.floating]
    ground_loss: NDArray[np.floating]
    cavity_tags: tuple[str, ...]

    @property
    def num_frequencies(self) -> int:
        return self.matrix.shape[0]

    @property
    def size(self) -> int:
        return self.matrix.shape[1]


def assemble_network(graph: ModelGraph, n_freq: int) -> NetworkSystem:
    """Build the balance matrices and source vectors by walking the graph.

    Args:
        graph: Model topology with stored cross-sections
        n_freq: Length of the frequency grid

    Returns:
        NetworkSystem for all frequencies
    """
    n = graph.num_cavities
    matrix = np.zeros((n_freq, n, n))
    rhs = np.zeros((n_freq, n))
    ground_loss = np.zeros((n_freq, n))

    for i, cavity in enumerate(graph.cavities):
        ground_loss[:, i] += C0 * finite_loss(cavity.wall.ccs)

        for edge in graph.adjacency[i]:
            if edge.kind is ElementKind.ABSORBER:
                ground_loss[:, i] += C0 * finite_loss(graph.absorbers[edge.element_tag].acs)
            elif edge.kind is ElementKind.SOURCE:
                rhs[:, i] += graph.sources[edge.element_tag].power
            elif edge.kind is ElementKind.APERTURE:
                coupling = C0 * finite_loss(graph.apertures[edge.element_tag].tcs)
                if edge.peer == EXT:
                    ground_loss[:, i] += coupling
                else:
                    matrix[:, i, i] += coupling
                    matrix[:, i, edge.peer] -= coupling

        matrix[:, i, i] += ground_loss[:, i]

    logger.debug("Assembled %d x %d network at %d frequencies", n, n, n_freq)
    return NetworkSystem(
        matrix=matrix,
        rhs=rhs,
        ground_loss=ground_loss,
        cavity_tags=tuple(graph.cavity_tags),
    )
