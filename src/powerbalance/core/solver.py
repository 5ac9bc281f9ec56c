"""Per-frequency solution of the power balance network.

Each frequency is an independent dense linear system. Before solving, the
network is split into groups of cavities connected through apertures with
non-zero transmission at that frequency; every group needs at least one
path out of the network (wall, absorber or aperture to the exterior),
otherwise its energy densities are undetermined (no forcing) or unbounded
(forced). Such systems raise :class:`SolverError` instead of returning NaN.

The whole solve aborts at the first failing frequency.
"""

from __future__ import annotations

import logging
import warnings
from typing import Callable

import numpy as np
import scipy.linalg
from numpy.typing import NDArray
from scipy.sparse import csr_matrix
from scipy.sparse.csgraph import connected_components

from ..errors import SolverError
from .assembler import NetworkSystem

logger = logging.getLogger(__name__)


def check_network(system: NetworkSystem, freq_index: int, frequency: float) -> None:
    """Reject a frequency whose network has a group of cavities without loss.

    Raises:
        SolverError: Naming the frequency and the cavities of the group
    """
    A = system.matrix[freq_index]
    coupled = A != 0.0
    np.fill_diagonal(coupled, False)
    n_groups, labels = connected_components(csr_matrix(coupled), directed=False)

    for group in range(n_groups):
        members = np.flatnonzero(labels == group)
        if np.any(system.ground_loss[freq_index, members] > 0.0):
            continue
        tags = tuple(system.cavity_tags[i] for i in members)
        forced = np.any(system.rhs[freq_index, members] != 0.0)
        reason = (
            "has source power but no loss path (unbounded)"
            if forced
            else "has no loss and no source (undetermined)"
        )
        raise SolverError(
            f"Cavities {', '.join(tags)} {reason} at frequency index {freq_index} "
            f"(f = {frequency:g} Hz)",
            frequency_index=freq_index,
            cavity_tags=tags,
        )


def solve_network(
    system: NetworkSystem,
    frequencies: NDArray[np.floating],
    callback: Callable[[int], None] | None = None,
    ill_conditioning_limit: float = 1e12,
) -> NDArray[np.floating]:
    """Solve A·u = b at every frequency.

    Args:
        system: Assembled network
        frequencies: Model frequency grid in Hz
        callback: Function called after each frequency with signature
            callback(freq_index)
        ill_conditioning_limit: Condition number above which a warning is
            issued

    Returns:
        Energy densities in J/m³, shape (n_freq, n_cavities)

    Raises:
        SolverError: If any frequency's system is singular or indeterminate
    """
    n_freq, n = system.num_frequencies, system.size
    energy_density = np.zeros((n_freq, n))
    logger.info("Solving network of %d cavities at %d frequencies", n, n_freq)

    for k in range(n_freq):
        check_network(system, k, frequencies[k])
        A = system.matrix[k]
        b = system.rhs[k]

        condition = np.linalg.cond(A)
        if condition > ill_conditioning_limit:
            warnings.warn(
                f"Power balance matrix is ill-conditioned at frequency index {k} "
                f"(f = {frequencies[k]:g} Hz, condition number {condition:.3g})",
                UserWarning,
                stacklevel=2,
            )

        try:
            u = scipy.linalg.solve(A, b, assume_a="sym")
        except scipy.linalg.LinAlgError as e:
            raise SolverError(
                f"Singular power balance matrix at frequency index {k} (f = {frequencies[k]:g} Hz): {e}",
                frequency_index=k,
                cavity_tags=system.cavity_tags,
            ) from e

        if not np.all(np.isfinite(u)):
            raise SolverError(
                f"Non-finite energy density at frequency index {k} (f = {frequencies[k]:g} Hz)",
                frequency_index=k,
                cavity_tags=system.cavity_tags,
            )

        energy_density[k] = u
        if callback:
            callback(k)

    return energy_density
