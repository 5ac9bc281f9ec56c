"""Core power balance network: graph, builder, assembler and solver."""

from powerbalance.core.assembler import NetworkSystem, assemble_network
from powerbalance.core.energy import (
    EnergyParameters,
    energy_params_from_ccs,
    energy_params_from_decay_rate,
    energy_params_from_q,
    energy_params_from_time_constant,
)
from powerbalance.core.graph import EdgeRecord, ElementKind, ModelGraph
from powerbalance.core.model import ModelState, PowerBalanceModel
from powerbalance.core.results import PowerBalanceResult
from powerbalance.core.solver import check_network, solve_network

__all__ = [
    "PowerBalanceModel",
    "ModelState",
    "PowerBalanceResult",
    "ModelGraph",
    "ElementKind",
    "EdgeRecord",
    "NetworkSystem",
    "assemble_network",
    "check_network",
    "solve_network",
    "EnergyParameters",
    "energy_params_from_ccs",
    "energy_params_from_q",
    "energy_params_from_decay_rate",
    "energy_params_from_time_constant",
]
