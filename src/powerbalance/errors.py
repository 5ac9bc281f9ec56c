"""Exception hierarchy for power balance models.

All errors raised by the package derive from :class:`PowerBalanceError`.
Each concrete error also derives from the closest built-in exception so
that callers catching ``ValueError`` or ``RuntimeError`` keep working.
"""

from __future__ import annotations


class PowerBalanceError(Exception):
    """Base class for all power balance errors."""

    pass


class ConfigurationError(PowerBalanceError, ValueError):
    """Raised for malformed, duplicate or missing identifiers, wrong
    parameter shapes and invalid state transitions while building a model.
    """

    pass


class DataError(PowerBalanceError, ValueError):
    """Raised when external data (tabular files, external solver output)
    is ill-formed or does not cover the model frequency grid.
    """

    pass


class SolverError(PowerBalanceError, RuntimeError):
    """Raised when a per-frequency linear system is singular or indeterminate.

    Attributes:
        frequency_index: Index into the model frequency grid, if known
        cavity_tags: Tags of the cavities involved in the failure
    """

    def __init__(
        self,
        message: str,
        frequency_index: int | None = None,
        cavity_tags: tuple[str, ...] = (),
    ):
        super().__init__(message)
        self.frequency_index = frequency_index
        self.cavity_tags = tuple(cavity_tags)


class QueryError(PowerBalanceError, LookupError):
    """Raised when outputs are requested before a successful solve, after an
    invalidating mutation, or for an unknown element or quantity name.
    """

    def __str__(self) -> str:
        # LookupError.__str__ would quote the message like a KeyError
        return str(self.args[0]) if self.args else ""
