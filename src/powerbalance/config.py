"""Runtime settings for power balance models.

Settings are plain keyword arguments with defaults; ``Settings.from_env``
lets deployments override them through ``POWERBALANCE_*`` environment
variables without touching model scripts.

Example:
    >>> from powerbalance import PowerBalanceModel, Settings
    >>> settings = Settings(mie_executable="/opt/scattnlay/bin/scattnlay")
    >>> model = PowerBalanceModel([1e9, 2e9], "Box", settings=settings)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields

from .errors import ConfigurationError

ENV_PREFIX = "POWERBALANCE_"


@dataclass(frozen=True)
class Settings:
    """Tunable numerical and environment parameters.

    Args:
        mie_executable: Name or path of the external multilayer Mie solver
        quadrature_order: Number of Gauss-Legendre nodes used for the
            angle-of-incidence averages of surface models
        mie_timeout: Seconds allowed for one external Mie solver call
        energy_balance_rtol: Relative tolerance of the energy balance check
        ill_conditioning_limit: Condition number above which a solvable
            system triggers a warning
    """

    mie_executable: str = "scattnlay"
    quadrature_order: int = 256
    mie_timeout: float = 60.0
    energy_balance_rtol: float = 1e-6
    ill_conditioning_limit: float = 1e12

    def __post_init__(self):
        if self.quadrature_order < 8:
            raise ConfigurationError("quadrature_order must be at least 8")
        if self.mie_timeout <= 0:
            raise ConfigurationError("mie_timeout must be positive")
        if self.energy_balance_rtol <= 0:
            raise ConfigurationError("energy_balance_rtol must be positive")
        if self.ill_conditioning_limit <= 1:
            raise ConfigurationError("ill_conditioning_limit must be greater than 1")

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> Settings:
        """Build settings from ``POWERBALANCE_<FIELD>`` environment variables.

        Args:
            environ: Mapping to read from (defaults to ``os.environ``)

        Returns:
            Settings with every variable found applied over the defaults

        Raises:
            ConfigurationError: If a variable cannot be converted
        """
        environ = os.environ if environ is None else environ
        overrides = {}
        for f in fields(cls):
            key = ENV_PREFIX + f.name.upper()
            if key not in environ:
                continue
            converter = {"str": str, "int": int, "float": float}[f.type]
            try:
                overrides[f.name] = converter(environ[key])
            except ValueError as e:
                raise ConfigurationError(f"Invalid value for {key}: {environ[key]!r}") from e
        return cls(**overrides)


DEFAULT_SETTINGS = Settings()
