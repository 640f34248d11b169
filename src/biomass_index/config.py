"""Run configuration for bootstrap biomass indices.

All parameters of a run are explicit fields of ``BootstrapConfig``. Environment
variables are only consulted through ``BootstrapConfig.from_env``.
"""

import logging
import os
from dataclasses import dataclass, fields, replace
from typing import Any

from .errors import InvalidConfigurationError

ENV_PREFIX = "BIOMASS_INDEX_"
LOG_LEVEL = os.getenv(f"{ENV_PREFIX}LOG_LEVEL", "WARNING")

# Area swept per stratum unit (2 x 2 grid cells)
DEFAULT_AREA_KM2 = 2.0 * 2.0

STRATEGIES = ("sequential", "pool", "dask")
SEED_POLICIES = ("spawn", "fixed", "entropy")
ERROR_POLICIES = ("raise", "record")
POOL_KINDS = ("threads", "processes")
DASK_SCHEDULERS = ("threads", "processes", "synchronous")


@dataclass(frozen=True)
class BootstrapConfig:
    """Parameters for one bootstrap run over all groups."""

    key_fields: tuple[str, ...] = ("survey", "year")
    repetitions: int = 1000
    area_km2: float = DEFAULT_AREA_KM2
    confidence: float = 0.95
    seed: int | None = None
    seed_policy: str = "spawn"
    strategy: str = "sequential"
    n_workers: int | None = None
    pool_kind: str = "threads"
    dask_scheduler: str = "threads"
    timeout: float | None = None
    error_policy: str = "raise"
    progress: bool = False

    def __post_init__(self):
        if isinstance(self.key_fields, str):
            object.__setattr__(self, "key_fields", (self.key_fields,))
        else:
            object.__setattr__(self, "key_fields", tuple(self.key_fields))

    def validate(self) -> "BootstrapConfig":
        """Check every parameter, raising InvalidConfigurationError on the first problem.

        Returns:
            Self, so validation can be chained
        """
        if not self.key_fields:
            raise InvalidConfigurationError("At least one grouping key field is required")
        if len(set(self.key_fields)) != len(self.key_fields):
            raise InvalidConfigurationError(f"Duplicate key fields: {self.key_fields}")
        if int(self.repetitions) != self.repetitions or self.repetitions < 2:
            raise InvalidConfigurationError(
                f"repetitions must be an integer >= 2, got {self.repetitions!r}"
            )
        if not self.area_km2 > 0:
            raise InvalidConfigurationError(f"area_km2 must be positive, got {self.area_km2}")
        if not 0 < self.confidence < 1:
            raise InvalidConfigurationError(
                f"confidence must be between 0 and 1 (exclusive), got {self.confidence}"
            )
        _check_choice("strategy", self.strategy, STRATEGIES)
        _check_choice("seed_policy", self.seed_policy, SEED_POLICIES)
        if self.seed_policy == "fixed" and self.seed is None:
            raise InvalidConfigurationError("The fixed seed policy requires a seed")
        _check_choice("error_policy", self.error_policy, ERROR_POLICIES)
        _check_choice("pool_kind", self.pool_kind, POOL_KINDS)
        _check_choice("dask_scheduler", self.dask_scheduler, DASK_SCHEDULERS)
        if self.n_workers is not None and self.n_workers < 1:
            raise InvalidConfigurationError(f"n_workers must be positive, got {self.n_workers}")
        if self.timeout is not None:
            if self.timeout <= 0:
                raise InvalidConfigurationError(f"timeout must be positive, got {self.timeout}")
            if self.strategy == "dask":
                raise InvalidConfigurationError("The dask strategy does not support a timeout")
        return self

    def with_overrides(self, **overrides: Any) -> "BootstrapConfig":
        """Return a copy with the given fields replaced."""
        return replace(self, **overrides)

    @classmethod
    def from_env(cls, **overrides: Any) -> "BootstrapConfig":
        """Build a config from ``BIOMASS_INDEX_*`` environment variables.

        Explicit keyword overrides take precedence over the environment.

        Returns:
            Unvalidated BootstrapConfig
        """
        values: dict[str, Any] = {}
        for f in fields(cls):
            raw = os.getenv(f"{ENV_PREFIX}{f.name.upper()}")
            if raw is None or raw == "":
                continue
            values[f.name] = _parse_env_value(f.name, raw)
        values.update(overrides)
        return cls(**values)


def _check_choice(name: str, value: str, choices: tuple[str, ...]) -> None:
    if value not in choices:
        raise InvalidConfigurationError(f"Unknown {name} {value!r}. Expected one of {choices}")


def _parse_env_value(name: str, raw: str) -> Any:
    try:
        if name == "key_fields":
            return tuple(part.strip() for part in raw.split(",") if part.strip())
        if name in ("repetitions", "seed", "n_workers"):
            return int(raw)
        if name in ("area_km2", "confidence", "timeout"):
            return float(raw)
        if name == "progress":
            return raw.strip().lower() in ("1", "true", "yes", "on")
    except ValueError as e:
        raise InvalidConfigurationError(f"Bad value for {ENV_PREFIX}{name.upper()}: {raw!r}") from e
    return raw


def configure_logging(level: str | int | None = None) -> logging.Logger:
    """Attach a stream handler to the package logger.

    Args:
        level: Logging level (default: ``BIOMASS_INDEX_LOG_LEVEL`` or WARNING)

    Returns:
        The package logger
    """
    logger = logging.getLogger("biomass_index")
    logger.setLevel(level if level is not None else LOG_LEVEL.upper())
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        logger.addHandler(handler)
    return logger
