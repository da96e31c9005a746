"""Pipeline configuration loaded from environment variables.

All configuration values have sensible defaults matching the behaviour
of a plain ``osm-landmass`` run.  CLI flags override individual fields
via ``dataclasses.replace``.

Fail-fast validation:
    ``from_env()`` raises ``ConfigValidationError`` if any numeric
    value is out of its valid range.  This catches bad configuration
    before a long run starts rather than midway through it.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from osm_landmass.core.constants import (
    DEFAULT_MIN_AREA_SQM,
    DEFAULT_REPAIR_EPSILON,
    DEFAULT_REPAIR_MAX_ATTEMPTS,
)
from osm_landmass.core.exceptions import ValidationError

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off", ""})


class ConfigValidationError(ValidationError):
    """Raised when configuration values are out of valid range.

    Attributes:
        key: The configuration key that failed validation.
        value: The invalid value.
        message: Human-readable description of the valid range.
    """

    default_stage = "config"
    default_code = "CONFIG_VALIDATION_FAILED"

    def __init__(self, key: str, value: object, message: str) -> None:
        self.key = key
        self.value = value
        super().__init__(f"Invalid configuration {key}={value!r}: {message}")


@dataclass(frozen=True, slots=True)
class LandmassConfig:
    """Immutable pipeline configuration.

    Built once at startup and threaded through the pipeline stages.

    Attributes:
        include_tidal: Fold ``tidal=yes`` features into the land class.
        skip_water: Bypass water ingestion and the land − water step.
        min_area_sqm: Output polygons below this geodesic area are dropped.
        repair_epsilon: Initial union-trick buffer distance in degrees.
        repair_max_attempts: Number of union-trick retries (epsilon grows
            tenfold per attempt).
    """

    include_tidal: bool = True
    skip_water: bool = False
    min_area_sqm: float = DEFAULT_MIN_AREA_SQM
    repair_epsilon: float = DEFAULT_REPAIR_EPSILON
    repair_max_attempts: int = DEFAULT_REPAIR_MAX_ATTEMPTS

    @classmethod
    def from_env(cls) -> LandmassConfig:
        """Load and validate configuration from environment variables.

        Raises:
            ConfigValidationError: If a value is out of range or a boolean
                flag is not a recognised truth value.
            ValueError: If a numeric environment variable cannot be
                parsed (e.g. ``LANDMASS_MIN_AREA_SQM=abc``).
        """
        config = cls(
            include_tidal=_env_bool("LANDMASS_INCLUDE_TIDAL", default=True),
            skip_water=_env_bool("LANDMASS_SKIP_WATER", default=False),
            min_area_sqm=float(os.getenv("LANDMASS_MIN_AREA_SQM", str(DEFAULT_MIN_AREA_SQM))),
            repair_epsilon=float(
                os.getenv("LANDMASS_REPAIR_EPSILON", str(DEFAULT_REPAIR_EPSILON))
            ),
            repair_max_attempts=int(
                os.getenv("LANDMASS_REPAIR_MAX_ATTEMPTS", str(DEFAULT_REPAIR_MAX_ATTEMPTS))
            ),
        )
        validate_config(config)
        return config


def validate_config(config: LandmassConfig) -> None:
    """Validate configuration ranges.  Raises ``ConfigValidationError``."""
    if config.min_area_sqm < 0:
        raise ConfigValidationError(
            "LANDMASS_MIN_AREA_SQM",
            config.min_area_sqm,
            "must be >= 0 (square metres)",
        )

    if config.repair_epsilon <= 0:
        raise ConfigValidationError(
            "LANDMASS_REPAIR_EPSILON",
            config.repair_epsilon,
            "must be > 0 (degrees)",
        )

    if not 0 <= config.repair_max_attempts <= 10:
        raise ConfigValidationError(
            "LANDMASS_REPAIR_MAX_ATTEMPTS",
            config.repair_max_attempts,
            "must be between 0 and 10",
        )


def _env_bool(key: str, *, default: bool) -> bool:
    raw = os.getenv(key)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigValidationError(key, raw, "must be a boolean (true/false, yes/no, 1/0)")
