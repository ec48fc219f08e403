"""Runtime settings for propagation and sampling.

Settings are immutable and passed explicitly to the functions that use
them. :meth:`Settings.from_env` is provided for applications that want to
configure the library from ``ORBTRACE_*`` environment variables; the
library itself never reads the environment.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass

from sgp4.api import WGS72, WGS84

logger = logging.getLogger(__name__)

_GRAVITY_MODELS = {"wgs72": WGS72, "wgs84": WGS84}

ENV_PREFIX = "ORBTRACE_"


@dataclass(frozen=True)
class Settings:
    """Tunable limits for the propagation pipeline.

    Attributes:
        gravity_model: Gravity constants handed to sgp4 ("wgs72" or "wgs84").
        max_samples: If set, upper bound on samples produced by a single
            sampler run.
        max_propagation_days: If set, instants further than this many days
            from the element epoch are rejected by the propagation kernel.
        max_workers: Thread pool size for batch sampling (None lets
            ``concurrent.futures`` decide).
    """

    gravity_model: str = "wgs72"
    max_samples: int | None = None
    max_propagation_days: float | None = None
    max_workers: int | None = None

    def __post_init__(self) -> None:
        if self.gravity_model not in _GRAVITY_MODELS:
            raise ValueError(
                f"Unknown gravity model {self.gravity_model!r}; "
                f"expected one of {sorted(_GRAVITY_MODELS)}"
            )
        if self.max_samples is not None and self.max_samples < 1:
            raise ValueError(f"max_samples must be positive, got {self.max_samples}")
        if self.max_propagation_days is not None and self.max_propagation_days <= 0:
            raise ValueError(
                f"max_propagation_days must be positive, got {self.max_propagation_days}"
            )
        if self.max_workers is not None and self.max_workers < 1:
            raise ValueError(f"max_workers must be positive, got {self.max_workers}")

    @property
    def sgp4_gravity(self) -> int:
        """The sgp4 gravity-model constant for :attr:`gravity_model`."""
        return _GRAVITY_MODELS[self.gravity_model]

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """Build settings from ``ORBTRACE_*`` variables.

        Args:
            environ: Mapping to read from. Defaults to ``os.environ``.

        Returns:
            Settings with any recognised variables applied over the defaults.

        Raises:
            ValueError: If a variable holds an unusable value.
        """
        env = os.environ if environ is None else environ
        kwargs: dict[str, object] = {}

        gravity = env.get(ENV_PREFIX + "GRAVITY_MODEL")
        if gravity:
            kwargs["gravity_model"] = gravity.strip().lower()

        max_samples = env.get(ENV_PREFIX + "MAX_SAMPLES")
        if max_samples:
            kwargs["max_samples"] = _parse_env(max_samples, int, "MAX_SAMPLES")

        max_days = env.get(ENV_PREFIX + "MAX_PROPAGATION_DAYS")
        if max_days:
            kwargs["max_propagation_days"] = _parse_env(max_days, float, "MAX_PROPAGATION_DAYS")

        max_workers = env.get(ENV_PREFIX + "MAX_WORKERS")
        if max_workers:
            kwargs["max_workers"] = _parse_env(max_workers, int, "MAX_WORKERS")

        settings = cls(**kwargs)  # type: ignore[arg-type]
        logger.debug("Loaded settings from environment: %s", settings)
        return settings


def _parse_env(value: str, kind: type, name: str) -> int | float:
    try:
        return kind(value.strip())
    except ValueError:
        raise ValueError(f"{ENV_PREFIX}{name} must be a {kind.__name__}, got {value!r}") from None


DEFAULT_SETTINGS = Settings()
