"""Driver configuration."""

from __future__ import annotations

import math
import os
from dataclasses import dataclass
from typing import Mapping

from fused.errors import ConfigurationError

DEFAULT_RATE_HZ = 100.0
DEFAULT_BETA = 0.1


@dataclass(frozen=True)
class AttitudeConfig:
    sample_frequency_hz: float = DEFAULT_RATE_HZ
    gain_beta: float = DEFAULT_BETA  # Madgwick gradient-descent gain

    def __post_init__(self):
        if not math.isfinite(self.sample_frequency_hz) or self.sample_frequency_hz <= 0.0:
            raise ConfigurationError(
                f"sample_frequency_hz must be positive, got {self.sample_frequency_hz!r}"
            )
        if not math.isfinite(self.gain_beta) or self.gain_beta < 0.0:
            raise ConfigurationError(f"gain_beta must be non-negative, got {self.gain_beta!r}")

    @property
    def sample_interval(self) -> float:
        """Seconds between samples."""
        return 1.0 / self.sample_frequency_hz


def _env_float(environ: Mapping[str, str], key: str, default: float) -> float:
    raw = environ.get(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{key} must be a number, got {raw!r}") from None


def config_from_env(environ: Mapping[str, str] | None = None) -> AttitudeConfig:
    """Build a config from FUSED_RATE_HZ / FUSED_BETA, falling back to defaults."""
    environ = os.environ if environ is None else environ
    return AttitudeConfig(
        sample_frequency_hz=_env_float(environ, "FUSED_RATE_HZ", DEFAULT_RATE_HZ),
        gain_beta=_env_float(environ, "FUSED_BETA", DEFAULT_BETA),
    )


__all__ = ["AttitudeConfig", "config_from_env", "DEFAULT_RATE_HZ", "DEFAULT_BETA"]
