"""Exceptions raised by the attitude pipeline."""


class AttitudeError(Exception):
    """Base class for attitude pipeline errors."""


class InvalidOrientation(AttitudeError, ValueError):
    """Quaternion cannot be decomposed (zero or non-finite squared norm)."""


class AlreadyRunning(AttitudeError, RuntimeError):
    """start() called on a driver that is already running."""


class NotRunning(AttitudeError, RuntimeError):
    """stop(strict=True) called on an idle driver."""


class ConfigurationError(AttitudeError, ValueError):
    """Invalid driver or engine configuration."""


__all__ = [
    "AttitudeError",
    "InvalidOrientation",
    "AlreadyRunning",
    "NotRunning",
    "ConfigurationError",
]
