# fused/__init__.py

from common.math import degrees_from_radians, radians_from_degrees
from common.types import AttitudeFailure, AttitudeSample, EulerAngles, RawSample
from .config import AttitudeConfig, config_from_env
from .driver import AttitudeDriver
from .errors import AlreadyRunning, AttitudeError, ConfigurationError, InvalidOrientation, NotRunning
from .euler import euler_from_quaternion
from .madgwick import MadgwickAHRS
from .sources import ReplayMotionSource, SimulatedMotionSource

__all__ = [
    'degrees_from_radians', 'radians_from_degrees',
    'AttitudeFailure', 'AttitudeSample', 'EulerAngles', 'RawSample',
    'AttitudeConfig', 'config_from_env',
    'AttitudeDriver',
    'AlreadyRunning', 'AttitudeError', 'ConfigurationError', 'InvalidOrientation', 'NotRunning',
    'euler_from_quaternion',
    'MadgwickAHRS',
    'ReplayMotionSource', 'SimulatedMotionSource',
]
