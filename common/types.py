"""
Shared data structures for source ↔ driver ↔ consumer boundaries.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from common.math import degrees_from_radians, radians_from_degrees

Vector3 = Tuple[float, float, float]
QuaternionTuple = Tuple[float, float, float, float]


@dataclass(frozen=True)
class EulerAngles:
    """Roll, pitch, yaw. Units are whatever the producer says (radians unless noted)."""

    roll: float
    pitch: float
    yaw: float

    def degrees(self) -> "EulerAngles":
        """Treat the angles as radians and return them in degrees."""
        return EulerAngles(
            degrees_from_radians(self.roll),
            degrees_from_radians(self.pitch),
            degrees_from_radians(self.yaw),
        )

    def radians(self) -> "EulerAngles":
        """Treat the angles as degrees and return them in radians."""
        return EulerAngles(
            radians_from_degrees(self.roll),
            radians_from_degrees(self.pitch),
            radians_from_degrees(self.yaw),
        )

    def as_tuple(self) -> Vector3:
        return (self.roll, self.pitch, self.yaw)


@dataclass(frozen=True)
class RawSample:
    """
    One tick from a motion source:
    - gyro: angular rate (rad/s)
    - gravity: gravity direction in body frame (g); an accelerometer at rest reads its negation
    - magnetic_field: magnetometer vector, any consistent unit
    - reference: attitude (rad) from the source's own estimator, if it has one
    """

    gyro: Vector3
    gravity: Vector3
    magnetic_field: Vector3
    reference: Optional[EulerAngles] = None
    timestamp: Optional[float] = None


@dataclass(frozen=True)
class AttitudeSample:
    """Fused attitude for one tick. Angles in degrees."""

    gyro: Vector3
    accel: Vector3
    magnetic_field: Vector3
    quaternion: QuaternionTuple
    euler: EulerAngles
    reference: Optional[EulerAngles] = None
    timestamp: Optional[float] = None
    sequence: int = 0

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class AttitudeFailure:
    """Tick whose quaternion could not be decomposed."""

    gyro: Vector3
    accel: Vector3
    magnetic_field: Vector3
    quaternion: QuaternionTuple
    error: Exception
    timestamp: Optional[float] = None
    sequence: int = 0

    @property
    def ok(self) -> bool:
        return False
