"""Quaternion to Euler angle decomposition."""

from __future__ import annotations

import math

from common.types import EulerAngles
from fused.errors import InvalidOrientation

# Gimbal-lock detection tolerance on the abcd term
EPSILON = 1e-7


def euler_from_quaternion(q0: float, q1: float, q2: float, q3: float) -> EulerAngles:
    """
    Decompose a scalar-first quaternion into roll, pitch, yaw (radians).

    The quaternion does not need to be unit length; its squared norm is used as
    the divisor. Pitch is the rotation about x, roll about y and yaw about z
    (intrinsic Z-X-Y sequence). Near the poles roll is pinned to zero and all
    rotation is reported as yaw; pitch is then +pi or -pi.

    Raises:
        InvalidOrientation: if the squared norm is zero or not finite.
    """
    w2 = q0 * q0
    x2 = q1 * q1
    y2 = q2 * q2
    z2 = q3 * q3
    unit_length = w2 + x2 + y2 + z2
    if not math.isfinite(unit_length) or unit_length == 0.0:
        raise InvalidOrientation(f"cannot decompose quaternion ({q0}, {q1}, {q2}, {q3})")

    abcd = q0 * q1 + q2 * q3
    if abcd > (0.5 - EPSILON) * unit_length:
        return EulerAngles(roll=0.0, pitch=math.pi, yaw=2.0 * math.atan2(q2, q0))
    if abcd < (-0.5 + EPSILON) * unit_length:
        return EulerAngles(roll=0.0, pitch=-math.pi, yaw=-2.0 * math.atan2(q2, q0))

    adbc = q0 * q3 - q1 * q2
    acbd = q0 * q2 - q1 * q3
    sin_pitch = max(-1.0, min(1.0, 2.0 * abcd / unit_length))
    return EulerAngles(
        roll=math.atan2(2.0 * acbd, 1.0 - 2.0 * (y2 + x2)),
        pitch=math.asin(sin_pitch),
        yaw=math.atan2(2.0 * adbc, 1.0 - 2.0 * (z2 + x2)),
    )


def euler_degrees_from_quaternion(q0: float, q1: float, q2: float, q3: float) -> EulerAngles:
    return euler_from_quaternion(q0, q1, q2, q3).degrees()


__all__ = ["EPSILON", "euler_from_quaternion", "euler_degrees_from_quaternion"]
