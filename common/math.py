"""
Angle helpers and a small quaternion type shared by the driver, sources and tests.
"""

from __future__ import annotations

import math

import numpy as np


def degrees_from_radians(radians):
    """Convert radians to degrees. Accepts scalars or numpy arrays."""
    return radians * 180.0 / math.pi


def radians_from_degrees(degrees):
    """Convert degrees to radians. Accepts scalars or numpy arrays."""
    return degrees * math.pi / 180.0


def wrap_angle(angle: float) -> float:
    """Wrap an angle in radians to [-pi, pi)."""
    return (angle + math.pi) % (2.0 * math.pi) - math.pi


class Quaternion:
    """
    Scalar-first quaternion (w, x, y, z) backed by a numpy array.
    Describes the rotation from body frame to world frame.
    """

    __slots__ = ("q",)

    def __init__(self, w: float = 1.0, x: float = 0.0, y: float = 0.0, z: float = 0.0):
        self.q = np.array([w, x, y, z], dtype=float)

    @classmethod
    def from_axis_angle(cls, axis, angle: float) -> "Quaternion":
        axis = np.asarray(axis, dtype=float)
        norm = np.linalg.norm(axis)
        if norm == 0.0:
            return cls()
        axis = axis / norm
        s = math.sin(angle / 2.0)
        return cls(math.cos(angle / 2.0), *(axis * s))

    @classmethod
    def from_euler(cls, roll: float, pitch: float, yaw: float) -> "Quaternion":
        """
        Build from Euler angles in radians using the Z-X-Y intrinsic sequence:
        yaw about z, then pitch about x, then roll about y.
        """
        qz = cls.from_axis_angle((0.0, 0.0, 1.0), yaw)
        qx = cls.from_axis_angle((1.0, 0.0, 0.0), pitch)
        qy = cls.from_axis_angle((0.0, 1.0, 0.0), roll)
        return qz * qx * qy

    @property
    def components(self) -> tuple[float, float, float, float]:
        w, x, y, z = self.q
        return float(w), float(x), float(y), float(z)

    def norm(self) -> float:
        return float(np.linalg.norm(self.q))

    def normalize(self) -> None:
        n = self.norm()
        if n > 0.0:
            self.q = self.q / n

    def conjugate(self) -> "Quaternion":
        w, x, y, z = self.q
        return Quaternion(w, -x, -y, -z)

    def __mul__(self, other):
        if isinstance(other, Quaternion):
            w1, x1, y1, z1 = self.q
            w2, x2, y2, z2 = other.q
            return Quaternion(
                w1 * w2 - x1 * x2 - y1 * y2 - z1 * z2,
                w1 * x2 + x1 * w2 + y1 * z2 - z1 * y2,
                w1 * y2 - x1 * z2 + y1 * w2 + z1 * x2,
                w1 * z2 + x1 * y2 - y1 * x2 + z1 * w2,
            )
        return Quaternion(*(self.q * float(other)))

    def rotate(self, v) -> np.ndarray:
        """Rotate a 3-vector by this quaternion (q * v * q^-1)."""
        p = Quaternion(0.0, *np.asarray(v, dtype=float))
        return (self * p * self.conjugate()).q[1:]

    def as_rotation_matrix(self) -> np.ndarray:
        w, x, y, z = self.q
        return np.array([
            [1 - 2 * (y * y + z * z), 2 * (x * y - w * z), 2 * (x * z + w * y)],
            [2 * (x * y + w * z), 1 - 2 * (x * x + z * z), 2 * (y * z - w * x)],
            [2 * (x * z - w * y), 2 * (y * z + w * x), 1 - 2 * (x * x + y * y)],
        ])

    def __repr__(self) -> str:
        w, x, y, z = self.components
        return f"Quaternion({w:.6f}, {x:.6f}, {y:.6f}, {z:.6f})"


__all__ = [
    "Quaternion",
    "degrees_from_radians",
    "radians_from_degrees",
    "wrap_angle",
]
