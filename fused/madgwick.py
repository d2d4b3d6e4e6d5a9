"""
Madgwick gradient-descent AHRS.

Based on the x-io open-source IMU/AHRS algorithms:
https://www.x-io.co.uk/open-source-imu-and-ahrs-algorithms/
"""

from __future__ import annotations

import math

from common.interface import FusionEngine
from common.types import QuaternionTuple
from fused.errors import ConfigurationError


class MadgwickAHRS(FusionEngine):
    """
    MARG orientation filter. Gyro in rad/s; accel and magnetometer in any unit
    (both are normalised). The accelerometer is expected to read +z when the
    body lies flat.
    """

    def __init__(self, sample_frequency_hz: float = 100.0, beta: float = 0.1):
        if not math.isfinite(sample_frequency_hz) or sample_frequency_hz <= 0.0:
            raise ConfigurationError("sample_frequency_hz must be positive")
        if not math.isfinite(beta) or beta < 0.0:
            raise ConfigurationError("beta must be non-negative")
        self.sample_frequency_hz = float(sample_frequency_hz)
        self.beta = float(beta)
        self._q = (1.0, 0.0, 0.0, 0.0)

    @property
    def quaternion(self) -> QuaternionTuple:
        return self._q

    def reset(self) -> None:
        self._q = (1.0, 0.0, 0.0, 0.0)

    def update(
        self,
        gx: float, gy: float, gz: float,
        ax: float, ay: float, az: float,
        mx: float, my: float, mz: float,
    ) -> None:
        m_norm = math.sqrt(mx * mx + my * my + mz * mz)
        if m_norm == 0.0:
            self.update_imu(gx, gy, gz, ax, ay, az)
            return

        q0, q1, q2, q3 = self._q
        qdot0, qdot1, qdot2, qdot3 = _gyro_rate(q0, q1, q2, q3, gx, gy, gz)

        a_norm = math.sqrt(ax * ax + ay * ay + az * az)
        if a_norm > 0.0:
            ax /= a_norm
            ay /= a_norm
            az /= a_norm
            mx /= m_norm
            my /= m_norm
            mz /= m_norm

            _2q0mx = 2.0 * q0 * mx
            _2q0my = 2.0 * q0 * my
            _2q0mz = 2.0 * q0 * mz
            _2q1mx = 2.0 * q1 * mx
            _2q0 = 2.0 * q0
            _2q1 = 2.0 * q1
            _2q2 = 2.0 * q2
            _2q3 = 2.0 * q3
            _2q0q2 = 2.0 * q0 * q2
            _2q2q3 = 2.0 * q2 * q3
            q0q0 = q0 * q0
            q0q1 = q0 * q1
            q0q2 = q0 * q2
            q0q3 = q0 * q3
            q1q1 = q1 * q1
            q1q2 = q1 * q2
            q1q3 = q1 * q3
            q2q2 = q2 * q2
            q2q3 = q2 * q3
            q3q3 = q3 * q3

            # Earth's field direction in the earth frame
            hx = (mx * q0q0 - _2q0my * q3 + _2q0mz * q2 + mx * q1q1 + _2q1 * my * q2
                  + _2q1 * mz * q3 - mx * q2q2 - mx * q3q3)
            hy = (_2q0mx * q3 + my * q0q0 - _2q0mz * q1 + _2q1mx * q2 - my * q1q1
                  + my * q2q2 + _2q2 * mz * q3 - my * q3q3)
            _2bx = math.sqrt(hx * hx + hy * hy)
            _2bz = (-_2q0mx * q2 + _2q0my * q1 + mz * q0q0 + _2q1mx * q3 - mz * q1q1
                    + _2q2 * my * q3 - mz * q2q2 + mz * q3q3)
            _4bx = 2.0 * _2bx
            _4bz = 2.0 * _2bz

            # Objective function residuals
            fa_x = 2.0 * q1q3 - _2q0q2 - ax
            fa_y = 2.0 * q0q1 + _2q2q3 - ay
            fa_z = 1.0 - 2.0 * q1q1 - 2.0 * q2q2 - az
            fm_x = _2bx * (0.5 - q2q2 - q3q3) + _2bz * (q1q3 - q0q2) - mx
            fm_y = _2bx * (q1q2 - q0q3) + _2bz * (q0q1 + q2q3) - my
            fm_z = _2bx * (q0q2 + q1q3) + _2bz * (0.5 - q1q1 - q2q2) - mz

            s0 = (-_2q2 * fa_x + _2q1 * fa_y - _2bz * q2 * fm_x
                  + (-_2bx * q3 + _2bz * q1) * fm_y + _2bx * q2 * fm_z)
            s1 = (_2q3 * fa_x + _2q0 * fa_y - 4.0 * q1 * fa_z + _2bz * q3 * fm_x
                  + (_2bx * q2 + _2bz * q0) * fm_y + (_2bx * q3 - _4bz * q1) * fm_z)
            s2 = (-_2q0 * fa_x + _2q3 * fa_y - 4.0 * q2 * fa_z + (-_4bx * q2 - _2bz * q0) * fm_x
                  + (_2bx * q1 + _2bz * q3) * fm_y + (_2bx * q0 - _4bz * q2) * fm_z)
            s3 = (_2q1 * fa_x + _2q2 * fa_y + (-_4bx * q3 + _2bz * q1) * fm_x
                  + (-_2bx * q0 + _2bz * q2) * fm_y + _2bx * q1 * fm_z)

            qdot0, qdot1, qdot2, qdot3 = self._apply_gradient(
                (qdot0, qdot1, qdot2, qdot3), (s0, s1, s2, s3)
            )

        self._integrate(qdot0, qdot1, qdot2, qdot3)

    def update_imu(self, gx: float, gy: float, gz: float, ax: float, ay: float, az: float) -> None:
        """Gyro + accelerometer update; yaw drifts with the gyro."""
        q0, q1, q2, q3 = self._q
        qdot0, qdot1, qdot2, qdot3 = _gyro_rate(q0, q1, q2, q3, gx, gy, gz)

        norm = math.sqrt(ax * ax + ay * ay + az * az)
        if norm > 0.0:
            ax /= norm
            ay /= norm
            az /= norm

            _2q0 = 2.0 * q0
            _2q1 = 2.0 * q1
            _2q2 = 2.0 * q2
            _2q3 = 2.0 * q3
            _4q0 = 4.0 * q0
            _4q1 = 4.0 * q1
            _4q2 = 4.0 * q2
            _8q1 = 8.0 * q1
            _8q2 = 8.0 * q2
            q0q0 = q0 * q0
            q1q1 = q1 * q1
            q2q2 = q2 * q2
            q3q3 = q3 * q3

            s0 = _4q0 * q2q2 + _2q2 * ax + _4q0 * q1q1 - _2q1 * ay
            s1 = (_4q1 * q3q3 - _2q3 * ax + 4.0 * q0q0 * q1 - _2q0 * ay - _4q1
                  + _8q1 * q1q1 + _8q1 * q2q2 + _4q1 * az)
            s2 = (4.0 * q0q0 * q2 + _2q0 * ax + _4q2 * q3q3 - _2q3 * ay - _4q2
                  + _8q2 * q1q1 + _8q2 * q2q2 + _4q2 * az)
            s3 = 4.0 * q1q1 * q3 - _2q1 * ax + 4.0 * q2q2 * q3 - _2q2 * ay

            qdot0, qdot1, qdot2, qdot3 = self._apply_gradient(
                (qdot0, qdot1, qdot2, qdot3), (s0, s1, s2, s3)
            )

        self._integrate(qdot0, qdot1, qdot2, qdot3)

    def _apply_gradient(self, qdot, step):
        norm = math.sqrt(sum(s * s for s in step))
        if norm == 0.0:
            # Already at the minimum
            return qdot
        return tuple(d - self.beta * s / norm for d, s in zip(qdot, step))

    def _integrate(self, qdot0: float, qdot1: float, qdot2: float, qdot3: float) -> None:
        dt = 1.0 / self.sample_frequency_hz
        q0, q1, q2, q3 = self._q
        q0 += qdot0 * dt
        q1 += qdot1 * dt
        q2 += qdot2 * dt
        q3 += qdot3 * dt
        norm = math.sqrt(q0 * q0 + q1 * q1 + q2 * q2 + q3 * q3)
        if norm == 0.0:
            self.reset()
            return
        self._q = (q0 / norm, q1 / norm, q2 / norm, q3 / norm)


def _gyro_rate(q0, q1, q2, q3, gx, gy, gz):
    # q̇ = 0.5 * q ⊗ (0, ω)
    return (
        0.5 * (-q1 * gx - q2 * gy - q3 * gz),
        0.5 * (q0 * gx + q2 * gz - q3 * gy),
        0.5 * (q0 * gy - q1 * gz + q3 * gx),
        0.5 * (q0 * gz + q1 * gy - q2 * gx),
    )


__all__ = ["MadgwickAHRS"]
