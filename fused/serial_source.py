"""
MSP (MultiWii Serial Protocol) motion source: polls MSP_RAW_IMU from a flight
controller over a serial port and turns each reply into a RawSample.
"""

from __future__ import annotations

import os
import struct
import time
from typing import Generator, Iterable, Optional

from common.logger import get_logger
from common.math import radians_from_degrees
from common.realtime import monotonic_time
from common.types import RawSample
from fused.sources import ThreadedMotionSource

try:
    import termios
except ImportError:  # pragma: no cover - Windows fallback
    termios = None  # type: ignore

logger = get_logger("serial")

DEFAULT_DEVICE = "/dev/tty.usbmodem0x80000001"
DEFAULT_BAUD = 115200
CMD_RAW_IMU = 102
ACC_LSB_PER_G = 2048.0       # ±16 g range → 2048 counts = 1 g
GYRO_LSB_PER_DPS = 16.384    # ±2000 °/s range → 16.384 counts = 1 °/s
READ_CHUNK = 512


def xor_checksum(data: Iterable[int]) -> int:
    chk = 0
    for b in data:
        chk ^= b
    return chk


def msp_request(cmd: int) -> bytes:
    size = 0
    checksum = size ^ cmd
    return b"$M<" + bytes([size, cmd, checksum])


def parse_buffer(buf: bytearray) -> Generator[bytes, None, None]:
    """Yield complete '$M>' reply frames, consuming them from buf."""
    while True:
        start = buf.find(b"$M>")
        if start == -1:
            buf.clear()
            break
        if len(buf) < start + 5:
            break
        size = buf[start + 3]
        frame_len = 5 + size + 1
        if len(buf) < start + frame_len:
            break
        frame = bytes(buf[start:start + frame_len])
        del buf[:start + frame_len]
        yield frame


def decode_raw_imu(frame: bytes) -> tuple[int, ...]:
    """Return (ax, ay, az, gx, gy, gz, mx, my, mz) raw counts from an MSP_RAW_IMU reply."""
    size = frame[3]
    cmd = frame[4]
    if cmd != CMD_RAW_IMU:
        raise ValueError(f"Unexpected MSP command {cmd}")
    if size < 18:
        raise ValueError(f"MSP_RAW_IMU payload too short: {size} bytes")
    payload = frame[5:5 + size]
    checksum = frame[5 + size]
    calc = xor_checksum(frame[3:5 + size])  # XOR over size, cmd, payload
    if calc != checksum:
        raise ValueError(f"Checksum mismatch: {calc} != {checksum}")
    return struct.unpack_from("<9h", payload)


def sample_from_raw(values: tuple[int, ...], gyro_bias=(0.0, 0.0, 0.0), timestamp: Optional[float] = None) -> RawSample:
    """Scale raw counts: accel to g, gyro to rad/s; magnetometer left in counts."""
    ax, ay, az, gx, gy, gz, mx, my, mz = values
    accel = (ax / ACC_LSB_PER_G, ay / ACC_LSB_PER_G, az / ACC_LSB_PER_G)
    gyro = tuple(
        radians_from_degrees((raw - bias) / GYRO_LSB_PER_DPS)
        for raw, bias in zip((gx, gy, gz), gyro_bias)
    )
    return RawSample(
        gyro=gyro,
        # Accelerometer reads specific force; gravity points the other way
        gravity=(-accel[0], -accel[1], -accel[2]),
        magnetic_field=(float(mx), float(my), float(mz)),
        timestamp=timestamp,
    )


class MspMotionSource(ThreadedMotionSource):
    """Polls a flight controller for raw IMU frames once per tick."""

    name = "msp"

    def __init__(self, device: str = DEFAULT_DEVICE, baud: int = DEFAULT_BAUD, interval: float = 0.02):
        super().__init__(interval)
        self.device = device
        self.baud = int(baud)
        self.gyro_bias = (0.0, 0.0, 0.0)
        self._fd: Optional[int] = None
        self._buf = bytearray()

    def open(self) -> None:
        if self._fd is not None:
            return
        if termios is None:
            raise RuntimeError("Serial support unavailable on this platform")
        fd = os.open(self.device, os.O_RDWR | os.O_NOCTTY | os.O_NONBLOCK)
        attrs = termios.tcgetattr(fd)
        attrs[0] = 0
        attrs[1] = 0
        attrs[2] = termios.CREAD | termios.CLOCAL | termios.CS8
        attrs[3] = 0
        baud_const = getattr(termios, f"B{self.baud}", None)
        if baud_const is None:
            os.close(fd)
            raise ValueError(f"Unsupported baud rate {self.baud}")
        if hasattr(termios, "cfsetispeed"):
            termios.cfsetispeed(attrs, baud_const)
            termios.cfsetospeed(attrs, baud_const)
        else:
            attrs[4] = baud_const
            attrs[5] = baud_const
        termios.tcsetattr(fd, termios.TCSANOW, attrs)
        self._fd = fd
        self._buf.clear()
        logger.info(f"Connected to {self.device} @ {self.baud} baud")

    def close(self) -> None:
        if self._fd is not None:
            os.close(self._fd)
            self._fd = None

    def _poll(self) -> list[tuple[int, ...]]:
        os.write(self._fd, msp_request(CMD_RAW_IMU))
        try:
            self._buf.extend(os.read(self._fd, READ_CHUNK))
        except BlockingIOError:
            return []
        decoded = []
        for frame in parse_buffer(self._buf):
            try:
                decoded.append(decode_raw_imu(frame))
            except ValueError as exc:
                logger.warning(f"Skipping frame: {exc}")
        return decoded

    def read_sample(self) -> Optional[RawSample]:
        decoded = self._poll()
        if not decoded:
            return None
        # Replies can pile up; the latest one is the current reading.
        return sample_from_raw(decoded[-1], self.gyro_bias, timestamp=monotonic_time())

    def calibrate(self, samples: int = 200, max_polls: int = 2000) -> tuple[float, float, float]:
        """Average gyro counts while the craft is held still and use them as bias."""
        self.open()
        sums = [0.0, 0.0, 0.0]
        count = 0
        polls = 0
        while count < samples and polls < max_polls:
            polls += 1
            time.sleep(self.interval)  # let the reply arrive
            for values in self._poll():
                _, _, _, gx, gy, gz, *_ = values
                sums[0] += gx
                sums[1] += gy
                sums[2] += gz
                count += 1
        if count == 0:
            raise RuntimeError(f"No MSP_RAW_IMU replies from {self.device}")
        self.gyro_bias = (sums[0] / count, sums[1] / count, sums[2] / count)
        bias_dps = ", ".join(f"{b / GYRO_LSB_PER_DPS:.2f}" for b in self.gyro_bias)
        logger.info(f"Gyro bias calibrated over {count} samples: [{bias_dps}] °/s")
        return self.gyro_bias


__all__ = [
    "CMD_RAW_IMU",
    "MspMotionSource",
    "decode_raw_imu",
    "msp_request",
    "parse_buffer",
    "sample_from_raw",
    "xor_checksum",
]
