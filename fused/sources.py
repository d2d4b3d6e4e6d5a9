"""
Motion sources that push RawSamples into a driver's executor at a fixed rate.
"""

from __future__ import annotations

import threading
from concurrent.futures import Executor
from typing import Iterable, Iterator, Optional, Sequence

import numpy as np

from common.interface import MotionSource, SampleHandler
from common.logger import get_logger
from common.math import Quaternion
from common.realtime import RateKeeper, monotonic_time
from common.types import EulerAngles, RawSample
from fused.euler import euler_from_quaternion

logger = get_logger("sources")

# Earth field in the world frame (x north, z up), normalised units
DEFAULT_MAGNETIC_FIELD = (0.38, 0.0, -0.92)


class ThreadedMotionSource(MotionSource):
    """
    Runs a producer thread paced by a RateKeeper. Each tick calls read_sample()
    and submits the result to the executor handed over in start_updates().
    """

    name = "threaded"

    def __init__(self, interval: float = 0.01):
        self._interval = interval
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def active(self) -> bool:
        return self._thread is not None and self._thread.is_alive() and not self._stop_event.is_set()

    def configure(self, interval: float) -> None:
        if interval <= 0.0:
            raise ValueError("interval must be positive")
        self._interval = float(interval)

    def start_updates(self, executor: Executor, on_sample: SampleHandler) -> None:
        if self.active:
            raise RuntimeError(f"{type(self).__name__} is already delivering samples")
        if self._thread is not None and self._thread.is_alive():
            # Previous producer is winding down after stop_updates()
            self._thread.join(timeout=1.0)
        self._stop_event = threading.Event()
        self.open()
        self._thread = threading.Thread(
            target=self._run,
            args=(executor, on_sample, self._stop_event),
            name=f"{self.name}-source",
            daemon=True,
        )
        self._thread.start()

    def stop_updates(self) -> None:
        self._stop_event.set()

    def join(self, timeout: Optional[float] = None) -> None:
        """Wait for the producer thread to exit."""
        if self._thread is not None:
            self._thread.join(timeout)

    # -- Subclass hooks ------------------------------------------------------

    def open(self) -> None:
        """Acquire resources before the producer thread starts."""

    def close(self) -> None:
        """Release resources after the producer thread exits."""

    def read_sample(self) -> Optional[RawSample]:
        """Return the next sample, None if nothing is available this tick.
        Raise StopIteration when the source is exhausted."""
        raise NotImplementedError

    # -- Producer ------------------------------------------------------------

    def _run(self, executor: Executor, on_sample: SampleHandler, stop_event: threading.Event) -> None:
        rk = RateKeeper(rate_hz=1.0 / self._interval)
        try:
            while not stop_event.is_set():
                try:
                    sample = self.read_sample()
                except StopIteration:
                    logger.info(f"{self.name} source exhausted")
                    break
                if sample is not None and not stop_event.is_set():
                    try:
                        executor.submit(on_sample, sample)
                    except RuntimeError as exc:
                        logger.warning(f"{self.name} source stopping, executor rejected sample: {exc}")
                        break
                if not self._pace(rk, stop_event):
                    break
        except Exception:
            logger.exception(f"{self.name} source failed")
        finally:
            stop_event.set()
            self.close()

    def _pace(self, rk: RateKeeper, stop_event: threading.Event) -> bool:
        return rk.keep_time(stop_event)


class ReplayMotionSource(ThreadedMotionSource):
    """Replays a finite sequence of samples, optionally without pacing."""

    name = "replay"

    def __init__(self, samples: Iterable[RawSample], interval: float = 0.01, realtime: bool = True):
        super().__init__(interval)
        self._samples = list(samples)
        self._iter: Iterator[RawSample] = iter(())
        self.realtime = realtime

    def open(self) -> None:
        self._iter = iter(self._samples)

    def read_sample(self) -> Optional[RawSample]:
        return next(self._iter)

    def _pace(self, rk: RateKeeper, stop_event: threading.Event) -> bool:
        if self.realtime:
            return rk.keep_time(stop_event)
        return not stop_event.is_set()


class SimulatedMotionSource(ThreadedMotionSource):
    """
    Rigid body spinning at constant body rates. Gravity and the magnetic field
    are rotated into the body frame; the true attitude is attached as reference.
    """

    name = "sim"

    def __init__(
        self,
        rates: Sequence[float] = (0.0, 0.0, 0.2),
        initial: EulerAngles = EulerAngles(0.0, 0.0, 0.0),
        magnetic_field: Sequence[float] = DEFAULT_MAGNETIC_FIELD,
        noise_std: float = 0.0,
        seed: Optional[int] = None,
        interval: float = 0.01,
        clock=monotonic_time,
    ):
        super().__init__(interval)
        self.rates = np.asarray(rates, dtype=float)
        self.initial = initial
        self.magnetic_field = np.asarray(magnetic_field, dtype=float)
        self.noise_std = float(noise_std)
        self._rng = np.random.default_rng(seed)
        self._clock = clock
        self._q = Quaternion.from_euler(*initial.as_tuple())

    @property
    def orientation(self) -> Quaternion:
        return self._q

    def open(self) -> None:
        self._q = Quaternion.from_euler(*self.initial.as_tuple())

    def read_sample(self) -> Optional[RawSample]:
        body_from_world = self._q.conjugate()
        gravity = body_from_world.rotate((0.0, 0.0, -1.0))
        field = body_from_world.rotate(self.magnetic_field)
        gyro = self.rates.copy()
        if self.noise_std > 0.0:
            gyro += self._rng.normal(0.0, self.noise_std, 3)
            gravity = gravity + self._rng.normal(0.0, self.noise_std, 3)
            field = field + self._rng.normal(0.0, self.noise_std, 3)

        sample = RawSample(
            gyro=_as_vector(gyro),
            gravity=_as_vector(gravity),
            magnetic_field=_as_vector(field),
            reference=euler_from_quaternion(*self._q.components),
            timestamp=self._clock(),
        )
        self._advance()
        return sample

    def _advance(self) -> None:
        angle = float(np.linalg.norm(self.rates)) * self._interval
        if angle == 0.0:
            return
        # Body rates: right-multiply by the incremental rotation
        self._q = self._q * Quaternion.from_axis_angle(self.rates, angle)
        self._q.normalize()


def _as_vector(values) -> tuple[float, float, float]:
    x, y, z = (float(v) for v in values)
    return x, y, z


__all__ = [
    "DEFAULT_MAGNETIC_FIELD",
    "ThreadedMotionSource",
    "ReplayMotionSource",
    "SimulatedMotionSource",
]
