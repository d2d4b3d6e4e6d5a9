"""
Attitude driver: feeds motion samples through a fusion engine and reports
quaternion + Euler attitude to a consumer, one sample at a time.
"""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional, Union

from common.interface import AttitudeConsumer, FusionEngine, MotionSource
from common.logger import get_logger
from common.types import AttitudeFailure, AttitudeSample, RawSample
from fused.config import AttitudeConfig
from fused.errors import AlreadyRunning, InvalidOrientation, NotRunning
from fused.euler import euler_from_quaternion
from fused.madgwick import MadgwickAHRS

logger = get_logger("driver")

EngineFactory = Callable[[float, float], FusionEngine]


class AttitudeDriver:
    """
    Owns a fusion engine and a single worker thread. Samples pushed by the
    motion source are processed strictly in arrival order on that worker:
    engine update, quaternion read-back, Euler decomposition, then a
    synchronous call to the consumer.

    Lifecycle: Idle -> start() -> Running -> stop() -> Idle. close() releases
    the worker; the driver cannot be restarted afterwards.
    """

    def __init__(
        self,
        config: AttitudeConfig,
        source: MotionSource,
        engine_factory: EngineFactory = MadgwickAHRS,
    ):
        self.config = config
        self._source = source
        self._engine = engine_factory(config.sample_frequency_hz, config.gain_beta)
        self._source.configure(config.sample_interval)

        # One worker for the driver's lifetime: restarts stay serialized with any
        # sample still in flight from the previous run.
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="DeviceMotion")
        self._lock = threading.Lock()
        self._running = False
        self._closed = False
        self._generation = 0
        self._consumer: Optional[AttitudeConsumer] = None
        self._sequence = 0

    @property
    def running(self) -> bool:
        return self._running

    @property
    def engine(self) -> FusionEngine:
        return self._engine

    def start(self, consumer: AttitudeConsumer) -> None:
        """
        Subscribe to the motion source and deliver results to ``consumer``.

        Raises:
            AlreadyRunning: if the driver is already running.
            RuntimeError: if the driver has been closed.
        """
        if not callable(consumer):
            raise TypeError("consumer must be callable")
        with self._lock:
            if self._closed:
                raise RuntimeError("driver is closed")
            if self._running:
                raise AlreadyRunning("attitude driver is already running")
            self._generation += 1
            generation = self._generation
            self._consumer = consumer
            self._sequence = 0
            self._running = True
            try:
                self._source.start_updates(
                    self._executor, lambda sample: self._on_sample(generation, sample)
                )
            except Exception:
                self._running = False
                self._consumer = None
                raise
        logger.info(
            f"Started at {self.config.sample_frequency_hz:g} Hz "
            f"(beta={self.config.gain_beta:g}, source={type(self._source).__name__})"
        )

    def stop(self, strict: bool = False) -> bool:
        """
        Unsubscribe from the motion source. Does not wait for a sample that is
        already being processed; queued samples not yet started are dropped.

        Returns False (or raises NotRunning when ``strict``) if the driver was idle.
        """
        with self._lock:
            if not self._running:
                if strict:
                    raise NotRunning("attitude driver is not running")
                logger.debug("stop() on idle driver ignored")
                return False
            self._running = False
            self._consumer = None
            self._generation += 1
        self._source.stop_updates()
        logger.info("Stopped")
        return True

    def close(self) -> None:
        """Stop if running and shut the worker down."""
        self.stop()
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._executor.shutdown(wait=False, cancel_futures=True)

    def __enter__(self) -> "AttitudeDriver":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # -- Worker --------------------------------------------------------------

    def _on_sample(self, generation: int, sample: RawSample) -> None:
        with self._lock:
            if not self._running or generation != self._generation:
                logger.debug("Dropping sample delivered after stop()")
                return
            consumer = self._consumer
            sequence = self._sequence
            self._sequence += 1

        record = self.process(sample, sequence)
        try:
            consumer(record)
        except Exception:
            logger.exception(f"Attitude consumer failed on sample {sequence}")

    def process(self, sample: RawSample, sequence: int = 0) -> Union[AttitudeSample, AttitudeFailure]:
        """Run one sample through the engine and decomposer. Not thread-safe."""
        gx, gy, gz = sample.gyro
        # Accelerometer angles inverted: the engine expects +z up at rest.
        ax, ay, az = (-sample.gravity[0], -sample.gravity[1], -sample.gravity[2])
        mx, my, mz = sample.magnetic_field

        self._engine.update(gx, gy, gz, ax, ay, az, mx, my, mz)
        quaternion = (self._engine.q0, self._engine.q1, self._engine.q2, self._engine.q3)

        try:
            euler = euler_from_quaternion(*quaternion)
        except InvalidOrientation as exc:
            logger.warning(f"Sample {sequence}: {exc}")
            return AttitudeFailure(
                gyro=(gx, gy, gz),
                accel=(ax, ay, az),
                magnetic_field=(mx, my, mz),
                quaternion=quaternion,
                error=exc,
                timestamp=sample.timestamp,
                sequence=sequence,
            )

        reference = sample.reference.degrees() if sample.reference is not None else None
        return AttitudeSample(
            gyro=(gx, gy, gz),
            accel=(ax, ay, az),
            magnetic_field=(mx, my, mz),
            quaternion=quaternion,
            euler=euler.degrees(),
            reference=reference,
            timestamp=sample.timestamp,
            sequence=sequence,
        )


__all__ = ["AttitudeDriver", "EngineFactory"]
