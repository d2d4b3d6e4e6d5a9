"""
Interface definitions for motion sources and fusion engines.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from concurrent.futures import Executor
from typing import Callable, Union

from common.types import AttitudeFailure, AttitudeSample, QuaternionTuple, RawSample

SampleHandler = Callable[[RawSample], None]
AttitudeConsumer = Callable[[Union[AttitudeSample, AttitudeFailure]], None]


class MotionSource(ABC):
    """Abstract base for anything that pushes RawSamples at a requested interval."""

    @abstractmethod
    def configure(self, interval: float) -> None:
        """Set the delivery interval in seconds."""

    @abstractmethod
    def start_updates(self, executor: Executor, on_sample: SampleHandler) -> None:
        """Begin delivering samples by submitting ``on_sample(sample)`` to ``executor``."""

    @abstractmethod
    def stop_updates(self) -> None:
        """Stop delivering samples. Must not block on an in-flight sample."""


class FusionEngine(ABC):
    """Abstract base for sensor fusion engines producing an orientation quaternion."""

    @abstractmethod
    def update(
        self,
        gx: float, gy: float, gz: float,
        ax: float, ay: float, az: float,
        mx: float, my: float, mz: float,
    ) -> None:
        """Advance the estimate by one sample."""

    @property
    @abstractmethod
    def quaternion(self) -> QuaternionTuple:
        """Current estimate as (q0, q1, q2, q3), scalar first."""

    @property
    def q0(self) -> float:
        return self.quaternion[0]

    @property
    def q1(self) -> float:
        return self.quaternion[1]

    @property
    def q2(self) -> float:
        return self.quaternion[2]

    @property
    def q3(self) -> float:
        return self.quaternion[3]
