"""
Rate keeping utilities inspired by openpilot's common.realtime.
Paces the sample-producing loops of the motion sources.
"""

from __future__ import annotations

import threading
import time

from common.logger import get_logger

logger = get_logger("realtime")


def monotonic_time() -> float:
    """Return monotonic time in seconds."""
    return time.monotonic()


class RateKeeper:
    """
    Maintain a fixed loop rate:
    - monitor_time(): update timing statistics, return remaining time (negative if late)
    - keep_time(): call monitor_time() then wait for remaining time, if positive
    """

    def __init__(self, rate_hz: float, clock=monotonic_time, lag_log_threshold: float | None = 0.01):
        if rate_hz <= 0.0:
            raise ValueError("rate_hz must be positive")
        self.period = 1.0 / rate_hz
        self.clock = clock
        self.lag_log_threshold = lag_log_threshold
        self.frame = 0
        self._last = self.clock()
        self._next = self._last + self.period

    def monitor_time(self) -> float:
        """
        Update timing statistics and compute remaining time before the next frame.
        Returns remaining seconds (negative if the loop is lagging).
        """
        now = self.clock()
        remaining = self._next - now
        if self.lag_log_threshold is not None and remaining < -self.lag_log_threshold:
            logger.debug(f"Lagging by {-remaining * 1000:.2f} ms (frame {self.frame})")
            # Resync instead of bursting to catch up
            self._next = now

        self._last = now
        self._next += self.period
        self.frame += 1
        return remaining

    def keep_time(self, stop_event: threading.Event | None = None) -> bool:
        """
        Call monitor_time() and wait for the remaining time, if positive.
        When a stop_event is given the wait ends early once it is set.
        Returns True if the loop should keep going.
        """
        remaining = self.monitor_time()
        if stop_event is not None:
            if remaining > 0.0:
                return not stop_event.wait(remaining)
            return not stop_event.is_set()
        if remaining > 0.0:
            time.sleep(remaining)
        return True
