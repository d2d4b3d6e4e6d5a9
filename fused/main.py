#!/usr/bin/env python3
"""
Entry point: load configuration, set up a motion source, and log fused attitude
next to the source's own reference attitude until interrupted.
"""
import os
import threading

from common.interface import MotionSource
from common.logger import get_logger
from common.types import AttitudeFailure, AttitudeSample
from fused.config import AttitudeConfig, config_from_env
from fused.driver import AttitudeDriver
from fused.serial_source import DEFAULT_BAUD, DEFAULT_DEVICE, MspMotionSource
from fused.sources import SimulatedMotionSource

logger = get_logger("main")


def init_source(source_name: str | None, config: AttitudeConfig) -> MotionSource:
    """Instantiate the motion source selected by name."""
    name = (source_name or "sim").lower()
    if name == "sim":
        return SimulatedMotionSource(rates=(0.1, 0.05, 0.3), interval=config.sample_interval)
    if name == "serial":
        device = os.environ.get("FUSED_SERIAL", DEFAULT_DEVICE)
        baud = int(os.environ.get("FUSED_SERIAL_BAUD", str(DEFAULT_BAUD)))
        source = MspMotionSource(device=device, baud=baud, interval=config.sample_interval)
        logger.info("Hold the craft still while we measure gyro bias...")
        source.calibrate()
        return source
    raise NotImplementedError(f"Unsupported source '{source_name}'")


class AttitudeLogger:
    """Consumer that logs every Nth attitude sample."""

    def __init__(self, every: int = 10):
        self.every = max(1, int(every))
        self.count = 0
        self.failures = 0

    def __call__(self, result: AttitudeSample | AttitudeFailure) -> None:
        self.count += 1
        if isinstance(result, AttitudeFailure):
            self.failures += 1
            logger.warning(f"#{result.sequence} no attitude: {result.error}")
            return
        if result.sequence % self.every:
            return
        e = result.euler
        line = f"#{result.sequence} roll {e.roll:8.2f} pitch {e.pitch:8.2f} yaw {e.yaw:8.2f}"
        if result.reference is not None:
            r = result.reference
            line += f" | reference {r.roll:8.2f} {r.pitch:8.2f} {r.yaw:8.2f}"
        logger.info(line)


def run(source_name: str | None, config: AttitudeConfig, stop_event: threading.Event | None = None) -> AttitudeLogger:
    stop_event = stop_event or threading.Event()
    source = init_source(source_name, config)
    consumer = AttitudeLogger(every=max(1, int(config.sample_frequency_hz // 4)))
    with AttitudeDriver(config, source) as driver:
        driver.start(consumer)
        try:
            while not stop_event.wait(0.5):
                pass
        except KeyboardInterrupt:
            logger.info("Stopping...")
    return consumer


def main():
    source_env = os.environ.get("FUSED_SOURCE")
    run(source_env, config_from_env())


if __name__ == "__main__":
    main()
