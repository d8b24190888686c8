"""One generate, compress, encode and transmit pass for a device."""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Executor
from typing import Any, Callable, Optional

import typer

from models.records import (
    CycleError,
    CycleOutcome,
    CycleState,
    CycleStrategy,
    DeviceConfig,
    SampleBlock,
)
from services.decimator import Decimator
from services.encoder import PayloadEncoder
from services.generator import SampleGenerator
from services.transmitter import TransmitSimulator

logger = logging.getLogger(__name__)


def _placeholder_stage() -> None:
    """Stage scheduled beside generation in the stage-parallel arrangement."""
    return None


class SensorCycle:
    """Drives the cycle state machine for a single device.

    Stages always observe the read-after-write order
    ``generating -> compressing -> encoding -> transmitting``. The strategy
    only changes how work inside or beside a stage is scheduled.
    """

    def __init__(
        self,
        config: DeviceConfig,
        generator: SampleGenerator,
        decimator: Decimator,
        encoder: PayloadEncoder,
        transmitter: TransmitSimulator,
        strategy: CycleStrategy = CycleStrategy.sequential,
        executor: Optional[Executor] = None,
        clock: Callable[[], float] = time.time,
        echo: Optional[Callable[[str], Any]] = None,
    ) -> None:
        if strategy is CycleStrategy.stage_parallel and executor is None:
            raise ValueError("The stage_parallel strategy requires an executor.")
        self.config = config
        self.generator = generator
        self.decimator = decimator
        self.encoder = encoder
        self.transmitter = transmitter
        self.strategy = strategy
        self._executor = executor
        self._clock = clock
        self._echo = echo or typer.echo
        self.state = CycleState.idle

    def run(self, index: int, cancel_event: Optional[threading.Event] = None) -> CycleOutcome:
        if self.state is not CycleState.idle:
            raise RuntimeError(
                f"Cycle for {self.config.sensor_id!r} is already {self.state.value}."
            )

        config = self.config
        extra = {"sensor_id": config.sensor_id, "cycle": index, "strategy": self.strategy.value}
        start_time = time.perf_counter()
        outcome = CycleOutcome(sensor_id=config.sensor_id, cycle=index)

        logger.info("---- Sensor Cycle Start ----", extra=extra)
        try:
            self.state = CycleState.generating
            raw = self._generate(extra)
            outcome.raw_samples = len(raw)

            self.state = CycleState.compressing
            compressed = self.decimator.compress(raw, extra={**extra, "samples": len(raw)})
            outcome.compressed_samples = len(compressed)
            del raw

            self.state = CycleState.encoding
            logger.info(
                "Transmit: Preparing payload...", extra={**extra, "samples": len(compressed)}
            )
            payload = self.encoder.encode(config.sensor_id, compressed, self._clock())
            outcome.payload_samples = len(payload.audio_data)

            self.state = CycleState.transmitting
            outcome.transmitted = self.transmitter.attempt(
                payload, extra={**extra, "samples": outcome.payload_samples}
            )
            if not outcome.transmitted:
                outcome.error = CycleError.transmission_failure
                logger.error("Error: Transmission failed. Logging for retry.", extra=extra)

            self.state = CycleState.cooling
            outcome.elapsed_ms = int((time.perf_counter() - start_time) * 1000)
            logger.info(
                "Sleep: Entering sleep mode...",
                extra={**extra, "elapsed_ms": outcome.elapsed_ms},
            )
            # Blank console line between cycles.
            self._echo("")
            self._cool_down(cancel_event)
        finally:
            self.state = CycleState.idle

        return outcome

    def _generate(self, extra: dict) -> SampleBlock:
        config = self.config
        if self.strategy is not CycleStrategy.stage_parallel:
            return self.generator.generate(
                config.sample_rate, config.bit_depth, config.duration, extra=extra
            )

        assert self._executor is not None
        generating = self._executor.submit(
            self.generator.generate,
            config.sample_rate,
            config.bit_depth,
            config.duration,
            extra,
        )
        placeholder = self._executor.submit(_placeholder_stage)
        # Join both before any sample is read by the compressing stage.
        block = generating.result()
        placeholder.result()
        return block

    def _cool_down(self, cancel_event: Optional[threading.Event]) -> None:
        delay = max(0.0, self.config.cooldown)
        if not delay:
            return
        if cancel_event is None:
            time.sleep(delay)
        else:
            cancel_event.wait(delay)
