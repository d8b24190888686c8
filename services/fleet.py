"""Device cycle loops and the fleet driver that runs them side by side."""

from __future__ import annotations

import hashlib
import itertools
import logging
import random
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, Iterable, List, Optional

from models.records import CycleOutcome, CycleStrategy, DeviceConfig
from services.cycle import SensorCycle
from services.decimator import Decimator
from services.encoder import PayloadEncoder
from services.generator import SampleGenerator
from services.transmitter import DEFAULT_SUCCESS_PROBABILITY, TransmitSimulator

logger = logging.getLogger(__name__)

_seed_counter = itertools.count()
_seed_lock = threading.Lock()


def derive_seed(sensor_id: str) -> int:
    """Seed a device's random source from its identity, time and a counter.

    Devices built in the same clock tick still receive distinct seeds.
    """
    with _seed_lock:
        sequence = next(_seed_counter)
    material = f"{sensor_id}:{time.time_ns()}:{sequence}".encode("utf-8")
    return int.from_bytes(hashlib.blake2b(material, digest_size=8).digest(), "big")


class Device:
    """A simulated sensor running its cycles one after another."""

    def __init__(
        self,
        config: DeviceConfig,
        strategy: CycleStrategy = CycleStrategy.sequential,
        workers: int = 4,
        success_probability: float = DEFAULT_SUCCESS_PROBABILITY,
        latency: float = 0.0,
        seed: Optional[int] = None,
        echo: Optional[Callable[[str], Any]] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.config = config
        self.strategy = strategy
        self.workers = max(1, workers)
        self.success_probability = success_probability
        self.latency = latency
        self._rng = random.Random(derive_seed(config.sensor_id) if seed is None else seed)
        self._echo = echo
        self._clock = clock

    @property
    def sensor_id(self) -> str:
        return self.config.sensor_id

    def run(
        self,
        cycles: int,
        cancel_event: Optional[threading.Event] = None,
    ) -> List[CycleOutcome]:
        """Run up to ``cycles`` cycles, stopping early once cancelled."""
        outcomes: List[CycleOutcome] = []
        if cycles <= 0:
            return outcomes

        executor = self._build_executor()
        try:
            cycle = self._build_cycle(executor)
            for index in range(cycles):
                if cancel_event is not None and cancel_event.is_set():
                    logger.info(
                        "Cancelled: skipping remaining cycles.",
                        extra={"sensor_id": self.sensor_id, "cycle": index},
                    )
                    break
                outcomes.append(cycle.run(index, cancel_event=cancel_event))
        finally:
            if executor is not None:
                executor.shutdown(wait=True)
        return outcomes

    def _build_executor(self) -> Optional[ThreadPoolExecutor]:
        if self.strategy is CycleStrategy.sequential:
            return None
        # The stage-parallel arrangement always needs two slots.
        max_workers = self.workers
        if self.strategy is CycleStrategy.stage_parallel:
            max_workers = max(2, max_workers)
        return ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix=f"{self.sensor_id}-worker",
        )

    def _build_cycle(self, executor: Optional[ThreadPoolExecutor]) -> SensorCycle:
        data_workers = self.workers if self.strategy is CycleStrategy.data_parallel else 1
        data_executor = executor if self.strategy is CycleStrategy.data_parallel else None
        return SensorCycle(
            config=self.config,
            generator=SampleGenerator(self._rng, executor=data_executor, workers=data_workers),
            decimator=Decimator(executor=data_executor, workers=data_workers),
            encoder=PayloadEncoder(),
            transmitter=TransmitSimulator(
                self._rng,
                success_probability=self.success_probability,
                latency=self.latency,
                echo=self._echo,
            ),
            strategy=self.strategy,
            executor=executor,
            clock=self._clock,
            echo=self._echo,
        )


class Fleet:
    """Runs the cycle loops of independent devices."""

    def __init__(
        self,
        devices: Iterable[Device],
        concurrent: bool = True,
        workers: Optional[int] = None,
    ) -> None:
        self.devices = list(devices)
        ids = [device.sensor_id for device in self.devices]
        if len(set(ids)) != len(ids):
            raise ValueError("Device identities must be unique within a fleet.")
        self.concurrent = concurrent
        self.workers = workers

    def run(
        self,
        cycles: int,
        cancel_event: Optional[threading.Event] = None,
    ) -> Dict[str, List[CycleOutcome]]:
        if not self.devices:
            return {}

        if not self.concurrent or len(self.devices) == 1:
            return {
                device.sensor_id: device.run(cycles, cancel_event=cancel_event)
                for device in self.devices
            }

        max_workers = min(self.workers or len(self.devices), len(self.devices))
        with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="fleet") as executor:
            futures = {
                device.sensor_id: executor.submit(device.run, cycles, cancel_event)
                for device in self.devices
            }
            return {sensor_id: future.result() for sensor_id, future in futures.items()}
