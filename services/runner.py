"""Background execution of fleet runs submitted through the API."""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Callable, Dict, List, Optional
from uuid import uuid4

from app.schemas import MAX_BLOCK_SAMPLES, CycleResult, RunRecord, RunRequest, RunStatus
from datastore.run_store import RunStore, build_default_store
from models.records import CycleOutcome, CycleStrategy, DeviceConfig
from services.fleet import Device, Fleet
from settings import Settings, get_settings

logger = logging.getLogger(__name__)


class RunnerService:
    """Coordinates fleet execution, cancellation, and result retrieval."""

    def __init__(
        self,
        store: RunStore,
        settings: Optional[Settings] = None,
        workers: int = 2,
        echo: Optional[Callable[[str], Any]] = None,
    ) -> None:
        self.store = store
        self.settings = settings or get_settings()
        self.executor = ThreadPoolExecutor(max_workers=workers)
        self._echo = echo
        self._futures: Dict[str, Future[None]] = {}
        self._cancel_events: Dict[str, threading.Event] = {}
        self._futures_lock = threading.Lock()

    def enqueue_run(self, request: RunRequest) -> str:
        """Record a queued run and schedule it on the worker pool."""
        devices = self._build_devices(request)
        run_id = str(uuid4())
        created_at = datetime.now(timezone.utc)
        strategy = self._strategy(request)
        self.store.save(
            RunRecord(
                run_id=run_id,
                status=RunStatus.queued,
                created_at=created_at,
                device_ids=[device.sensor_id for device in devices],
                strategy=strategy,
            )
        )

        cancel_event = threading.Event()
        cycles = request.cycles if request.cycles is not None else self.settings.cycles
        fleet = Fleet(devices, concurrent=request.concurrent_devices, workers=self.settings.workers)
        with self._futures_lock:
            self._cancel_events[run_id] = cancel_event
            future = self.executor.submit(
                self._execute_run,
                run_id=run_id,
                fleet=fleet,
                cycles=cycles,
                created_at=created_at,
                strategy=strategy,
                cancel_event=cancel_event,
            )
            self._futures[run_id] = future
        future.add_done_callback(lambda _f, rid=run_id: self._clear_future(rid))
        logger.info("Run queued for %d cycles.", cycles, extra={"run_id": run_id})
        return run_id

    def fetch_run(self, run_id: str) -> RunRecord:
        """Retrieve the current record of a run."""
        record = self.store.get(run_id)
        if record is None:
            raise KeyError(f"Run {run_id!r} not found.")
        return record

    def list_runs(
        self,
        status: Optional[RunStatus] = None,
        limit: Optional[int] = None,
    ) -> List[RunRecord]:
        """List stored runs, newest first."""
        return self.store.list_runs(status=status, limit=limit)

    def cancel_run(self, run_id: str) -> RunRecord:
        """Signal a run to stop before its devices start another cycle."""
        record = self.fetch_run(run_id)
        with self._futures_lock:
            event = self._cancel_events.get(run_id)
        if event is not None:
            event.set()
            logger.info("Run cancellation requested.", extra={"run_id": run_id})
        return record

    def shutdown(self) -> None:
        """Stop in-flight runs and release executor resources."""
        with self._futures_lock:
            events = list(self._cancel_events.values())
        for event in events:
            event.set()
        self.executor.shutdown(wait=False, cancel_futures=True)

    def _clear_future(self, run_id: str) -> None:
        with self._futures_lock:
            self._futures.pop(run_id, None)
            self._cancel_events.pop(run_id, None)

    def _strategy(self, request: RunRequest) -> CycleStrategy:
        if request.strategy is not None:
            return request.strategy
        return CycleStrategy(self.settings.strategy)

    def _build_devices(self, request: RunRequest) -> List[Device]:
        if not request.device_ids:
            raise ValueError("At least one device id is required.")
        if any(not device_id.strip() for device_id in request.device_ids):
            raise ValueError("Device ids must not be blank.")
        if len(set(request.device_ids)) != len(request.device_ids):
            raise ValueError("Device ids must be unique.")

        settings = self.settings
        sample_rate = _pick(request.sample_rate, settings.sample_rate)
        duration = _pick(request.duration, settings.duration)
        if sample_rate * duration > MAX_BLOCK_SAMPLES:
            raise ValueError(
                f"sample_rate * duration must not exceed {MAX_BLOCK_SAMPLES} samples."
            )
        strategy = self._strategy(request)
        devices: List[Device] = []
        for offset, device_id in enumerate(request.device_ids):
            config = DeviceConfig(
                sensor_id=device_id,
                sample_rate=sample_rate,
                bit_depth=_pick(request.bit_depth, settings.bit_depth),
                duration=duration,
                cooldown=_pick(request.cooldown, settings.cooldown),
            )
            devices.append(
                Device(
                    config,
                    strategy=strategy,
                    workers=settings.workers,
                    success_probability=settings.success_probability,
                    latency=settings.latency,
                    seed=None if request.seed is None else request.seed + offset,
                    echo=self._echo,
                )
            )
        return devices

    def _execute_run(
        self,
        run_id: str,
        fleet: Fleet,
        cycles: int,
        created_at: datetime,
        strategy: CycleStrategy,
        cancel_event: threading.Event,
    ) -> None:
        start_time = time.perf_counter()
        device_ids = [device.sensor_id for device in fleet.devices]
        self.store.save(
            RunRecord(
                run_id=run_id,
                status=RunStatus.running,
                created_at=created_at,
                device_ids=device_ids,
                strategy=strategy,
            )
        )

        outcomes: List[CycleOutcome] = []
        error: Optional[str] = None
        try:
            results = fleet.run(cycles, cancel_event=cancel_event)
            for device_id in device_ids:
                outcomes.extend(results.get(device_id, []))
            status = RunStatus.cancelled if cancel_event.is_set() else RunStatus.completed
        except Exception as exc:  # pragma: no cover - defensive catch-all
            logger.exception("Run failed.", extra={"run_id": run_id})
            status = RunStatus.failed
            error = str(exc)

        transmitted = sum(1 for outcome in outcomes if outcome.transmitted)
        processing_ms = int((time.perf_counter() - start_time) * 1000)
        self.store.save(
            RunRecord(
                run_id=run_id,
                status=status,
                created_at=created_at,
                finished_at=datetime.now(timezone.utc),
                processing_ms=processing_ms,
                device_ids=device_ids,
                strategy=strategy,
                outcomes=[_to_result(outcome) for outcome in outcomes],
                transmitted_count=transmitted,
                failed_count=len(outcomes) - transmitted,
                error=error,
            )
        )
        logger.info(
            "Run finished with status %s.",
            status.value,
            extra={"run_id": run_id, "elapsed_ms": processing_ms},
        )


def _pick(value: Optional[Any], default: Any) -> Any:
    return default if value is None else value


def _to_result(outcome: CycleOutcome) -> CycleResult:
    return CycleResult(
        sensor_id=outcome.sensor_id,
        cycle=outcome.cycle,
        attempted=outcome.attempted,
        transmitted=outcome.transmitted,
        error=outcome.error,
        raw_samples=outcome.raw_samples,
        compressed_samples=outcome.compressed_samples,
        payload_samples=outcome.payload_samples,
        elapsed_ms=outcome.elapsed_ms,
    )


@lru_cache
def build_default_runner(
    workers: Optional[int] = None,
) -> RunnerService:
    """Factory that wires the runner with the default run store."""
    settings = get_settings()
    store = build_default_store()
    worker_count = workers or settings.runner_workers
    return RunnerService(store=store, settings=settings, workers=worker_count)
