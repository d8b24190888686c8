"""Tests for device cycle loops and fleet execution."""

from __future__ import annotations

import threading
import time

import pytest

from models.records import CycleStrategy, DeviceConfig
from services.fleet import Device, Fleet, derive_seed


def _device(sensor_id: str, **kwargs) -> Device:
    config = DeviceConfig(
        sensor_id=sensor_id,
        sample_rate=kwargs.pop("sample_rate", 256),
        bit_depth=16,
        duration=1,
        cooldown=kwargs.pop("cooldown", 0),
    )
    kwargs.setdefault("echo", lambda _line: None)
    return Device(config, **kwargs)


def test_device_runs_cycles_in_order() -> None:
    device = _device("sensor_001", seed=11)

    outcomes = device.run(3)

    assert [outcome.cycle for outcome in outcomes] == [0, 1, 2]
    assert all(outcome.attempted for outcome in outcomes)
    assert all(outcome.raw_samples == 256 for outcome in outcomes)
    assert all(outcome.compressed_samples == 64 for outcome in outcomes)


def test_device_zero_cycles_returns_nothing() -> None:
    assert _device("sensor_001").run(0) == []


@pytest.mark.parametrize("strategy", list(CycleStrategy))
def test_device_supports_every_strategy(strategy) -> None:
    device = _device("sensor_001", strategy=strategy, workers=3, sample_rate=1001, seed=5)

    outcomes = device.run(2)

    assert len(outcomes) == 2
    assert all(outcome.raw_samples == 1001 for outcome in outcomes)
    assert all(outcome.compressed_samples == 251 for outcome in outcomes)


def test_same_seed_gives_same_transmission_pattern() -> None:
    first = _device("sensor_001", seed=123).run(20)
    second = _device("sensor_001", seed=123).run(20)

    assert [o.transmitted for o in first] == [o.transmitted for o in second]


def test_derived_seeds_differ_for_simultaneous_devices() -> None:
    seeds = {derive_seed("sensor_001") for _ in range(1000)}

    assert len(seeds) == 1000


def test_cancel_before_start_skips_all_cycles() -> None:
    event = threading.Event()
    event.set()

    assert _device("sensor_001").run(3, cancel_event=event) == []


def test_cancel_during_cycle_finishes_it_and_stops() -> None:
    event = threading.Event()

    def echo(_line: str) -> None:
        event.set()

    device = _device(
        "sensor_001", cooldown=5.0, success_probability=1.0, echo=echo, seed=1
    )

    start = time.perf_counter()
    outcomes = device.run(3, cancel_event=event)
    elapsed = time.perf_counter() - start

    assert len(outcomes) == 1
    assert outcomes[0].transmitted is True
    assert elapsed < 2.0


def test_fleet_runs_devices_concurrently() -> None:
    barrier = threading.Barrier(2)

    def echo(_line: str) -> None:
        try:
            barrier.wait(timeout=2.0)
        except threading.BrokenBarrierError as exc:
            raise AssertionError("Devices did not run concurrently") from exc

    fleet = Fleet(
        [
            _device("sensor_001", success_probability=1.0, echo=echo),
            _device("sensor_002", success_probability=1.0, echo=echo),
        ]
    )

    results = fleet.run(1)

    assert set(results) == {"sensor_001", "sensor_002"}
    assert all(len(outcomes) == 1 for outcomes in results.values())
    assert all(outcomes[0].sensor_id == sensor_id for sensor_id, outcomes in results.items())


def test_fleet_sequential_mode_runs_each_device() -> None:
    fleet = Fleet([_device("a"), _device("b"), _device("c")], concurrent=False)

    results = fleet.run(2)

    assert list(results) == ["a", "b", "c"]
    assert all(len(outcomes) == 2 for outcomes in results.values())


def test_fleet_rejects_duplicate_identities() -> None:
    with pytest.raises(ValueError):
        Fleet([_device("sensor_001"), _device("sensor_001")])
