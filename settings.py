from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_SAMPLE_RATE_ENV = "SENSOR_SAMPLE_RATE"
_BIT_DEPTH_ENV = "SENSOR_BIT_DEPTH"
_DURATION_ENV = "SENSOR_DURATION"
_COOLDOWN_ENV = "SENSOR_COOLDOWN"
_CYCLES_ENV = "SENSOR_CYCLES"
_STRATEGY_ENV = "SENSOR_STRATEGY"
_WORKER_COUNT_ENV = "SENSOR_WORKER_COUNT"
_SUCCESS_PROBABILITY_ENV = "TRANSMIT_SUCCESS_PROBABILITY"
_LATENCY_ENV = "TRANSMIT_LATENCY"
_RUNNER_WORKERS_ENV = "RUNNER_WORKER_COUNT"
_RUN_STORE_PATH_ENV = "RUN_STORE_PATH"
_LOG_LEVEL_ENV = "LOG_LEVEL"
_LOG_CONTEXT_ENV = "LOG_CONTEXT"

_STRATEGIES = ("sequential", "data_parallel", "stage_parallel")


@dataclass(frozen=True)
class Settings:
    sample_rate: int
    bit_depth: int
    duration: int
    cooldown: float
    cycles: int
    strategy: str
    workers: int
    success_probability: float
    latency: float
    runner_workers: int
    run_store_path: Optional[str]
    log_level: str
    log_context: bool


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_positive_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_float(name: str, default: float, upper: Optional[float] = None) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    if parsed < 0:
        return default
    if upper is not None and parsed > upper:
        return default
    return parsed


def _read_strategy(default: str) -> str:
    value = os.getenv(_STRATEGY_ENV)
    if value is None:
        return default
    candidate = value.strip().lower()
    return candidate if candidate in _STRATEGIES else default


def _read_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip().lower()
    if not candidate:
        return default
    return candidate in {"1", "true", "yes", "on"}


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        sample_rate=_read_positive_int(_SAMPLE_RATE_ENV, 400000),
        bit_depth=_read_positive_int(_BIT_DEPTH_ENV, 24),
        duration=_read_positive_int(_DURATION_ENV, 1),
        cooldown=_read_float(_COOLDOWN_ENV, 2.0),
        cycles=_read_positive_int(_CYCLES_ENV, 3),
        strategy=_read_strategy("sequential"),
        workers=_read_positive_int(_WORKER_COUNT_ENV, 4),
        success_probability=_read_float(_SUCCESS_PROBABILITY_ENV, 0.9, upper=1.0),
        latency=_read_float(_LATENCY_ENV, 0.0),
        runner_workers=_read_positive_int(_RUNNER_WORKERS_ENV, 2),
        run_store_path=_read_optional_env(_RUN_STORE_PATH_ENV, None),
        log_level=_read_log_level("INFO"),
        log_context=_read_flag(_LOG_CONTEXT_ENV, False),
    )
