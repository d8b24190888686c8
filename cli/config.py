from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

DEFAULT_BASE_URL = "http://localhost:8000"
DEFAULT_POLL_INTERVAL = 1.0
DEFAULT_TIMEOUT = 120.0

_BASE_URL_ENV = "SENSORFLEET_API_URL"
_POLL_INTERVAL_ENV = "SENSORFLEET_POLL_INTERVAL"
_TIMEOUT_ENV = "SENSORFLEET_POLL_TIMEOUT"


@dataclass(frozen=True)
class CLIConfig:
    """Connection settings for the remote run commands."""

    base_url: str = DEFAULT_BASE_URL
    poll_interval: float = DEFAULT_POLL_INTERVAL
    poll_timeout: float = DEFAULT_TIMEOUT


def _positive_or_default(value: Optional[str], default: float) -> float:
    if value is None or not value.strip():
        return default
    try:
        parsed = float(value)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def load_config(
    base_url: Optional[str] = None,
    poll_interval: Optional[float] = None,
    poll_timeout: Optional[float] = None,
) -> CLIConfig:
    url = base_url or os.getenv(_BASE_URL_ENV) or DEFAULT_BASE_URL
    interval = poll_interval
    if interval is None:
        interval = _positive_or_default(os.getenv(_POLL_INTERVAL_ENV), DEFAULT_POLL_INTERVAL)
    timeout = poll_timeout
    if timeout is None:
        timeout = _positive_or_default(os.getenv(_TIMEOUT_ENV), DEFAULT_TIMEOUT)
    return CLIConfig(base_url=url.rstrip("/"), poll_interval=interval, poll_timeout=timeout)
