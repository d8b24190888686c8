"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

SampleBlock = List[int]


class CycleStrategy(str, Enum):
    """Concurrency arrangement used inside a single sensor cycle."""

    sequential = "sequential"
    data_parallel = "data_parallel"
    stage_parallel = "stage_parallel"


class CycleState(str, Enum):
    idle = "idle"
    generating = "generating"
    compressing = "compressing"
    encoding = "encoding"
    transmitting = "transmitting"
    cooling = "cooling"


class CycleError(str, Enum):
    """Recoverable conditions a cycle can report."""

    transmission_failure = "transmission_failure"


@dataclass(frozen=True, slots=True)
class DeviceConfig:
    """Immutable identity and acquisition parameters of a sensor device."""

    sensor_id: str
    sample_rate: int = 400000
    bit_depth: int = 24
    duration: int = 1
    cooldown: float = 2.0


@dataclass(slots=True)
class CycleOutcome:
    """Result of one generate, compress, encode and transmit pass."""

    sensor_id: str
    cycle: int
    attempted: bool = True
    transmitted: bool = False
    error: Optional[CycleError] = None
    raw_samples: int = 0
    compressed_samples: int = 0
    payload_samples: int = 0
    elapsed_ms: int = 0
