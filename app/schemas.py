"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from models.records import CycleError, CycleStrategy

MAX_SAMPLE_RATE = 1_000_000
MAX_DURATION = 60
MAX_COOLDOWN = 3600.0
# Upper bound on samples generated per device per cycle.
MAX_BLOCK_SAMPLES = 10_000_000


class RunStatus(str, Enum):
    """Fleet run lifecycle states exposed via the API."""

    queued = "queued"
    running = "running"
    completed = "completed"
    cancelled = "cancelled"
    failed = "failed"


class RunRequest(BaseModel):
    """Fleet run submitted for background execution.

    Unset device parameters fall back to the configured defaults.
    """

    device_ids: List[str] = Field(default_factory=lambda: ["sensor_001"])
    cycles: Optional[int] = Field(default=None, ge=0)
    sample_rate: Optional[int] = Field(default=None, ge=0, le=MAX_SAMPLE_RATE)
    bit_depth: Optional[int] = Field(default=None, ge=1, le=32)
    duration: Optional[int] = Field(default=None, ge=0, le=MAX_DURATION)
    cooldown: Optional[float] = Field(default=None, ge=0, le=MAX_COOLDOWN)
    strategy: Optional[CycleStrategy] = None
    concurrent_devices: bool = True
    seed: Optional[int] = Field(
        default=None, description="Base seed; device i uses seed + i when set."
    )


class RunAccepted(BaseModel):
    """Immediate response payload after accepting a run."""

    run_id: str = Field(..., description="Generated identifier for the run.")


class CycleResult(BaseModel):
    """Outcome of one device cycle."""

    sensor_id: str
    cycle: int = Field(..., ge=0)
    attempted: bool = True
    transmitted: bool
    error: Optional[CycleError] = None
    raw_samples: int = Field(..., ge=0)
    compressed_samples: int = Field(..., ge=0)
    payload_samples: int = Field(..., ge=0)
    elapsed_ms: int = Field(..., ge=0)


class RunRecord(BaseModel):
    """Full record representing a fleet run."""

    run_id: str
    status: RunStatus
    created_at: datetime
    finished_at: Optional[datetime] = None
    processing_ms: Optional[int] = Field(
        default=None, description="Duration in milliseconds from start to finish."
    )
    device_ids: List[str] = Field(default_factory=list)
    strategy: Optional[CycleStrategy] = None
    outcomes: List[CycleResult] = Field(default_factory=list)
    transmitted_count: int = Field(default=0, ge=0)
    failed_count: int = Field(default=0, ge=0)
    error: Optional[str] = None
