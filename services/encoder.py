"""Payload rendering for the transmit stage."""

from __future__ import annotations

from typing import Sequence

from models.payload import MAX_AUDIO_SAMPLES, Payload


class PayloadEncoder:
    """Pure component: identical inputs and ``now`` give identical payloads."""

    def __init__(self, max_samples: int = MAX_AUDIO_SAMPLES) -> None:
        self.max_samples = max_samples

    def encode(self, sensor_id: str, block: Sequence[int], now: float) -> Payload:
        return Payload(
            sensor_id=sensor_id,
            timestamp=int(now),
            audio_data=list(block[: self.max_samples]),
        )
