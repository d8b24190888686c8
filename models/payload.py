"""Wire payload forwarded to the collector."""

from __future__ import annotations

import json
from typing import List

from pydantic import BaseModel, Field

MAX_AUDIO_SAMPLES = 100


class Payload(BaseModel):
    """Bounded prefix of a decimated block plus its metadata."""

    sensor_id: str
    timestamp: int = Field(..., description="Seconds since the epoch at encode time.")
    audio_data: List[int] = Field(default_factory=list, max_length=MAX_AUDIO_SAMPLES)

    def to_text(self) -> str:
        """Single-line JSON with padded braces, as printed by the uplink."""
        samples = ", ".join(str(sample) for sample in self.audio_data)
        return '{ "sensor_id": %s, "timestamp": %d, "audio_data": [%s] }' % (
            json.dumps(self.sensor_id),
            self.timestamp,
            samples,
        )
