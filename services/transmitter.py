"""Lossy channel simulation standing in for the cloud uplink."""

from __future__ import annotations

import logging
import random
import time
from typing import Any, Callable, Dict, Optional

import typer

from models.payload import Payload

DEFAULT_SUCCESS_PROBABILITY = 0.9
PREVIEW_CHARS = 120

logger = logging.getLogger(__name__)


class TransmitSimulator:
    """Reports success with a fixed probability, independent of the payload."""

    def __init__(
        self,
        rng: random.Random,
        success_probability: float = DEFAULT_SUCCESS_PROBABILITY,
        latency: float = 0.0,
        echo: Optional[Callable[[str], Any]] = None,
    ) -> None:
        if not 0.0 <= success_probability <= 1.0:
            raise ValueError("success_probability must be within [0, 1].")
        self._rng = rng
        self.success_probability = success_probability
        self.latency = max(0.0, latency)
        self._echo = echo or typer.echo

    def attempt(self, payload: Payload, extra: Optional[Dict[str, Any]] = None) -> bool:
        if self.latency:
            time.sleep(self.latency)

        success = self._rng.random() < self.success_probability
        if success:
            logger.info("Transmit: Sending data to cloud...", extra=extra)
            self._echo(f"{payload.to_text()[:PREVIEW_CHARS]} ...")
        else:
            logger.warning("Transmit: Failed to send data.", extra=extra)
        return success
