"""Synthetic audio sample generation."""

from __future__ import annotations

import logging
import random
from concurrent.futures import Executor
from typing import Any, Dict, Optional

from models.records import SampleBlock
from services.partitioning import split_range

logger = logging.getLogger(__name__)

MIN_BIT_DEPTH = 1
MAX_BIT_DEPTH = 32


def amplitude_for(bit_depth: int) -> int:
    """Half of the symmetric sample range; bit depth is clamped into 1..32."""
    depth = min(max(bit_depth, MIN_BIT_DEPTH), MAX_BIT_DEPTH)
    return 1 << (depth - 1)


def _fill(seed: int, count: int, low: int, high: int) -> SampleBlock:
    draw = random.Random(seed).randrange
    return [draw(low, high) for _ in range(count)]


class SampleGenerator:
    """Produces blocks of uniformly distributed signed samples.

    With an executor and more than one worker the index range is split into
    contiguous partitions, each filled by its own random source, and the
    partitions are joined back in index order.
    """

    def __init__(
        self,
        rng: random.Random,
        executor: Optional[Executor] = None,
        workers: int = 1,
    ) -> None:
        self._rng = rng
        self._executor = executor
        self._workers = max(1, workers)

    def generate(
        self,
        sample_rate: int,
        bit_depth: int,
        duration: int,
        extra: Optional[Dict[str, Any]] = None,
    ) -> SampleBlock:
        logger.info("Wake: Generating dummy audio data...", extra=extra)
        if sample_rate <= 0 or duration <= 0:
            return []

        length = sample_rate * duration
        amplitude = amplitude_for(bit_depth)
        low, high = -amplitude, amplitude

        if self._executor is None or self._workers == 1:
            draw = self._rng.randrange
            return [draw(low, high) for _ in range(length)]

        bounds = split_range(length, self._workers)
        seeds = [self._rng.getrandbits(64) for _ in bounds]
        futures = [
            self._executor.submit(_fill, seed, stop - start, low, high)
            for seed, (start, stop) in zip(seeds, bounds)
        ]
        block: SampleBlock = []
        for future in futures:
            block.extend(future.result())
        return block
