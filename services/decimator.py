"""4:1 decimation used as the compression stage."""

from __future__ import annotations

import logging
from concurrent.futures import Executor
from typing import Any, Dict, Optional, Sequence

from models.records import SampleBlock
from services.partitioning import split_range

DECIMATION_FACTOR = 4

logger = logging.getLogger(__name__)


def _keep_every(block: Sequence[int], start: int, stop: int) -> SampleBlock:
    return list(block[start:stop:DECIMATION_FACTOR])


class Decimator:
    """Keeps positions 0, 4, 8, ... of a block in their original order."""

    def __init__(self, executor: Optional[Executor] = None, workers: int = 1) -> None:
        self._executor = executor
        self._workers = max(1, workers)

    def compress(
        self,
        block: Sequence[int],
        extra: Optional[Dict[str, Any]] = None,
    ) -> SampleBlock:
        logger.info("Processing: Compressing audio data...", extra=extra)
        if self._executor is None or self._workers == 1:
            return _keep_every(block, 0, len(block))

        # Partitions start on multiples of the factor so each private buffer
        # holds exactly the kept samples of its slice.
        bounds = split_range(len(block), self._workers, align=DECIMATION_FACTOR)
        futures = [
            self._executor.submit(_keep_every, block, start, stop)
            for start, stop in bounds
        ]
        compressed: SampleBlock = []
        for future in futures:
            compressed.extend(future.result())
        return compressed
