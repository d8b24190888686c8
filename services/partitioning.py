"""Index range splitting shared by the data-parallel stages."""

from __future__ import annotations

from typing import List, Tuple


def split_range(length: int, parts: int, align: int = 1) -> List[Tuple[int, int]]:
    """Split ``range(length)`` into at most ``parts`` contiguous slices.

    Every slice start is a multiple of ``align`` and slices are returned in
    ascending order, so concatenating per-slice results reproduces the
    sequential result.
    """
    if length <= 0:
        return []
    parts = max(1, parts)
    align = max(1, align)
    units = -(-length // align)
    per_part = -(-units // parts)
    bounds: List[Tuple[int, int]] = []
    start = 0
    while start < length:
        stop = min(length, start + per_part * align)
        bounds.append((start, stop))
        start = stop
    return bounds
