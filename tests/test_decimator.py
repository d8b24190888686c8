"""Unit tests for the 4:1 decimation stage."""

from __future__ import annotations

import math
from concurrent.futures import ThreadPoolExecutor

import pytest

from services.decimator import Decimator
from services.partitioning import split_range


@pytest.mark.parametrize("length", [0, 1, 3, 4, 5, 8, 9, 400000])
def test_compress_length_is_ceiling_of_quarter(length) -> None:
    block = list(range(length))

    compressed = Decimator().compress(block)

    assert len(compressed) == math.ceil(length / 4)


def test_compress_keeps_every_fourth_sample_in_order() -> None:
    block = [10, -1, -2, -3, 20, -4, -5, -6, 30, -7]

    assert Decimator().compress(block) == [10, 20, 30]


def test_compress_logs_processing_line(caplog) -> None:
    with caplog.at_level("INFO", logger="services.decimator"):
        Decimator().compress([1, 2, 3])

    assert [record.getMessage() for record in caplog.records] == [
        "Processing: Compressing audio data..."
    ]


@pytest.mark.parametrize("workers", [2, 3, 4, 7])
def test_parallel_compress_matches_sequential(workers) -> None:
    block = [(index * 7919) % 1013 - 500 for index in range(10007)]

    with ThreadPoolExecutor(max_workers=workers) as executor:
        compressed = Decimator(executor=executor, workers=workers).compress(block)

    assert compressed == block[::4]
    assert all(compressed[i] == block[4 * i] for i in range(len(compressed)))


def test_parallel_compress_is_deterministic_across_runs() -> None:
    block = list(range(1_000_000))
    expected = block[::4]

    with ThreadPoolExecutor(max_workers=4) as executor:
        decimator = Decimator(executor=executor, workers=4)
        for _ in range(100):
            assert decimator.compress(block) == expected


def test_split_range_aligns_partition_starts() -> None:
    bounds = split_range(10, 4, align=4)

    assert bounds == [(0, 4), (4, 8), (8, 10)]
    assert all(start % 4 == 0 for start, _ in bounds)


def test_split_range_covers_whole_range() -> None:
    bounds = split_range(10, 4)

    assert bounds == [(0, 3), (3, 6), (6, 9), (9, 10)]
    assert split_range(0, 4) == []
