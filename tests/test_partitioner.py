"""
Tests for worker-pool sizing and batch partitioning.
"""

import math
from unittest.mock import patch

import pytest

from podcast_cli.core.partitioner import detect_parallelism, partition


def test_fewer_items_than_workers_get_one_worker_each():
    assert partition(["a", "b", "c"], 8) == [["a"], ["b"], ["c"]]


def test_divisible_batch_uses_every_worker():
    batches = partition(list(range(8)), 4)
    assert batches == [[0, 1], [2, 3], [4, 5], [6, 7]]


def test_uneven_batch_uses_ceiling_chunks():
    batches = partition(list(range(5)), 4)
    assert [len(b) for b in batches] == [2, 2, 1]
    assert len(batches) <= 4


def test_empty_input():
    assert partition([], 4) == []


@pytest.mark.parametrize("count", [1, 3, 4, 7, 16, 33])
@pytest.mark.parametrize("workers", [1, 2, 4, 6])
def test_every_item_lands_in_exactly_one_batch(count, workers):
    items = list(range(count))
    batches = partition(items, workers)

    flattened = [item for batch in batches for item in batch]
    assert flattened == items
    assert len(batches) <= max(workers, 1) or count < workers
    if count >= workers:
        size = math.ceil(count / workers)
        assert all(len(b) == size for b in batches[:-1])
        assert 1 <= len(batches[-1]) <= size


def test_detect_parallelism_prefers_override():
    assert detect_parallelism(3) == 3


def test_detect_parallelism_uses_cpu_count():
    with patch("podcast_cli.core.partitioner.os.cpu_count", return_value=6):
        assert detect_parallelism() == 6
    with patch("podcast_cli.core.partitioner.os.cpu_count", return_value=None):
        assert detect_parallelism() == 1
