"""
Splits a batch of work across a worker pool sized to the machine's parallelism.
"""

import math
import os
from collections.abc import Sequence
from typing import TypeVar

T = TypeVar("T")


def detect_parallelism(override: int | None = None) -> int:
    """Returns the configured worker count, or the number of CPUs (at least 1)."""
    if override is not None and override >= 1:
        return override
    return max(1, os.cpu_count() or 1)


def partition(items: Sequence[T], parallelism: int) -> list[list[T]]:
    """
    Groups items into per-worker batches.

    With fewer items than workers every item gets its own worker. Otherwise the
    items are cut into contiguous chunks of ``ceil(N / C)``, the last one
    possibly shorter, so no more than ``C`` workers are ever created. Each item
    appears in exactly one chunk and the original order is kept.
    """
    workers = max(1, parallelism)
    if not items:
        return []
    if len(items) < workers:
        return [[item] for item in items]
    size = math.ceil(len(items) / workers)
    return [list(items[i : i + size]) for i in range(0, len(items), size)]
