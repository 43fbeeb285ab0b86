# ==============================================================================
# Partitioning Helpers
# ==============================================================================
"""
Split work by a shard key and run the fragments independently.

Session ids and product ids have no cross-partition dependency inside a
stage, so aggregation over partitions merged by union gives the same result
for any partition count.
"""

import hashlib
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import TypeVar

T = TypeVar("T")
R = TypeVar("R")


def partition_index(key: object, partitions: int) -> int:
    """Stable partition index for a key (independent of PYTHONHASHSEED)."""
    if partitions <= 1:
        return 0
    digest = hashlib.md5(str(key).encode()).hexdigest()
    return int(digest[:8], 16) % partitions


def partition(items: Iterable[T], key: Callable[[T], object], partitions: int) -> list[list[T]]:
    """
    Split items into `partitions` lists by a stable hash of key(item).

    Raises:
        ValueError: If partitions is less than 1
    """
    if partitions < 1:
        raise ValueError("partitions must be at least 1")
    buckets: list[list[T]] = [[] for _ in range(partitions)]
    for item in items:
        buckets[partition_index(key(item), partitions)].append(item)
    return buckets


def map_partitions(
    func: Callable[[Sequence[T]], R], buckets: list[list[T]], workers: int = 1
) -> list[R]:
    """Apply func to every bucket, in a thread pool when workers > 1."""
    if workers <= 1 or len(buckets) <= 1:
        return [func(bucket) for bucket in buckets]
    with ThreadPoolExecutor(max_workers=workers) as executor:
        return list(executor.map(func, buckets))
