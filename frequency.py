from __future__ import annotations

from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Sequence, Tuple, TypeVar

from huffman import FrequencyTable, PartitionWorkerError

DEFAULT_DEGREE = 4

T = TypeVar("T")


def partition_bounds(length: int, degree: int) -> List[Tuple[int, int]]:
    """
    Split range(length) into `degree` contiguous (start, stop) slices.

    Every slice is length // degree long except the last, which also takes
    the remainder. With more workers than items the leading slices are empty.
    """
    if degree < 1:
        raise ValueError(f"degree must be at least 1, got {degree}")
    if length < 0:
        raise ValueError(f"length must be non-negative, got {length}")
    step = length // degree
    bounds = [(i * step, (i + 1) * step) for i in range(degree - 1)]
    bounds.append(((degree - 1) * step, length))
    return bounds


def run_partitioned(stage: str, symbols: Sequence, degree: int,
                    work: Callable[[Sequence], T]) -> List[T]:
    """
    Fork-join: run `work` on every partition of `symbols` on its own thread.

    Results come back in partition order no matter which worker finishes
    first. Any worker failure is raised as PartitionWorkerError once all
    workers have stopped, and no results are returned.
    """
    bounds = partition_bounds(len(symbols), degree)

    def task(index: int) -> T:
        start, stop = bounds[index]
        try:
            return work(symbols[start:stop])
        except Exception as exc:
            raise PartitionWorkerError(stage, index, exc) from exc

    with ThreadPoolExecutor(max_workers=degree) as pool:
        futures = [pool.submit(task, i) for i in range(degree)]
    # leaving the with-block is the barrier: every worker is done here
    return [f.result() for f in futures]


def count_partition(partition: Sequence) -> Counter:
    return Counter(partition)


def count_frequencies(symbols: Sequence, degree: int = DEFAULT_DEGREE) -> FrequencyTable: # symbols: decoded symbol sequence
    """
    Count symbol occurrences with `degree` workers.

    Each worker fills its own Counter; the counters are summed key by key
    after the barrier, in partition order, so the table (including its key
    order) does not depend on scheduling.
    """
    table: FrequencyTable = {}
    for local in run_partitioned("count", symbols, degree, count_partition):
        for symbol, count in local.items():
            table[symbol] = table.get(symbol, 0) + count
    return table
