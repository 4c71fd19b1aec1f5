"""In-process partitioned dataset.

Provides the operations the engine needs from a distributed collection:
partition-local processing, keyed reduction, lookup and read-only broadcast
values. Partitions are processed concurrently with joblib.
"""

from __future__ import annotations

from multiprocessing import cpu_count
from types import MappingProxyType
from typing import Any, Callable, Hashable, Iterable, Iterator, List, Mapping, Optional, Tuple

import numpy as np
from joblib import Parallel, delayed
from tqdm import tqdm

from infosift.config import ExecutionConfig

Record = Tuple[Hashable, Any]


def _n_workers(n_jobs: int, n_tasks: int) -> int:
    n_jobs = min(cpu_count(), n_tasks) if n_jobs == -1 else min(cpu_count(), n_jobs)
    n_jobs = max(1, n_jobs)
    return min(n_jobs, max(1, n_tasks))


def _freeze(value):
    """Read-only snapshot of arrays, mappings and sequences of them."""
    if isinstance(value, np.ndarray):
        if not value.flags.writeable:
            return value
        arr = value.copy()
        arr.setflags(write=False)
        return arr
    if isinstance(value, MappingProxyType):
        return value
    if isinstance(value, Mapping):
        return MappingProxyType({k: _freeze(v) for k, v in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(v) for v in value)
    return value


def _run_partition(fn, partition):
    return list(fn(iter(partition)))


class Broadcast:
    """Read-only value shared by every worker of a pass."""

    __slots__ = ("_value",)

    def __init__(self, value):
        self._value = _freeze(value)

    @property
    def value(self):
        return self._value

    def __repr__(self):
        return f"Broadcast({type(self._value).__name__})"


def broadcast(value) -> Broadcast:
    return Broadcast(value)


class PartitionedDataset:
    """
    A collection of (key, value) records split into partitions.

    Every transformation is evaluated eagerly and returns a new dataset;
    partitions of the source are never modified.

    Parameters
    ----------
    partitions : iterable of iterables of (key, value)
        Records of each partition.
    config : ExecutionConfig, optional
        Parallelism settings, inherited by derived datasets.
    """

    def __init__(self, partitions: Iterable[Iterable[Record]], config: Optional[ExecutionConfig] = None):
        self._partitions: List[List[Record]] = [list(p) for p in partitions]
        self.config = config if config is not None else ExecutionConfig()

    @classmethod
    def from_records(
        cls,
        records: Iterable[Record],
        n_partitions: Optional[int] = None,
        config: Optional[ExecutionConfig] = None,
    ) -> "PartitionedDataset":
        """Split `records` round-robin into `n_partitions` partitions."""
        records = list(records)
        config = config if config is not None else ExecutionConfig()
        if n_partitions is None:
            n_partitions = _n_workers(config.n_jobs, len(records))
        if n_partitions <= 0:
            raise ValueError(f"n_partitions must be positive, got {n_partitions}")
        return cls([records[i::n_partitions] for i in range(n_partitions)], config)

    @property
    def n_partitions(self) -> int:
        return len(self._partitions)

    @property
    def partitions(self) -> List[List[Record]]:
        return [list(p) for p in self._partitions]

    def map_partitions(self, fn: Callable[[Iterator[Record]], Iterable[Record]]) -> "PartitionedDataset":
        """Apply `fn` to the record iterator of each partition."""
        parts = self._partitions
        n_jobs = _n_workers(self.config.n_jobs, len(parts))
        iterator = tqdm(parts, disable=not self.config.show_progress, leave=False)
        if n_jobs == 1:
            results = [_run_partition(fn, p) for p in iterator]
        else:
            results = Parallel(n_jobs=n_jobs, prefer=self.config.prefer)(
                delayed(_run_partition)(fn, p) for p in iterator
            )
        return PartitionedDataset(results, self.config)

    def map_values(self, fn: Callable[[Any], Any]) -> "PartitionedDataset":
        return self.map_partitions(lambda it: [(k, fn(v)) for k, v in it])

    def filter(self, pred: Callable[[Record], bool]) -> "PartitionedDataset":
        return self.map_partitions(lambda it: [r for r in it if pred(r)])

    def reduce_by_key(self, fn: Callable[[Any, Any], Any]) -> "PartitionedDataset":
        """
        Merge values sharing a key with `fn`.

        Values are combined inside each partition first, then shuffled by key
        hash and combined again. `fn` must be associative and commutative;
        the merge order across partitions is not specified.
        """

        def combine(it):
            acc = {}
            for k, v in it:
                acc[k] = fn(acc[k], v) if k in acc else v
            return list(acc.items())

        combined = self.map_partitions(combine)
        n = combined.n_partitions
        buckets: List[List[Record]] = [[] for _ in range(n)]
        for k, v in combined.collect():
            buckets[hash(k) % n].append((k, v))
        return PartitionedDataset(buckets, self.config).map_partitions(combine)

    def collect(self) -> List[Record]:
        return [r for p in self._partitions for r in p]

    def collect_as_map(self) -> dict:
        result = {}
        for k, v in self.collect():
            if k in result:
                raise ValueError(f"Duplicate key {k!r}; reduce the dataset by key first")
            result[k] = v
        return result

    def lookup(self, key: Hashable) -> List[Any]:
        return [v for k, v in self.collect() if k == key]

    def keys(self) -> List[Hashable]:
        return [k for k, _ in self.collect()]

    def count(self) -> int:
        return sum(len(p) for p in self._partitions)

    def broadcast(self, value) -> Broadcast:
        return Broadcast(value)

    def __repr__(self):
        return f"PartitionedDataset(n_partitions={self.n_partitions}, n_records={self.count()})"
