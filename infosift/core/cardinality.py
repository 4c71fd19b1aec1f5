"""Cardinality resolution: number of distinct codes per feature."""

from __future__ import annotations

from typing import Mapping

import numpy as np

from infosift._validate import check_codes
from infosift.backends.local import Broadcast, PartitionedDataset


def sparse_codes(column: Mapping[int, int], feature: int) -> np.ndarray:
    """Explicit codes of a sparse column as a validated uint8 array."""
    codes = np.fromiter(column.values(), dtype=np.int64, count=len(column))
    return check_codes(codes, feature)


def column_cardinality(codes: np.ndarray) -> int:
    """max(code) + 1, or 1 when no code is present."""
    if codes.size == 0:
        return 1
    return int(codes.max()) + 1


def resolve_cardinality_sparse(data: PartitionedDataset) -> Broadcast:
    """
    Cardinality of every feature of a sparse dataset.

    Absent entries hold code 0, so an empty column has cardinality 1.
    Raises ValueError if a feature appears in more than one record.
    """
    counts = data.map_partitions(
        lambda it: [(feat, column_cardinality(sparse_codes(col, feat))) for feat, col in it]
    )
    return data.broadcast(counts.collect_as_map())


def resolve_cardinality_dense(data: PartitionedDataset) -> Broadcast:
    """Cardinality of every feature of a dense dataset, max-reduced over blocks."""
    counts = data.map_partitions(
        lambda it: [(feat, column_cardinality(check_codes(arr, feat))) for feat, (_, arr) in it]
    ).reduce_by_key(max)
    return data.broadcast(counts.collect_as_map())
