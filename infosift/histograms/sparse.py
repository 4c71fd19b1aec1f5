"""Histogram builders for instance-indexed sparse columns."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Tuple

import numpy as np

from infosift._validate import check_instance_ids
from infosift.backends.local import Broadcast, PartitionedDataset
from infosift.core.cardinality import sparse_codes
from infosift.histograms._kernels import sparse_counts_2d, sparse_counts_3d


@dataclass(frozen=True)
class SparseColumn:
    """
    Read-only snapshot of one sparse column, shared with every worker.

    Attributes
    ----------
    feature : int
        Feature index.
    ids, codes : ndarray
        Explicit entries (instance id, code).
    dense : ndarray of shape (n_instances,)
        Code of every instance, 0 where the column has no entry.
    freq : ndarray of shape (cardinality,)
        Number of instances holding each code.
    """
    feature: int
    ids: np.ndarray
    codes: np.ndarray
    dense: np.ndarray
    freq: np.ndarray


def _read_only(arr: np.ndarray) -> np.ndarray:
    arr.setflags(write=False)
    return arr


def sparse_arrays(column: Mapping[int, int], feature: int, n_instances: int) -> Tuple[np.ndarray, np.ndarray]:
    """Explicit (instance id, code) entries of a sparse column as arrays."""
    ids = np.fromiter(column.keys(), dtype=np.int64, count=len(column))
    check_instance_ids(ids, n_instances, feature)
    return ids, sparse_codes(column, feature)


def code_frequencies(codes: np.ndarray, n_instances: int, cardinality: int) -> np.ndarray:
    """
    Instances per code for a column with explicit `codes`.

    Every instance without an explicit entry is counted under code 0.
    """
    freq = np.bincount(codes, minlength=cardinality).astype(np.int64)
    freq[0] += n_instances - codes.size
    return freq


def lookup_sparse_column(data: PartitionedDataset, feature: int) -> Mapping[int, int]:
    columns = data.lookup(feature)
    if not columns:
        raise ValueError(f"No data found for feature {feature}")
    if len(columns) > 1:
        raise ValueError(f"Feature {feature} appears in {len(columns)} records; expected one")
    return columns[0]


def snapshot_sparse_column(
    column: Mapping[int, int],
    feature: int,
    n_instances: int,
    cardinality: int,
) -> SparseColumn:
    ids, codes = sparse_arrays(column, feature, n_instances)
    dense = np.zeros(n_instances, dtype=np.uint8)
    dense[ids] = codes
    return SparseColumn(
        feature=feature,
        ids=_read_only(ids),
        codes=_read_only(codes.copy()),
        dense=_read_only(dense),
        freq=_read_only(code_frequencies(codes, n_instances, cardinality)),
    )


def sparse_histograms(
    data: PartitionedDataset,
    ycol: Broadcast,
    cardinality: Broadcast,
    n_instances: int,
) -> PartitionedDataset:
    """
    2-D count tables [x, y] of every feature in `data` against column Y.

    Parameters
    ----------
    data : PartitionedDataset
        Records (feature, {instance: code}).
    ycol : Broadcast of SparseColumn
        Conditioning column.
    cardinality : Broadcast of {feature: cardinality}
    n_instances : int

    Returns
    -------
    PartitionedDataset of (feature, ndarray of shape (card(X), card(Y)))
    """

    def build(it):
        y = ycol.value
        counter = cardinality.value
        n_y = counter[y.feature]
        out = []
        for feat, col in it:
            ids, codes = sparse_arrays(col, feat, n_instances)
            counts = sparse_counts_2d(ids, codes, y.dense, y.freq.copy(), counter[feat], n_y)
            out.append((feat, counts))
        return out

    return data.map_partitions(build)


def sparse_conditional_histograms(
    data: PartitionedDataset,
    ycol: Broadcast,
    zcol: Broadcast,
    cardinality: Broadcast,
    n_instances: int,
) -> PartitionedDataset:
    """
    3-D count tables [z, x, y] of every feature in `data` against Y, given Z.

    Returns
    -------
    PartitionedDataset of (feature, ndarray of shape (card(Z), card(X), card(Y)))
    """

    def build(it):
        y = ycol.value
        z = zcol.value
        counter = cardinality.value
        n_y = counter[y.feature]
        n_z = counter[z.feature]
        out = []
        for feat, col in it:
            ids, codes = sparse_arrays(col, feat, n_instances)
            counts = sparse_counts_3d(
                ids,
                codes,
                y.ids,
                y.codes,
                y.dense,
                z.dense,
                z.freq.copy(),
                n_instances,
                counter[feat],
                n_y,
                n_z,
            )
            out.append((feat, counts))
        return out

    return data.map_partitions(build)
