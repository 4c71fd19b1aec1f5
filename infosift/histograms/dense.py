"""Histogram builders for block-indexed dense columns."""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional

import numpy as np

from infosift._validate import check_block_length, check_codes
from infosift.backends.local import Broadcast, PartitionedDataset
from infosift.histograms._kernels import accumulate_2d, accumulate_3d


@dataclass(frozen=True)
class DenseColumn:
    """Read-only snapshot of one dense column: {block_id: codes}."""
    feature: int
    blocks: Mapping[int, np.ndarray]

    @property
    def n_instances(self) -> int:
        return sum(arr.shape[0] for arr in self.blocks.values())

    def aligned(self, block: int, codes: np.ndarray, feature: int) -> np.ndarray:
        """Codes of this column for `block`, checked against `codes` of `feature`."""
        arr = self.blocks.get(block)
        if arr is None:
            raise ValueError(
                f"Feature {feature}, block {block}: block missing from column {self.feature}"
            )
        check_block_length(codes.shape[0], arr.shape[0], feature, block)
        return arr


def lookup_dense_column(
    data: PartitionedDataset,
    feature: int,
    n_instances: Optional[int] = None,
) -> DenseColumn:
    """Gather every block of `feature` into a DenseColumn snapshot."""
    records = data.lookup(feature)
    if not records:
        raise ValueError(f"No data found for feature {feature}")
    blocks = {}
    for block, arr in records:
        if block in blocks:
            raise ValueError(f"Feature {feature}: block {block} appears more than once")
        codes = check_codes(arr, feature).copy()
        codes.setflags(write=False)
        blocks[block] = codes
    column = DenseColumn(feature=feature, blocks=MappingProxyType(blocks))
    if n_instances is not None and column.n_instances != n_instances:
        raise ValueError(
            f"Feature {feature} holds {column.n_instances} codes across its blocks "
            f"but n_instances is {n_instances}"
        )
    return column


def dense_histograms(
    data: PartitionedDataset,
    ycol: Broadcast,
    cardinality: Broadcast,
) -> PartitionedDataset:
    """
    2-D count tables [x, y] of every feature in `data` against column Y.

    Each partition accumulates into local tables, which are then summed
    by feature.

    Parameters
    ----------
    data : PartitionedDataset
        Records (feature, (block_id, codes)).
    ycol : Broadcast of DenseColumn
        Conditioning column.
    cardinality : Broadcast of {feature: cardinality}

    Returns
    -------
    PartitionedDataset of (feature, ndarray of shape (card(X), card(Y)))
    """

    def build(it):
        y = ycol.value
        counter = cardinality.value
        n_y = counter[y.feature]
        local = {}
        for feat, (block, arr) in it:
            codes = check_codes(arr, feat)
            m = local.get(feat)
            if m is None:
                m = local[feat] = np.zeros((counter[feat], n_y), dtype=np.int64)
            accumulate_2d(m, codes, y.aligned(block, codes, feat))
        return list(local.items())

    return data.map_partitions(build).reduce_by_key(np.add)


def dense_conditional_histograms(
    data: PartitionedDataset,
    ycol: Broadcast,
    zcol: Broadcast,
    cardinality: Broadcast,
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
        local = {}
        for feat, (block, arr) in it:
            codes = check_codes(arr, feat)
            m = local.get(feat)
            if m is None:
                m = local[feat] = np.zeros((n_z, counter[feat], n_y), dtype=np.int64)
            accumulate_3d(m, codes, y.aligned(block, codes, feat), z.aligned(block, codes, feat))
        return list(local.items())

    return data.map_partitions(build).reduce_by_key(np.add)


def check_coverage(histograms: PartitionedDataset, n_instances: int) -> None:
    """Raise if any count table does not total `n_instances`."""
    totals = histograms.map_values(lambda h: int(h.sum())).collect_as_map()
    short = sorted(f for f, total in totals.items() if total != n_instances)
    if short:
        raise ValueError(
            f"Features {short[:5]} do not cover all {n_instances} instances; "
            "some of their blocks are missing"
        )
