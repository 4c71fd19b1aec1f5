"""Joint and conditional count tables for sparse and dense layouts."""

from infosift.histograms.dense import (
    DenseColumn,
    check_coverage,
    dense_conditional_histograms,
    dense_histograms,
    lookup_dense_column,
)
from infosift.histograms.sparse import (
    SparseColumn,
    code_frequencies,
    lookup_sparse_column,
    snapshot_sparse_column,
    sparse_conditional_histograms,
    sparse_histograms,
)

__all__ = [
    "DenseColumn",
    "SparseColumn",
    "check_coverage",
    "code_frequencies",
    "dense_conditional_histograms",
    "dense_histograms",
    "lookup_dense_column",
    "lookup_sparse_column",
    "snapshot_sparse_column",
    "sparse_conditional_histograms",
    "sparse_histograms",
]
