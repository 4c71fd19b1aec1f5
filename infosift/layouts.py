"""Build sparse or dense partitioned datasets from a matrix of codes."""

from __future__ import annotations

from typing import Optional

import numpy as np
import pandas as pd
from scipy import sparse

from infosift._validate import check_codes
from infosift.backends.local import PartitionedDataset
from infosift.config import ExecutionConfig


def to_code_matrix(X) -> np.ndarray:
    """
    Convert a (n_instances, n_features) container of codes to a uint8 array.

    Accepts ndarray, pandas/polars DataFrame, nested lists and scipy sparse
    matrices. Every column must hold integer codes in 0..255.
    """
    if sparse.issparse(X):
        X = X.toarray()
    if hasattr(X, "to_pandas"):
        X = X.to_pandas()
    if isinstance(X, pd.DataFrame):
        X = X.to_numpy()
    arr = np.asarray(X)
    if arr.dtype.kind not in "biuf":
        raise TypeError(f"Expected a numeric matrix of codes, got dtype {arr.dtype}")
    if arr.ndim != 2:
        raise ValueError(f"Expected a 2D matrix (n_instances, n_features), got shape {arr.shape}")
    out = np.empty(arr.shape, dtype=np.uint8)
    for j in range(arr.shape[1]):
        out[:, j] = check_codes(arr[:, j], j)
    return out


def to_sparse_dataset(
    X,
    n_partitions: Optional[int] = None,
    config: Optional[ExecutionConfig] = None,
) -> PartitionedDataset:
    """
    One record (feature, {instance_id: code}) per column of `X`.

    Zero codes are left implicit. scipy sparse input is converted column-wise
    without densifying.
    """
    records = []
    if sparse.issparse(X):
        csc = sparse.csc_matrix(X)
        csc.eliminate_zeros()
        for j in range(csc.shape[1]):
            lo, hi = csc.indptr[j], csc.indptr[j + 1]
            codes = check_codes(csc.data[lo:hi], j)
            records.append((j, dict(zip(csc.indices[lo:hi].tolist(), codes.tolist()))))
    else:
        codes = to_code_matrix(X)
        for j in range(codes.shape[1]):
            ids = np.flatnonzero(codes[:, j])
            records.append((j, dict(zip(ids.tolist(), codes[ids, j].tolist()))))
    return PartitionedDataset.from_records(records, n_partitions=n_partitions, config=config)


def to_dense_dataset(
    X,
    block_size: int = 10_000,
    n_partitions: Optional[int] = None,
    config: Optional[ExecutionConfig] = None,
) -> PartitionedDataset:
    """
    Records (feature, (block_id, codes)) for consecutive row blocks of `X`.

    Every feature is split at the same row boundaries, so the codes of one
    block line up position by position across features.
    """
    if block_size <= 0:
        raise ValueError(f"block_size must be positive, got {block_size}")
    codes = to_code_matrix(X)
    n, p = codes.shape
    records = []
    for block, start in enumerate(range(0, n, block_size)):
        chunk = codes[start:start + block_size]
        for j in range(p):
            records.append((j, (block, np.ascontiguousarray(chunk[:, j]))))
    return PartitionedDataset.from_records(records, n_partitions=n_partitions, config=config)
