"""Count-accumulation kernels shared by the sparse and dense builders."""

from __future__ import annotations

import numpy as np
from numba import njit


@njit(cache=True, nogil=True)
def accumulate_2d(counts: np.ndarray, x: np.ndarray, y: np.ndarray) -> None:
    """counts[x[i], y[i]] += 1 for every position i (in place)."""
    for i in range(x.shape[0]):
        counts[x[i], y[i]] += 1


@njit(cache=True, nogil=True)
def accumulate_3d(counts: np.ndarray, x: np.ndarray, y: np.ndarray, z: np.ndarray) -> None:
    """counts[z[i], x[i], y[i]] += 1 for every position i (in place)."""
    for i in range(x.shape[0]):
        counts[z[i], x[i], y[i]] += 1


@njit(cache=True, nogil=True)
def sparse_counts_2d(
    x_ids: np.ndarray,
    x_codes: np.ndarray,
    y_dense: np.ndarray,
    remaining: np.ndarray,
    n_x: int,
    n_y: int,
) -> np.ndarray:
    """
    Joint counts of a sparse column X against a conditioning column Y.

    Only the explicit entries of X are visited. Each visit removes one
    instance from `remaining`, a mutable copy of Y's frequency table that is
    consumed in place; whatever is left belongs to instances where X is
    implicitly 0.
    """
    counts = np.zeros((n_x, n_y), dtype=np.int64)
    for k in range(x_ids.shape[0]):
        y = y_dense[x_ids[k]]
        remaining[y] -= 1
        counts[x_codes[k], y] += 1
    for c in range(n_y):
        if remaining[c] > 0:
            counts[0, c] += remaining[c]
    return counts


@njit(cache=True, nogil=True)
def sparse_counts_3d(
    x_ids: np.ndarray,
    x_codes: np.ndarray,
    y_ids: np.ndarray,
    y_codes: np.ndarray,
    y_dense: np.ndarray,
    z_dense: np.ndarray,
    remaining: np.ndarray,
    n_instances: int,
    n_x: int,
    n_y: int,
    n_z: int,
) -> np.ndarray:
    """
    Conditional counts [z, x, y] of sparse X and Y given a conditioning column Z.

    Three passes over `remaining`, a mutable copy of Z's frequency table
    consumed in place: explicit entries of X, explicit entries of Y whose
    instance is absent from X (x = 0), then the remainder, where both X and
    Y are implicitly 0.
    """
    counts = np.zeros((n_z, n_x, n_y), dtype=np.int64)
    in_x = np.zeros(n_instances, dtype=np.bool_)

    for k in range(x_ids.shape[0]):
        inst = x_ids[k]
        in_x[inst] = True
        z = z_dense[inst]
        remaining[z] -= 1
        counts[z, x_codes[k], y_dense[inst]] += 1

    for k in range(y_ids.shape[0]):
        inst = y_ids[k]
        if in_x[inst]:
            continue
        z = z_dense[inst]
        remaining[z] -= 1
        counts[z, 0, y_codes[k]] += 1

    for c in range(n_z):
        if remaining[c] > 0:
            counts[c, 0, 0] += remaining[c]
    return counts
