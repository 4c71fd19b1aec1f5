"""Mutual information and conditional mutual information from count tables.

All quantities are in bits. A term whose probability factors include an
exact zero contributes nothing (the 0 * log(0) = 0 convention), so no term
can produce NaN or -inf.
"""

from __future__ import annotations

from typing import Tuple

import numpy as np
from numba import njit

from infosift.backends.local import PartitionedDataset


@njit(cache=True, nogil=True)
def mutual_info(counts: np.ndarray, y_prob: np.ndarray, n_instances: int) -> float:
    """
    I(X; Y) from a count table [x, y] and the marginal p(y).

    p(x) is derived from the row sums of `counts`.
    """
    n_x, n_y = counts.shape
    x_prob = np.zeros(n_x, dtype=np.float64)
    for i in range(n_x):
        for j in range(n_y):
            x_prob[i] += counts[i, j]
        x_prob[i] /= n_instances

    mi = 0.0
    for i in range(n_x):
        px = x_prob[i]
        for j in range(n_y):
            pxy = counts[i, j] / n_instances
            py = y_prob[j]
            if pxy != 0.0 and px != 0.0 and py != 0.0:
                mi += pxy * np.log2(pxy / (px * py))
    return mi


@njit(cache=True, nogil=True)
def conditional_mutual_info(
    counts: np.ndarray,
    y_prob: np.ndarray,
    z_prob: np.ndarray,
    yz_prob: np.ndarray,
    n_instances: int,
) -> Tuple[float, float]:
    """
    (I(X; Y), I(X; Y | Z)) in one pass over a count tensor [z, x, y].

    Parameters
    ----------
    counts : ndarray of shape (n_z, n_x, n_y)
    y_prob : ndarray of shape (n_y,)
        Marginal p(y).
    z_prob : ndarray of shape (n_z,)
        Marginal p(z).
    yz_prob : ndarray of shape (n_y, n_z)
        Joint p(y, z).
    n_instances : int
    """
    n_z, n_x, n_y = counts.shape
    xz_prob = np.zeros((n_z, n_x), dtype=np.float64)
    x_prob = np.zeros(n_x, dtype=np.float64)
    xy_prob = np.zeros((n_x, n_y), dtype=np.float64)
    for z in range(n_z):
        for x in range(n_x):
            for y in range(n_y):
                p = counts[z, x, y] / n_instances
                xz_prob[z, x] += p
                x_prob[x] += p
                xy_prob[x, y] += p

    mi = 0.0
    cmi = 0.0
    for z in range(n_z):
        pz = z_prob[z]
        for x in range(n_x):
            for y in range(n_y):
                if pz != 0.0:
                    pxy_z = (counts[z, x, y] / n_instances) / pz
                    px_z = xz_prob[z, x] / pz
                    py_z = yz_prob[y, z] / pz
                    if pxy_z != 0.0 and px_z != 0.0 and py_z != 0.0:
                        cmi += pz * pxy_z * np.log2(pxy_z / (px_z * py_z))
                # unconditional term, once per (x, y)
                if z == 0:
                    px = x_prob[x]
                    pxy = xy_prob[x, y]
                    py = y_prob[y]
                    if pxy != 0.0 and px != 0.0 and py != 0.0:
                        mi += pxy * np.log2(pxy / (px * py))
    return mi, cmi


def relevance_scores(
    histograms: PartitionedDataset,
    y_prob: np.ndarray,
    n_instances: int,
) -> PartitionedDataset:
    """(feature, I(X; Y)) for every 2-D count table in `histograms`."""
    by_prob = histograms.broadcast(y_prob)
    return histograms.map_values(lambda m: float(mutual_info(m, by_prob.value, n_instances)))


def redundancy_scores(
    tensors: PartitionedDataset,
    y_prob: np.ndarray,
    z_prob: np.ndarray,
    yz_prob: np.ndarray,
    n_instances: int,
) -> PartitionedDataset:
    """(feature, (I(X; Y), I(X; Y | Z))) for every 3-D count tensor in `tensors`."""
    by_prob = tensors.broadcast(y_prob)
    bz_prob = tensors.broadcast(z_prob)
    byz_prob = tensors.broadcast(yz_prob)

    def score(m):
        mi, cmi = conditional_mutual_info(m, by_prob.value, bz_prob.value, byz_prob.value, n_instances)
        return float(mi), float(cmi)

    return tensors.map_values(score)
