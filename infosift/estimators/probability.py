"""Normalization of count tables into probability tables."""

from __future__ import annotations

from typing import Mapping

import numpy as np

from infosift.backends.local import PartitionedDataset


def joint_probabilities(histograms: PartitionedDataset, n_instances: int) -> PartitionedDataset:
    """Joint tables p(x, z) = counts / n."""
    return histograms.map_values(lambda h: h / n_instances)


def marginal_probabilities(joint: PartitionedDataset) -> PartitionedDataset:
    """Marginal tables p(x), summed over the columns of each joint table."""
    return joint.map_values(lambda p: p.sum(axis=1))


def materialize(tables: PartitionedDataset) -> Mapping[int, np.ndarray]:
    """Collect tables by feature into a read-only mapping of read-only arrays."""
    return tables.broadcast(tables.collect_as_map()).value
