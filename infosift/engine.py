"""Information-theory engine over partitioned discrete data.

The engine is built once per dataset and fixed (conditioning) feature.
Construction computes the joint and marginal probability tables of every
feature against the fixed feature, and each feature's relevance
I(X; fixed). Redundancy queries then only build the 3-D tables they need
and reuse the cached probability tables.
"""

from __future__ import annotations

import warnings
from typing import Iterable, Mapping

import numpy as np
import pandas as pd

from infosift._validate import (
    Layout,
    check_candidates,
    check_feature_index,
    check_instance_count,
    check_known_feature,
    check_layout,
)
from infosift.backends.local import Broadcast, PartitionedDataset
from infosift.core.cardinality import resolve_cardinality_dense, resolve_cardinality_sparse
from infosift.estimators.mutual_info import redundancy_scores, relevance_scores
from infosift.estimators.probability import joint_probabilities, marginal_probabilities, materialize
from infosift.histograms.dense import (
    check_coverage,
    dense_conditional_histograms,
    dense_histograms,
    lookup_dense_column,
)
from infosift.histograms.sparse import (
    lookup_sparse_column,
    snapshot_sparse_column,
    sparse_conditional_histograms,
    sparse_histograms,
)


class InfoTheory:
    """
    Relevance and redundancy statistics for one dataset and fixed feature.

    Parameters
    ----------
    data : PartitionedDataset
        Feature columns keyed by feature index, in the layout of the subclass.
    fixed_feature : int
        Conditioning feature Z (typically the label).
    n_instances : int
        Number of instances in the dataset.
    n_features : int
        Number of features, the fixed feature included.
    verbose : bool, default=False
        Print progress information.

    Attributes
    ----------
    cardinality : Broadcast of {feature: int}
        Number of codes per feature.
    joint_probabilities : mapping of feature -> ndarray of shape (card(X), card(Z))
        p(x, z) for every feature X.
    marginal_probabilities : mapping of feature -> ndarray of shape (card(X),)
        p(x) for every feature X.
    """

    layout: str = ""

    def __init__(
        self,
        data: PartitionedDataset,
        fixed_feature: int,
        n_instances: int,
        n_features: int,
        verbose: bool = False,
    ):
        if int(n_features) != n_features or n_features <= 0:
            raise ValueError(f"n_features must be a positive integer, got {n_features!r}")
        self.data = data
        self.n_instances = check_instance_count(n_instances)
        self.n_features = int(n_features)
        self.fixed_feature = check_feature_index(fixed_feature, self.n_features, name="fixed_feature")
        self.verbose = verbose

        self.cardinality = self._resolve_cardinality()
        outside = sorted(f for f in self.cardinality.value if not 0 <= f < self.n_features)
        if outside:
            raise ValueError(f"Data holds features outside [0, {self.n_features}): {outside[:5]}")
        check_known_feature(self.fixed_feature, self.cardinality.value, name="fixed_feature")

        if self.verbose:
            print(
                f"InfoTheory ({self.layout}): {len(self.cardinality.value)} features, "
                f"{self.n_instances} instances, fixed feature {self.fixed_feature}"
            )

        self.fixed_column = self._snapshot(self.data, self.fixed_feature)
        self._compute_tables()

    def _compute_tables(self):
        n = self.n_instances
        fixed = self.fixed_feature

        histograms = self._histograms(self.data, self.fixed_column)
        joint = joint_probabilities(histograms, n)
        self.joint_probabilities: Mapping[int, np.ndarray] = materialize(joint)
        self.marginal_probabilities: Mapping[int, np.ndarray] = materialize(marginal_probabilities(joint))

        z_prob = self.marginal_probabilities[fixed]
        if np.count_nonzero(z_prob) <= 1:
            warnings.warn(
                f"Fixed feature {fixed} is constant; every relevance is zero.",
                RuntimeWarning,
                stacklevel=3,
            )

        fdata = histograms.filter(lambda r: r[0] != fixed)
        scores = relevance_scores(fdata, z_prob, n).collect_as_map()
        relevances = pd.Series(scores, name="relevance", dtype=np.float64).sort_index()
        relevances.index.name = "feature"
        self._relevances = relevances

        if self.verbose:
            print(f"Relevances computed for {len(relevances)} features")

    @property
    def relevances(self) -> pd.Series:
        """I(X; fixed feature) for every other feature."""
        return self._relevances.copy()

    def get_relevances(self) -> pd.Series:
        return self.relevances

    def get_redundancies(self, candidates: Iterable[int], target: int) -> pd.DataFrame:
        """
        Redundancy of each candidate X with a target feature Y.

        Parameters
        ----------
        candidates : iterable of int
            Non-empty set of feature indices.
        target : int
            Feature Y, typically the last selected feature.

        Returns
        -------
        DataFrame indexed by feature with columns
            - "mi": I(X; Y)
            - "cmi": I(X; Y | Z), Z being the fixed feature.
        Candidates equal to the target or the fixed feature are left out.
        """
        candidates = check_candidates(candidates, self.n_features)
        target = check_feature_index(target, self.n_features, name="target")
        counter = self.cardinality.value
        for f in candidates:
            check_known_feature(f, counter, name="candidate")
        check_known_feature(target, counter, name="target")

        fixed = self.fixed_feature
        involved = frozenset(candidates) | {target, fixed}
        filtered = self.data.filter(lambda r: r[0] in involved)

        ycol = self._snapshot(filtered, target)
        xdata = filtered.filter(lambda r: r[0] != fixed and r[0] != target)
        tensors = self._conditional_histograms(xdata, ycol, self.fixed_column)
        scores = redundancy_scores(
            tensors,
            self.marginal_probabilities[target],
            self.marginal_probabilities[fixed],
            self.joint_probabilities[target],
            self.n_instances,
        ).collect_as_map()

        features = sorted(scores)
        result = pd.DataFrame(
            [scores[f] for f in features],
            index=pd.Index(features, name="feature"),
            columns=["mi", "cmi"],
            dtype=np.float64,
        )
        if self.verbose:
            print(f"Redundancies computed for {len(result)} features against target {target}")
        return result

    def _resolve_cardinality(self) -> Broadcast:
        raise NotImplementedError

    def _snapshot(self, data: PartitionedDataset, feature: int) -> Broadcast:
        raise NotImplementedError

    def _histograms(self, data: PartitionedDataset, ycol: Broadcast) -> PartitionedDataset:
        raise NotImplementedError

    def _conditional_histograms(
        self, data: PartitionedDataset, ycol: Broadcast, zcol: Broadcast
    ) -> PartitionedDataset:
        raise NotImplementedError


class SparseInfoTheory(InfoTheory):
    """Engine over sparse columns: records (feature, {instance_id: code})."""

    layout = "sparse"

    def _resolve_cardinality(self):
        return resolve_cardinality_sparse(self.data)

    def _snapshot(self, data, feature):
        column = lookup_sparse_column(data, feature)
        snapshot = snapshot_sparse_column(
            column, feature, self.n_instances, self.cardinality.value[feature]
        )
        return data.broadcast(snapshot)

    def _histograms(self, data, ycol):
        return sparse_histograms(data, ycol, self.cardinality, self.n_instances)

    def _conditional_histograms(self, data, ycol, zcol):
        return sparse_conditional_histograms(data, ycol, zcol, self.cardinality, self.n_instances)


class DenseInfoTheory(InfoTheory):
    """Engine over dense blocks: records (feature, (block_id, codes))."""

    layout = "dense"

    def _resolve_cardinality(self):
        return resolve_cardinality_dense(self.data)

    def _snapshot(self, data, feature):
        return data.broadcast(lookup_dense_column(data, feature, self.n_instances))

    def _histograms(self, data, ycol):
        histograms = dense_histograms(data, ycol, self.cardinality)
        check_coverage(histograms, self.n_instances)
        return histograms

    def _conditional_histograms(self, data, ycol, zcol):
        tensors = dense_conditional_histograms(data, ycol, zcol, self.cardinality)
        check_coverage(tensors, self.n_instances)
        return tensors


def initialize_sparse(
    data: PartitionedDataset,
    fixed_feature: int,
    n_instances: int,
    n_features: int,
    verbose: bool = False,
) -> SparseInfoTheory:
    return SparseInfoTheory(data, fixed_feature, n_instances, n_features, verbose=verbose)


def initialize_dense(
    data: PartitionedDataset,
    fixed_feature: int,
    n_instances: int,
    n_features: int,
    verbose: bool = False,
) -> DenseInfoTheory:
    return DenseInfoTheory(data, fixed_feature, n_instances, n_features, verbose=verbose)


def initialize(
    data: PartitionedDataset,
    fixed_feature: int,
    n_instances: int,
    n_features: int,
    *,
    layout: Layout = "dense",
    verbose: bool = False,
) -> InfoTheory:
    """
    Build an engine for `data` and compute its relevances.

    Parameters
    ----------
    data : PartitionedDataset
        Sparse records (feature, {instance_id: code}) or dense records
        (feature, (block_id, codes)), matching `layout`.
    fixed_feature : int
        Conditioning feature (the label, initially).
    n_instances : int
    n_features : int
    layout : {"dense", "sparse"}
    verbose : bool

    Returns
    -------
    InfoTheory
    """
    if check_layout(layout) == "sparse":
        return initialize_sparse(data, fixed_feature, n_instances, n_features, verbose=verbose)
    return initialize_dense(data, fixed_feature, n_instances, n_features, verbose=verbose)
