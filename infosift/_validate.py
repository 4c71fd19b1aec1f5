"""Argument and data-shape validation."""

from __future__ import annotations

from typing import Iterable, List, Literal, Mapping

import numpy as np

from infosift.config import MAX_CARDINALITY

Layout = Literal["sparse", "dense"]


def check_layout(layout: str) -> str:
    if layout not in ("sparse", "dense"):
        raise ValueError(f"layout must be 'sparse' or 'dense', got '{layout}'")
    return layout


def check_feature_index(feature: int, n_features: int, name: str = "feature") -> int:
    """Return `feature` as int, or raise if outside [0, n_features)."""
    try:
        idx = int(feature)
    except (TypeError, ValueError):
        raise ValueError(f"{name} must be an integer index, got {feature!r}") from None
    if idx != feature or idx < 0 or idx >= n_features:
        raise ValueError(f"{name} index {feature!r} is outside [0, {n_features})")
    return idx


def check_known_feature(feature: int, cardinality: Mapping[int, int], name: str = "feature") -> None:
    if feature not in cardinality:
        raise ValueError(f"No data found for {name} {feature}; it is not in the cardinality table")


def check_candidates(candidates: Iterable[int], n_features: int) -> List[int]:
    """Validate a candidate feature set; return its sorted unique indices."""
    if candidates is None:
        raise ValueError("candidates must be a non-empty set of feature indices")
    if isinstance(candidates, (int, np.integer)):
        candidates = [candidates]
    checked = {check_feature_index(f, n_features, name="candidate") for f in candidates}
    if not checked:
        raise ValueError("candidates must be a non-empty set of feature indices")
    return sorted(checked)


def check_instance_count(n_instances: int) -> int:
    if int(n_instances) != n_instances or n_instances <= 0:
        raise ValueError(f"n_instances must be a positive integer, got {n_instances!r}")
    return int(n_instances)


def check_codes(codes: np.ndarray, feature: int) -> np.ndarray:
    """Return `codes` as uint8, raising if any value is not a code in 0..255."""
    arr = np.asarray(codes)
    if arr.dtype in (np.uint8, np.bool_) or arr.size == 0:
        return arr.astype(np.uint8, copy=False)
    if not np.issubdtype(arr.dtype, np.integer):
        if not np.issubdtype(arr.dtype, np.floating) or not np.all(np.isfinite(arr)):
            raise ValueError(f"Feature {feature}: codes must be integers in [0, {MAX_CARDINALITY})")
        if np.any(arr != np.floor(arr)):
            raise ValueError(f"Feature {feature}: codes must be integers in [0, {MAX_CARDINALITY})")
    lo, hi = arr.min(), arr.max()
    if lo < 0 or hi >= MAX_CARDINALITY:
        raise ValueError(
            f"Feature {feature}: codes must lie in [0, {MAX_CARDINALITY}), "
            f"got range [{lo}, {hi}]. Discretize into at most {MAX_CARDINALITY} bins."
        )
    return arr.astype(np.uint8)


def check_instance_ids(ids: np.ndarray, n_instances: int, feature: int) -> None:
    if ids.size == 0:
        return
    lo, hi = ids.min(), ids.max()
    if lo < 0 or hi >= n_instances:
        raise ValueError(
            f"Feature {feature}: instance ids must lie in [0, {n_instances}), "
            f"got range [{lo}, {hi}]"
        )


def check_block_length(x_len: int, y_len: int, feature: int, block: int) -> None:
    if x_len != y_len:
        raise ValueError(
            f"Feature {feature}, block {block}: {x_len} codes but the "
            f"conditioning column has {y_len}"
        )
