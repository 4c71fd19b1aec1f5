"""Probability tables and information-theoretic scores."""

from infosift.estimators import mutual_info, probability

__all__ = ["mutual_info", "probability"]
