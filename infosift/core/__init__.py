from infosift.core.cardinality import (
    column_cardinality,
    resolve_cardinality_dense,
    resolve_cardinality_sparse,
)

__all__ = ["column_cardinality", "resolve_cardinality_dense", "resolve_cardinality_sparse"]
