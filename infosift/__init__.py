__version__ = "0.1.0"

from infosift.backends.local import Broadcast, PartitionedDataset, broadcast
from infosift.config import MAX_CARDINALITY, ExecutionConfig
from infosift.engine import (
    DenseInfoTheory,
    InfoTheory,
    SparseInfoTheory,
    initialize,
    initialize_dense,
    initialize_sparse,
)
from infosift.layouts import to_code_matrix, to_dense_dataset, to_sparse_dataset

__all__ = [
    "__version__",
    "MAX_CARDINALITY",
    "ExecutionConfig",
    "Broadcast",
    "PartitionedDataset",
    "broadcast",
    "InfoTheory",
    "SparseInfoTheory",
    "DenseInfoTheory",
    "initialize",
    "initialize_sparse",
    "initialize_dense",
    "to_code_matrix",
    "to_sparse_dataset",
    "to_dense_dataset",
]
