from dataclasses import dataclass
from typing import Optional

# Codes are 8-bit: at most 256 distinct values per feature.
MAX_CARDINALITY = 256


@dataclass
class ExecutionConfig:
    """
    Configuration for partition-parallel execution.

    Parameters
    ----------
    n_jobs : int
        Number of parallel workers used for partition-local passes
        (-1 = all cores).
    prefer : str, optional
        Joblib backend preference. 'threads' shares broadcast values without
        copying them, 'processes' is more isolated. Set to None for joblib
        default.
    show_progress : bool
        Show a tqdm progress bar over partitions.
    """
    n_jobs: int = -1
    prefer: Optional[str] = "threads"
    show_progress: bool = False
