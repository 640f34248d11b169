"""Group partitioning and parallel dispatch of bootstrap jobs."""

from .grouping import Group, partition
from .worker_pool import WorkerPool, get_default_pool, shutdown_default_pool
from .strategies import DaskStrategy, ExecutionStrategy, PoolStrategy, SequentialStrategy, get_strategy
from .runner import GroupJobRunner, GroupResult, run

__all__ = [
    "Group",
    "partition",
    "WorkerPool",
    "get_default_pool",
    "shutdown_default_pool",
    "ExecutionStrategy",
    "SequentialStrategy",
    "PoolStrategy",
    "DaskStrategy",
    "get_strategy",
    "GroupJobRunner",
    "GroupResult",
    "run",
]
