"""Interchangeable execution strategies for independent work items.

Every strategy maps a function over a list of items and returns the results
in input order, whatever order the items complete in.
"""

import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from concurrent.futures import FIRST_EXCEPTION, wait
from typing import Any

import dask
from dask.diagnostics import ProgressBar

from ..config import DASK_SCHEDULERS, STRATEGIES
from ..errors import InvalidConfigurationError, RunTimeoutError
from .worker_pool import WorkerPool, get_default_pool

logger = logging.getLogger(__name__)


class ExecutionStrategy(ABC):
    """Dispatches independent work items and collects their results."""

    name = "abstract"
    supports_timeout = True

    @abstractmethod
    def map(
        self,
        func: Callable[[Any], Any],
        items: Sequence[Any],
        timeout: float | None = None,
    ) -> list[Any]:
        """Apply ``func`` to every item.

        Args:
            func: Function of one item; must be picklable for process workers
            items: Work items
            timeout: Seconds allowed for all items (None = no limit)

        Returns:
            Results in the same order as ``items``
        """

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class SequentialStrategy(ExecutionStrategy):
    """Process items one at a time in the calling thread."""

    name = "sequential"

    def map(self, func, items, timeout=None):
        deadline = None if timeout is None else time.monotonic() + timeout
        results = []
        for i, item in enumerate(items):
            if deadline is not None and time.monotonic() > deadline:
                raise RunTimeoutError(
                    f"Timed out after {timeout}s with {len(items) - i} of {len(items)} items pending"
                )
            results.append(func(item))
        if deadline is not None and time.monotonic() > deadline:
            raise RunTimeoutError(f"Timed out after {timeout}s")
        return results


class PoolStrategy(ExecutionStrategy):
    """Submit each item to a worker pool and reorder the results."""

    name = "pool"

    def __init__(self, pool: WorkerPool | None = None):
        self.pool = pool

    def _pool(self) -> WorkerPool:
        return self.pool if self.pool is not None else get_default_pool()

    def map(self, func, items, timeout=None):
        pool = self._pool()
        logger.debug("Submitting %d items to %r", len(items), pool)
        futures = {pool.submit(func, item): i for i, item in enumerate(items)}
        done, not_done = wait(futures, timeout=timeout, return_when=FIRST_EXCEPTION)

        failed = [f for f in done if f.exception() is not None]
        if not_done and not failed:
            for f in not_done:
                f.cancel()
            raise RunTimeoutError(
                f"Timed out after {timeout}s with {len(not_done)} of {len(futures)} items pending"
            )
        if failed:
            for f in not_done:
                f.cancel()
            first = min(failed, key=futures.__getitem__)
            raise first.exception()  # type: ignore[misc]

        results: list[Any] = [None] * len(futures)
        for future, i in futures.items():
            results[i] = future.result()
        return results

    def __repr__(self) -> str:
        return f"PoolStrategy(pool={self.pool!r})"


class DaskStrategy(ExecutionStrategy):
    """Build one ``dask.delayed`` task per item and compute them together."""

    name = "dask"
    supports_timeout = False

    def __init__(
        self,
        scheduler: str = "threads",
        pool: WorkerPool | None = None,
        n_workers: int | None = None,
        progress: bool = False,
    ):
        if scheduler not in DASK_SCHEDULERS:
            raise InvalidConfigurationError(
                f"Unknown dask scheduler {scheduler!r}. Expected one of {DASK_SCHEDULERS}"
            )
        if pool is not None and scheduler != "synchronous":
            expected = "processes" if scheduler == "processes" else "threads"
            if pool.kind != expected:
                raise InvalidConfigurationError(
                    f"Dask scheduler {scheduler!r} needs a {expected} pool, got {pool.kind!r}"
                )
        self.scheduler = scheduler
        self.pool = pool
        self.n_workers = n_workers
        self.progress = progress

    def map(self, func, items, timeout=None):
        if timeout is not None:
            raise InvalidConfigurationError("The dask strategy does not support a timeout")

        logger.debug("Computing %d delayed items with the %s scheduler", len(items), self.scheduler)
        delayed_func = dask.delayed(func, pure=False)
        delayed_results = [delayed_func(dask.delayed(item, traverse=False)) for item in items]

        scheduler_kwargs: dict[str, Any] = {}
        if self.scheduler != "synchronous":
            if self.pool is not None:
                scheduler_kwargs["pool"] = self.pool.executor
            elif self.n_workers:
                scheduler_kwargs["num_workers"] = self.n_workers

        if self.progress:
            with ProgressBar():
                results = dask.compute(*delayed_results, scheduler=self.scheduler, **scheduler_kwargs)
        else:
            results = dask.compute(*delayed_results, scheduler=self.scheduler, **scheduler_kwargs)

        return list(results)

    def __repr__(self) -> str:
        return f"DaskStrategy(scheduler={self.scheduler!r}, pool={self.pool!r})"


def get_strategy(name: str, pool: WorkerPool | None = None, **kwargs: Any) -> ExecutionStrategy:
    """Select an execution strategy by name.

    Args:
        name: "sequential", "pool" or "dask"
        pool: Worker pool for the concurrent strategies
        **kwargs: Extra arguments for DaskStrategy (scheduler, n_workers, progress)

    Returns:
        ExecutionStrategy instance
    """
    if name == "sequential":
        return SequentialStrategy()
    if name == "pool":
        return PoolStrategy(pool)
    if name == "dask":
        return DaskStrategy(pool=pool, **kwargs)
    raise InvalidConfigurationError(f"Unknown execution strategy {name!r}. Expected one of {STRATEGIES}")
