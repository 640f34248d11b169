"""Process-wide worker pool.

A ``WorkerPool`` wraps a ``concurrent.futures`` executor with an explicit
start/shutdown lifecycle. One default pool per process is created on first
use and torn down at interpreter exit.
"""

import atexit
import logging
import os
import threading
from concurrent.futures import Executor, Future, ProcessPoolExecutor, ThreadPoolExecutor
from collections.abc import Callable
from typing import Any

from ..config import POOL_KINDS
from ..errors import InvalidConfigurationError, PoolClosedError

logger = logging.getLogger(__name__)

_default_pool: "WorkerPool | None" = None
_default_lock = threading.Lock()


class WorkerPool:
    """A bounded pool of thread or process workers.

    A pool starts lazily on first use and cannot be restarted once shut down.
    """

    def __init__(self, n_workers: int | None = None, kind: str = "threads"):
        """Configure the pool without starting any workers.

        Args:
            n_workers: Number of workers (None = CPU count)
            kind: "threads" or "processes"
        """
        if n_workers is None:
            n_workers = os.cpu_count() or 1
        if n_workers < 1:
            raise InvalidConfigurationError(f"n_workers must be positive, got {n_workers}")
        if kind not in POOL_KINDS:
            raise InvalidConfigurationError(f"Unknown pool kind {kind!r}. Expected one of {POOL_KINDS}")
        self.n_workers = n_workers
        self.kind = kind
        self._executor: Executor | None = None
        self._closed = False
        self._lock = threading.Lock()

    @property
    def started(self) -> bool:
        return self._executor is not None

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def executor(self) -> Executor:
        """The underlying executor, starting the pool if needed."""
        return self.start()._executor  # type: ignore[return-value]

    def start(self) -> "WorkerPool":
        with self._lock:
            if self._closed:
                raise PoolClosedError(f"{self!r} has been shut down")
            if self._executor is None:
                if self.kind == "processes":
                    self._executor = ProcessPoolExecutor(max_workers=self.n_workers)
                else:
                    self._executor = ThreadPoolExecutor(
                        max_workers=self.n_workers, thread_name_prefix="biomass-worker"
                    )
                logger.debug("Started %s pool with %d workers", self.kind, self.n_workers)
        return self

    def submit(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Future:
        executor = self.executor
        try:
            return executor.submit(func, *args, **kwargs)
        except RuntimeError as e:
            # executor shut down between lookup and submit
            if self._closed:
                raise PoolClosedError(f"{self!r} has been shut down") from e
            raise

    def shutdown(self, wait: bool = True, cancel_futures: bool = False) -> None:
        with self._lock:
            self._closed = True
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=wait, cancel_futures=cancel_futures)
            logger.debug("Shut down %s pool", self.kind)

    def __enter__(self) -> "WorkerPool":
        return self.start()

    def __exit__(self, *exc_info: Any) -> None:
        self.shutdown()

    def __repr__(self) -> str:
        state = "closed" if self._closed else "started" if self.started else "stopped"
        return f"WorkerPool(n_workers={self.n_workers}, kind={self.kind!r}, {state})"


def get_default_pool(n_workers: int | None = None, kind: str | None = None) -> WorkerPool:
    """Return the process-wide pool, creating it on first use.

    While a default pool exists, it is only returned for matching settings;
    arguments left as None accept whatever the existing pool uses. Call
    ``shutdown_default_pool`` first to change size or kind, or pass a
    dedicated ``WorkerPool`` to the runner instead.

    Args:
        n_workers: Number of workers (None = existing pool's size, else CPU count)
        kind: "threads" or "processes" (None = existing pool's kind, else threads)

    Returns:
        Started WorkerPool shared by all runs in this process

    Raises:
        InvalidConfigurationError: If the settings differ from the live default pool
    """
    global _default_pool
    with _default_lock:
        current = _default_pool
        if current is None:
            current = WorkerPool(n_workers, kind or "threads")
            _default_pool = current
        elif (n_workers is not None and n_workers != current.n_workers) or (
            kind is not None and kind != current.kind
        ):
            raise InvalidConfigurationError(
                f"Default pool is already running as {current!r}; requested "
                f"n_workers={n_workers}, kind={kind!r}. Shut it down first or pass a WorkerPool"
            )
        return current.start()


def shutdown_default_pool() -> None:
    """Shut down the process-wide pool if one exists."""
    global _default_pool
    with _default_lock:
        if _default_pool is not None:
            _default_pool.shutdown()
            _default_pool = None


atexit.register(shutdown_default_pool)
