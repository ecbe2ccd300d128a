"""ParallelExecutor: ThreadPoolExecutor wrapper for bounded backend calls.

Used by the embedding index to put a hard timeout around each backend call
while the public API stays synchronous.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Optional


class ParallelExecutor:
    """Thread-pool executor for I/O-bound calls (embedding backends).

    Only I/O calls go through the pool. Hub state mutations remain on the
    calling thread.
    """

    def __init__(self, max_workers: int = 4):
        self._max_workers = max_workers
        self._pool: ThreadPoolExecutor | None = None

    def _ensure_pool(self) -> ThreadPoolExecutor:
        if self._pool is None:
            self._pool = ThreadPoolExecutor(
                max_workers=self._max_workers,
                thread_name_prefix="swarmhub-io",
            )
        return self._pool

    def run_with_timeout(
        self, fn: Callable[..., Any], *args: Any, timeout: Optional[float] = None
    ) -> Any:
        """Run ``fn(*args)`` on the pool and wait at most *timeout* seconds.

        Raises ``concurrent.futures.TimeoutError`` when the call overruns. The
        worker thread is left to finish on its own; its result is discarded.
        """
        pool = self._ensure_pool()
        future = pool.submit(fn, *args)
        return future.result(timeout=timeout)

    def shutdown(self) -> None:
        """Shut down the thread pool (non-blocking)."""
        if self._pool is not None:
            self._pool.shutdown(wait=False)
            self._pool = None
