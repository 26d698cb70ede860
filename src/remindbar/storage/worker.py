# src/remindbar/storage/worker.py

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable

from .task_store import TaskStore

logger = logging.getLogger(__name__)


class SyncWorker:
    """
    Bounded thread pool for cloud calls.

    Interactive commands that only save locally (move, set_urgency, reorder) hand the
    cloud push to this pool so the caller never waits on the network.
    Failures are logged; callers that care can inspect the returned Future.
    """

    def __init__(self, task_store: TaskStore, *, max_workers: int = 2) -> None:
        self._task_store = task_store
        self._pool = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="cloud-sync")

    def submit(self, fn: Callable[..., Any], *args: Any, label: str = "cloud task") -> Future:
        future = self._pool.submit(fn, *args)

        def _log_result(f: Future) -> None:
            if f.cancelled():
                return
            exc = f.exception()
            if exc is not None:
                logger.warning("Background %s failed: %s", label, exc)

        future.add_done_callback(_log_result)
        return future

    def submit_sync_to_cloud(self) -> Future:
        return self.submit(self._task_store.sync_to_cloud, label="sync to cloud")

    def submit_refresh_from_cloud(self) -> Future:
        return self.submit(self._task_store.refresh_from_cloud, label="refresh from cloud")

    def shutdown(self, *, wait: bool = True) -> None:
        self._pool.shutdown(wait=wait, cancel_futures=not wait)
