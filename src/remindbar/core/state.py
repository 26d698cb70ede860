# src/remindbar/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx

from ..storage.task_store import TaskStore
from ..storage.worker import SyncWorker


@dataclass
class AppState:
    # Store Settings on the state for easy access in other modules later.
    settings: Any

    task_store: TaskStore
    worker: SyncWorker

    # shared by the Drive backend and the OAuth token endpoint; closed on shutdown
    http_client: httpx.Client | None = None
