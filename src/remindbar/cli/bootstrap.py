# src/remindbar/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures the local data directory exists,
- wires the local backend, Drive backend and OAuth session manager into a TaskStore,
- runs the startup load / cloud reconciliation.
"""

from __future__ import annotations

import contextlib
import logging

import httpx

from ..config import get_settings
from ..core.state import AppState
from ..storage.drive import DriveBackend
from ..storage.local import LocalBackend
from ..storage.oauth import OAuthSessionManager
from ..storage.task_store import TaskStore
from ..storage.worker import SyncWorker

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings=None, http_client: httpx.Client | None = None) -> AppState:
    """
    Create AppState from the provided settings and load the reminder store.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    client = http_client or httpx.Client(timeout=settings.http_timeout_seconds)

    oauth = OAuthSessionManager(
        settings.data_dir,
        client=client,
        redirect_port=settings.oauth_redirect_port,
        scopes=settings.oauth_scopes,
        auth_url=settings.oauth_auth_url,
        token_url=settings.oauth_token_url,
        default_folder_id=settings.drive_folder_id,
    )
    drive = DriveBackend(
        client,
        api_url=settings.drive_api_url,
        upload_url=settings.drive_upload_url,
    )

    task_store = TaskStore(LocalBackend(settings.data_dir), cloud=drive, oauth=oauth)
    task_store.open()

    return AppState(
        settings=settings,
        task_store=task_store,
        worker=SyncWorker(task_store, max_workers=settings.sync_workers),
        http_client=client,
    )


def shutdown_state(state: AppState) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    try:
        state.worker.shutdown(wait=True)
    except Exception:
        logger.exception("Failed to stop background sync worker.")

    client = getattr(state, "http_client", None)
    if client is not None:
        with contextlib.suppress(Exception):
            client.close()
