# src/remindbar/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the task store.

The store depends on Protocols instead of concrete backends.
This keeps the cloud provider swappable and makes testing easier
(tests plug in an in-memory cloud and a scripted session).
"""

from typing import Any, Protocol

from ..reminders.models import ReminderStore


class SnapshotRepo(Protocol):
    """Local durable snapshot (LocalBackend)."""

    def load(self) -> ReminderStore: ...
    def save(self, store: ReminderStore) -> None: ...


class CloudBackend(Protocol):
    """
    Remote copy of the snapshot (DriveBackend).

    Every call raises AuthExpiredError when the token is rejected,
    so the store can refresh once and retry.
    """

    def find_or_create(self, token: str, folder_id: str, seed: ReminderStore) -> str: ...
    def load(self, token: str, file_id: str) -> ReminderStore: ...
    def save(self, token: str, file_id: str, store: ReminderStore) -> None: ...


class SessionManager(Protocol):
    """OAuth session owner (OAuthSessionManager)."""

    @property
    def session(self) -> Any | None: ...  # OAuthSession

    @property
    def is_logged_in(self) -> bool: ...

    def load_session(self) -> Any | None: ...
    def refresh(self) -> str: ...
    def mark_failed(self) -> None: ...
    def disconnect(self) -> None: ...
    def has_credentials(self) -> bool: ...
    def load_credentials(self) -> Any | None: ...
    def save_credentials(self, credentials: Any) -> None: ...
    def authorization_url(self) -> str: ...
    def start_flow(self, *, on_complete: Any = None, on_error: Any = None) -> Any: ...
