# tests/conftest.py

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from pathlib import Path
from types import SimpleNamespace

import pytest

from remindbar.core.state import AppState
from remindbar.reminders.models import ListType, Reminder, ReminderStore, Urgency
from remindbar.storage.local import LocalBackend
from remindbar.storage.task_store import TaskStore
from remindbar.storage.worker import SyncWorker

from .fakes import FakeCloud, FakeSessionManager

BASE_TIME = datetime(2024, 1, 1, tzinfo=UTC)


def make_reminder(
    rid: int,
    *,
    list_type: ListType = ListType.ACTUAL,
    sort_order: int = 0,
    created_at: str | None = None,
    completed_at: str | None = None,
    message: str | None = None,
) -> Reminder:
    return Reminder(
        id=rid,
        message=message or f"Task {rid}",
        urgency=Urgency.TODAY,
        list_type=list_type,
        created_at=created_at or (BASE_TIME + timedelta(minutes=rid)).isoformat(),
        is_completed=completed_at is not None,
        completed_at=completed_at,
        sort_order=sort_order,
    )


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """Settings stand-in pointing every URL at a fake host and the data dir at tmp_path."""
    return SimpleNamespace(
        app_name="remindbar-test",
        log_level="DEBUG",
        console_enabled=False,
        data_dir=tmp_path / "data",
        oauth_redirect_port=0,
        oauth_scopes="https://www.googleapis.com/auth/drive",
        oauth_auth_url="https://accounts.example/auth",
        oauth_token_url="https://oauth.example/token",
        drive_api_url="https://drive.example/drive/v3",
        drive_upload_url="https://drive.example/upload/drive/v3",
        drive_folder_id="folder-1",
        http_timeout_seconds=5.0,
        sync_workers=1,
    )


@pytest.fixture()
def local(tmp_path: Path) -> LocalBackend:
    return LocalBackend(tmp_path)


@pytest.fixture()
def store(local: LocalBackend) -> TaskStore:
    """Local-only TaskStore on an empty data dir."""
    s = TaskStore(local)
    s.open()
    return s


@pytest.fixture()
def cloud() -> FakeCloud:
    return FakeCloud()


@pytest.fixture()
def session() -> FakeSessionManager:
    return FakeSessionManager()


@pytest.fixture()
def synced_store(local: LocalBackend, cloud: FakeCloud, session: FakeSessionManager) -> TaskStore:
    """TaskStore connected to the in-memory cloud."""
    s = TaskStore(local, cloud=cloud, oauth=session)
    s.open()
    return s


def seed_store(store: TaskStore, data: ReminderStore) -> None:
    """Replace the in-memory store contents (tests only)."""
    store._data = data.copy()


@pytest.fixture()
def state(settings: SimpleNamespace, synced_store: TaskStore):
    """AppState over the in-memory cloud; the worker pool is shut down after the test."""
    app_state = AppState(
        settings=settings,
        task_store=synced_store,
        worker=SyncWorker(synced_store, max_workers=1),
    )
    yield app_state
    app_state.worker.shutdown(wait=True)
