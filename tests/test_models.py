# tests/test_models.py

from __future__ import annotations

import json

import pytest

from remindbar.errors import CloudSyncError, DriveError, ErrorKind, OAuthError, StorageError
from remindbar.reminders.models import ListType, Reminder, ReminderStore, SchemaError, Urgency

from .conftest import make_reminder


def test_store_serializes_lowercase_enums_and_null_completed_at() -> None:
    store = ReminderStore(pending=[make_reminder(1)], completed=[])
    data = json.loads(store.to_json())

    item = data["pending"][0]
    assert set(item) == {
        "id",
        "message",
        "urgency",
        "list_type",
        "created_at",
        "is_completed",
        "completed_at",
        "sort_order",
    }
    assert item["urgency"] == "today"
    assert item["list_type"] == "actual"
    assert item["completed_at"] is None
    assert data["completed"] == []


def test_store_from_json_accepts_missing_optional_fields() -> None:
    raw = json.dumps(
        {
            "pending": [
                {
                    "id": 3,
                    "message": "x",
                    "urgency": "soon",
                    "list_type": "backlog",
                    "created_at": "2024-01-01T00:00:00Z",
                    "is_completed": False,
                }
            ],
            "completed": [],
        }
    )
    store = ReminderStore.from_json(raw)
    r = store.pending[0]
    assert r.urgency == Urgency.SOON
    assert r.list_type == ListType.BACKLOG
    assert r.sort_order == 0
    assert r.completed_at is None


@pytest.mark.parametrize(
    "raw",
    [
        "not json",
        "[]",
        '{"pending": []}',
        '{"pending": [{"id": 1, "message": "x", "due_time": "2024-01-01T00:00:00Z",'
        ' "created_at": "2024-01-01T00:00:00Z", "is_completed": false}], "completed": []}',
        '{"pending": [{"id": 1, "message": "x", "urgency": "later", "list_type": "actual",'
        ' "created_at": "2024-01-01T00:00:00Z", "is_completed": false}], "completed": []}',
        '{"pending": [{"id": true, "message": "x", "urgency": "now", "list_type": "actual",'
        ' "created_at": "2024-01-01T00:00:00Z", "is_completed": false}], "completed": []}',
    ],
)
def test_store_from_json_rejects_non_current_schema(raw: str) -> None:
    with pytest.raises(SchemaError):
        ReminderStore.from_json(raw)


def test_next_id_spans_pending_and_completed() -> None:
    store = ReminderStore(
        pending=[make_reminder(2)],
        completed=[make_reminder(7, completed_at="2024-01-02T00:00:00+00:00")],
    )
    assert store.next_id() == 8
    assert ReminderStore().next_id() == 1


def test_version_time_prefers_completed_at() -> None:
    r = Reminder(
        id=1,
        message="x",
        created_at="2024-01-01T00:00:00Z",
        completed_at="2024-02-01T00:00:00Z",
    )
    assert r.version_time().month == 2
    r.completed_at = None
    assert r.version_time().month == 1


def test_error_display_and_kinds() -> None:
    err = StorageError("file not found")
    assert str(err) == "Storage error: file not found"
    assert err.kind == ErrorKind.STORAGE
    assert "OAuth error" in str(OAuthError("token expired"))
    assert OAuthError("x").to_dict() == {"type": "OAuth", "message": "x"}


def test_cloud_sync_error_says_data_is_local() -> None:
    err = CloudSyncError(DriveError("Drive API error: 500"))
    assert isinstance(err, DriveError)
    assert err.saved_locally is True
    assert "Saved locally but cloud sync failed" in str(err)
