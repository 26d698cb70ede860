# src/remindbar/storage/legacy.py

"""
Migration from the pre-urgency snapshot format.

Old snapshots stored a `due_time` per reminder instead of `urgency` / `list_type`.
Urgency is derived from how far away the due time is; every migrated reminder
lands in the Actual list (capacity is enforced later by the caller).
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from typing import Any

from ..reminders.models import (
    ListType,
    Reminder,
    ReminderStore,
    SchemaError,
    Urgency,
    parse_iso,
)

logger = logging.getLogger(__name__)

_REQUIRED: dict[str, type] = {
    "id": int,
    "message": str,
    "due_time": str,
    "created_at": str,
    "is_completed": bool,
}


def _is_legacy_item(item: Any) -> bool:
    if not isinstance(item, dict):
        return False
    for key, typ in _REQUIRED.items():
        val = item.get(key)
        if typ is int and isinstance(val, bool):
            return False
        if not isinstance(val, typ):
            return False
    completed_at = item.get("completed_at")
    if completed_at is not None and not isinstance(completed_at, str):
        return False
    sort_order = item.get("sort_order", 0)
    return isinstance(sort_order, int) and not isinstance(sort_order, bool)


def _parse_legacy(raw: str) -> dict[str, list[dict[str, Any]]] | None:
    try:
        data = json.loads(raw)
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    pending = data.get("pending")
    completed = data.get("completed")
    if not isinstance(pending, list) or not isinstance(completed, list):
        return None
    if not all(_is_legacy_item(i) for i in pending + completed):
        return None
    return {"pending": pending, "completed": completed}


def urgency_for_due_time(due_time: str, *, now: datetime | None = None) -> Urgency:
    due = parse_iso(due_time)
    if due is None:
        return Urgency.WHENEVER

    now = now or datetime.now(UTC)
    # whole hours, truncated toward zero
    hours_until = int((due - now).total_seconds() / 3600)

    if hours_until <= 1:
        return Urgency.NOW
    if hours_until <= 24:
        return Urgency.TODAY
    if hours_until <= 168:
        return Urgency.SOON
    return Urgency.WHENEVER


def migrate_reminder(item: dict[str, Any], *, now: datetime | None = None) -> Reminder:
    return Reminder(
        id=item["id"],
        message=item["message"],
        urgency=urgency_for_due_time(item["due_time"], now=now),
        list_type=ListType.ACTUAL,
        created_at=item["created_at"],
        is_completed=item["is_completed"],
        completed_at=item.get("completed_at"),
        sort_order=item.get("sort_order", 0),
    )


def try_migrate(raw: str, *, now: datetime | None = None) -> ReminderStore | None:
    """
    Convert a legacy snapshot into the current schema.

    Returns None unless `raw` parses as the legacy schema AND does not parse
    as the current one.
    """
    legacy = _parse_legacy(raw)
    if legacy is None:
        return None

    try:
        ReminderStore.from_json(raw)
    except SchemaError:
        pass
    else:
        return None

    logger.info("Detected legacy data format, migrating...")
    store = ReminderStore(
        pending=[migrate_reminder(i, now=now) for i in legacy["pending"]],
        completed=[migrate_reminder(i, now=now) for i in legacy["completed"]],
    )
    logger.info(
        "Migrated %d pending, %d completed reminders",
        len(store.pending),
        len(store.completed),
    )
    return store
