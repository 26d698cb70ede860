# src/remindbar/reminders/models.py

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any


class Urgency(StrEnum):
    NOW = "now"
    TODAY = "today"
    SOON = "soon"
    WHENEVER = "whenever"


class ListType(StrEnum):
    """
    Which pending list a reminder lives in.

    ACTUAL is the small focus list (bounded by MAX_ACTUAL_TASKS),
    BACKLOG is the unbounded overflow.
    """

    ACTUAL = "actual"
    BACKLOG = "backlog"


class SchemaError(ValueError):
    """Raw data does not match the current snapshot schema."""


def now_iso() -> str:
    return datetime.now(UTC).isoformat()


def parse_iso(raw: str | None) -> datetime | None:
    """Parse an ISO-8601 / RFC 3339 timestamp; naive values are taken as UTC."""
    if not raw:
        return None
    try:
        dt = datetime.fromisoformat(raw.strip())
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt


def _require(data: dict[str, Any], key: str, typ: type | tuple[type, ...]) -> Any:
    if key not in data:
        raise SchemaError(f"missing field {key!r}")
    val = data[key]
    # bool is an int subclass; never accept it where an integer is expected
    if typ is int and isinstance(val, bool):
        raise SchemaError(f"field {key!r} has wrong type")
    if not isinstance(val, typ):
        raise SchemaError(f"field {key!r} has wrong type")
    return val


@dataclass(slots=True)
class Reminder:
    id: int
    message: str
    urgency: Urgency = Urgency.TODAY
    list_type: ListType = ListType.ACTUAL
    created_at: str = field(default_factory=now_iso)
    is_completed: bool = False
    completed_at: str | None = None
    sort_order: int = 0  # lower = higher priority

    def copy(self) -> Reminder:
        return replace(self)

    def version_time(self) -> datetime | None:
        """Timestamp used to pick the newer copy during a merge."""
        return parse_iso(self.completed_at or self.created_at)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "message": self.message,
            "urgency": self.urgency.value,
            "list_type": self.list_type.value,
            "created_at": self.created_at,
            "is_completed": self.is_completed,
            "completed_at": self.completed_at,
            "sort_order": self.sort_order,
        }

    @classmethod
    def from_dict(cls, data: Any) -> Reminder:
        if not isinstance(data, dict):
            raise SchemaError("reminder must be an object")

        raw_urgency = _require(data, "urgency", str)
        raw_list = _require(data, "list_type", str)
        try:
            urgency = Urgency(raw_urgency)
            list_type = ListType(raw_list)
        except ValueError as e:
            raise SchemaError(str(e)) from e

        completed_at = data.get("completed_at")
        if completed_at is not None and not isinstance(completed_at, str):
            raise SchemaError("field 'completed_at' has wrong type")

        sort_order = data.get("sort_order", 0)
        if isinstance(sort_order, bool) or not isinstance(sort_order, int):
            raise SchemaError("field 'sort_order' has wrong type")

        return cls(
            id=_require(data, "id", int),
            message=_require(data, "message", str),
            urgency=urgency,
            list_type=list_type,
            created_at=_require(data, "created_at", str),
            is_completed=_require(data, "is_completed", bool),
            completed_at=completed_at,
            sort_order=sort_order,
        )


@dataclass(slots=True)
class ReminderStore:
    pending: list[Reminder] = field(default_factory=list)
    completed: list[Reminder] = field(default_factory=list)

    def copy(self) -> ReminderStore:
        return ReminderStore(
            pending=[r.copy() for r in self.pending],
            completed=[r.copy() for r in self.completed],
        )

    def is_empty(self) -> bool:
        return not self.pending and not self.completed

    def total(self) -> int:
        return len(self.pending) + len(self.completed)

    def find_pending(self, reminder_id: int) -> Reminder | None:
        for r in self.pending:
            if r.id == reminder_id:
                return r
        return None

    def next_id(self) -> int:
        ids = [r.id for r in self.pending] + [r.id for r in self.completed]
        return max(ids, default=0) + 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "pending": [r.to_dict() for r in self.pending],
            "completed": [r.to_dict() for r in self.completed],
        }

    def to_json(self, *, indent: int | None = 2) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, indent=indent)

    @classmethod
    def from_dict(cls, data: Any) -> ReminderStore:
        if not isinstance(data, dict):
            raise SchemaError("store must be an object")
        pending = _require(data, "pending", list)
        completed = _require(data, "completed", list)
        return cls(
            pending=[Reminder.from_dict(r) for r in pending],
            completed=[Reminder.from_dict(r) for r in completed],
        )

    @classmethod
    def from_json(cls, raw: str) -> ReminderStore:
        """Parse the current snapshot schema; raises SchemaError on any mismatch."""
        try:
            data = json.loads(raw)
        except ValueError as e:
            raise SchemaError(f"invalid JSON: {e}") from e
        return cls.from_dict(data)
