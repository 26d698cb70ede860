# src/remindbar/reminders/stats.py

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from .models import ListType, Reminder, ReminderStore, parse_iso

HISTORY_DAYS = 14


@dataclass(frozen=True, slots=True)
class HistoricalStats:
    daily: list[tuple[str, int]]  # (YYYY-MM-DD, completions), oldest first
    hourly: list[int]  # 24 buckets by completion hour (UTC)
    weekday: list[int]  # 7 buckets, Monday = 0
    backlog_size: int


def _completion_times(reminders: Iterable[Reminder]) -> list[datetime]:
    out: list[datetime] = []
    for r in reminders:
        dt = parse_iso(r.completed_at)
        if dt is not None:
            out.append(dt.astimezone(UTC))
    return out


def completion_stats(store: ReminderStore, *, now: datetime | None = None) -> tuple[int, int]:
    """Return (completed today, completed this week); days and weeks start in UTC."""
    now = (now or datetime.now(UTC)).astimezone(UTC)
    today_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    week_start = today_start - timedelta(days=today_start.weekday())

    times = _completion_times(store.completed)
    today = sum(1 for t in times if t >= today_start)
    week = sum(1 for t in times if t >= week_start)
    return today, week


def historical_stats(store: ReminderStore, *, now: datetime | None = None) -> HistoricalStats:
    now = (now or datetime.now(UTC)).astimezone(UTC)
    times = _completion_times(store.completed)

    per_day: dict[str, int] = {}
    for t in times:
        key = t.date().isoformat()
        per_day[key] = per_day.get(key, 0) + 1

    daily: list[tuple[str, int]] = []
    for days_ago in range(HISTORY_DAYS - 1, -1, -1):
        key = (now.date() - timedelta(days=days_ago)).isoformat()
        daily.append((key, per_day.get(key, 0)))

    hourly = [0] * 24
    weekday = [0] * 7
    for t in times:
        hourly[t.hour] += 1
        weekday[t.weekday()] += 1

    backlog_size = sum(1 for r in store.pending if r.list_type == ListType.BACKLOG)

    return HistoricalStats(daily=daily, hourly=hourly, weekday=weekday, backlog_size=backlog_size)
