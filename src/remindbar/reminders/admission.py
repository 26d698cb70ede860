# src/remindbar/reminders/admission.py

"""
Bounded-list admission control.

The Actual list holds at most `limit` pending reminders. Two rules keep it there:

- Admission (add / move / uncomplete into Actual): if Actual is full, the item with
  the largest sort_order is evicted to the top of Backlog; the remaining Actual items
  shift down by one and the incoming item takes sort_order 0.
- Promotion (delete / complete of an Actual item): the top Backlog item joins Actual
  at the bottom.

New work always starts at the top; work that enters Actual only because a slot freed
up starts at the bottom.

All functions mutate the given ReminderStore in place.
"""

from __future__ import annotations

import logging

from .models import ListType, Reminder, ReminderStore

logger = logging.getLogger(__name__)


def actual_items(store: ReminderStore, *, exclude_id: int | None = None) -> list[Reminder]:
    return [
        r for r in store.pending if r.list_type == ListType.ACTUAL and r.id != exclude_id
    ]


def backlog_items(store: ReminderStore, *, exclude_id: int | None = None) -> list[Reminder]:
    return [
        r for r in store.pending if r.list_type == ListType.BACKLOG and r.id != exclude_id
    ]


def top_of_backlog_order(store: ReminderStore, *, exclude_id: int | None = None) -> int:
    orders = [r.sort_order for r in backlog_items(store, exclude_id=exclude_id)]
    return min(orders) - 1 if orders else 0


def bottom_of_actual_order(store: ReminderStore, *, exclude_id: int | None = None) -> int:
    orders = [r.sort_order for r in actual_items(store, exclude_id=exclude_id)]
    return max(orders) + 1 if orders else 0


def place_on_backlog(store: ReminderStore, reminder: Reminder) -> None:
    """Put `reminder` at the top of Backlog (it may or may not be in store.pending yet)."""
    reminder.sort_order = top_of_backlog_order(store, exclude_id=reminder.id)
    reminder.list_type = ListType.BACKLOG


def evict_least_prioritized(
    store: ReminderStore, *, exclude_id: int | None = None
) -> Reminder | None:
    candidates = actual_items(store, exclude_id=exclude_id)
    if not candidates:
        return None
    # max() keeps the first of equal keys, so ties resolve by list order
    victim = max(candidates, key=lambda r: r.sort_order)
    place_on_backlog(store, victim)
    logger.debug("Evicted reminder id=%s to backlog sort_order=%s", victim.id, victim.sort_order)
    return victim


def admit_to_actual(store: ReminderStore, reminder: Reminder, *, limit: int) -> Reminder | None:
    """
    Place `reminder` at the top of Actual, evicting one item if Actual is full.

    `reminder` may already be in store.pending (a move) or not yet (an add);
    the caller appends new items. Returns the evicted reminder, if any.
    """
    evicted = None
    if len(actual_items(store, exclude_id=reminder.id)) >= limit:
        evicted = evict_least_prioritized(store, exclude_id=reminder.id)

    for r in actual_items(store, exclude_id=reminder.id):
        r.sort_order += 1

    reminder.list_type = ListType.ACTUAL
    reminder.sort_order = 0
    return evicted


def promote_from_backlog(store: ReminderStore, *, limit: int) -> Reminder | None:
    """Move the top Backlog item to the bottom of Actual if there is a free slot."""
    if len(actual_items(store)) >= limit:
        return None

    backlog = backlog_items(store)
    if not backlog:
        return None

    promoted = min(backlog, key=lambda r: r.sort_order)
    promoted.sort_order = bottom_of_actual_order(store)
    promoted.list_type = ListType.ACTUAL
    logger.debug("Promoted reminder id=%s to actual sort_order=%s", promoted.id, promoted.sort_order)
    return promoted


def normalize_capacity(store: ReminderStore, *, limit: int) -> list[Reminder]:
    """
    Evict from Actual until it fits `limit`.

    Needed after reconciliation or legacy migration, which can both produce
    more Actual items than the admission path would ever allow.
    """
    evicted: list[Reminder] = []
    while len(actual_items(store)) > limit:
        victim = evict_least_prioritized(store)
        if victim is None:
            break
        evicted.append(victim)
    if evicted:
        logger.info("Capacity normalized: moved %d reminder(s) to backlog", len(evicted))
    return evicted
