# tests/test_admission.py

from __future__ import annotations

from remindbar.reminders.admission import (
    actual_items,
    admit_to_actual,
    normalize_capacity,
    promote_from_backlog,
)
from remindbar.reminders.models import ListType, ReminderStore

from .conftest import make_reminder


def _full_actual() -> ReminderStore:
    return ReminderStore(pending=[make_reminder(i + 1, sort_order=i) for i in range(6)])


def test_admit_into_full_actual_evicts_largest_sort_order() -> None:
    store = _full_actual()
    new = make_reminder(100)

    evicted = admit_to_actual(store, new, limit=6)
    store.pending.append(new)

    assert evicted is not None and evicted.id == 6
    assert evicted.list_type == ListType.BACKLOG
    assert evicted.sort_order == 0  # backlog was empty
    assert {r.id: r.sort_order for r in actual_items(store)} == {
        1: 1,
        2: 2,
        3: 3,
        4: 4,
        5: 5,
        100: 0,
    }


def test_evicted_item_goes_above_existing_backlog() -> None:
    store = _full_actual()
    store.pending.append(make_reminder(50, list_type=ListType.BACKLOG, sort_order=0))

    evicted = admit_to_actual(store, make_reminder(100), limit=6)

    assert evicted is not None
    assert evicted.sort_order == -1


def test_admit_with_room_does_not_evict() -> None:
    store = ReminderStore(pending=[make_reminder(1, sort_order=0), make_reminder(2, sort_order=1)])
    new = make_reminder(3)

    assert admit_to_actual(store, new, limit=6) is None
    assert [r.sort_order for r in store.pending] == [1, 2]
    assert new.sort_order == 0


def test_promote_picks_top_of_backlog_and_places_at_bottom() -> None:
    store = ReminderStore(
        pending=[
            make_reminder(1, sort_order=0),
            make_reminder(2, sort_order=4),
            make_reminder(100, list_type=ListType.BACKLOG, sort_order=3),
            make_reminder(101, list_type=ListType.BACKLOG, sort_order=-2),
        ]
    )

    promoted = promote_from_backlog(store, limit=6)

    assert promoted is not None and promoted.id == 101
    assert promoted.list_type == ListType.ACTUAL
    assert promoted.sort_order == 5


def test_promote_into_empty_actual_starts_at_zero() -> None:
    store = ReminderStore(pending=[make_reminder(9, list_type=ListType.BACKLOG, sort_order=7)])
    promoted = promote_from_backlog(store, limit=6)
    assert promoted is not None and promoted.sort_order == 0


def test_promote_does_nothing_when_actual_full() -> None:
    store = _full_actual()
    store.pending.append(make_reminder(100, list_type=ListType.BACKLOG))
    assert promote_from_backlog(store, limit=6) is None
    assert len(actual_items(store)) == 6


def test_normalize_capacity_trims_overfull_actual() -> None:
    store = ReminderStore(pending=[make_reminder(i + 1, sort_order=i) for i in range(9)])

    evicted = normalize_capacity(store, limit=6)

    assert [r.id for r in evicted] == [9, 8, 7]
    assert len(actual_items(store)) == 6
    assert all(r.list_type == ListType.BACKLOG for r in evicted)
