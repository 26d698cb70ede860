# src/remindbar/storage/merge.py

from __future__ import annotations

import logging

from ..reminders.models import Reminder, ReminderStore

logger = logging.getLogger(__name__)


def _cloud_is_newer(local: Reminder, cloud: Reminder) -> bool:
    local_ts = local.version_time()
    cloud_ts = cloud.version_time()
    if local_ts is None or cloud_ts is None:
        return False
    return cloud_ts > local_ts


def merge_stores(local: ReminderStore, cloud: ReminderStore) -> ReminderStore:
    """
    Reconcile two independently mutated copies of the store.

    - Every id from either side survives.
    - Pending conflicts: the copy with the strictly later version time wins
      (completed_at, else created_at); equal or unparsable times keep local.
    - Completed on one side and pending on the other: completed wins.

    Inputs are not modified; the result holds copies.
    """
    pending: dict[int, Reminder] = {r.id: r.copy() for r in local.pending}

    for r in cloud.pending:
        existing = pending.get(r.id)
        if existing is None or _cloud_is_newer(existing, r):
            pending[r.id] = r.copy()

    completed: dict[int, Reminder] = {r.id: r.copy() for r in local.completed}
    for r in cloud.completed:
        if r.id not in completed:
            completed[r.id] = r.copy()

    for reminder_id in [i for i in pending if i in completed]:
        del pending[reminder_id]

    merged = ReminderStore(pending=list(pending.values()), completed=list(completed.values()))
    logger.debug(
        "Merged local(%d/%d) + cloud(%d/%d) -> %d pending, %d completed",
        len(local.pending),
        len(local.completed),
        len(cloud.pending),
        len(cloud.completed),
        len(merged.pending),
        len(merged.completed),
    )
    return merged
