# src/remindbar/storage/local.py

from __future__ import annotations

import logging
import os
from pathlib import Path

from ..errors import StorageError
from ..reminders.models import ReminderStore, SchemaError
from .legacy import try_migrate

logger = logging.getLogger(__name__)

SNAPSHOT_FILE = "reminders.json"
BACKUP_FILE = "reminders_backup_v1.json"


class LocalBackend:
    """
    JSON snapshot of the whole ReminderStore on local disk.

    load() never fails hard: unreadable or unparsable data degrades to an
    empty store (legacy data is migrated first, with a backup of the raw file).
    save() propagates filesystem failures as StorageError.
    """

    def __init__(self, data_dir: str | Path) -> None:
        self._data_dir = Path(data_dir)

    @property
    def path(self) -> Path:
        return self._data_dir / SNAPSHOT_FILE

    @property
    def backup_path(self) -> Path:
        return self._data_dir / BACKUP_FILE

    def load(self) -> ReminderStore:
        path = self.path
        if not path.exists():
            return ReminderStore()

        try:
            raw = path.read_text("utf-8")
        except OSError:
            logger.exception("Failed to read %s; starting empty", path)
            return ReminderStore()
        except UnicodeDecodeError as e:
            logger.warning("%s is not valid UTF-8 (%s); starting empty", path, e)
            return ReminderStore()

        try:
            return ReminderStore.from_json(raw)
        except SchemaError as e:
            logger.debug("Local snapshot is not in the current format: %s", e)

        migrated = try_migrate(raw)
        if migrated is None:
            logger.warning("Failed to parse %s; starting with an empty store", path)
            return ReminderStore()

        try:
            self.backup_path.write_text(raw, "utf-8")
            logger.info("Created backup at %s", self.backup_path)
        except OSError:
            logger.warning("Failed to create backup at %s", self.backup_path, exc_info=True)

        try:
            self.save(migrated)
        except StorageError:
            logger.exception("Failed to persist migrated data to %s", path)

        return migrated

    def save(self, store: ReminderStore) -> None:
        path = self.path
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp = path.with_suffix(".tmp")
            tmp.write_text(store.to_json(), "utf-8")
            os.replace(tmp, path)
        except OSError as e:
            raise StorageError(f"failed to write {path}: {e}") from e
        logger.debug(
            "Saved %d pending, %d completed to %s",
            len(store.pending),
            len(store.completed),
            path,
        )
