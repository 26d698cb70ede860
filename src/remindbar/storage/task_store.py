# src/remindbar/storage/task_store.py

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable
from typing import TypeVar

from ..config import MAX_ACTUAL_TASKS
from ..core.ports import CloudBackend, SessionManager, SnapshotRepo
from ..errors import AppError, AuthExpiredError, CloudSyncError, OAuthError, ValidationError
from ..reminders.admission import (
    actual_items,
    admit_to_actual,
    backlog_items,
    normalize_capacity,
    place_on_backlog,
    promote_from_backlog,
)
from ..reminders.models import ListType, Reminder, ReminderStore, Urgency, now_iso
from ..reminders.stats import HistoricalStats, completion_stats, historical_stats
from .merge import merge_stores
from .oauth import OAuthCredentials

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _clean_message(message: str) -> str:
    text = (message or "").strip()
    if not text:
        raise ValidationError("message is required")
    return text


class TaskStore:
    """
    In-memory ReminderStore with local + cloud persistence.

    Persistence policy:
    - full save: local first (errors propagate), then cloud if connected; a cloud
      failure raises CloudSyncError but the local write stands
    - local-only save (move / set_urgency / reorder): the caller pushes to the
      cloud later via sync_to_cloud()

    Thread-safety:
    - one re-entrant lock; every query and command holds it for its whole duration
    """

    def __init__(
        self,
        local: SnapshotRepo,
        *,
        cloud: CloudBackend | None = None,
        oauth: SessionManager | None = None,
        max_actual: int = MAX_ACTUAL_TASKS,
    ) -> None:
        self._local = local
        self._cloud = cloud
        self._oauth = oauth
        self._max_actual = max_actual
        self._lock = threading.RLock()
        self._data = ReminderStore()
        self._use_cloud = False

    # ---- startup ----

    def open(self) -> None:
        """Load local data, then reconcile with the cloud if a session exists."""
        with self._lock:
            self._data = self._local.load()
            logger.info(
                "Loaded %d local pending, %d local completed",
                len(self._data.pending),
                len(self._data.completed),
            )

            try:
                self._init_cloud()
            except AppError as e:
                logger.warning("Drive initialization failed, using local storage: %s", e)
                self._use_cloud = False

            if not self._use_cloud and normalize_capacity(self._data, limit=self._max_actual):
                try:
                    self._local.save(self._data)
                except AppError as e:
                    logger.warning("Failed to save normalized data locally: %s", e)

    def _init_cloud(self) -> None:
        self._use_cloud = False
        if self._cloud is None or self._oauth is None:
            return

        session = self._oauth.load_session()
        if session is None:
            logger.info("No OAuth session, running local-only")
            return

        cloud = self._cloud
        seed = self._data
        file_id = self._with_auth_retry(
            lambda token: cloud.find_or_create(token, session.folder_id, seed)
        )
        session.remote_file_id = file_id

        cloud_data = self._with_auth_retry(lambda token: cloud.load(token, file_id))
        self._reconcile(cloud_data)
        self._use_cloud = True

        try:
            self._save_cloud()
        except AppError as e:
            logger.warning("Failed to sync merged data to cloud: %s", e)
        try:
            self._local.save(self._data)
        except AppError as e:
            logger.warning("Failed to save merged data locally: %s", e)

        logger.info(
            "Drive sync initialized. %d pending, %d completed reminders.",
            len(self._data.pending),
            len(self._data.completed),
        )

    def _reconcile(self, cloud_data: ReminderStore) -> None:
        if not cloud_data.is_empty():
            logger.info(
                "Merging %d local items with %d cloud items",
                self._data.total(),
                cloud_data.total(),
            )
        self._data = merge_stores(self._data, cloud_data)
        normalize_capacity(self._data, limit=self._max_actual)

    # ---- persistence helpers ----

    def _cloud_active(self) -> bool:
        return (
            self._use_cloud
            and self._cloud is not None
            and self._oauth is not None
            and self._oauth.is_logged_in
        )

    def _with_auth_retry(self, call: Callable[[str], T]) -> T:
        """Run a cloud call; on an expired token refresh once and retry once."""
        assert self._oauth is not None
        session = self._oauth.session
        if session is None:
            raise OAuthError("Not logged in")
        try:
            return call(session.access_token)
        except AuthExpiredError:
            logger.info("Access token expired, refreshing...")
            token = self._oauth.refresh()
        try:
            return call(token)
        except AuthExpiredError:
            logger.warning("Cloud rejected the refreshed token")
            self._oauth.mark_failed()
            raise

    def _save_cloud(self) -> None:
        assert self._cloud is not None and self._oauth is not None
        session = self._oauth.session
        if session is None or not session.remote_file_id:
            raise OAuthError("No remote file")
        cloud = self._cloud
        file_id = session.remote_file_id
        data = self._data
        self._with_auth_retry(lambda token: cloud.save(token, file_id, data))

    def _save(self) -> None:
        self._local.save(self._data)
        if self._cloud_active():
            try:
                self._save_cloud()
            except AppError as e:
                logger.warning("Failed to save to Drive: %s", e)
                raise CloudSyncError(e) from e

    def _save_local_only(self) -> None:
        self._local.save(self._data)

    # ---- queries ----

    def get_pending(self) -> list[Reminder]:
        with self._lock:
            return sorted((r.copy() for r in self._data.pending), key=lambda r: r.sort_order)

    def get_actual(self) -> list[Reminder]:
        with self._lock:
            return sorted(
                (r.copy() for r in actual_items(self._data)), key=lambda r: r.sort_order
            )

    def get_backlog(self) -> list[Reminder]:
        with self._lock:
            return sorted(
                (r.copy() for r in backlog_items(self._data)), key=lambda r: r.sort_order
            )

    def get_completed(self) -> list[Reminder]:
        with self._lock:
            return sorted(
                (r.copy() for r in self._data.completed),
                key=lambda r: r.completed_at or "",
                reverse=True,
            )

    def get(self, reminder_id: int) -> Reminder | None:
        with self._lock:
            for r in self._data.pending + self._data.completed:
                if r.id == reminder_id:
                    return r.copy()
            return None

    def snapshot(self) -> ReminderStore:
        with self._lock:
            return self._data.copy()

    def completion_stats(self) -> tuple[int, int]:
        with self._lock:
            return completion_stats(self._data)

    def historical_stats(self) -> HistoricalStats:
        with self._lock:
            return historical_stats(self._data)

    # ---- commands ----

    def add(
        self,
        message: str,
        urgency: Urgency = Urgency.TODAY,
        list_type: ListType = ListType.ACTUAL,
    ) -> int:
        text = _clean_message(message)
        with self._lock:
            reminder = Reminder(
                id=self._data.next_id(),
                message=text,
                urgency=Urgency(urgency),
                list_type=ListType(list_type),
            )
            if reminder.list_type == ListType.ACTUAL:
                admit_to_actual(self._data, reminder, limit=self._max_actual)
            else:
                place_on_backlog(self._data, reminder)

            self._data.pending.append(reminder)
            logger.info("Reminder added id=%s list=%s", reminder.id, reminder.list_type.value)
            self._save()
            return reminder.id

    def update(self, reminder_id: int, message: str, urgency: Urgency) -> None:
        text = _clean_message(message)
        with self._lock:
            reminder = self._data.find_pending(reminder_id)
            if reminder is None:
                return
            reminder.message = text
            reminder.urgency = Urgency(urgency)
            self._save()

    def move(self, reminder_id: int, to_list: ListType) -> None:
        to_list = ListType(to_list)
        with self._lock:
            reminder = self._data.find_pending(reminder_id)
            if reminder is None or reminder.list_type == to_list:
                return

            if to_list == ListType.ACTUAL:
                admit_to_actual(self._data, reminder, limit=self._max_actual)
            else:
                place_on_backlog(self._data, reminder)
            self._save_local_only()

    def set_urgency(self, reminder_id: int, urgency: Urgency) -> None:
        with self._lock:
            reminder = self._data.find_pending(reminder_id)
            if reminder is None:
                return
            reminder.urgency = Urgency(urgency)
            self._save_local_only()

    def delete(self, reminder_id: int) -> None:
        with self._lock:
            existing = self._data.find_pending(reminder_id)
            was_actual = existing is not None and existing.list_type == ListType.ACTUAL

            before = self._data.total()
            self._data.pending = [r for r in self._data.pending if r.id != reminder_id]
            self._data.completed = [r for r in self._data.completed if r.id != reminder_id]
            if self._data.total() == before:
                return

            if was_actual:
                promote_from_backlog(self._data, limit=self._max_actual)
            logger.info("Reminder deleted id=%s", reminder_id)
            self._save()

    def complete(self, reminder_id: int) -> None:
        with self._lock:
            reminder = self._data.find_pending(reminder_id)
            if reminder is None:
                return

            self._data.pending.remove(reminder)
            reminder.is_completed = True
            reminder.completed_at = now_iso()
            self._data.completed.append(reminder)

            if reminder.list_type == ListType.ACTUAL:
                promote_from_backlog(self._data, limit=self._max_actual)
            logger.info("Reminder completed id=%s", reminder_id)
            self._save()

    def uncomplete(self, reminder_id: int) -> None:
        with self._lock:
            reminder = next((r for r in self._data.completed if r.id == reminder_id), None)
            if reminder is None:
                return

            self._data.completed.remove(reminder)
            reminder.is_completed = False
            reminder.completed_at = None

            if len(actual_items(self._data)) < self._max_actual:
                admit_to_actual(self._data, reminder, limit=self._max_actual)
            else:
                place_on_backlog(self._data, reminder)

            self._data.pending.append(reminder)
            logger.info("Reminder restored id=%s list=%s", reminder_id, reminder.list_type.value)
            self._save()

    def reorder(self, ordered_ids: Iterable[int]) -> None:
        with self._lock:
            for index, reminder_id in enumerate(ordered_ids):
                reminder = self._data.find_pending(reminder_id)
                if reminder is not None:
                    reminder.sort_order = index
            self._save_local_only()

    # ---- cloud sync ----

    def sync_to_cloud(self) -> None:
        """Push the current state to the cloud; no-op without a session."""
        with self._lock:
            if not self._cloud_active():
                return
            self._save_cloud()

    def refresh_from_cloud(self) -> bool:
        """Pull, merge and write back to both sides. False if there is no cloud session."""
        with self._lock:
            if not self._cloud_active():
                return False

            assert self._cloud is not None and self._oauth is not None
            session = self._oauth.session
            if session is None or not session.remote_file_id:
                return False

            cloud = self._cloud
            file_id = session.remote_file_id
            cloud_data = self._with_auth_retry(lambda token: cloud.load(token, file_id))
            self._reconcile(cloud_data)

            self._local.save(self._data)
            try:
                self._save_cloud()
            except AppError as e:
                logger.warning("Failed to sync merged data to cloud: %s", e)
            return True

    # ---- OAuth surface ----

    @property
    def is_logged_in(self) -> bool:
        with self._lock:
            return self._cloud_active()

    def get_oauth_status(self) -> tuple[bool, bool]:
        """(has_credentials, is_logged_in)"""
        with self._lock:
            if self._oauth is None:
                return False, False
            return self._oauth.has_credentials(), self._cloud_active()

    def save_oauth_credentials(self, credentials: OAuthCredentials) -> None:
        if not credentials.client_id.strip() or not credentials.client_secret.strip():
            raise ValidationError("client_id and client_secret are required")
        with self._lock:
            if self._oauth is None:
                raise OAuthError("Cloud sync is not available")
            self._oauth.save_credentials(credentials)

    def get_oauth_credentials(self) -> OAuthCredentials | None:
        with self._lock:
            if self._oauth is None:
                return None
            return self._oauth.load_credentials()

    def get_oauth_url(self) -> str:
        with self._lock:
            if self._oauth is None:
                raise OAuthError("Cloud sync is not available")
            return self._oauth.authorization_url()

    def start_oauth_flow(
        self, on_done: Callable[[Exception | None], None] | None = None
    ) -> threading.Thread:
        """
        Run the browser consent flow in the background.

        On success the cloud state is reloaded (locate, merge, write back);
        `on_done` receives None or the exception that ended the flow.
        """
        if self._oauth is None:
            raise OAuthError("Cloud sync is not available")

        def _complete(_session: object) -> None:
            try:
                self.reload_oauth_state()
            except Exception as e:
                logger.exception("Cloud reload after login failed")
                if on_done is not None:
                    on_done(e)
                return
            if on_done is not None:
                on_done(None)

        return self._oauth.start_flow(on_complete=_complete, on_error=on_done)

    def reload_oauth_state(self) -> None:
        with self._lock:
            try:
                self._init_cloud()
            except AppError:
                self._use_cloud = False
                raise

    def disconnect_cloud(self) -> None:
        with self._lock:
            if self._oauth is not None:
                self._oauth.disconnect()
            self._use_cloud = False
