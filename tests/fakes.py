# tests/fakes.py

from __future__ import annotations

from dataclasses import dataclass, field

from remindbar.errors import AuthExpiredError, DriveError, OAuthError
from remindbar.reminders.models import ReminderStore
from remindbar.storage.oauth import OAuthCredentials, OAuthSession


class FakeCloud:
    """
    In-memory CloudBackend.

    - `valid_token` is the only token accepted; anything else raises AuthExpiredError
    - `fail_saves` makes save() raise a generic DriveError
    - calls are recorded for assertions
    """

    def __init__(self, store: ReminderStore | None = None, *, valid_token: str = "tok") -> None:
        self.store = store.copy() if store is not None else None
        self.valid_token = valid_token
        self.fail_saves = False
        self.calls: list[str] = []
        self.file_id = "file-1"

    def _check(self, token: str) -> None:
        if token != self.valid_token:
            raise AuthExpiredError("Token expired")

    def find_or_create(self, token: str, folder_id: str, seed: ReminderStore) -> str:
        self.calls.append("find_or_create")
        self._check(token)
        if self.store is None:
            self.store = seed.copy()
        return self.file_id

    def load(self, token: str, file_id: str) -> ReminderStore:
        self.calls.append("load")
        self._check(token)
        return (self.store or ReminderStore()).copy()

    def save(self, token: str, file_id: str, store: ReminderStore) -> None:
        self.calls.append("save")
        self._check(token)
        if self.fail_saves:
            raise DriveError("Drive API error: 500")
        self.store = store.copy()


@dataclass
class FakeSessionManager:
    """
    Scripted OAuth session owner.

    refresh() hands out `refreshed_token` (or raises if `refresh_fails`).
    """

    access_token: str | None = "tok"
    refreshed_token: str = "tok"
    refresh_fails: bool = False
    credentials: OAuthCredentials | None = None
    refresh_calls: int = 0
    failed: bool = False
    session: OAuthSession | None = None
    flows: list[object] = field(default_factory=list)

    @property
    def is_logged_in(self) -> bool:
        return self.session is not None

    def load_session(self) -> OAuthSession | None:
        if self.access_token is None:
            return None
        self.session = OAuthSession(access_token=self.access_token, refresh_token="r")
        return self.session

    def refresh(self) -> str:
        self.refresh_calls += 1
        if self.refresh_fails or self.session is None:
            raise OAuthError("Token refresh failed: HTTP 400")
        self.session.access_token = self.refreshed_token
        return self.refreshed_token

    def mark_failed(self) -> None:
        self.failed = True

    def disconnect(self) -> None:
        self.access_token = None
        self.session = None

    def has_credentials(self) -> bool:
        return self.credentials is not None

    def load_credentials(self) -> OAuthCredentials | None:
        return self.credentials

    def save_credentials(self, credentials: OAuthCredentials) -> None:
        self.credentials = credentials

    def authorization_url(self) -> str:
        if self.credentials is None:
            raise OAuthError("OAuth credentials are not configured")
        return "https://accounts.example/auth"

    def start_flow(self, *, on_complete=None, on_error=None):
        self.flows.append((on_complete, on_error))
        return None
