# src/remindbar/storage/oauth.py

"""
OAuth2 session management for the Drive backend.

State machine:
  UNAUTHENTICATED -> AWAITING_CALLBACK -> CODE_RECEIVED -> AUTHENTICATED
  AUTHENTICATED -> REFRESHING -> AUTHENTICATED | FAILED

Durable files in the data dir:
- oauth_credentials.json: {client_id, client_secret, folder_id} (user supplied, survives disconnect)
- token.json: {token, refresh_token, client_id, client_secret} ("token" is the access token)

The redirect is caught by a tiny loopback listener (CallbackListener) that runs on its
own thread and exits after the first request carrying `code`. It has no timeout: an
abandoned browser flow leaves the thread waiting.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
import socket
import threading
import time
import webbrowser
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import Any
from urllib.parse import parse_qs, urlencode, urlsplit

import httpx

from ..config import (
    CALLBACK_BIND_ATTEMPTS,
    CALLBACK_BIND_RETRY_SECONDS,
    DEFAULT_DRIVE_FOLDER_ID,
    DEFAULT_OAUTH_REDIRECT_PORT,
    DEFAULT_OAUTH_SCOPES,
)
from ..errors import AppError, NetworkError, OAuthError, StorageError

logger = logging.getLogger(__name__)

TOKEN_FILE = "token.json"
CREDENTIALS_FILE = "oauth_credentials.json"

SUCCESS_RESPONSE = (
    b"HTTP/1.1 200 OK\r\n"
    b"Content-Type: text/html\r\n"
    b"Connection: close\r\n\r\n"
    b"<html><body><h1>Success!</h1>"
    b"<p>You can close this window and return to the app.</p>"
    b"<script>window.close();</script></body></html>"
)
NOT_FOUND_RESPONSE = b"HTTP/1.1 404 Not Found\r\nConnection: close\r\n\r\n"


class AuthState(StrEnum):
    UNAUTHENTICATED = "unauthenticated"
    AWAITING_CALLBACK = "awaiting_callback"
    CODE_RECEIVED = "code_received"
    AUTHENTICATED = "authenticated"
    REFRESHING = "refreshing"
    FAILED = "failed"


@dataclass(slots=True)
class OAuthCredentials:
    client_id: str
    client_secret: str
    folder_id: str = DEFAULT_DRIVE_FOLDER_ID

    def to_dict(self) -> dict[str, str]:
        return {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "folder_id": self.folder_id,
        }

    @classmethod
    def from_dict(cls, data: Any, *, default_folder_id: str = DEFAULT_DRIVE_FOLDER_ID) -> OAuthCredentials:
        if not isinstance(data, dict):
            raise ValueError("credentials must be an object")
        client_id = data.get("client_id")
        client_secret = data.get("client_secret")
        if not isinstance(client_id, str) or not isinstance(client_secret, str):
            raise ValueError("client_id and client_secret are required")
        folder_id = data.get("folder_id")
        if not isinstance(folder_id, str) or not folder_id:
            folder_id = default_folder_id
        return cls(client_id=client_id, client_secret=client_secret, folder_id=folder_id)


@dataclass(slots=True)
class OAuthSession:
    access_token: str
    refresh_token: str | None = None
    client_id: str | None = None
    client_secret: str | None = None
    folder_id: str = DEFAULT_DRIVE_FOLDER_ID
    remote_file_id: str | None = None


@dataclass(frozen=True, slots=True)
class TokenResponse:
    access_token: str
    refresh_token: str | None = None


def parse_callback_request(request: str) -> str | None:
    """
    Extract the `code` parameter from a raw HTTP request.

    Only `GET /?...code=...` counts; anything else (favicon probes etc.) returns None.
    """
    first_line = request.split("\r\n", 1)[0].split("\n", 1)[0]
    parts = first_line.split()
    if len(parts) < 2 or parts[0].upper() != "GET":
        return None

    target = parts[1]
    if not target.startswith("/?"):
        return None

    values = parse_qs(urlsplit(target).query).get("code")
    if not values or not values[0]:
        return None
    return values[0]


class CallbackListener:
    """Loopback HTTP listener that waits for the OAuth redirect."""

    def __init__(
        self,
        port: int = DEFAULT_OAUTH_REDIRECT_PORT,
        *,
        host: str = "127.0.0.1",
        bind_attempts: int = CALLBACK_BIND_ATTEMPTS,
        retry_delay: float = CALLBACK_BIND_RETRY_SECONDS,
    ) -> None:
        self._host = host
        self._port = port
        self._bind_attempts = bind_attempts
        self._retry_delay = retry_delay
        self._sock: socket.socket | None = None

    @property
    def port(self) -> int:
        return self._port

    def bind(self) -> int:
        """Bind and listen; retries while the port is busy. Returns the bound port."""
        if self._sock is not None:
            return self._port

        attempts = 0
        while True:
            sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
            try:
                sock.bind((self._host, self._port))
                sock.listen(5)
            except OSError as e:
                sock.close()
                if attempts >= self._bind_attempts:
                    raise OAuthError(
                        f"Failed to start callback server after {attempts} attempts: {e}"
                    ) from e
                attempts += 1
                logger.warning(
                    "Port %s busy, retrying in %.0fs... (attempt %d)",
                    self._port,
                    self._retry_delay,
                    attempts,
                )
                time.sleep(self._retry_delay)
                continue

            self._sock = sock
            self._port = sock.getsockname()[1]
            logger.info("Waiting for OAuth callback on port %s...", self._port)
            return self._port

    def wait_for_code(self) -> str:
        """Accept connections until one carries an authorization code."""
        if self._sock is None:
            self.bind()
        assert self._sock is not None

        try:
            while True:
                try:
                    conn, _ = self._sock.accept()
                except OSError as e:
                    raise OAuthError(f"Failed to accept connection: {e}") from e

                with conn:
                    try:
                        request = conn.recv(4096).decode("utf-8", errors="replace")
                    except OSError:
                        logger.debug("Failed to read callback request", exc_info=True)
                        continue

                    logger.debug("Received request: %s", request.split("\r\n", 1)[0][:80])
                    code = parse_callback_request(request)

                    with contextlib.suppress(OSError):
                        conn.sendall(SUCCESS_RESPONSE if code else NOT_FOUND_RESPONSE)

                if code:
                    logger.info("Received OAuth code")
                    return code
        finally:
            self.close()

    def close(self) -> None:
        if self._sock is not None:
            with contextlib.suppress(OSError):
                self._sock.close()
            self._sock = None

    def __enter__(self) -> CallbackListener:
        self.bind()
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


class OAuthSessionManager:
    """Owns the OAuth session and its durable token / credential files."""

    def __init__(
        self,
        data_dir: str | Path,
        *,
        client: httpx.Client | None = None,
        redirect_port: int = DEFAULT_OAUTH_REDIRECT_PORT,
        scopes: str = DEFAULT_OAUTH_SCOPES,
        auth_url: str = "https://accounts.google.com/o/oauth2/v2/auth",
        token_url: str = "https://oauth2.googleapis.com/token",
        default_folder_id: str = DEFAULT_DRIVE_FOLDER_ID,
        timeout: float = 30.0,
        open_browser: Callable[[str], Any] = webbrowser.open,
    ) -> None:
        self._data_dir = Path(data_dir)
        self._client = client or httpx.Client(timeout=timeout)
        self._redirect_port = redirect_port
        self._scopes = scopes
        self._auth_url = auth_url
        self._token_url = token_url
        self._default_folder_id = default_folder_id
        self._open_browser = open_browser

        self._session: OAuthSession | None = None
        self._state = AuthState.UNAUTHENTICATED

    # ---- properties ----

    @property
    def state(self) -> AuthState:
        return self._state

    @property
    def session(self) -> OAuthSession | None:
        return self._session

    @property
    def is_logged_in(self) -> bool:
        return self._session is not None and bool(self._session.access_token)

    @property
    def token_path(self) -> Path:
        return self._data_dir / TOKEN_FILE

    @property
    def credentials_path(self) -> Path:
        return self._data_dir / CREDENTIALS_FILE

    @property
    def redirect_uri(self) -> str:
        return f"http://localhost:{self._redirect_port}"

    # ---- credentials ----

    def has_credentials(self) -> bool:
        return self.credentials_path.exists()

    def load_credentials(self) -> OAuthCredentials | None:
        path = self.credentials_path
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text("utf-8"))
            return OAuthCredentials.from_dict(data, default_folder_id=self._default_folder_id)
        except (OSError, ValueError):
            logger.warning("Failed to read OAuth credentials from %s", path, exc_info=True)
            return None

    def save_credentials(self, credentials: OAuthCredentials) -> None:
        self._write_json(self.credentials_path, credentials.to_dict())
        logger.info("Saved OAuth credentials (folder_id=%s)", credentials.folder_id)

    def _require_credentials(self) -> OAuthCredentials:
        creds = self.load_credentials()
        if creds is None:
            raise OAuthError("OAuth credentials are not configured")
        return creds

    # ---- durable token file ----

    def _write_json(self, path: Path, data: dict[str, Any]) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp = path.with_suffix(".tmp")
            tmp.write_text(json.dumps(data, ensure_ascii=False, indent=2), "utf-8")
            os.replace(tmp, path)
        except OSError as e:
            raise StorageError(f"failed to write {path}: {e}") from e
        with contextlib.suppress(OSError):
            # contains secrets
            os.chmod(path, 0o600)

    def _read_token_file(self) -> dict[str, Any]:
        try:
            data = json.loads(self.token_path.read_text("utf-8"))
        except OSError as e:
            raise StorageError(f"failed to read {self.token_path}: {e}") from e
        except ValueError as e:
            raise OAuthError(f"invalid token file: {e}") from e
        if not isinstance(data, dict):
            raise OAuthError("invalid token file")
        return data

    def load_session(self) -> OAuthSession | None:
        """Restore the session from token.json; None if there is no usable token."""
        if not self.token_path.exists():
            return None

        try:
            data = self._read_token_file()
        except AppError:
            logger.warning("Ignoring unreadable token file %s", self.token_path, exc_info=True)
            return None

        access_token = data.get("token") or data.get("access_token")
        if not isinstance(access_token, str) or not access_token:
            logger.warning("No access token in %s", self.token_path)
            return None

        creds = self.load_credentials()
        folder_id = creds.folder_id if creds else self._default_folder_id

        def _opt(key: str) -> str | None:
            val = data.get(key)
            return val if isinstance(val, str) and val else None

        self._session = OAuthSession(
            access_token=access_token,
            refresh_token=_opt("refresh_token"),
            client_id=_opt("client_id"),
            client_secret=_opt("client_secret"),
            folder_id=folder_id,
        )
        self._state = AuthState.AUTHENTICATED
        return self._session

    def save_tokens(self, access_token: str, refresh_token: str | None) -> OAuthSession:
        creds = self._require_credentials()
        self._write_json(
            self.token_path,
            {
                "token": access_token,
                "refresh_token": refresh_token,
                "client_id": creds.client_id,
                "client_secret": creds.client_secret,
            },
        )
        self._session = OAuthSession(
            access_token=access_token,
            refresh_token=refresh_token,
            client_id=creds.client_id,
            client_secret=creds.client_secret,
            folder_id=creds.folder_id,
        )
        return self._session

    def _save_access_token(self, access_token: str) -> None:
        # keep refresh_token / client fields as they are
        data = self._read_token_file()
        data["token"] = access_token
        self._write_json(self.token_path, data)

    # ---- authorization flow ----

    def authorization_url(self) -> str:
        creds = self._require_credentials()
        query = urlencode(
            {
                "client_id": creds.client_id,
                "redirect_uri": self.redirect_uri,
                "response_type": "code",
                "scope": self._scopes,
                "access_type": "offline",
                "prompt": "consent",
            }
        )
        return f"{self._auth_url}?{query}"

    def new_listener(self) -> CallbackListener:
        return CallbackListener(self._redirect_port)

    def start_flow(
        self,
        *,
        on_complete: Callable[[OAuthSession], None] | None = None,
        on_error: Callable[[Exception], None] | None = None,
        listener: CallbackListener | None = None,
    ) -> threading.Thread:
        """
        Open the consent page and wait for the redirect on a background thread.

        The listener is bound before the browser opens so the redirect cannot
        arrive before anyone is listening.
        """
        url = self.authorization_url()
        listener = listener or self.new_listener()
        self._state = AuthState.AWAITING_CALLBACK

        def _run() -> None:
            try:
                listener.bind()
                self._open_browser(url)
                session = self.complete_flow(listener)
            except Exception as e:
                logger.exception("OAuth flow failed")
                self._state = AuthState.FAILED
                listener.close()
                if on_error is not None:
                    on_error(e)
                return
            if on_complete is not None:
                on_complete(session)

        thread = threading.Thread(target=_run, name="oauth-callback", daemon=True)
        thread.start()
        return thread

    def complete_flow(self, listener: CallbackListener) -> OAuthSession:
        """Block until the redirect arrives, then exchange the code and persist tokens."""
        self._state = AuthState.AWAITING_CALLBACK
        try:
            code = listener.wait_for_code()
            self._state = AuthState.CODE_RECEIVED
            logger.info("Got OAuth code, exchanging for tokens...")
            tokens = self.exchange_code(code)
            session = self.save_tokens(tokens.access_token, tokens.refresh_token)
        except Exception:
            self._state = AuthState.FAILED
            raise
        self._state = AuthState.AUTHENTICATED
        logger.info("OAuth tokens saved")
        return session

    def _post_token(self, form: dict[str, str], *, what: str) -> dict[str, Any]:
        try:
            response = self._client.post(self._token_url, data=form)
        except httpx.TransportError as e:
            raise NetworkError(f"{what} request failed: {e}") from e

        if response.status_code >= 400:
            raise OAuthError(f"{what} failed: HTTP {response.status_code}")
        try:
            data = response.json()
        except ValueError as e:
            raise OAuthError(f"Failed to parse {what.lower()} response: {e}") from e
        if not isinstance(data, dict) or not isinstance(data.get("access_token"), str):
            raise OAuthError(f"Failed to parse {what.lower()} response: no access_token")
        return data

    def exchange_code(self, code: str) -> TokenResponse:
        creds = self._require_credentials()
        data = self._post_token(
            {
                "client_id": creds.client_id,
                "client_secret": creds.client_secret,
                "code": code,
                "grant_type": "authorization_code",
                "redirect_uri": self.redirect_uri,
            },
            what="Token exchange",
        )
        refresh_token = data.get("refresh_token")
        return TokenResponse(
            access_token=data["access_token"],
            refresh_token=refresh_token if isinstance(refresh_token, str) else None,
        )

    def refresh(self) -> str:
        """
        Trade the refresh token for a new access token and persist it.

        Called lazily after the cloud reports an expired token.
        """
        session = self._session
        if session is None:
            raise OAuthError("Not logged in")

        client_id = session.client_id
        client_secret = session.client_secret
        if not client_id or not client_secret:
            creds = self.load_credentials()
            if creds is not None:
                client_id = client_id or creds.client_id
                client_secret = client_secret or creds.client_secret

        if not session.refresh_token:
            self._state = AuthState.FAILED
            raise OAuthError("No refresh token")
        if not client_id or not client_secret:
            self._state = AuthState.FAILED
            raise OAuthError("No client credentials for token refresh")

        self._state = AuthState.REFRESHING
        try:
            data = self._post_token(
                {
                    "client_id": client_id,
                    "client_secret": client_secret,
                    "refresh_token": session.refresh_token,
                    "grant_type": "refresh_token",
                },
                what="Token refresh",
            )
            access_token = data["access_token"]
            self._save_access_token(access_token)
        except AppError:
            self._state = AuthState.FAILED
            raise

        session.access_token = access_token
        self._state = AuthState.AUTHENTICATED
        logger.info("Token refreshed successfully")
        return access_token

    def mark_failed(self) -> None:
        """The cloud rejected a freshly refreshed token; no further retries."""
        self._state = AuthState.FAILED

    def disconnect(self) -> None:
        """Forget the session and delete token.json; credentials are kept."""
        try:
            self.token_path.unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"failed to remove {self.token_path}: {e}") from e
        self._session = None
        self._state = AuthState.UNAUTHENTICATED
        logger.info("Disconnected from Google Drive")

    def close(self) -> None:
        self._client.close()
