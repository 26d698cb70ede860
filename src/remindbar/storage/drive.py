# src/remindbar/storage/drive.py

"""
Google Drive backend.

The whole ReminderStore is one JSON file (`reminders.json`) inside a configured
folder. Calls are synchronous; run them off the interactive thread.
A 401 from Drive raises AuthExpiredError so the caller can refresh the token
and retry once; other HTTP failures raise DriveError, transport failures NetworkError.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from ..config import REMOTE_FILE_NAME
from ..errors import AuthExpiredError, DriveError, NetworkError
from ..reminders.models import ReminderStore, SchemaError
from .legacy import try_migrate

logger = logging.getLogger(__name__)

_BOUNDARY = "remindbar_boundary"


class DriveBackend:
    def __init__(
        self,
        client: httpx.Client | None = None,
        *,
        api_url: str = "https://www.googleapis.com/drive/v3",
        upload_url: str = "https://www.googleapis.com/upload/drive/v3",
        file_name: str = REMOTE_FILE_NAME,
        timeout: float = 30.0,
    ) -> None:
        self._client = client or httpx.Client(timeout=timeout)
        self._api_url = api_url.rstrip("/")
        self._upload_url = upload_url.rstrip("/")
        self._file_name = file_name

    def close(self) -> None:
        self._client.close()

    # ---- low-level helpers ----

    @staticmethod
    def _auth(token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {token}"}

    def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            response = self._client.request(method, url, **kwargs)
        except httpx.TransportError as e:
            raise NetworkError(f"{method} {url} failed: {e}") from e

        if response.status_code == 401:
            raise AuthExpiredError("Token expired")
        if response.status_code >= 400:
            raise DriveError(f"Drive API error: {response.status_code}")
        return response

    @staticmethod
    def _json(response: httpx.Response) -> dict[str, Any]:
        try:
            data = response.json()
        except ValueError as e:
            raise DriveError(f"invalid JSON in Drive response: {e}") from e
        if not isinstance(data, dict):
            raise DriveError("unexpected Drive response")
        return data

    # ---- public API ----

    def find_or_create(self, token: str, folder_id: str, seed: ReminderStore) -> str:
        """Return the id of the synced file in `folder_id`, creating it from `seed` if missing."""
        query = f"name='{self._file_name}' and '{folder_id}' in parents and trashed=false"
        logger.info("Searching for %s in folder %s...", self._file_name, folder_id)

        response = self._send(
            "GET",
            f"{self._api_url}/files",
            params={"q": query, "fields": "files(id)"},
            headers=self._auth(token),
        )
        files = self._json(response).get("files") or []
        if isinstance(files, list) and files:
            file_id = files[0].get("id") if isinstance(files[0], dict) else None
            if isinstance(file_id, str) and file_id:
                return file_id

        return self._create(token, folder_id, seed)

    def _create(self, token: str, folder_id: str, seed: ReminderStore) -> str:
        metadata = {
            "name": self._file_name,
            "parents": [folder_id],
            "mimeType": "application/json",
        }
        body = (
            f"--{_BOUNDARY}\r\n"
            "Content-Type: application/json; charset=UTF-8\r\n\r\n"
            f"{json.dumps(metadata)}\r\n"
            f"--{_BOUNDARY}\r\n"
            "Content-Type: application/json\r\n\r\n"
            f"{seed.to_json(indent=None)}\r\n"
            f"--{_BOUNDARY}--"
        )

        response = self._send(
            "POST",
            f"{self._upload_url}/files",
            params={"uploadType": "multipart", "fields": "id"},
            headers={
                **self._auth(token),
                "Content-Type": f"multipart/related; boundary={_BOUNDARY}",
            },
            content=body.encode("utf-8"),
        )
        file_id = self._json(response).get("id")
        if not isinstance(file_id, str) or not file_id:
            raise DriveError("No file ID in response")
        logger.info("Created %s in Drive folder %s", self._file_name, folder_id)
        return file_id

    def load(self, token: str, file_id: str) -> ReminderStore:
        """Download and parse the remote snapshot; unparsable content yields an empty store."""
        response = self._send(
            "GET",
            f"{self._api_url}/files/{file_id}",
            params={"alt": "media"},
            headers=self._auth(token),
        )
        content = response.text
        logger.debug("Drive content received: %d bytes", len(content))

        try:
            store = ReminderStore.from_json(content)
        except SchemaError:
            pass
        else:
            logger.info(
                "Parsed %d pending, %d completed reminders from Drive",
                len(store.pending),
                len(store.completed),
            )
            return store

        migrated = try_migrate(content)
        if migrated is not None:
            logger.info("Migrated legacy data from Drive")
            return migrated

        logger.warning("Failed to parse Drive content, using empty store")
        return ReminderStore()

    def save(self, token: str, file_id: str, store: ReminderStore) -> None:
        self._send(
            "PATCH",
            f"{self._upload_url}/files/{file_id}",
            params={"uploadType": "media"},
            headers={**self._auth(token), "Content-Type": "application/json"},
            content=store.to_json().encode("utf-8"),
        )
        logger.debug("Saved snapshot to Drive file %s", file_id)
