# src/remindbar/errors.py

"""
Application error taxonomy.

Every failure that crosses a module boundary is an AppError subclass tagged with
an ErrorKind, so callers (console, settings UI) can tell a local storage problem
from a cloud or auth problem without parsing strings.
"""

from __future__ import annotations

from enum import StrEnum


class ErrorKind(StrEnum):
    STORAGE = "storage"
    DRIVE = "drive"
    OAUTH = "oauth"
    VALIDATION = "validation"
    NETWORK = "network"


_LABELS = {
    ErrorKind.STORAGE: "Storage",
    ErrorKind.DRIVE: "Drive",
    ErrorKind.OAUTH: "OAuth",
    ErrorKind.VALIDATION: "Validation",
    ErrorKind.NETWORK: "Network",
}


class AppError(Exception):
    kind: ErrorKind = ErrorKind.STORAGE

    def __init__(self, message: str, *, kind: ErrorKind | None = None) -> None:
        super().__init__(message)
        self.message = message
        if kind is not None:
            self.kind = kind

    def __str__(self) -> str:
        return f"{_LABELS[self.kind]} error: {self.message}"

    def to_dict(self) -> dict[str, str]:
        return {"type": _LABELS[self.kind], "message": self.message}


class StorageError(AppError):
    kind = ErrorKind.STORAGE


class DriveError(AppError):
    kind = ErrorKind.DRIVE


class AuthExpiredError(DriveError):
    """The cloud rejected the access token (HTTP 401)."""


class CloudSyncError(DriveError):
    """
    Raised by a full save when the local write succeeded and the cloud write did not.

    The mutation is durable on disk; only the remote copy is stale.
    """

    saved_locally = True

    def __init__(self, cause: Exception) -> None:
        super().__init__(f"Saved locally but cloud sync failed: {cause}")
        self.cause = cause


class OAuthError(AppError):
    kind = ErrorKind.OAUTH


class ValidationError(AppError):
    kind = ErrorKind.VALIDATION


class NetworkError(AppError):
    kind = ErrorKind.NETWORK
