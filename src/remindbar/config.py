# src/remindbar/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- No secrets required at import time (OAuth client secrets live in the data dir).
- Paths default to a per-user data directory so local and cloud state survive restarts.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from dotenv import load_dotenv

ENV_PREFIX = "REMINDBAR"

# Maximum number of pending tasks allowed in the Actual list.
MAX_ACTUAL_TASKS: Final = 6

# Name of the synced object inside the cloud folder.
REMOTE_FILE_NAME: Final = "reminders.json"

# Drive folder used when the user has not configured their own.
DEFAULT_DRIVE_FOLDER_ID: Final = "1F0qYeAVU_7H73kX9uz-1ZF3i2KS_V-mk"

DEFAULT_OAUTH_REDIRECT_PORT: Final = 8085
DEFAULT_OAUTH_SCOPES: Final = "https://www.googleapis.com/auth/drive"

# The callback port may still be held by a socket from a previous run.
CALLBACK_BIND_ATTEMPTS: Final = 5
CALLBACK_BIND_RETRY_SECONDS: Final = 1.0


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


load_dotenv(override=False)


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Connector flags ----
    console_enabled: bool

    # ---- Local data paths ----
    data_dir: Path

    # ---- OAuth ----
    oauth_redirect_port: int
    oauth_scopes: str
    oauth_auth_url: str
    oauth_token_url: str

    # ---- Drive ----
    drive_api_url: str
    drive_upload_url: str
    drive_folder_id: str

    # ---- Network / workers ----
    http_timeout_seconds: float
    sync_workers: int

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "remindbar") or "remindbar"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)

        data_dir = _env_path(_k("DATA_DIR"), Path("~/.local/share/remindbar").expanduser())

        oauth_redirect_port = _env_int(_k("OAUTH_REDIRECT_PORT"), DEFAULT_OAUTH_REDIRECT_PORT)
        oauth_scopes = _env(_k("OAUTH_SCOPES"), DEFAULT_OAUTH_SCOPES)
        oauth_auth_url = _env(_k("OAUTH_AUTH_URL"), "https://accounts.google.com/o/oauth2/v2/auth")
        oauth_token_url = _env(_k("OAUTH_TOKEN_URL"), "https://oauth2.googleapis.com/token")

        drive_api_url = _env(_k("DRIVE_API_URL"), "https://www.googleapis.com/drive/v3")
        drive_upload_url = _env(_k("DRIVE_UPLOAD_URL"), "https://www.googleapis.com/upload/drive/v3")
        drive_folder_id = _env(_k("DRIVE_FOLDER_ID"), DEFAULT_DRIVE_FOLDER_ID) or DEFAULT_DRIVE_FOLDER_ID

        http_timeout_seconds = _env_float(_k("HTTP_TIMEOUT_SECONDS"), 30.0)
        # a pool of zero workers would never run anything
        sync_workers = max(1, _env_int(_k("SYNC_WORKERS"), 2))

        return Settings(
            app_name=app_name,
            log_level=log_level,
            console_enabled=console_enabled,
            data_dir=data_dir,
            oauth_redirect_port=oauth_redirect_port,
            oauth_scopes=oauth_scopes,
            oauth_auth_url=oauth_auth_url,
            oauth_token_url=oauth_token_url,
            drive_api_url=drive_api_url.rstrip("/"),
            drive_upload_url=drive_upload_url.rstrip("/"),
            drive_folder_id=drive_folder_id,
            http_timeout_seconds=http_timeout_seconds,
            sync_workers=sync_workers,
        )


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    global _SETTINGS
    if _SETTINGS is None:
        _SETTINGS = Settings.from_env()
    return _SETTINGS
