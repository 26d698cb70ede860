# src/remindbar/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path

LOG_FILE = "remindbar.log"

# Minimum level a record from these loggers needs to reach the console.
_CONSOLE_THRESHOLDS: dict[str, int] = {
    "remindbar.storage.worker": logging.WARNING,
    "py.warnings": logging.ERROR,
}


class _ConsoleNoiseFilter(logging.Filter):
    """
    Keep the interactive console readable.

    remindbar records pass unless listed in _CONSOLE_THRESHOLDS (the background
    sync worker only reports problems). Everything else, httpx and httpcore
    included, needs ERROR+. The log file is not filtered.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        threshold = _CONSOLE_THRESHOLDS.get(record.name)
        if threshold is not None:
            return record.levelno >= threshold
        if record.name == "remindbar" or record.name.startswith("remindbar."):
            return True
        return record.levelno >= logging.ERROR


def _formatter() -> logging.Formatter:
    return logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def setup_logging(
    *,
    log_dir: str | Path = "~/.local/share/remindbar",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> Path:
    """
    Install a filtered stderr handler and a full file log under `log_dir`.

    Call once at startup; existing root handlers are replaced.
    Returns the log file path.
    """
    log_dir = Path(log_dir).expanduser()
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(_formatter())
    console.addFilter(_ConsoleNoiseFilter())
    root.addHandler(console)

    file_handler = logging.FileHandler(str(log_file), encoding="utf-8")
    file_handler.setLevel(file_level)
    file_handler.setFormatter(_formatter())
    root.addHandler(file_handler)

    logging.captureWarnings(True)

    # httpx logs every request URL at INFO, Drive queries included
    for name in ("httpx", "httpcore"):
        logging.getLogger(name).setLevel(logging.WARNING)

    return log_file
