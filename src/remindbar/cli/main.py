# src/remindbar/cli/main.py

"""
CLI entrypoint.

Sets up logging in the data dir, builds AppState (local load plus Drive
reconciliation when a token exists) and runs the console REPL. Without the
console the process idles until SIGTERM / Ctrl+C so background syncs can finish.
"""

from __future__ import annotations

import logging
import signal
import threading

from ..cli.bootstrap import create_initial_state, shutdown_state
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


def _console_level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO


def main() -> None:
    settings = get_settings()
    log_file = setup_logging(
        log_dir=settings.data_dir,
        console_level=_console_level(settings.log_level),
    )
    logger.info("Starting %s (log file %s)...", settings.app_name, log_file)

    state = create_initial_state(settings=settings)
    stopped = threading.Event()

    def _on_sigterm(signum, _frame) -> None:
        logger.info("Signal %s received, shutting down...", signum)
        stopped.set()

    try:
        signal.signal(signal.SIGTERM, _on_sigterm)
    except (ValueError, OSError, AttributeError):
        logger.debug("SIGTERM handler not installed.", exc_info=True)

    try:
        if settings.console_enabled:
            run_console_loop(state)
        else:
            logger.info("Console disabled. Press Ctrl+C to stop.")
            try:
                stopped.wait()
            except KeyboardInterrupt:
                logger.info("Interrupted.")
    finally:
        shutdown_state(state)
        logger.info("Bye.")


if __name__ == "__main__":
    main()
