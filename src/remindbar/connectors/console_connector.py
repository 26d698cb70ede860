# src/remindbar/connectors/console_connector.py

from __future__ import annotations

import logging
from datetime import datetime

from ..cli.commands import registry as command_registry
from ..core.state import AppState

logger = logging.getLogger(__name__)

EXIT_COMMANDS = frozenset({"/exit", "/quit", "/q"})


def _stamp(text: str) -> str:
    now = datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")
    return f"[{now}] {text}"


def _to_command(user_input: str) -> str:
    """Plain text is a quick add to the Actual list."""
    return user_input if user_input.startswith("/") else f"/add {user_input}"


def run_console_loop(state: AppState) -> None:
    """
    Read lines from stdin and dispatch them through the command registry.

    Exits on /exit, /quit, EOF or Ctrl+C. Messages from background work
    (the OAuth flow finishing) arrive through `emit` and may interleave
    with the prompt.
    """
    logger.info("Console connector started.")
    print(_stamp("[CONSOLE] Plain text adds a reminder. /help lists commands, /exit quits."))
    print(_stamp(command_registry.handle(state, "/list") or ""))

    def emit(text: str) -> None:
        print("\n" + _stamp(text), flush=True)

    while True:
        try:
            user_input = input(">>> ").strip()
        except (EOFError, KeyboardInterrupt):
            print()
            logger.info("Console input closed, exiting.")
            break

        if not user_input:
            continue
        if user_input.lower() in EXIT_COMMANDS:
            logger.info("Console exit command received.")
            break

        try:
            response = command_registry.handle(state, _to_command(user_input), emit=emit)
        except Exception:
            logger.exception("Command handler crashed.")
            response = "Internal error while handling a command."

        if response is not None:
            print(_stamp(response))

    logger.info("Console connector finished.")
