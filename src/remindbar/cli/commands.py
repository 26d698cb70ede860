# src/remindbar/cli/commands.py

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from typing import cast

from ..core.state import AppState
from ..errors import AppError, ValidationError
from ..reminders.models import ListType, Reminder, Urgency
from ..storage.oauth import OAuthCredentials

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by connectors (/help, /add, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        Application errors are turned into the reply text.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 3

        try:
            if nparams >= 3:
                h3 = cast(CommandHandler3, handler)
                return h3(state, args, emit)
            h2 = cast(CommandHandler2, handler)
            return h2(state, args)
        except AppError as e:
            logger.info("/%s failed: %s", name, e)
            return str(e)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- argument helpers ----


def _parse_id(raw: str) -> int:
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"not a reminder id: {raw!r}") from None


def _parse_urgency(raw: str) -> Urgency:
    try:
        return Urgency(raw.lower())
    except ValueError:
        choices = " | ".join(u.value for u in Urgency)
        raise ValidationError(f"unknown urgency {raw!r} (use {choices})") from None


def _parse_list(raw: str) -> ListType:
    try:
        return ListType(raw.lower())
    except ValueError:
        raise ValidationError(f"unknown list {raw!r} (use actual | backlog)") from None


def _format_reminder(r: Reminder) -> str:
    return f"#{r.id} [{r.urgency.value}] {r.message}"


def _format_list(title: str, reminders: list[Reminder]) -> str:
    if not reminders:
        return f"{title}: (empty)"
    lines = [f"{title}:"]
    lines.extend(f"  {i}. {_format_reminder(r)}" for i, r in enumerate(reminders, start=1))
    return "\n".join(lines)


# ---- queries ----


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    store = state.task_store
    has_creds, logged_in = store.get_oauth_status()
    creds = store.get_oauth_credentials()
    folder = creds.folder_id if creds else "-"
    return (
        "Status:\n"
        f"  Actual: {len(store.get_actual())}  Backlog: {len(store.get_backlog())}"
        f"  Completed: {len(store.get_completed())}\n"
        f"  OAuth credentials: {'yes' if has_creds else 'no'}\n"
        f"  Google Drive: {'connected' if logged_in else 'not connected'} (folder {folder})"
    )


def cmd_list(state: AppState, args: list[str]) -> str:
    return _format_list("Actual", state.task_store.get_actual())


def cmd_backlog(state: AppState, args: list[str]) -> str:
    return _format_list("Backlog", state.task_store.get_backlog())


def cmd_done(state: AppState, args: list[str]) -> str:
    limit = _parse_id(args[0]) if args else 10
    return _format_list("Completed", state.task_store.get_completed()[:limit])


def cmd_stats(state: AppState, args: list[str]) -> str:
    today, week = state.task_store.completion_stats()
    hist = state.task_store.historical_stats()
    days = ", ".join(f"{day[5:]}={n}" for day, n in hist.daily[-7:])
    return (
        "Stats:\n"
        f"  Completed today: {today}\n"
        f"  Completed this week: {week}\n"
        f"  Last 7 days: {days}\n"
        f"  Backlog size: {hist.backlog_size}"
    )


# ---- commands ----


def cmd_add(state: AppState, args: list[str]) -> str:
    """
    /add [urgency] [actual|backlog] text...
    """
    urgency = Urgency.TODAY
    list_type = ListType.ACTUAL
    words = list(args)
    while words:
        head = words[0].lower()
        if head in Urgency._value2member_map_:
            urgency = Urgency(head)
        elif head in ListType._value2member_map_:
            list_type = ListType(head)
        else:
            break
        words.pop(0)

    if not words:
        return "Usage: /add [now|today|soon|whenever] [actual|backlog] text"

    new_id = state.task_store.add(" ".join(words), urgency, list_type)
    return f"Added #{new_id} to {list_type.value}."


def cmd_edit(state: AppState, args: list[str]) -> str:
    """
    /edit id urgency text...
    """
    if len(args) < 3:
        return "Usage: /edit id urgency text"
    reminder_id = _parse_id(args[0])
    state.task_store.update(reminder_id, " ".join(args[2:]), _parse_urgency(args[1]))
    return f"Updated #{reminder_id}."


def cmd_move(state: AppState, args: list[str]) -> str:
    if len(args) != 2:
        return "Usage: /move id actual|backlog"
    reminder_id = _parse_id(args[0])
    to_list = _parse_list(args[1])
    state.task_store.move(reminder_id, to_list)
    state.worker.submit_sync_to_cloud()
    return f"Moved #{reminder_id} to {to_list.value}."


def cmd_urgency(state: AppState, args: list[str]) -> str:
    if len(args) != 2:
        return "Usage: /urgency id now|today|soon|whenever"
    reminder_id = _parse_id(args[0])
    state.task_store.set_urgency(reminder_id, _parse_urgency(args[1]))
    state.worker.submit_sync_to_cloud()
    return f"Urgency of #{reminder_id} set to {args[1].lower()}."


def cmd_complete(state: AppState, args: list[str]) -> str:
    if len(args) != 1:
        return "Usage: /complete id"
    reminder_id = _parse_id(args[0])
    state.task_store.complete(reminder_id)
    return f"Completed #{reminder_id}."


def cmd_uncomplete(state: AppState, args: list[str]) -> str:
    if len(args) != 1:
        return "Usage: /uncomplete id"
    reminder_id = _parse_id(args[0])
    state.task_store.uncomplete(reminder_id)
    return f"Restored #{reminder_id}."


def cmd_delete(state: AppState, args: list[str]) -> str:
    if len(args) != 1:
        return "Usage: /delete id"
    reminder_id = _parse_id(args[0])
    state.task_store.delete(reminder_id)
    return f"Deleted #{reminder_id}."


def cmd_reorder(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /reorder id id id ..."
    ids = [_parse_id(a) for a in args]
    state.task_store.reorder(ids)
    state.worker.submit_sync_to_cloud()
    return "Order saved."


# ---- cloud ----


def cmd_sync(state: AppState, args: list[str]) -> str:
    if not state.task_store.is_logged_in:
        return "Not connected to Google Drive."
    state.worker.submit_sync_to_cloud()
    return "Sync to Google Drive queued."


def cmd_refresh(state: AppState, args: list[str]) -> str:
    if not state.task_store.refresh_from_cloud():
        return "Not connected to Google Drive."
    return "Merged with Google Drive."


def cmd_creds(state: AppState, args: list[str]) -> str:
    """
    /creds                                   -> show configured client id / folder
    /creds client_id client_secret [folder]  -> save credentials
    """
    store = state.task_store
    if not args:
        creds = store.get_oauth_credentials()
        if creds is None:
            return "No OAuth credentials. Use /creds client_id client_secret [folder_id]."
        return f"client_id={creds.client_id} folder_id={creds.folder_id}"

    if len(args) not in (2, 3):
        return "Usage: /creds client_id client_secret [folder_id]"

    folder_id = args[2] if len(args) == 3 else state.settings.drive_folder_id
    store.save_oauth_credentials(
        OAuthCredentials(client_id=args[0], client_secret=args[1], folder_id=folder_id)
    )
    return "OAuth credentials saved. Use /login to connect."


def cmd_login(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    store = state.task_store

    def _done(error: Exception | None) -> None:
        if emit is None:
            return
        if error is None:
            emit("[DRIVE] Connected to Google Drive.")
        else:
            emit(f"[DRIVE] Login failed: {error}")

    store.start_oauth_flow(on_done=_done)
    return (
        "Opening the browser for Google sign-in...\n"
        f"If it does not open, visit:\n  {store.get_oauth_url()}"
    )


def cmd_logout(state: AppState, args: list[str]) -> str:
    state.task_store.disconnect_cloud()
    return "Disconnected from Google Drive. Credentials were kept."


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show list sizes and Drive connection.")
registry.register("list", cmd_list, help_text="Show the Actual list.", aliases=["ls"])
registry.register("backlog", cmd_backlog, help_text="Show the Backlog.")
registry.register("done", cmd_done, help_text="Show recently completed: /done [n].")
registry.register("stats", cmd_stats, help_text="Show completion statistics.")
registry.register(
    "add", cmd_add, help_text="Add: /add [now|today|soon|whenever] [actual|backlog] text."
)
registry.register("edit", cmd_edit, help_text="Edit: /edit id urgency text.")
registry.register("move", cmd_move, help_text="Move: /move id actual|backlog.")
registry.register("urgency", cmd_urgency, help_text="Set urgency: /urgency id level.")
registry.register("complete", cmd_complete, help_text="Complete: /complete id.", aliases=["c"])
registry.register("uncomplete", cmd_uncomplete, help_text="Restore a completed reminder.")
registry.register("delete", cmd_delete, help_text="Delete: /delete id.", aliases=["rm"])
registry.register("reorder", cmd_reorder, help_text="Reorder: /reorder id id id ...")
registry.register("sync", cmd_sync, help_text="Push local state to Google Drive.")
registry.register("refresh", cmd_refresh, help_text="Pull and merge from Google Drive.")
registry.register("creds", cmd_creds, help_text="Show or save OAuth client credentials.")
registry.register("login", cmd_login, help_text="Connect Google Drive (browser sign-in).")
registry.register("logout", cmd_logout, help_text="Disconnect Google Drive.")
