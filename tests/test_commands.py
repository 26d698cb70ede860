# tests/test_commands.py

from __future__ import annotations

from remindbar.cli.commands import CommandRegistry, registry
from remindbar.reminders.models import ListType, Urgency

from .fakes import FakeSessionManager


def test_command_registry_routes_2_and_3_params(state) -> None:
    reg = CommandRegistry()
    called = {"h2": 0, "h3": 0}

    def h2(state, args):
        called["h2"] += 1
        return "h2"

    def h3(state, args, emit):
        called["h3"] += 1
        if emit is not None:
            emit("note")
        return "h3"

    reg.register("a", h2, "a")
    reg.register("b", h3, "b", aliases=["bb"])
    notes: list[str] = []

    assert reg.handle(state, "/a x") == "h2"
    assert reg.handle(state, "/BB y", emit=notes.append) == "h3"
    assert called == {"h2": 1, "h3": 1}
    assert notes == ["note"]


def test_command_registry_unknown_and_non_command(state) -> None:
    reg = CommandRegistry()
    assert reg.handle(state, "hello") is None
    assert "Unknown command" in (reg.handle(state, "/nope") or "")
    assert "Empty command" in (reg.handle(state, "/") or "")


def test_help_lists_commands(state) -> None:
    reply = registry.handle(state, "/help") or ""
    assert "/add" in reply
    assert "/reorder" in reply
    assert registry.handle(state, "/?") == reply


def test_add_parses_urgency_and_list(state) -> None:
    assert registry.handle(state, "/add soon backlog Buy milk") == "Added #1 to backlog."
    assert registry.handle(state, "/add Call the bank") == "Added #2 to actual."

    backlog = state.task_store.get_backlog()
    assert [(r.message, r.urgency) for r in backlog] == [("Buy milk", Urgency.SOON)]
    assert "#2 [today] Call the bank" in (registry.handle(state, "/ls") or "")
    assert "Usage" in (registry.handle(state, "/add now") or "")


def test_app_errors_become_replies(state) -> None:
    assert registry.handle(state, "/complete abc") == "Validation error: not a reminder id: 'abc'"
    assert "unknown list" in (registry.handle(state, "/move 1 someday") or "")


def test_move_and_reorder_queue_cloud_push(state) -> None:
    registry.handle(state, "/add first")
    registry.handle(state, "/add second")

    assert registry.handle(state, "/move 1 backlog") == "Moved #1 to backlog."
    assert registry.handle(state, "/reorder 2") == "Order saved."
    state.worker.shutdown(wait=True)

    assert [r.id for r in state.task_store.get_backlog()] == [1]
    cloud_store = state.task_store._cloud.store
    assert cloud_store.find_pending(1).list_type == ListType.BACKLOG


def test_complete_uncomplete_and_done(state) -> None:
    registry.handle(state, "/add finish report")

    assert registry.handle(state, "/c 1") == "Completed #1."
    assert "#1 [today] finish report" in (registry.handle(state, "/done") or "")
    assert "Completed today: 1" in (registry.handle(state, "/stats") or "")

    assert registry.handle(state, "/uncomplete 1") == "Restored #1."
    assert "(empty)" in (registry.handle(state, "/done") or "")


def test_creds_login_and_logout(state) -> None:
    session: FakeSessionManager = state.task_store._oauth

    assert "No OAuth credentials" in (registry.handle(state, "/creds") or "")
    assert "OAuth credentials saved" in (registry.handle(state, "/creds cid secret") or "")
    assert session.credentials is not None
    assert session.credentials.folder_id == "folder-1"
    assert registry.handle(state, "/creds") == "client_id=cid folder_id=folder-1"

    reply = registry.handle(state, "/login", emit=lambda _: None) or ""
    assert "https://accounts.example/auth" in reply
    assert len(session.flows) == 1

    assert "connected (folder folder-1)" in (registry.handle(state, "/status") or "")
    assert registry.handle(state, "/logout") == (
        "Disconnected from Google Drive. Credentials were kept."
    )
    assert registry.handle(state, "/sync") == "Not connected to Google Drive."
    assert registry.handle(state, "/refresh") == "Not connected to Google Drive."
    assert "not connected" in (registry.handle(state, "/status") or "")
