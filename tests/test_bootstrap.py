# tests/test_bootstrap.py

from __future__ import annotations

import json

import httpx

from remindbar.cli.bootstrap import create_initial_state, shutdown_state
from remindbar.reminders.models import ReminderStore

from .conftest import make_reminder


def test_create_initial_state_without_token_is_local_only(settings) -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(500)

    client = httpx.Client(transport=httpx.MockTransport(handler))
    state = create_initial_state(settings=settings, http_client=client)
    try:
        assert settings.data_dir.is_dir()
        assert state.task_store.get_oauth_status() == (False, False)
        assert state.http_client is client
        assert requests == []
    finally:
        shutdown_state(state)


def test_create_initial_state_reconciles_with_drive(settings) -> None:
    settings.data_dir.mkdir(parents=True)
    (settings.data_dir / "oauth_credentials.json").write_text(
        json.dumps({"client_id": "cid", "client_secret": "secret", "folder_id": "folder-1"})
    )
    (settings.data_dir / "token.json").write_text(json.dumps({"token": "at-1"}))
    (settings.data_dir / "reminders.json").write_text(
        ReminderStore(pending=[make_reminder(1)]).to_json()
    )
    remote = ReminderStore(pending=[make_reminder(2, sort_order=1)])
    uploads: list[ReminderStore] = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["Authorization"] == "Bearer at-1"
        if request.method == "GET" and request.url.path.endswith("/files"):
            return httpx.Response(200, json={"files": [{"id": "remote-1"}]})
        if request.method == "GET":
            return httpx.Response(200, text=remote.to_json())
        uploads.append(ReminderStore.from_json(request.content.decode("utf-8")))
        return httpx.Response(200, json={"id": "remote-1"})

    client = httpx.Client(transport=httpx.MockTransport(handler))
    state = create_initial_state(settings=settings, http_client=client)
    try:
        assert state.task_store.get_oauth_status() == (True, True)
        assert sorted(r.id for r in state.task_store.get_pending()) == [1, 2]
        assert len(uploads) == 1
        assert sorted(r.id for r in uploads[0].pending) == [1, 2]
    finally:
        shutdown_state(state)
