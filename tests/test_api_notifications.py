# tests/test_api_notifications.py

from __future__ import annotations

from pathlib import Path
from typing import Iterator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from taskbell.config import config_from_dict
from taskbell.main import create_app

from .fakes import FakeClock

TOKEN = "secret-token"


@pytest.fixture()
def secured_client(tmp_path: Path, clock: FakeClock) -> Iterator[TestClient]:
    config = config_from_dict(
        {
            "db_path": str(tmp_path / "secured.db"),
            "log_level": "WARNING",
            "reminders_enabled": False,
            "token": TOKEN,
        }
    )
    with TestClient(create_app(config, clock=clock)) as c:
        yield c


def _create_reminder(client: TestClient, reminder_time: str) -> dict:
    res = client.post(
        "/api/tasks",
        json={"title": "stand up", "reminderEnabled": True, "reminderTime": reminder_time},
    )
    assert res.status_code == 201, res.text
    return res.json()


# --- notifications ---


def test_permission_starts_default_and_can_be_reported(client: TestClient) -> None:
    assert client.get("/api/notifications/permission").json() == {"permission": "default"}

    res = client.put("/api/notifications/permission", json={"permission": "granted"})
    assert res.json() == {"permission": "granted"}
    assert client.get("/api/notifications/permission").json() == {"permission": "granted"}


def test_permission_rejects_unknown_value(client: TestClient) -> None:
    res = client.put("/api/notifications/permission", json={"permission": "maybe"})
    assert res.status_code == 400


def test_test_notification_waits_for_permission(client: TestClient) -> None:
    res = client.post("/api/notifications/test")
    assert res.status_code == 200
    assert res.json() == {"delivered": False, "permission": "default"}


def test_test_notification_is_delivered_when_granted(client: TestClient) -> None:
    client.put("/api/notifications/permission", json={"permission": "granted"})

    res = client.post("/api/notifications/test")
    assert res.json() == {"delivered": True, "permission": "granted"}


def test_test_notification_conflicts_when_denied(client: TestClient) -> None:
    client.put("/api/notifications/permission", json={"permission": "denied"})

    res = client.post("/api/notifications/test")
    assert res.status_code == 409


# --- reminders ---


def test_reminder_tick_marks_task_and_reports_status(client: TestClient, app: FastAPI) -> None:
    task = _create_reminder(client, "2024-12-31T23:59:30Z")
    loop = app.state.reminder_loop

    assert client.portal.call(loop.tick) == [task["id"]]
    assert client.portal.call(loop.drain) == 0
    assert client.portal.call(loop.tick) == []

    assert client.get(f"/api/tasks/{task['id']}").json()["reminderNotified"] is True

    status = client.get("/api/reminders/status").json()
    assert status == {
        "enabled": False,
        "checkIntervalSeconds": status["checkIntervalSeconds"],
        "windowSeconds": 60,
        "notifiedCount": 1,
        "pendingWrites": 0,
        "lastTickAt": "2025-01-01T00:00:00Z",
        "connectedClients": 0,
    }


def test_reminder_older_than_window_does_not_fire(client: TestClient, app: FastAPI) -> None:
    task = _create_reminder(client, "2024-12-31T23:58:00Z")

    assert client.portal.call(app.state.reminder_loop.tick) == []
    assert client.get(f"/api/tasks/{task['id']}").json()["reminderNotified"] is False


def test_manual_notified_flag_requires_due_reminder(client: TestClient) -> None:
    task = _create_reminder(client, "2025-01-01T01:00:00Z")

    res = client.patch(f"/api/tasks/{task['id']}", json={"reminderNotified": True})
    assert res.status_code == 400


def test_future_reminder_fires_only_once_its_time_is_reached(
    client: TestClient, app: FastAPI, clock: FakeClock
) -> None:
    task = _create_reminder(client, "2025-01-01T00:02:00Z")
    loop = app.state.reminder_loop

    assert client.portal.call(loop.tick) == []
    clock.tick(119)
    assert client.portal.call(loop.tick) == []
    clock.tick(1)
    assert client.portal.call(loop.tick) == [task["id"]]


def test_control_time_routes_are_not_exposed(client: TestClient) -> None:
    assert client.post("/api/control/time/advance", json={"seconds": 90}).status_code == 404


# --- events websocket ---


def test_event_stream_reports_permission_and_delivers_notifications(client: TestClient) -> None:
    with client.websocket_connect("/api/events/stream") as ws:
        ready = ws.receive_json()
        assert ready == {"seq": 0, "type": "stream.ready", "data": {"permission": "default"}}

        ws.send_json({"type": "permission", "permission": "granted"})
        ack = ws.receive_json()
        assert ack["type"] == "notification.permission"
        assert ack["data"] == {"permission": "granted"}

        res = client.post("/api/notifications/test")
        assert res.json()["delivered"] is True

        event = ws.receive_json()
        assert event["type"] == "notification.show"
        assert event["data"]["tag"] == "taskbell-test"
        assert event["data"]["requireInteraction"] is False
        assert event["seq"] >= 1


def test_event_stream_ignores_malformed_messages(client: TestClient) -> None:
    with client.websocket_connect("/api/events/stream") as ws:
        ws.receive_json()
        ws.send_text("not json")
        ws.send_json({"type": "permission", "permission": "sometimes"})
        ws.send_json({"type": "permission", "permission": "denied"})

        ack = ws.receive_json()
        assert ack["data"] == {"permission": "denied"}


# --- auth ---


def test_http_requires_bearer_when_token_is_set(secured_client: TestClient) -> None:
    assert secured_client.get("/api/tasks").status_code == 401
    assert secured_client.get("/api/tasks", headers={"Authorization": "Bearer wrong"}).status_code == 401

    res = secured_client.get("/api/tasks", headers={"Authorization": f"Bearer {TOKEN}"})
    assert res.status_code == 200


def test_health_stays_open_when_token_is_set(secured_client: TestClient) -> None:
    assert secured_client.get("/api/health").status_code == 200


def test_websocket_rejects_missing_token(secured_client: TestClient) -> None:
    with secured_client.websocket_connect("/api/events/stream") as ws:
        with pytest.raises(WebSocketDisconnect) as exc_info:
            ws.receive_json()
    assert exc_info.value.code == 1008


def test_websocket_accepts_token_query_param(secured_client: TestClient) -> None:
    with secured_client.websocket_connect(f"/api/events/stream?token={TOKEN}") as ws:
        assert ws.receive_json()["type"] == "stream.ready"
