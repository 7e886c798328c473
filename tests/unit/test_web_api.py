"""Tests for the HTTP and WebSocket API."""

from __future__ import annotations

from pathlib import Path

import pytest
from conftest import FakeLookup, FakeSource, usage
from fastapi.testclient import TestClient

from proctrace.config import ProcTraceConfig
from proctrace.errors import ProcessNotFound
from proctrace.web.app import create_app


@pytest.fixture
def source() -> FakeSource:
    return FakeSource({1234: [usage(10, 100), usage(30, 300), ProcessNotFound(1234)]})


@pytest.fixture
def client(tmp_path: Path, lookup: FakeLookup, source: FakeSource):
    config = ProcTraceConfig(data_dir=tmp_path, poll_interval=0.01)
    app = create_app(config, lookup=lookup, source=source)
    with TestClient(app) as c:
        yield c


def _receive_until(ws, kind: str, limit: int = 50) -> dict:
    for _ in range(limit):
        message = ws.receive_json()
        if message["type"] == kind:
            return message
    raise AssertionError(f"no {kind} message received")


def test_sessions_empty(client: TestClient):
    response = client.get("/api/sessions")
    assert response.status_code == 200
    assert response.json() == []


def test_get_unknown_session(client: TestClient):
    assert client.get("/api/sessions/missing").status_code == 404
    assert client.delete("/api/sessions/missing").status_code == 404
    assert client.patch("/api/sessions/missing", json={"name": "x"}).status_code == 404


def test_process_lookup(client: TestClient):
    response = client.get("/api/processes/1234")
    assert response.status_code == 200
    assert response.json()["name"] == "sleeper"
    assert client.get("/api/processes/9999").status_code == 404


def test_start_unknown_pid(client: TestClient):
    response = client.post("/api/monitors", json={"pid": 9999})
    assert response.status_code == 404
    assert client.get("/api/sessions").json() == []


def test_start_twice_conflicts(tmp_path: Path, lookup: FakeLookup):
    config = ProcTraceConfig(data_dir=tmp_path, poll_interval=0.01)
    # Nothing scripted: the process never exits, every poll is an error
    app = create_app(config, lookup=lookup, source=FakeSource())
    with TestClient(app) as client:
        first = client.post("/api/monitors", json={"pid": 1234, "name": "run"})
        assert first.status_code == 200
        assert first.json()["name"] == "run"

        second = client.post("/api/monitors", json={"pid": 1234})
        assert second.status_code == 409

        assert client.get("/api/monitors").json() == [
            {"pid": 1234, "sessionId": first.json()["id"]}
        ]
        stopped = client.delete("/api/monitors/1234").json()
        assert stopped["status"] == "stopped"
        assert stopped["session"]["endTime"] is not None
        assert len(client.get("/api/sessions").json()) == 1


def test_stop_not_running(client: TestClient):
    response = client.delete("/api/monitors/4242")
    assert response.status_code == 200
    assert response.json()["status"] == "not-running"


def test_websocket_recording_lifecycle(client: TestClient):
    with client.websocket_connect("/api/ws") as ws:
        ws.send_json({"type": "start", "payload": {"pid": 1234, "name": "ws run"}})
        started = _receive_until(ws, "started")
        session_id = started["payload"]["session"]["id"]
        assert started["payload"]["process"]["name"] == "sleeper"

        point = _receive_until(ws, "datapoint")
        assert point["payload"]["sessionId"] == session_id

        stopped = _receive_until(ws, "stopped")
        assert stopped["payload"]["reason"] == "terminated"
        assert stopped["payload"]["session"]["avgCpu"] == pytest.approx(20)

    detail = client.get(f"/api/sessions/{session_id}").json()
    assert detail["name"] == "ws run"
    assert [p["cpu"] for p in detail["dataPoints"]] == [10, 30]
    assert detail["maxMemory"] == pytest.approx(300)

    assert client.get("/api/monitors").json() == []

    renamed = client.patch(f"/api/sessions/{session_id}", json={"name": "renamed"})
    assert renamed.json()["name"] == "renamed"
    assert client.patch(f"/api/sessions/{session_id}", json={"name": " "}).status_code == 400

    assert client.delete(f"/api/sessions/{session_id}").json() == {"success": True}
    assert client.get(f"/api/sessions/{session_id}").status_code == 404


def test_websocket_command_errors(client: TestClient):
    with client.websocket_connect("/api/ws") as ws:
        ws.send_json({"type": "start", "payload": {"pid": 9999}})
        assert ws.receive_json() == {
            "type": "error",
            "payload": {"message": "Process not found"},
        }

        ws.send_text("not json")
        assert ws.receive_json()["payload"]["message"] == "Invalid message format"

        ws.send_json({"type": "start", "payload": {}})
        assert ws.receive_json()["payload"]["message"] == "Invalid message format"

        ws.send_json({"type": "bogus"})
        assert "Unknown message type" in ws.receive_json()["payload"]["message"]


def test_websocket_non_object_payload_rejected(client: TestClient):
    with client.websocket_connect("/api/ws") as ws:
        for payload in ([1], "1234", 1234):
            ws.send_json({"type": "getProcesses", "payload": payload})
            assert ws.receive_json() == {
                "type": "error",
                "payload": {"message": "Invalid message format"},
            }

        # The socket keeps serving commands afterwards
        ws.send_json({"type": "stop", "payload": {"pid": 1234}})
        ws.send_json({"type": "start", "payload": {"pid": 9999}})
        assert ws.receive_json()["payload"]["message"] == "Process not found"
