"""Tests for the FastAPI gateway server."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from flowdeck.config.settings import Settings
from flowdeck.gateway.context import GatewayContext
from flowdeck.gateway.server import create_app


@pytest.fixture
def client(context: GatewayContext):
    with TestClient(create_app(context=context)) as c:
        yield c


def _receive_until(ws, message_type: str, limit: int = 200) -> tuple[dict, list[dict]]:
    seen: list[dict] = []
    for _ in range(limit):
        message = ws.receive_json()
        seen.append(message)
        if message["type"] == message_type:
            return message, seen
    raise AssertionError(f"no {message_type} message received")


class TestHealthAndStatus:
    def test_health(self, client: TestClient) -> None:
        response = client.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert "timestamp" in body

    def test_status(self, client: TestClient) -> None:
        body = client.get("/api/status").json()
        assert body["status"] == "online"
        assert body["initialized"] is False
        assert body["phase"] == "not_initialized"
        assert body["inFlightProcessCount"] == 0
        assert body["apiKeyConfigured"] is False


class TestExecute:
    def test_echo_hello(self, client: TestClient) -> None:
        response = client.post("/api/execute", json={"command": "echo hello"})
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert "hello" in body["output"]
        assert body["exitCode"] == 0

    def test_failure_is_not_an_http_error(self, client: TestClient) -> None:
        response = client.post("/api/execute", json={"command": "exit 4", "type": "shell"})
        assert response.status_code == 200
        assert response.json()["success"] is False
        assert response.json()["exitCode"] == 4

    @pytest.mark.parametrize("body", [{}, {"command": ""}, {"command": "   "}])
    def test_command_required(self, client: TestClient, body: dict) -> None:
        response = client.post("/api/execute", json=body)
        assert response.status_code == 400
        assert response.json()["detail"] == "Command is required"

    def test_timeout(self, client: TestClient) -> None:
        body = client.post("/api/execute", json={"command": "sleep 5", "timeout": 0.2}).json()
        assert body["timedOut"] is True


class TestProcesses:
    def test_empty_registry(self, client: TestClient) -> None:
        assert client.get("/api/processes").json() == {"processes": []}

    def test_cancel_unknown(self, client: TestClient) -> None:
        response = client.post("/api/processes/missing/cancel")
        assert response.status_code == 404

    def test_agents_empty(self, client: TestClient) -> None:
        assert client.get("/api/agents").json() == {"agents": []}


class TestLogsAndInitialize:
    def test_logs_without_file(self, client: TestClient) -> None:
        assert client.get("/api/logs").json() == {"logs": ["No logs available yet"]}

    def test_logs_tail(self, client: TestClient, context: GatewayContext) -> None:
        path = Path(context.settings.logging.file)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("first\nsecond\n")
        assert client.get("/api/logs").json() == {"logs": ["first", "second"]}

    def test_initialize_twice(self, client: TestClient) -> None:
        first = client.post("/api/initialize").json()
        assert first == {"success": True, "message": "Initialized successfully"}
        second = client.post("/api/initialize").json()
        assert second == {"success": True, "message": "Already initialized"}
        assert client.get("/api/status").json()["initialized"] is True


class TestDiagnostics:
    def test_anthropic_without_key(self, client: TestClient) -> None:
        body = client.get("/api/test-anthropic").json()
        assert body["success"] is False
        assert body["configured"] is False

    def test_claude_flow_missing(self, client: TestClient, context: GatewayContext) -> None:
        context.settings.translator.version_command = "exit 127"
        body = client.get("/api/test-claude-flow").json()
        assert body["success"] is False
        assert body["installed"] is False


class TestWebSocket:
    def test_connect_receives_status_snapshot(self, client: TestClient) -> None:
        with client.websocket_connect("/ws") as ws:
            snapshot = ws.receive_json()
            assert snapshot["type"] == "system_status"
            assert snapshot["status"]["connectedObserverCount"] == 1

    def test_execute_command_streams_and_replies(self, client: TestClient) -> None:
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_text(json.dumps(
                {"type": "execute_command", "command": "echo from-ws", "category": "shell"}
            ))
            result, seen = _receive_until(ws, "command_result")
            assert result["result"]["success"] is True
            outputs = [m["message"] for m in seen if m["type"] == "command_output"]
            assert "from-ws" in outputs
            assert "Executing: echo from-ws" in outputs

    def test_http_execution_is_broadcast(self, client: TestClient) -> None:
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            client.post("/api/execute", json={"command": "echo via-http"})
            for _ in range(50):
                message = ws.receive_json()
                if message.get("message") == "via-http":
                    break
            else:
                raise AssertionError("HTTP command output was not broadcast")

    def test_malformed_message_keeps_connection(self, client: TestClient) -> None:
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_text("this is not json")
            ws.send_text(json.dumps({"type": "unknown"}))
            ws.send_text(json.dumps({"type": "get_status"}))
            reply = ws.receive_json()
            assert reply["type"] == "system_status"

    def test_disconnect_unregisters(self, client: TestClient, context: GatewayContext) -> None:
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            assert context.broadcaster.connection_count == 1
        ws_status = client.get("/api/status").json()
        assert ws_status["connectedObserverCount"] == 0


class TestAppFactory:
    def test_default_settings_come_from_loader(
        self, settings: Settings, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        calls: list[object] = []

        def fake_load(path=None):
            calls.append(path)
            return settings

        monkeypatch.setattr("flowdeck.gateway.server.load_settings", fake_load)
        app = create_app()
        assert calls == [None]
        assert app.state.context.settings is settings
