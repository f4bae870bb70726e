"""Unit tests for the JSON-RPC message route."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from workflow_monitor.api import create_app
from workflow_monitor.api.dependencies import get_dispatcher
from workflow_monitor.config import MonitorConfig
from workflow_monitor.rpc import ToolDispatcher
from workflow_monitor.rpc.models import PARSE_ERROR
from workflow_monitor.snapshot import RepositoryNotFoundError


@pytest.fixture
def service(make_snapshot) -> MagicMock:
    """Mock SnapshotService."""
    mock = MagicMock()
    mock.get_snapshot = AsyncMock(
        side_effect=lambda repository=None, focused_item_id=None, force_refresh=False: (
            make_snapshot(repository or "owner/repo", focused_item_id)
        )
    )
    return mock


@pytest.fixture
def app(service: MagicMock) -> FastAPI:
    """Create the app with a dispatcher over the mock service."""
    app = create_app(MonitorConfig(github_token="ghp_test"))
    dispatcher = ToolDispatcher(service=service, ui_url="http://ui/index.html")

    def override_get_dispatcher():
        yield dispatcher

    app.dependency_overrides[get_dispatcher] = override_get_dispatcher
    return app


@pytest.fixture
def client(app: FastAPI):
    """Create a test client."""
    return TestClient(app, raise_server_exceptions=False)


def _tool_call(name: str, request_id: int = 1, **arguments) -> dict:
    return {
        "jsonrpc": "2.0",
        "id": request_id,
        "method": "tools/call",
        "params": {"name": name, "arguments": arguments},
    }


@pytest.mark.unit
class TestPostMessage:
    """Tests for POST /mcp/message."""

    def test_state_tool_has_no_empty_content(self, client: TestClient) -> None:
        """Empty content is stripped from object results on the wire."""
        response = client.post("/mcp/message", json=_tool_call("get_dashboard_state", repo="o/r"))

        assert response.status_code == 200
        result = response.json()["result"]
        assert "content" not in result
        assert result["structuredContent"]["repo"] == "o/r"

    def test_render_tool_keeps_text_content(self, client: TestClient) -> None:
        """Non-empty content survives sanitizing."""
        response = client.post(
            "/mcp/message", json=_tool_call("render_workflow_monitor", repo="o/r")
        )

        result = response.json()["result"]
        assert result["content"][0]["type"] == "text"
        assert result["_meta"]["ui"]["resourceUri"] == "http://ui/index.html"

    def test_batch(self, client: TestClient) -> None:
        """Batch responses are each sanitized."""
        response = client.post(
            "/mcp/message",
            json=[
                _tool_call("get_dashboard_state", request_id=1, repo="a/a"),
                _tool_call("render_workflow_monitor", request_id=2, repo="b/b"),
            ],
        )

        body = response.json()
        assert [r["id"] for r in body] == [1, 2]
        assert "content" not in body[0]["result"]
        assert body[1]["result"]["content"]

    def test_parse_error(self, client: TestClient) -> None:
        """Malformed JSON yields a parse error."""
        response = client.post(
            "/mcp/message", content=b"{not json", headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["error"]["code"] == PARSE_ERROR
        assert body["id"] is None

    def test_notification_accepted(self, client: TestClient) -> None:
        """Notifications get 202 and no body."""
        response = client.post(
            "/mcp/message", json={"jsonrpc": "2.0", "method": "notifications/initialized"}
        )

        assert response.status_code == 202
        assert response.content == b""

    def test_tool_error_reported_in_body(self, client: TestClient, service: MagicMock) -> None:
        """Snapshot failures are JSON-RPC errors, not HTTP errors."""
        service.get_snapshot.side_effect = RepositoryNotFoundError("Repository o/r not found")

        response = client.post("/mcp/message", json=_tool_call("get_dashboard_state", repo="o/r"))

        assert response.status_code == 200
        error = response.json()["error"]
        assert error["data"]["error_code"] == "REPOSITORY_NOT_FOUND"
