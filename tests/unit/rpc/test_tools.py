"""Unit tests for ToolDispatcher."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from workflow_monitor.rpc import OBJECT_RESULT_SCHEMA, ToolDispatcher
from workflow_monitor.rpc.models import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    SERVER_ERROR,
)
from workflow_monitor.snapshot import RepositoryNotFoundError, UpstreamRateLimitedError

UI_URL = "http://localhost:3001/ui/index.html"


@pytest.fixture
def service(make_snapshot) -> MagicMock:
    """Mock SnapshotService."""
    mock = MagicMock()
    mock.get_snapshot = AsyncMock(
        side_effect=lambda repository=None, focused_item_id=None, force_refresh=False: (
            make_snapshot(repository or "octocat/Hello-World", focused_item_id)
        )
    )
    return mock


@pytest.fixture
def dispatcher(service: MagicMock) -> ToolDispatcher:
    return ToolDispatcher(service=service, ui_url=UI_URL)


def _call(name: str, arguments: dict | None = None, request_id: int = 1) -> dict:
    return {
        "jsonrpc": "2.0",
        "id": request_id,
        "method": "tools/call",
        "params": {"name": name, "arguments": arguments or {}},
    }


@pytest.mark.unit
class TestProtocolMethods:
    """Tests for non-tool methods."""

    @pytest.mark.asyncio
    async def test_initialize(self, dispatcher: ToolDispatcher) -> None:
        resp = await dispatcher.handle_payload({"jsonrpc": "2.0", "id": 0, "method": "initialize"})

        assert resp["id"] == 0
        assert resp["result"]["serverInfo"]["name"] == "workflow-monitor"

    @pytest.mark.asyncio
    async def test_tools_list(self, dispatcher: ToolDispatcher) -> None:
        resp = await dispatcher.handle_payload({"jsonrpc": "2.0", "id": 1, "method": "tools/list"})

        names = [t["name"] for t in resp["result"]["tools"]]
        assert names == ["render_workflow_monitor", "get_dashboard_state"]

    @pytest.mark.asyncio
    async def test_unknown_method(self, dispatcher: ToolDispatcher) -> None:
        resp = await dispatcher.handle_payload({"jsonrpc": "2.0", "id": 1, "method": "nope"})

        assert resp["error"]["code"] == METHOD_NOT_FOUND

    @pytest.mark.asyncio
    async def test_notification_gets_no_response(self, dispatcher: ToolDispatcher) -> None:
        resp = await dispatcher.handle_payload(
            {"jsonrpc": "2.0", "method": "notifications/initialized"}
        )

        assert resp is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "message",
        [{"id": 1, "method": "tools/list"}, {"jsonrpc": "1.0", "id": 1, "method": "x"}, "text"],
    )
    async def test_invalid_request(self, dispatcher: ToolDispatcher, message: object) -> None:
        resp = await dispatcher.handle_payload(message)

        assert resp["error"]["code"] == INVALID_REQUEST

    @pytest.mark.asyncio
    async def test_empty_batch(self, dispatcher: ToolDispatcher) -> None:
        resp = await dispatcher.handle_payload([])

        assert resp["error"]["code"] == INVALID_REQUEST


@pytest.mark.unit
class TestToolCalls:
    """Tests for tools/call."""

    @pytest.mark.asyncio
    async def test_get_dashboard_state(
        self, dispatcher: ToolDispatcher, service: MagicMock
    ) -> None:
        resp = await dispatcher.handle_payload(
            _call("get_dashboard_state", {"repo": "owner/repo", "pr": 4, "refresh": True})
        )

        service.get_snapshot.assert_awaited_once_with(
            repository="owner/repo", focused_item_id=4, force_refresh=True
        )
        result = resp["result"]
        assert result["__schema"] == OBJECT_RESULT_SCHEMA
        assert result["content"] == []
        assert result["structuredContent"]["repo"] == "owner/repo"
        assert result["structuredContent"]["focused_pr"] == 4

    @pytest.mark.asyncio
    async def test_render_workflow_monitor(self, dispatcher: ToolDispatcher) -> None:
        resp = await dispatcher.handle_payload(
            _call("render_workflow_monitor", {"repo": "owner/repo"})
        )

        result = resp["result"]
        assert result["_meta"]["ui"]["resourceUri"] == UI_URL
        assert result["content"][0]["type"] == "text"
        assert json.loads(result["content"][0]["text"]) == result["structuredContent"]

    @pytest.mark.asyncio
    async def test_unknown_tool(self, dispatcher: ToolDispatcher) -> None:
        resp = await dispatcher.handle_payload(_call("delete_everything"))

        assert resp["error"]["code"] == METHOD_NOT_FOUND
        assert "delete_everything" in resp["error"]["message"]

    @pytest.mark.asyncio
    async def test_invalid_arguments(self, dispatcher: ToolDispatcher, service: MagicMock) -> None:
        resp = await dispatcher.handle_payload(_call("get_dashboard_state", {"pr": "abc"}))

        assert resp["error"]["code"] == INVALID_PARAMS
        service.get_snapshot.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_tool_name(self, dispatcher: ToolDispatcher) -> None:
        resp = await dispatcher.handle_payload(
            {"jsonrpc": "2.0", "id": 1, "method": "tools/call", "params": {}}
        )

        assert resp["error"]["code"] == INVALID_PARAMS

    @pytest.mark.asyncio
    async def test_snapshot_error_mapped(
        self, dispatcher: ToolDispatcher, service: MagicMock
    ) -> None:
        service.get_snapshot.side_effect = RepositoryNotFoundError("Repository o/r not found")

        resp = await dispatcher.handle_payload(_call("get_dashboard_state", {"repo": "o/r"}))

        error = resp["error"]
        assert error["code"] == SERVER_ERROR
        assert error["message"] == "Repository o/r not found"
        assert error["data"] == {"error_code": "REPOSITORY_NOT_FOUND", "retryable": False}

    @pytest.mark.asyncio
    async def test_rate_limit_reports_retry_after(
        self, dispatcher: ToolDispatcher, service: MagicMock
    ) -> None:
        service.get_snapshot.side_effect = UpstreamRateLimitedError("later", retry_after=30)

        resp = await dispatcher.handle_payload(_call("get_dashboard_state", {"repo": "o/r"}))

        assert resp["error"]["data"] == {
            "error_code": "UPSTREAM_RATE_LIMITED",
            "retryable": True,
            "retry_after": 30,
        }

    @pytest.mark.asyncio
    async def test_unexpected_error_is_generic(
        self, dispatcher: ToolDispatcher, service: MagicMock
    ) -> None:
        service.get_snapshot.side_effect = KeyError("secret internals")

        resp = await dispatcher.handle_payload(_call("get_dashboard_state", {"repo": "o/r"}))

        assert resp["error"]["code"] == INTERNAL_ERROR
        assert resp["error"]["message"] == "Internal error"
        assert "secret" not in json.dumps(resp)


@pytest.mark.unit
class TestBatch:
    """Tests for batch requests."""

    @pytest.mark.asyncio
    async def test_batch_responses_in_order(self, dispatcher: ToolDispatcher) -> None:
        resp = await dispatcher.handle_payload(
            [
                _call("get_dashboard_state", {"repo": "a/a"}, request_id=1),
                {"jsonrpc": "2.0", "method": "notifications/initialized"},
                {"jsonrpc": "2.0", "id": 2, "method": "tools/list"},
            ]
        )

        assert [r["id"] for r in resp] == [1, 2]

    @pytest.mark.asyncio
    async def test_batch_of_notifications(self, dispatcher: ToolDispatcher) -> None:
        resp = await dispatcher.handle_payload(
            [{"jsonrpc": "2.0", "method": "notifications/initialized"}]
        )

        assert resp is None
