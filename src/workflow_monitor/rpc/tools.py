"""ToolDispatcher - Handles JSON-RPC tool requests against the snapshot service."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from workflow_monitor import __version__
from workflow_monitor.rpc.models import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    SERVER_ERROR,
    JsonRpcError,
    JsonRpcRequest,
    SnapshotArguments,
    ToolCallParams,
    error_response,
    success_response,
)
from workflow_monitor.rpc.sanitize import OBJECT_RESULT_SCHEMA
from workflow_monitor.snapshot.exceptions import SnapshotError, UpstreamRateLimitedError

if TYPE_CHECKING:
    from workflow_monitor.snapshot.service import SnapshotService

logger = logging.getLogger("workflow_monitor.rpc")

SERVER_NAME = "workflow-monitor"
PROTOCOL_VERSION = "2024-11-05"

RENDER_TOOL = "render_workflow_monitor"
STATE_TOOL = "get_dashboard_state"

_SNAPSHOT_INPUT_SCHEMA = {
    "type": "object",
    "properties": {
        "repo": {"type": "string", "description": "GitHub repository (owner/repo)"},
        "pr": {"type": "number", "description": "Optional Pull Request number"},
        "refresh": {"type": "boolean", "description": "Bypass the snapshot cache"},
    },
}

TOOLS = [
    {
        "name": RENDER_TOOL,
        "description": "Return widget meta and initial snapshot for repo/pr.",
        "inputSchema": _SNAPSHOT_INPUT_SCHEMA,
    },
    {
        "name": STATE_TOOL,
        "description": "Return snapshot JSON only for refresh.",
        "inputSchema": _SNAPSHOT_INPUT_SCHEMA,
    },
]


def snapshot_error_to_rpc(exc: SnapshotError) -> JsonRpcError:
    """Map a snapshot error onto a JSON-RPC server error with a stable code."""
    data: dict[str, Any] = {"error_code": exc.code, "retryable": exc.retryable}
    if isinstance(exc, UpstreamRateLimitedError) and exc.retry_after is not None:
        data["retry_after"] = exc.retry_after
    return JsonRpcError(SERVER_ERROR, str(exc), data)


class ToolDispatcher:
    """Routes JSON-RPC messages to tool handlers.

    Returns plain response dicts; sanitizing them for the wire is the
    transport's job.
    """

    def __init__(self, service: SnapshotService, ui_url: str) -> None:
        self._service = service
        self._ui_url = ui_url

    async def handle_payload(self, payload: Any) -> Any:
        """Handle a single message or a batch.

        Returns:
            A response dict, a list of them for a batch, or None when
            nothing needs to be sent back (only notifications).
        """
        if isinstance(payload, list):
            if not payload:
                return error_response(None, JsonRpcError(INVALID_REQUEST, "Empty batch"))
            responses = await asyncio.gather(*(self.handle_message(m) for m in payload))
            batch = [r for r in responses if r is not None]
            return batch or None
        return await self.handle_message(payload)

    async def handle_message(self, message: Any) -> dict[str, Any] | None:
        request_id = message.get("id") if isinstance(message, dict) else None
        try:
            request = JsonRpcRequest.model_validate(message)
        except ValidationError:
            return error_response(request_id, JsonRpcError(INVALID_REQUEST, "Invalid Request"))

        try:
            result = await self._dispatch(request)
        except JsonRpcError as e:
            if request.is_notification:
                return None
            return error_response(request.id, e)
        except SnapshotError as e:
            logger.warning("Tool call failed: %s (%s)", e.code, e)
            if request.is_notification:
                return None
            return error_response(request.id, snapshot_error_to_rpc(e))
        except Exception:
            logger.exception("Unexpected failure handling %s", request.method)
            if request.is_notification:
                return None
            return error_response(
                request.id,
                JsonRpcError(INTERNAL_ERROR, "Internal error", {"error_code": "UPSTREAM_FAILURE"}),
            )

        if request.is_notification:
            return None
        return success_response(request.id, result)

    async def _dispatch(self, request: JsonRpcRequest) -> Any:
        if request.method == "initialize":
            return {
                "protocolVersion": PROTOCOL_VERSION,
                "serverInfo": {"name": SERVER_NAME, "version": __version__},
                "capabilities": {"tools": {}},
            }
        if request.method == "ping":
            return {}
        if request.method.startswith("notifications/"):
            return None
        if request.method == "tools/list":
            return {"tools": TOOLS}
        if request.method == "tools/call":
            return await self._call_tool(request.params or {})
        raise JsonRpcError(METHOD_NOT_FOUND, f"Method not found: {request.method}")

    async def _call_tool(self, params: dict[str, Any]) -> dict[str, Any]:
        try:
            call = ToolCallParams.model_validate(params)
        except ValidationError as e:
            raise JsonRpcError(INVALID_PARAMS, "Invalid tool call params") from e

        if call.name not in (RENDER_TOOL, STATE_TOOL):
            raise JsonRpcError(METHOD_NOT_FOUND, f"Tool not found: {call.name}")

        try:
            args = SnapshotArguments.model_validate(call.arguments)
        except ValidationError as e:
            raise JsonRpcError(
                INVALID_PARAMS, "Invalid tool arguments", {"errors": e.errors(include_url=False)}
            ) from e

        snapshot = await self._service.get_snapshot(
            repository=args.repo,
            focused_item_id=args.pr,
            force_refresh=args.refresh,
        )
        data = snapshot.to_dict()

        if call.name == STATE_TOOL:
            return {
                "__schema": OBJECT_RESULT_SCHEMA,
                "structuredContent": data,
                "content": [],
            }
        return {
            "__schema": OBJECT_RESULT_SCHEMA,
            "structuredContent": data,
            "content": [{"type": "text", "text": json.dumps(data)}],
            "_meta": {"ui": {"resourceUri": self._ui_url}},
        }
