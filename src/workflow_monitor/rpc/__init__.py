"""JSON-RPC tool interface and outbound payload sanitizing."""

from workflow_monitor.rpc.models import JsonRpcError, JsonRpcRequest, SnapshotArguments
from workflow_monitor.rpc.sanitize import (
    OBJECT_RESULT_SCHEMA,
    sanitize_jsonrpc_payload,
    sanitize_tool_result,
)
from workflow_monitor.rpc.tools import TOOLS, ToolDispatcher

__all__ = [
    "OBJECT_RESULT_SCHEMA",
    "TOOLS",
    "JsonRpcError",
    "JsonRpcRequest",
    "SnapshotArguments",
    "ToolDispatcher",
    "sanitize_jsonrpc_payload",
    "sanitize_tool_result",
]
