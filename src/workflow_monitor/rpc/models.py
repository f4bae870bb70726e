"""Pydantic models for the JSON-RPC tool interface."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

JSONRPC_VERSION = "2.0"

# JSON-RPC 2.0 error codes
PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603
SERVER_ERROR = -32000


class JsonRpcRequest(BaseModel):
    """A JSON-RPC request or notification."""

    jsonrpc: Literal["2.0"]
    method: str = Field(..., min_length=1)
    id: int | str | None = None
    params: dict[str, Any] | None = None

    model_config = ConfigDict(extra="ignore")

    @property
    def is_notification(self) -> bool:
        return "id" not in self.model_fields_set


class ToolCallParams(BaseModel):
    """Params of a ``tools/call`` request."""

    name: str
    arguments: dict[str, Any] = Field(default_factory=dict)


class SnapshotArguments(BaseModel):
    """Arguments accepted by the snapshot tools."""

    repo: str | None = Field(default=None, max_length=255)
    pr: int | None = Field(default=None, ge=1)
    refresh: bool = False

    model_config = ConfigDict(extra="ignore")


class JsonRpcError(Exception):
    """Error to be reported as a JSON-RPC error object."""

    def __init__(self, code: int, message: str, data: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data

    def to_dict(self) -> dict[str, Any]:
        error: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            error["data"] = self.data
        return error


def success_response(request_id: int | str | None, result: Any) -> dict[str, Any]:
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "result": result}


def error_response(request_id: int | str | None, error: JsonRpcError) -> dict[str, Any]:
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "error": error.to_dict()}
