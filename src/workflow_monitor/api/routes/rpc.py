"""JSON-RPC endpoint for tool calls."""

import json

from fastapi import APIRouter, Request, Response, status
from fastapi.responses import JSONResponse

from workflow_monitor.api.dependencies import DispatcherDep
from workflow_monitor.rpc.models import PARSE_ERROR, JsonRpcError, error_response
from workflow_monitor.rpc.sanitize import sanitize_jsonrpc_payload

router = APIRouter(tags=["rpc"])


@router.post("/mcp/message")
async def post_message(request: Request, dispatcher: DispatcherDep) -> Response:
    """Handle a JSON-RPC request or batch and return the sanitized response."""
    try:
        payload = json.loads(await request.body())
    except ValueError:
        body = error_response(None, JsonRpcError(PARSE_ERROR, "Parse error"))
        return JSONResponse(content=body)

    result = await dispatcher.handle_payload(payload)
    if result is None:
        return Response(status_code=status.HTTP_202_ACCEPTED)
    return JSONResponse(content=sanitize_jsonrpc_payload(result))
