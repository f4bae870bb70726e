"""Outbound JSON-RPC payload normalization."""

from __future__ import annotations

import copy
import logging
from typing import Any

logger = logging.getLogger("workflow_monitor.rpc")

OBJECT_RESULT_SCHEMA = "v2-object-result"
OBJECT_RESULT_MARKERS = frozenset({OBJECT_RESULT_SCHEMA, "v2"})


def sanitize_tool_result(result: dict[str, Any]) -> dict[str, Any]:
    """Drop an empty ``content`` list from a structured-object tool result.

    Returns a new dict when something was removed, otherwise ``result``
    itself.
    """
    content = result.get("content")
    if (
        result.get("__schema") in OBJECT_RESULT_MARKERS
        and isinstance(content, list)
        and not content
    ):
        return {k: v for k, v in result.items() if k != "content"}
    return result


def _sanitize_message(message: Any) -> Any:
    if not isinstance(message, dict):
        return message

    sanitized = dict(message)
    result = sanitized.get("result")
    if isinstance(result, dict):
        sanitized["result"] = sanitize_tool_result(result)

    # Some transports wrap several responses in one message
    responses = sanitized.get("responses")
    if isinstance(responses, list):
        sanitized["responses"] = [_sanitize_message(r) for r in responses]
    return sanitized


def sanitize_jsonrpc_payload(payload: Any) -> Any:
    """Normalize a JSON-RPC response or batch before it goes on the wire.

    Results marked as structured objects whose ``content`` is an empty list
    lose the ``content`` key. Everything else passes through. The input is
    never modified and the returned structure shares no objects with it.

    Running it twice gives the same output as running it once. It never
    raises: a message that cannot be sanitized is forwarded unchanged, and
    the other messages of a batch are still sanitized.
    """
    if payload is None:
        return payload
    if isinstance(payload, list):
        return [_sanitize_or_forward(msg) for msg in payload]
    return _sanitize_or_forward(payload)


def _sanitize_or_forward(message: Any) -> Any:
    try:
        return copy.deepcopy(_sanitize_message(message))
    except Exception:  # noqa: BLE001
        logger.warning("Failed to sanitize JSON-RPC message, forwarding unchanged", exc_info=True)
        return message
