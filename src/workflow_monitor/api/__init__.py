"""REST and JSON-RPC API for Workflow Monitor."""

from workflow_monitor.api.app import app, build_service, create_app
from workflow_monitor.api.models import APIResponse, HealthResponse

__all__ = [
    "APIResponse",
    "HealthResponse",
    "app",
    "build_service",
    "create_app",
]
