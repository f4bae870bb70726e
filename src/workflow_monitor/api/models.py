"""Pydantic models for REST API."""

from typing import Any, Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class APIResponse(BaseModel, Generic[T]):
    """Standard API response wrapper."""

    data: T | None = None
    error: str | None = None
    error_code: str | None = None


class HealthResponse(BaseModel):
    """Response model for the health check."""

    status: str
    version: str
    cache_entries: int


SnapshotPayload = dict[str, Any]
