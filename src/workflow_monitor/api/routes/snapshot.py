"""Snapshot and health endpoints."""

from typing import Annotated

from fastapi import APIRouter, Query

from workflow_monitor import __version__
from workflow_monitor.api.dependencies import SnapshotServiceDep
from workflow_monitor.api.models import APIResponse, HealthResponse, SnapshotPayload

router = APIRouter(tags=["snapshot"])


@router.get("/snapshot", response_model=APIResponse[SnapshotPayload])
async def get_snapshot(
    service: SnapshotServiceDep,
    repo: Annotated[str | None, Query(max_length=255)] = None,
    pr: Annotated[int | None, Query(ge=1)] = None,
    refresh: bool = False,
) -> APIResponse[SnapshotPayload]:
    """Get the board snapshot for a repository, optionally focused on one PR."""
    snapshot = await service.get_snapshot(
        repository=repo,
        focused_item_id=pr,
        force_refresh=refresh,
    )
    return APIResponse(data=snapshot.to_dict())


@router.get("/health", response_model=APIResponse[HealthResponse])
def health(service: SnapshotServiceDep) -> APIResponse[HealthResponse]:
    """Liveness check with cache occupancy."""
    return APIResponse(
        data=HealthResponse(status="ok", version=__version__, cache_entries=len(service.cache))
    )
