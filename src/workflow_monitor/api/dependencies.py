"""FastAPI dependencies for dependency injection."""

from __future__ import annotations

from collections.abc import Generator  # noqa: TC003
from typing import Annotated

from fastapi import Depends

from workflow_monitor.rpc.tools import ToolDispatcher
from workflow_monitor.snapshot.service import SnapshotService

# Global SnapshotService instance (initialized on app startup)
_snapshot_service: SnapshotService | None = None


def init_snapshot_service(service: SnapshotService) -> SnapshotService:
    """Initialize the global SnapshotService instance."""
    global _snapshot_service  # noqa: PLW0603
    _snapshot_service = service
    return _snapshot_service


async def close_snapshot_service() -> None:
    """Close the global SnapshotService instance."""
    global _snapshot_service  # noqa: PLW0603
    if _snapshot_service is not None:
        await _snapshot_service.close()
        _snapshot_service = None


def get_snapshot_service() -> Generator[SnapshotService, None, None]:
    """Dependency that provides the SnapshotService instance."""
    if _snapshot_service is None:
        raise RuntimeError("SnapshotService not initialized. Call init_snapshot_service() first.")
    yield _snapshot_service


# Type alias for dependency injection
SnapshotServiceDep = Annotated[SnapshotService, Depends(get_snapshot_service)]

# Global ToolDispatcher instance (initialized on app startup)
_dispatcher: ToolDispatcher | None = None


def init_dispatcher(dispatcher: ToolDispatcher) -> None:
    """Initialize the global ToolDispatcher instance."""
    global _dispatcher  # noqa: PLW0603
    _dispatcher = dispatcher


def close_dispatcher() -> None:
    """Close the global ToolDispatcher instance."""
    global _dispatcher  # noqa: PLW0603
    _dispatcher = None


def get_dispatcher() -> Generator[ToolDispatcher, None, None]:
    """Dependency that provides the ToolDispatcher instance."""
    if _dispatcher is None:
        raise RuntimeError("ToolDispatcher not initialized. Call init_dispatcher() first.")
    yield _dispatcher


DispatcherDep = Annotated[ToolDispatcher, Depends(get_dispatcher)]
