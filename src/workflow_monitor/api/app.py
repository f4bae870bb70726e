"""FastAPI application setup."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from workflow_monitor import __version__
from workflow_monitor.api.dependencies import (
    close_dispatcher,
    close_snapshot_service,
    init_dispatcher,
    init_snapshot_service,
)
from workflow_monitor.api.models import APIResponse
from workflow_monitor.api.routes import rpc, snapshot
from workflow_monitor.config import MonitorConfig
from workflow_monitor.rpc.tools import ToolDispatcher
from workflow_monitor.snapshot import (
    InvalidCredentialError,
    InvalidRepositoryError,
    MissingCredentialError,
    RepositoryNotFoundError,
    SnapshotCache,
    SnapshotError,
    SnapshotFetcher,
    SnapshotService,
    UpstreamRateLimitedError,
)

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

logger = logging.getLogger("workflow_monitor.api")

ERROR_STATUS = {
    MissingCredentialError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    InvalidCredentialError: status.HTTP_502_BAD_GATEWAY,
    InvalidRepositoryError: status.HTTP_400_BAD_REQUEST,
    RepositoryNotFoundError: status.HTTP_404_NOT_FOUND,
    UpstreamRateLimitedError: status.HTTP_429_TOO_MANY_REQUESTS,
}


def build_service(config: MonitorConfig) -> SnapshotService:
    """Wire cache and fetcher from config."""
    cache = SnapshotCache(ttl_ms=config.cache_ttl_ms, max_entries=config.cache_max_entries)
    fetcher: SnapshotFetcher | None = None
    try:
        fetcher = SnapshotFetcher(token=config.github_token, base_url=config.graphql_url)
    except MissingCredentialError:
        logger.warning("GITHUB_TOKEN is not set; snapshot requests will fail")
    return SnapshotService(
        fetcher=fetcher,
        cache=cache,
        default_repository=config.default_repository,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    config: MonitorConfig = app.state.config
    logger.info("Starting Workflow Monitor with %r", config)

    service = init_snapshot_service(build_service(config))
    init_dispatcher(ToolDispatcher(service=service, ui_url=config.ui_url))

    yield
    # Shutdown
    close_dispatcher()
    await close_snapshot_service()


def create_app(config: MonitorConfig | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Workflow Monitor API",
        description="GitHub pull request board snapshots for dashboards",
        version=__version__,
        lifespan=lifespan,
    )

    # Store config for lifespan manager
    app.state.config = config if config is not None else MonitorConfig.from_env()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(SnapshotError)
    async def snapshot_error_handler(_request: Request, exc: SnapshotError) -> JSONResponse:
        status_code = ERROR_STATUS.get(type(exc), status.HTTP_502_BAD_GATEWAY)
        headers = None
        if isinstance(exc, UpstreamRateLimitedError) and exc.retry_after is not None:
            headers = {"Retry-After": str(exc.retry_after)}
        return JSONResponse(
            status_code=status_code,
            content=APIResponse[None](data=None, error=str(exc), error_code=exc.code).model_dump(),
            headers=headers,
        )

    @app.exception_handler(Exception)
    async def unexpected_error_handler(_request: Request, exc: Exception) -> JSONResponse:
        logger.error("Unhandled error", exc_info=exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=APIResponse[None](
                data=None, error="Internal server error", error_code="UPSTREAM_FAILURE"
            ).model_dump(),
        )

    # Include routers
    app.include_router(snapshot.router, prefix="/api/v1")
    app.include_router(rpc.router)

    return app


# Default app instance
app = create_app()
