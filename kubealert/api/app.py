"""FastAPI application exposing controller health, status and metrics.

The app is read-only: route handlers only inspect the controllers passed to
``create_app`` (through ``app.state``) and the default prometheus registry.
"""

from __future__ import annotations

from collections.abc import Sequence, Sized
from datetime import datetime
from typing import Protocol

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from kubealert.api.routes import metrics_router, router
from kubealert.api.schemas import ErrorResponse
from kubealert.models.resources import ResourceKind

_log = structlog.get_logger(component="api")


class ControllerView(Protocol):
    """What the API reads from a controller."""

    @property
    def kind(self) -> ResourceKind: ...

    @property
    def queue(self) -> Sized: ...

    def has_synced(self) -> bool: ...


async def _unhandled(request: Request, exc: Exception) -> JSONResponse:
    _log.error("api_unhandled_exception", path=request.url.path, method=request.method, error=str(exc))
    body = ErrorResponse(error="INTERNAL_ERROR", detail="An unexpected error occurred.")
    return JSONResponse(status_code=500, content=body.model_dump())


def create_app(controllers: Sequence[ControllerView], server_start_time: datetime | None = None) -> FastAPI:
    """Build the app served by uvicorn; also used directly by tests.

    Health and status live under ``/api/v1``; ``/metrics`` sits at the root
    where prometheus scrapers expect it.
    """
    from kubealert import __version__

    app = FastAPI(
        title="kubealert",
        version=__version__,
        docs_url="/api/v1/docs",
        redoc_url=None,
        openapi_url="/api/v1/openapi.json",
    )
    app.state.controllers = list(controllers)
    app.state.server_start_time = server_start_time

    app.include_router(router, prefix="/api/v1")
    app.include_router(metrics_router)
    app.add_exception_handler(Exception, _unhandled)
    return app
