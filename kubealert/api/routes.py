"""Route handlers for the kubealert REST API."""

from __future__ import annotations

from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from kubealert.api.schemas import ControllerStatus, HealthResponse, StatusResponse

router = APIRouter()
metrics_router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health(request: Request) -> JSONResponse:
    """200 once every controller's cache has synced, 503 before that."""
    controllers = request.app.state.controllers
    synced = sum(1 for controller in controllers if controller.has_synced())
    ready = synced == len(controllers)
    body = HealthResponse(status="ok" if ready else "syncing", synced=synced, total=len(controllers))
    return JSONResponse(status_code=200 if ready else 503, content=body.model_dump())


@router.get("/status", response_model=StatusResponse)
async def status(request: Request) -> StatusResponse:
    from kubealert import __version__

    start_time = request.app.state.server_start_time
    return StatusResponse(
        version=__version__,
        server_start_time=start_time.isoformat() if start_time is not None else "",
        controllers=[
            ControllerStatus(
                kind=controller.kind.value,
                synced=controller.has_synced(),
                queue_depth=len(controller.queue),
            )
            for controller in request.app.state.controllers
        ],
    )


@metrics_router.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
