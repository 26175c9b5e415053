"""API routes for the chat relay service."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, WebSocket
from fastapi.responses import JSONResponse, PlainTextResponse

from ..config import HealthPayload, Settings, get_settings
from ..foods import search_foods
from ..hub import BroadcastHub

logger = logging.getLogger(__name__)
router = APIRouter()

LIVENESS_TEXT = "WS server running\n"


def _get_hub_from_app(app) -> BroadcastHub:  # type: ignore[no-untyped-def]
    hub = getattr(app.state, "hub", None)
    if hub is None:
        raise RuntimeError("BroadcastHub is not initialised")
    return hub


def get_hub(request: Request) -> BroadcastHub:
    """Fetch broadcast hub from HTTP request context."""

    return _get_hub_from_app(request.app)


def get_hub_for_ws(websocket: WebSocket) -> BroadcastHub:
    """Fetch broadcast hub for WebSocket connections."""

    return _get_hub_from_app(websocket.app)


@router.get("/health", response_model=HealthPayload, tags=["system"])
async def read_health(settings: Annotated[Settings, Depends(get_settings)]) -> HealthPayload:
    """Return service health information."""

    return HealthPayload(status="ok", api_version=settings.api_version)


@router.get("/config", tags=["system"])
def read_config(request: Request, settings: Annotated[Settings, Depends(get_settings)]) -> dict[str, str | int]:
    """Return service config snapshot for diagnostics."""

    hub = get_hub(request)
    trace_id = getattr(request.state, "trace_id", "")
    return {
        "apiVersion": settings.api_version,
        "traceId": trace_id,
        "historyLimit": hub.history.capacity,
        "historySize": len(hub.history),
        "sessions": len(hub.registry),
    }


@router.get("/foods", tags=["foods"])
async def list_foods(search: Annotated[str, Query()] = "") -> JSONResponse:
    """Filter the food catalog ignoring case and Vietnamese diacritics."""

    result = search_foods(search)
    return JSONResponse(
        content=result.model_dump(),
        media_type="application/json; charset=utf-8",
        headers={"Access-Control-Allow-Origin": "*", "Access-Control-Allow-Methods": "GET"},
    )


@router.websocket("/{path:path}")
async def chat_ws(websocket: WebSocket, path: str) -> None:
    """Chat relay endpoint; the path is ignored."""

    hub = get_hub_for_ws(websocket)
    await hub.handle_connection(websocket)


@router.get("/{path:path}", response_class=PlainTextResponse, include_in_schema=False)
async def liveness(path: str) -> PlainTextResponse:
    """Plain-text liveness answer for every other path."""

    return PlainTextResponse(LIVENESS_TEXT)
