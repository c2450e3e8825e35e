"""Comparison routes: run control and SSE progress streaming.

The coordinator keeps running independently of any HTTP connection; the
progress endpoint only polls its snapshot, so a browser disconnect has no
effect on the run.
"""

import asyncio
import json
from typing import AsyncIterator

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sse_starlette.sse import EventSourceResponse

from ...compare.coordinator import CompareContext, ComparisonCoordinator
from ..deps import get_config, get_coordinator, get_credentials

router = APIRouter(prefix="/compare", tags=["compare"])

POLL_INTERVAL_S = 0.5


class StartRequest(BaseModel):
    query: str
    models: list[str] = []
    api_keys: dict[str, str] | None = None


@router.post("/start")
async def start_comparison(request: Request, body: StartRequest):
    """Start a run; keys default to the local key store when not supplied."""
    coordinator = get_coordinator(request)
    models = body.models or get_config(request).get("models", {}).get("default", [])
    if body.api_keys is not None:
        credentials = body.api_keys
    else:
        try:
            credentials = get_credentials(request).select(models)
        except ValueError as e:
            return JSONResponse({"error": str(e)}, status_code=400)

    started = await coordinator.start(body.query, models, CompareContext(credentials))
    if not started:
        return JSONResponse({"error": coordinator.error}, status_code=400)
    return JSONResponse(coordinator.snapshot().to_dict(), status_code=202)


@router.post("/stop")
async def stop_comparison(request: Request):
    """Cancel the active run (no-op when idle)."""
    coordinator = get_coordinator(request)
    coordinator.stop()
    return coordinator.snapshot().to_dict()


@router.post("/reset")
async def reset_comparison(request: Request):
    """Cancel and forget the current run."""
    coordinator = get_coordinator(request)
    coordinator.reset()
    return coordinator.snapshot().to_dict()


@router.get("/state")
async def comparison_state(request: Request):
    return get_coordinator(request).snapshot().to_dict()


@router.get("/progress")
async def comparison_progress(request: Request):
    """SSE endpoint for live worker progress."""
    coordinator = get_coordinator(request)

    async def event_generator():
        async for event in progress_events(coordinator, POLL_INTERVAL_S):
            if await request.is_disconnected():
                return
            yield event

    return EventSourceResponse(event_generator())


async def progress_events(
    coordinator: ComparisonCoordinator,
    interval: float,
) -> AsyncIterator[dict]:
    """Yield a ``progress`` event per poll while running, then one ``complete``."""
    while True:
        snap = coordinator.snapshot()
        yield {"event": "progress", "data": json.dumps(snap.to_dict())}
        if not snap.is_running:
            break
        await asyncio.sleep(interval)

    snap = coordinator.snapshot()
    yield {
        "event": "complete",
        "data": json.dumps({
            "error": snap.error,
            "session": snap.session.to_dict() if snap.session else None,
        }),
    }
