"""Metrics route: aggregate per-model performance from the backend."""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from ..deps import get_coordinator

router = APIRouter(tags=["metrics"])


@router.get("/metrics")
async def comparison_metrics(request: Request):
    """Refresh and return the backend's comparison summary."""
    summary = await get_coordinator(request).refresh_metrics()
    if summary is None:
        return JSONResponse({"error": "Metrics unavailable"}, status_code=502)
    return summary.to_dict()
