"""History routes: list, inspect and delete saved sessions."""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from ..deps import get_history

router = APIRouter(prefix="/history", tags=["history"])


@router.get("")
async def list_history(request: Request):
    """Saved sessions, newest first."""
    return [s.to_dict() for s in get_history(request).list_sessions()]


@router.get("/{session_id}")
async def get_session(request: Request, session_id: str):
    session = get_history(request).get(session_id)
    if session is None:
        return JSONResponse({"error": f"No session {session_id!r}"}, status_code=404)
    return session.to_dict()


@router.delete("/{session_id}")
async def delete_session(request: Request, session_id: str):
    if not get_history(request).delete(session_id):
        return JSONResponse({"error": f"No session {session_id!r}"}, status_code=404)
    return {"deleted": session_id}
