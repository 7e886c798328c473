"""REST API for recorded sessions."""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

router = APIRouter(tags=["sessions"])


class SessionRename(BaseModel):
    name: str = ""


def _not_found() -> JSONResponse:
    return JSONResponse(
        status_code=404,
        content={"detail": "Session not found"},
    )


@router.get("/sessions")
async def list_sessions(request: Request):
    sessions = await request.app.state.store.list_sessions()
    return [s.to_dict() for s in sessions]


@router.get("/sessions/{session_id}")
async def get_session(session_id: str, request: Request):
    session = await request.app.state.store.get_session_with_samples(session_id)
    if not session:
        return _not_found()
    return session.to_dict()


@router.patch("/sessions/{session_id}")
async def rename_session(session_id: str, body: SessionRename, request: Request):
    name = body.name.strip()
    if not name:
        return JSONResponse(
            status_code=400,
            content={"detail": "Name is required"},
        )
    session = await request.app.state.store.rename_session(session_id, name)
    if not session:
        return _not_found()
    return session.to_dict()


@router.delete("/sessions/{session_id}")
async def delete_session(session_id: str, request: Request):
    deleted = await request.app.state.store.delete_session(session_id)
    if not deleted:
        return _not_found()
    return {"success": True}
