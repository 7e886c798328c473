"""REST API for starting and stopping recordings."""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from proctrace.errors import AlreadyMonitoring, ProcessNotFound

router = APIRouter(tags=["monitors"])


class MonitorStart(BaseModel):
    pid: int
    name: str | None = None


@router.get("/monitors")
async def list_monitors(request: Request):
    return [e.to_dict() for e in request.app.state.registry.active()]


@router.post("/monitors")
async def start_monitor(body: MonitorStart, request: Request):
    registry = request.app.state.registry
    try:
        session = await registry.handle_start(body.pid, body.name)
    except ProcessNotFound as exc:
        return JSONResponse(status_code=404, content={"detail": str(exc)})
    except AlreadyMonitoring as exc:
        return JSONResponse(status_code=409, content={"detail": str(exc)})
    return session.to_dict()


@router.delete("/monitors/{pid}")
async def stop_monitor(pid: int, request: Request):
    session = await request.app.state.registry.handle_stop(pid)
    return {
        "status": "stopped" if session else "not-running",
        "session": session.to_dict() if session else None,
    }
