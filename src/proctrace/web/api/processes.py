"""REST API for looking up processes to record."""

from __future__ import annotations

import asyncio

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from proctrace.process.psutil_ import list_processes

router = APIRouter(tags=["processes"])


@router.get("/processes")
async def get_processes(filter: str | None = None):
    processes = await asyncio.to_thread(list_processes, filter)
    return [p.to_dict() for p in processes]


@router.get("/processes/{pid}")
async def get_process(pid: int, request: Request):
    process = request.app.state.lookup.find(pid)
    if process is None:
        return JSONResponse(
            status_code=404,
            content={"detail": "Process not found"},
        )
    return process.to_dict()
