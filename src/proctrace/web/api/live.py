"""WebSocket endpoint: live event stream plus start/stop commands."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from fastapi import APIRouter, FastAPI, WebSocket, WebSocketDisconnect

from proctrace.errors import AlreadyMonitoring, ProcessNotFound
from proctrace.process.psutil_ import list_processes
from proctrace.session.broadcast import Subscription

logger = logging.getLogger(__name__)

router = APIRouter(tags=["live"])


def _error(message: str) -> dict[str, Any]:
    return {"type": "error", "payload": {"message": message}}


async def dispatch(app: FastAPI, message: Any) -> dict[str, Any] | None:
    """Run one client command. Returns a reply for the sender only, if any."""
    if not isinstance(message, dict):
        return _error("Invalid message format")

    kind = message.get("type")
    payload = message.get("payload") or {}
    if not isinstance(payload, dict):
        return _error("Invalid message format")
    registry = app.state.registry

    try:
        if kind == "start":
            # Success is announced to everyone via the "started" broadcast
            await registry.handle_start(int(payload["pid"]), payload.get("name"))
        elif kind == "stop":
            await registry.handle_stop(int(payload["pid"]))
        elif kind == "getProcesses":
            processes = await asyncio.to_thread(
                list_processes, payload.get("filter")
            )
            return {
                "type": "processes",
                "payload": [p.to_dict() for p in processes],
            }
        else:
            return _error(f"Unknown message type: {kind}")
    except ProcessNotFound:
        return _error("Process not found")
    except AlreadyMonitoring:
        return _error("Monitor already running for this process")
    except (KeyError, TypeError, ValueError):
        return _error("Invalid message format")
    return None


async def _forward(
    websocket: WebSocket,
    sub: Subscription,
    send_lock: asyncio.Lock,
) -> bool:
    """Relay broadcast messages until the subscription is closed.

    Returns True if the subscription ended, False if the client went away.
    """
    try:
        async for message in sub:
            async with send_lock:
                await websocket.send_text(json.dumps(message))
    except WebSocketDisconnect:
        return False
    return True


async def _receive(websocket: WebSocket, send_lock: asyncio.Lock) -> None:
    """Handle client commands until the client disconnects."""
    try:
        while True:
            text = await websocket.receive_text()
            try:
                message = json.loads(text)
            except ValueError:
                reply = _error("Invalid message format")
            else:
                reply = await dispatch(websocket.app, message)
            if reply is not None:
                async with send_lock:
                    await websocket.send_text(json.dumps(reply))
    except WebSocketDisconnect:
        logger.info("Client disconnected")


@router.websocket("/ws")
async def live_ws(websocket: WebSocket):
    """Stream session events to the client and accept commands from it."""
    await websocket.accept()
    logger.info("Client connected")

    sub = websocket.app.state.registry.broadcaster.subscribe()
    send_lock = asyncio.Lock()
    receiver = asyncio.create_task(_receive(websocket, send_lock))
    sender = asyncio.create_task(_forward(websocket, sub, send_lock))

    try:
        done, _ = await asyncio.wait(
            {receiver, sender}, return_when=asyncio.FIRST_COMPLETED
        )
    finally:
        sub.close()
        receiver.cancel()
        sender.cancel()

    if sender in done and sender.result() and receiver not in done:
        # Observer was dropped for falling behind; hang up on the client
        logger.info("Closing WebSocket for dropped observer")
        await websocket.close(code=1008)
    elif receiver in done:
        receiver.result()
