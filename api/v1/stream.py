# api/v1/stream.py
"""
Live document updates over a WebSocket.

Browsers cannot set headers on a WebSocket handshake, so the bearer token
travels as `?token=`. Every frame after the greeting is one change event
for the authenticated user.
"""
from __future__ import annotations

import asyncio
import logging

import jwt
from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status

from services.auth import verify_token
from services.change_feed import ChangeEvent, feed

_LOG = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/stream")
async def stream(
    websocket: WebSocket,
    token: str = Query(""),
    collections: str | None = Query(None, description="comma separated table names"),
) -> None:
    try:
        user_id = verify_token(token)
    except jwt.InvalidTokenError:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    loop = asyncio.get_running_loop()
    queue: asyncio.Queue[dict] = asyncio.Queue()

    def _forward(ev: ChangeEvent) -> None:
        loop.call_soon_threadsafe(queue.put_nowait, {"type": "change", **ev.as_dict()})

    wanted = [c.strip() for c in collections.split(",") if c.strip()] if collections else None
    # subscribe first so nothing written right after the handshake is missed
    unsubscribe = feed.subscribe(user_id, _forward, collections=wanted)
    receiver: asyncio.Task | None = None
    try:
        await websocket.accept()
        await websocket.send_json({"type": "connected", "user_id": user_id})
        _LOG.info("stream opened for user %s", user_id)

        receiver = asyncio.create_task(_drain(websocket))
        while True:
            getter = asyncio.create_task(queue.get())
            done, _ = await asyncio.wait({getter, receiver}, return_when=asyncio.FIRST_COMPLETED)
            if receiver in done:
                getter.cancel()
                if receiver.exception() is not None:
                    _LOG.warning("stream reader for user %s failed: %r", user_id, receiver.exception())
                break
            await websocket.send_json(getter.result())
    except WebSocketDisconnect:
        pass
    finally:
        unsubscribe()
        if receiver is not None:
            receiver.cancel()
        _LOG.info("stream closed for user %s", user_id)


async def _drain(websocket: WebSocket) -> None:
    """Discard client frames until the socket closes."""
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return
