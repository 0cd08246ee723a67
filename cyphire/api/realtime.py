"""WebSocket realtime channel: authenticate once, then join workrooms one by one."""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging

from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect
from sqlalchemy.orm import sessionmaker

from cyphire.auth import Caller, bearer_token, resolve_caller
from cyphire.database import get_session_factory
from cyphire.events import event_bus, user_channel, workroom_channel
from cyphire.services.access import load_engagement, require_reader

logger = logging.getLogger("cyphire.realtime")

router = APIRouter()

UNAUTHENTICATED_CLOSE_CODE = 4401


async def handle_frame(
    session_factory: sessionmaker, caller: Caller, queue: asyncio.Queue, frame: dict
) -> dict:
    """Apply one client frame to this connection's subscriptions and build the reply.

    Each join opens its own short session so it reads the engagement as stored now.
    """
    kind = frame.get("type")
    engagement_id = frame.get("engagement_id")
    if kind not in ("join", "leave") or not isinstance(engagement_id, str):
        return {"type": "error", "status": 400, "error": "Expected join or leave with engagement_id"}

    channel = workroom_channel(engagement_id)
    if kind == "leave":
        event_bus.unsubscribe(channel, queue)
        return {"type": "left", "engagement_id": engagement_id}

    # Every join is checked against the engagement itself, never a previous join.
    try:
        async with session_factory() as session:
            engagement = await load_engagement(session, engagement_id)
            role = require_reader(engagement, caller)
    except HTTPException as e:
        logger.info("Join to %s refused for %s: %s", engagement_id, caller.id, e.detail)
        return {
            "type": "error",
            "status": e.status_code,
            "error": e.detail,
            "engagement_id": engagement_id,
        }

    event_bus.subscribe(channel, caller.id, queue)
    return {"type": "joined", "engagement_id": engagement_id, "role": role.value}


async def _forward_events(websocket: WebSocket, queue: asyncio.Queue) -> None:
    while True:
        event = await queue.get()
        if event is None:
            break
        try:
            await websocket.send_json(event.payload())
        except (WebSocketDisconnect, RuntimeError):
            logger.debug("Socket gone, dropping %s", event.type)
            break


@router.websocket("/v1/realtime")
async def realtime(
    websocket: WebSocket, session_factory: sessionmaker = Depends(get_session_factory)
):
    raw_key = bearer_token(websocket.headers.get("authorization", ""))
    raw_key = raw_key or websocket.query_params.get("token")
    caller = None
    if raw_key:
        async with session_factory() as session:
            caller = await resolve_caller(session, raw_key)
    if caller is None:
        await websocket.close(code=UNAUTHENTICATED_CLOSE_CODE)
        return

    await websocket.accept()
    queue = event_bus.new_queue()
    event_bus.subscribe(user_channel(caller.id), caller.id, queue)
    forwarder = asyncio.create_task(_forward_events(websocket, queue))
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                frame = json.loads(raw)
            except json.JSONDecodeError:
                frame = None
            if not isinstance(frame, dict):
                await websocket.send_json({"type": "error", "status": 400, "error": "Bad frame"})
                continue
            await websocket.send_json(await handle_frame(session_factory, caller, queue, frame))
    except WebSocketDisconnect:
        pass
    finally:
        event_bus.unsubscribe_all(queue)
        forwarder.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await forwarder
