"""SSE event stream endpoints."""

from __future__ import annotations

import asyncio
import json

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from cyphire.auth import Caller, get_current_caller
from cyphire.database import get_db_session
from cyphire.events import event_bus, user_channel, workroom_channel
from cyphire.services.access import load_engagement, require_reader

router = APIRouter()

KEEPALIVE_INTERVAL = 30  # seconds


def _stream(request: Request, channel: str, subscriber_id: str) -> StreamingResponse:
    queue = event_bus.subscribe(channel, subscriber_id)

    async def generate():
        try:
            while True:
                try:
                    event = await asyncio.wait_for(queue.get(), timeout=KEEPALIVE_INTERVAL)
                    if event is None:
                        break
                    data = json.dumps(event.payload())
                    yield f"event: {event.type}\ndata: {data}\n\n"
                except TimeoutError:
                    yield ": keepalive\n\n"

                if await request.is_disconnected():
                    break
        finally:
            event_bus.unsubscribe(channel, queue)

    return StreamingResponse(generate(), media_type="text/event-stream")


@router.get("/v1/events", responses={401: {"description": "Unauthorized"}})
async def personal_events(request: Request, caller: Caller = Depends(get_current_caller)):
    """Subscribe to notifications addressed to you (e.g. being selected for a task)."""
    return _stream(request, user_channel(caller.id), caller.id)


@router.get(
    "/v1/workrooms/{engagement_id}/events",
    responses={
        401: {"description": "Unauthorized"},
        403: {"description": "Not a participant"},
        404: {"description": "Workroom not found"},
    },
)
async def workroom_events(
    engagement_id: str,
    request: Request,
    caller: Caller = Depends(get_current_caller),
    session: AsyncSession = Depends(get_db_session),
):
    """Subscribe to `message:new` and `workroom:finalised` for one workroom."""
    engagement = await load_engagement(session, engagement_id)
    require_reader(engagement, caller)
    return _stream(request, workroom_channel(engagement_id), caller.id)
