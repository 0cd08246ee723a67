"""Workroom meta, two-party finalisation handshake and admin inspection."""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from fastapi import HTTPException
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from cyphire.auth import Caller
from cyphire.db_models import Engagement, MessageLog, Task, TaskStatus
from cyphire.events import Event, event_bus, workroom_channel
from cyphire.services.access import Role, load_engagement, require_party
from cyphire.services.messages import list_messages, start_retention
from cyphire.services.users import load_profiles
from cyphire.utils import iso

logger = logging.getLogger("cyphire.workrooms")


def _flags(engagement: Engagement) -> dict:
    return {
        "owner_finalised": bool(engagement.owner_finalised),
        "worker_finalised": bool(engagement.worker_finalised),
        "finalised_at": iso(engagement.finalised_at),
    }


async def get_meta(session: AsyncSession, engagement_id: str, caller: Caller) -> dict:
    engagement = await load_engagement(session, engagement_id)
    role = require_party(engagement, caller)
    return {
        "engagement_id": engagement.id,
        "task_id": engagement.task_id,
        "title": engagement.title,
        "owner_id": engagement.owner_id,
        "worker_id": engagement.worker_id,
        "role": "client" if role is Role.owner else "worker",
        **_flags(engagement),
    }


async def _claim_terminal_transition(
    session: AsyncSession, engagement_id: str, now: datetime
) -> bool:
    """Compare-and-set finalised_at. True only for the one caller that sets it."""
    result = await session.execute(
        update(Engagement)
        .where(
            Engagement.id == engagement_id,
            Engagement.owner_finalised == True,  # noqa: E712
            Engagement.worker_finalised == True,  # noqa: E712
            Engagement.finalised_at == None,  # noqa: E711
        )
        .values(finalised_at=now)
    )
    return result.rowcount == 1


async def finalise(session: AsyncSession, engagement_id: str, caller: Caller) -> dict:
    """Record the caller's sign-off. Closes the workroom once both parties agree."""
    engagement = await load_engagement(session, engagement_id)
    role = require_party(engagement, caller)

    flag = Engagement.owner_finalised if role is Role.owner else Engagement.worker_finalised
    await session.execute(
        update(Engagement).where(Engagement.id == engagement_id).values({flag: True})
    )

    now = datetime.now(UTC)
    fired = await _claim_terminal_transition(session, engagement_id, now)
    if fired:
        await start_retention(session, engagement_id, now)
        await session.execute(
            update(Task)
            .where(Task.id == engagement.task_id)
            .values(status=TaskStatus.completed)
        )

    await session.commit()
    await session.refresh(engagement)

    if fired:
        logger.info("Workroom %s finalised at %s", engagement_id, now.isoformat())
        event_bus.publish(
            Event(
                type="workroom:finalised",
                channel=workroom_channel(engagement_id),
                data={"engagement_id": engagement_id, "finalised_at": iso(now)},
            )
        )

    return _flags(engagement)


async def admin_get_workroom(session: AsyncSession, engagement_id: str, caller: Caller) -> dict:
    """Full workroom snapshot for moderation."""
    if not caller.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")
    engagement = await load_engagement(session, engagement_id)

    profiles = await load_profiles(session, {engagement.owner_id, engagement.worker_id})
    log = await session.get(MessageLog, engagement_id)
    messages = await list_messages(session, engagement_id)

    return {
        "workroom": {
            "engagement_id": engagement.id,
            "task_id": engagement.task_id,
            "title": engagement.title,
            "owner": profiles[engagement.owner_id],
            "worker": profiles[engagement.worker_id],
            "created_at": iso(engagement.created_at),
            "expire_at": iso(log.expire_at) if log else None,
            **_flags(engagement),
        },
        "messages": messages["items"],
    }
