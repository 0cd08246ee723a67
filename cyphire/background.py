"""Background tasks: purge message logs whose retention window has closed."""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import sessionmaker
from sqlmodel import select

from cyphire.config import settings
from cyphire.db_models import MessageLog, WorkroomMessage

logger = logging.getLogger("cyphire.background")


async def purge_expired_logs(session: AsyncSession) -> int:
    """Delete every message log (and its messages) whose expire_at has passed.

    Engagement records are left alone; expire_at is never rewritten here.
    """
    now = datetime.now(UTC)
    result = await session.execute(
        select(MessageLog.engagement_id).where(
            MessageLog.expire_at != None,  # noqa: E711
            MessageLog.expire_at <= now,
        )
    )
    expired = list(result.scalars().all())

    if expired:
        await session.execute(
            delete(WorkroomMessage).where(WorkroomMessage.engagement_id.in_(expired))
        )
        await session.execute(delete(MessageLog).where(MessageLog.engagement_id.in_(expired)))
        await session.commit()
        for eid in expired:
            logger.info("Purged message log for workroom %s", eid)
    return len(expired)


async def background_loop(session_factory: sessionmaker) -> None:
    """Run retention maintenance every ``retention_sweep_seconds``."""
    while True:
        try:
            async with session_factory() as session:
                purged = await purge_expired_logs(session)
                if purged:
                    logger.info("BG: purged=%d", purged)
        except Exception:
            logger.exception("Background task error")
        await asyncio.sleep(settings.retention_sweep_seconds)
