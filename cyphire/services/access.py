"""Authorization gate: classify a caller against one engagement."""

from __future__ import annotations

import enum

from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from cyphire.auth import Caller
from cyphire.db_models import Engagement


class Role(str, enum.Enum):
    owner = "owner"
    worker = "worker"
    admin = "admin"
    none = "none"


def classify(engagement: Engagement, caller: Caller) -> Role:
    # Party membership wins over the admin flag.
    if caller.id == engagement.owner_id:
        return Role.owner
    if caller.id == engagement.worker_id:
        return Role.worker
    if caller.is_admin:
        return Role.admin
    return Role.none


async def load_engagement(session: AsyncSession, engagement_id: str) -> Engagement:
    engagement = await session.get(Engagement, engagement_id)
    if not engagement:
        raise HTTPException(status_code=404, detail="Workroom not found")
    return engagement


def require_party(engagement: Engagement, caller: Caller) -> Role:
    """Owner or worker only. Admins cannot act as a party."""
    role = classify(engagement, caller)
    if role not in (Role.owner, Role.worker):
        raise HTTPException(status_code=403, detail="Not authorized for this workroom")
    return role


def require_reader(engagement: Engagement, caller: Caller) -> Role:
    """Owner, worker or admin."""
    role = classify(engagement, caller)
    if role is Role.none:
        raise HTTPException(status_code=403, detail="Not authorized for this workroom")
    return role
