"""User registration and public profiles (SQLModel)."""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from cyphire.auth import hash_key, key_fingerprint
from cyphire.db_models import User
from cyphire.ids import api_key, user_id

logger = logging.getLogger("cyphire.users")


async def register(session: AsyncSession, name: str, avatar: str | None = None) -> dict:
    """Register a new user. Returns user_id and raw API key."""
    uid = user_id()
    key = api_key()
    user = User(
        id=uid,
        name=name,
        avatar=avatar,
        key_hash=hash_key(key),
        key_fingerprint=key_fingerprint(key),
    )
    session.add(user)
    await session.commit()
    logger.info("Registered user %s", uid)
    return {"user_id": uid, "api_key": key}


def public_profile(user_id_: str, user: User | None) -> dict:
    if user is None:
        return {"id": user_id_, "name": None, "avatar": None}
    return {"id": user.id, "name": user.name, "avatar": user.avatar}


async def load_profiles(session: AsyncSession, user_ids: set[str]) -> dict[str, dict]:
    """Resolve user ids to {id, name, avatar} in one query."""
    if not user_ids:
        return {}
    result = await session.execute(select(User).where(User.id.in_(user_ids)))
    users = {u.id: u for u in result.scalars().all()}
    return {uid: public_profile(uid, users.get(uid)) for uid in user_ids}
