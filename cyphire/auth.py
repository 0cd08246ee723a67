"""Authentication: bcrypt hashing with fingerprint-based DB lookup."""

from __future__ import annotations

import hashlib
import secrets
from dataclasses import dataclass

import bcrypt
from fastapi import Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from cyphire.config import settings
from cyphire.database import get_db_session
from cyphire.db_models import User


@dataclass(frozen=True)
class Caller:
    """The authenticated party behind a request or socket."""

    id: str
    name: str
    avatar: str | None = None
    is_admin: bool = False

    def profile(self) -> dict:
        return {"id": self.id, "name": self.name, "avatar": self.avatar}


def hash_key(key: str) -> str:
    return bcrypt.hashpw(key.encode(), bcrypt.gensalt()).decode()


def verify_key(key: str, key_hash: str) -> bool:
    return bcrypt.checkpw(key.encode(), key_hash.encode())


def key_fingerprint(key: str) -> str:
    return hashlib.sha256(key.encode()).hexdigest()[:16]


def bearer_token(header: str) -> str | None:
    if not header.startswith("Bearer "):
        return None
    return header[7:] or None


async def resolve_caller(session: AsyncSession, raw_key: str) -> Caller | None:
    """Map an API key to a caller. The configured admin key maps to the admin caller."""
    if settings.admin_key is not None and secrets.compare_digest(
        raw_key.encode(), settings.admin_key.encode()
    ):
        return Caller(id=settings.admin_user_id, name="admin", is_admin=True)

    fp = key_fingerprint(raw_key)
    result = await session.execute(select(User).where(User.key_fingerprint == fp))
    user = result.scalar_one_or_none()
    if not user or not verify_key(raw_key, user.key_hash):
        return None
    return Caller(id=user.id, name=user.name, avatar=user.avatar, is_admin=user.is_admin)


async def get_current_caller(
    request: Request,
    session: AsyncSession = Depends(get_db_session),
) -> Caller:
    raw_key = bearer_token(request.headers.get("Authorization", ""))
    if raw_key is None:
        raise HTTPException(status_code=401, detail="Missing or invalid Authorization header")

    caller = await resolve_caller(session, raw_key)
    if caller is None:
        raise HTTPException(status_code=401, detail="Invalid API key")
    return caller


AuthCaller = Depends(get_current_caller)
