"""Workroom message log: append-only chat with attachments and retention."""

from __future__ import annotations

import json
import logging
import re
from datetime import UTC, datetime, timedelta

from fastapi import HTTPException
from sqlalchemy import update
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from cyphire.auth import Caller
from cyphire.config import settings
from cyphire.db_models import AttachmentType, Engagement, MessageLog, WorkroomMessage
from cyphire.events import Event, event_bus, workroom_channel
from cyphire.ids import message_id as make_message_id
from cyphire.services.access import load_engagement, require_party, require_reader
from cyphire.services.users import load_profiles
from cyphire.storage import BlobStore, BlobStoreError, IncomingFile, StoredBlob
from cyphire.utils import as_utc, iso, safe_json_loads

logger = logging.getLogger("cyphire.messages")

ALLOWED_CONTENT_TYPES = [
    re.compile(r"^image/"),
    re.compile(r"^video/"),
    re.compile(r"^application/pdf$"),
    re.compile(r"^application/msword$"),
    re.compile(r"^application/vnd\.openxmlformats-officedocument"),
    re.compile(r"^text/plain$"),
]


def classify_attachment(content_type: str | None) -> AttachmentType:
    mime = (content_type or "").lower()
    if mime.startswith("image/"):
        return AttachmentType.image
    if mime.startswith("video/"):
        return AttachmentType.video
    return AttachmentType.file


def _check_message_shape(text: str, files: list[IncomingFile]) -> None:
    """Checks that need no upload. Raise 400 on the first problem."""
    if len(text) > settings.max_message_length:
        raise HTTPException(status_code=400, detail="Message too long")
    if not text and not files:
        raise HTTPException(status_code=400, detail="Message is empty")
    if len(files) > settings.max_attachments:
        raise HTTPException(
            status_code=400,
            detail=f"Too many attachments (max {settings.max_attachments})",
        )

    total = 0
    for f in files:
        mime = (f.content_type or "").lower()
        if not any(p.match(mime) for p in ALLOWED_CONTENT_TYPES):
            raise HTTPException(status_code=400, detail=f"Invalid file type: {mime or 'unknown'}")
        if f.size > settings.max_attachment_bytes:
            raise HTTPException(status_code=400, detail=f"File too large: {f.name}")
        total += f.size
    if total > settings.max_upload_bytes:
        raise HTTPException(status_code=400, detail="Total upload size too large")


async def _discard_blobs(blobs: list[StoredBlob], blob_store: BlobStore) -> None:
    """Best-effort removal of blobs that will never be referenced by a message."""
    for blob in blobs:
        try:
            await blob_store.delete(blob)
        except BlobStoreError:
            logger.warning("Could not remove orphaned blob %s", blob.id)


async def _upload_attachments(
    engagement_id: str, files: list[IncomingFile], blob_store: BlobStore
) -> list[StoredBlob]:
    """Upload every file or none: earlier blobs are removed if a later upload fails."""
    folder = f"cyphire/workrooms/{engagement_id}"
    uploaded: list[StoredBlob] = []
    for f in files:
        try:
            uploaded.append(await blob_store.upload(f, folder))
        except BlobStoreError:
            logger.exception("Attachment upload failed for workroom %s", engagement_id)
            await _discard_blobs(uploaded, blob_store)
            raise HTTPException(status_code=502, detail="Failed to upload attachment") from None
    return uploaded


def _attachment_to_dict(blob: StoredBlob) -> dict:
    return {
        "url": blob.url,
        "id": blob.id,
        "type": classify_attachment(blob.content_type).value,
        "name": blob.name,
        "size": blob.size,
        "content_type": blob.content_type,
    }


async def ensure_log(session: AsyncSession, engagement_id: str) -> None:
    """Create the message log for an engagement if it is not there yet."""
    await session.execute(
        sqlite_insert(MessageLog)
        .values(engagement_id=engagement_id, created_at=datetime.now(UTC))
        .on_conflict_do_nothing(index_elements=["engagement_id"])
    )


async def start_retention(session: AsyncSession, engagement_id: str, finalised_at: datetime) -> None:
    """Arm the log's expiry. Only ever moves expire_at from NULL to a time."""
    await ensure_log(session, engagement_id)
    expire_at = finalised_at + timedelta(days=settings.message_retention_days)
    await session.execute(
        update(MessageLog)
        .where(MessageLog.engagement_id == engagement_id, MessageLog.expire_at == None)  # noqa: E711
        .values(expire_at=expire_at)
    )


def is_expired(log: MessageLog | None, now: datetime | None = None) -> bool:
    if log is None or log.expire_at is None:
        return False
    return as_utc(log.expire_at) <= (now or datetime.now(UTC))


def _message_to_dict(msg: WorkroomMessage, sender: dict) -> dict:
    return {
        "id": msg.id,
        "engagement_id": msg.engagement_id,
        "sender": sender,
        "text": msg.text,
        "attachments": safe_json_loads(msg.attachments, []),
        "created_at": iso(msg.created_at),
    }


async def require_open_party(
    session: AsyncSession, engagement_id: str, caller: Caller
) -> Engagement:
    """Gate for posting: 404 if missing, 409 once finalised, 403 for non-parties."""
    engagement = await load_engagement(session, engagement_id)
    if engagement.finalised_at is not None:
        raise HTTPException(status_code=409, detail="Chat is closed")
    require_party(engagement, caller)
    return engagement


async def post_message(
    session: AsyncSession,
    engagement_id: str,
    caller: Caller,
    text: str | None,
    files: list[IncomingFile],
    blob_store: BlobStore,
) -> dict:
    """Append a message to a workroom (owner/worker only, open chats only)."""
    engagement = await require_open_party(session, engagement_id, caller)

    text = (text or "").strip()
    _check_message_shape(text, files)

    blobs = await _upload_attachments(engagement_id, files, blob_store)
    if not text and not blobs:
        raise HTTPException(status_code=400, detail="Message is empty")
    attachments = [_attachment_to_dict(b) for b in blobs]

    await ensure_log(session, engagement_id)

    # The log write above holds SQLite's write lock; a finalise that committed
    # before it is visible now.
    await session.refresh(engagement)
    if engagement.finalised_at is not None:
        await session.rollback()
        await _discard_blobs(blobs, blob_store)
        raise HTTPException(status_code=409, detail="Chat is closed")

    msg = WorkroomMessage(
        id=make_message_id(),
        engagement_id=engagement_id,
        sender_id=caller.id,
        text=text,
        attachments=json.dumps(attachments) if attachments else None,
    )
    session.add(msg)
    await session.commit()

    item = _message_to_dict(msg, caller.profile())
    event_bus.publish(
        Event(type="message:new", channel=workroom_channel(engagement_id), data=item),
        exclude=caller.id,
    )
    return item


async def list_messages(
    session: AsyncSession,
    engagement_id: str,
    after: str | None = None,
    limit: int | None = None,
) -> dict:
    """Ordered message log for an engagement. No authorization check."""
    log = await session.get(MessageLog, engagement_id)
    if log is None or is_expired(log):
        return {"items": [], "next_cursor": None}

    query = (
        select(WorkroomMessage)
        .where(WorkroomMessage.engagement_id == engagement_id)
        .order_by(WorkroomMessage.seq.asc())
    )
    if after:
        cursor_result = await session.execute(
            select(WorkroomMessage.seq).where(
                WorkroomMessage.engagement_id == engagement_id, WorkroomMessage.id == after
            )
        )
        after_seq = cursor_result.scalar_one_or_none()
        if after_seq is None:
            raise HTTPException(status_code=400, detail="Unknown cursor")
        query = query.where(WorkroomMessage.seq > after_seq)
    if limit:
        query = query.limit(limit + 1)

    messages = list((await session.execute(query)).scalars().all())
    next_cursor = None
    if limit and len(messages) > limit:
        messages = messages[:limit]
        next_cursor = messages[-1].id

    profiles = await load_profiles(session, {m.sender_id for m in messages})
    return {
        "items": [_message_to_dict(m, profiles[m.sender_id]) for m in messages],
        "next_cursor": next_cursor,
    }


async def get_messages(
    session: AsyncSession,
    engagement_id: str,
    caller: Caller,
    after: str | None = None,
    limit: int | None = None,
) -> dict:
    """Read the chat (owner, worker or admin)."""
    engagement = await load_engagement(session, engagement_id)
    require_reader(engagement, caller)
    return await list_messages(session, engagement_id, after=after, limit=limit)
