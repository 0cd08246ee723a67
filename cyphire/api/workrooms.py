"""Workroom routes: meta, chat, finalisation and admin inspection."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import ValidationError
from starlette.datastructures import UploadFile

from cyphire.auth import AuthCaller, Caller
from cyphire.config import settings
from cyphire.content import parse_body, render_response
from cyphire.database import get_db_session
from cyphire.models import (
    AdminWorkroomResponse,
    ErrorResponse,
    FinaliseResponse,
    MessageResponse,
    MessagesListResponse,
    PostMessageRequest,
    WorkroomMetaResponse,
)
from cyphire.rate_limit import limiter
from cyphire.services.messages import get_messages, post_message, require_open_party
from cyphire.services.workrooms import admin_get_workroom, finalise, get_meta
from cyphire.storage import BlobStore, IncomingFile, get_blob_store

router = APIRouter()

_GATED = {
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
}


def require_messages_enabled() -> None:
    if not settings.workroom_messages_enabled:
        raise HTTPException(status_code=403, detail="Feature workroom messages is disabled")


def _check_upload_sizes(uploads: list[UploadFile]) -> None:
    """Reject oversized multipart files from their spooled size, before reading them."""
    if len(uploads) > settings.max_attachments:
        raise HTTPException(
            status_code=400,
            detail=f"Too many attachments (max {settings.max_attachments})",
        )
    total = 0
    for upload in uploads:
        if upload.size is None:
            continue
        if upload.size > settings.max_attachment_bytes:
            raise HTTPException(status_code=400, detail=f"File too large: {upload.filename}")
        total += upload.size
    if total > settings.max_upload_bytes:
        raise HTTPException(status_code=400, detail="Total upload size too large")


async def _read_message_input(request: Request) -> tuple[str, list[IncomingFile]]:
    """Accept multipart (text + attachments) or a JSON/markdown body with text only."""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("multipart/form-data"):
        form = await request.form()
        text = form.get("text")
        uploads = [u for u in form.getlist("attachments") if isinstance(u, UploadFile)]
        _check_upload_sizes(uploads)
        files: list[IncomingFile] = []
        for upload in uploads:
            files.append(
                IncomingFile(
                    name=upload.filename or "file",
                    content_type=upload.content_type or "application/octet-stream",
                    data=await upload.read(),
                )
            )
        return (text if isinstance(text, str) else ""), files

    body = await parse_body(request, body_key="text")
    try:
        validated = PostMessageRequest(**body)
    except ValidationError:
        raise HTTPException(status_code=400, detail="Invalid request body") from None
    return validated.text, []


@router.get(
    "/v1/workrooms/{engagement_id}/meta",
    response_model=WorkroomMetaResponse,
    responses=_GATED,
)
@limiter.limit(settings.rate_limit_read)
async def workroom_meta(
    engagement_id: str,
    request: Request,
    caller: Caller = AuthCaller,
    session=Depends(get_db_session),
):
    """Your role in the workroom and where finalisation stands."""
    meta = await get_meta(session, engagement_id, caller)
    return render_response(request, meta)


@router.post(
    "/v1/workrooms/{engagement_id}/finalise",
    response_model=FinaliseResponse,
    responses=_GATED,
)
@limiter.limit(settings.rate_limit_write)
async def finalise_workroom(
    engagement_id: str,
    request: Request,
    caller: Caller = AuthCaller,
    session=Depends(get_db_session),
):
    """Sign off on the engagement. The chat closes once both parties have."""
    flags = await finalise(session, engagement_id, caller)
    return render_response(request, flags)


@router.post(
    "/v1/workrooms/{engagement_id}/messages",
    response_model=MessageResponse,
    status_code=201,
    dependencies=[Depends(require_messages_enabled)],
    responses={
        **_GATED,
        400: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    },
)
@limiter.limit(settings.rate_limit_message)
async def send_message(
    engagement_id: str,
    request: Request,
    caller: Caller = AuthCaller,
    session=Depends(get_db_session),
    blob_store: BlobStore = Depends(get_blob_store),
):
    """Post text and/or up to ten attachments (multipart field `attachments`)."""
    await require_open_party(session, engagement_id, caller)
    text, files = await _read_message_input(request)
    item = await post_message(session, engagement_id, caller, text, files, blob_store)
    return render_response(request, item, status_code=201)


@router.get(
    "/v1/workrooms/{engagement_id}/messages",
    response_model=MessagesListResponse,
    dependencies=[Depends(require_messages_enabled)],
    responses={**_GATED, 400: {"model": ErrorResponse}},
)
@limiter.limit(settings.rate_limit_read)
async def read_messages(
    engagement_id: str,
    request: Request,
    caller: Caller = AuthCaller,
    session=Depends(get_db_session),
    after: str | None = Query(None, description="Return messages after this message id"),
    limit: int | None = Query(None, ge=1, le=settings.max_page_size),
):
    """Full chat history, oldest first. Pass `limit` to page."""
    result = await get_messages(session, engagement_id, caller, after=after, limit=limit)
    return render_response(request, result)


@router.get(
    "/v1/workrooms/{engagement_id}/admin",
    response_model=AdminWorkroomResponse,
    responses=_GATED,
)
@limiter.limit(settings.rate_limit_read)
async def admin_workroom(
    engagement_id: str,
    request: Request,
    caller: Caller = AuthCaller,
    session=Depends(get_db_session),
):
    """Admin only: engagement summary plus the full chat."""
    snapshot = await admin_get_workroom(session, engagement_id, caller)
    return render_response(request, snapshot)
