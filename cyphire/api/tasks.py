"""Task posting, application and selection routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError

from cyphire.auth import AuthCaller, Caller
from cyphire.config import settings
from cyphire.content import parse_body, render_response
from cyphire.database import get_db_session
from cyphire.models import (
    ApplyResponse,
    ErrorResponse,
    SelectApplicantRequest,
    TaskCreateRequest,
    TaskResponse,
)
from cyphire.rate_limit import limiter
from cyphire.services.tasks import apply_to_task, create_task, get_task, select_applicant

router = APIRouter()


@router.post(
    "/v1/tasks",
    response_model=TaskResponse,
    status_code=201,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}},
)
@limiter.limit(settings.rate_limit_write)
async def post_task(request: Request, caller: Caller = AuthCaller, session=Depends(get_db_session)):
    """Post a task that others can apply to."""
    body = await parse_body(request, body_key="description")
    try:
        validated = TaskCreateRequest(**body)
    except ValidationError:
        return render_response(request, {"error": "Invalid request body"}, status_code=400)

    task = await create_task(
        session,
        caller.id,
        validated.title,
        description=validated.description,
        capacity=validated.capacity,
    )
    return render_response(
        request, task, status_code=201, headers={"X-Task-Id": task["task_id"]}
    )


@router.get(
    "/v1/tasks/{task_id}",
    response_model=TaskResponse,
    responses={404: {"model": ErrorResponse}},
)
@limiter.limit(settings.rate_limit_read)
async def read_task(
    task_id: str, request: Request, caller: Caller = AuthCaller, session=Depends(get_db_session)
):
    task = await get_task(session, task_id)
    if not task:
        return render_response(request, {"error": "Task not found"}, status_code=404)
    return render_response(request, task)


@router.post(
    "/v1/tasks/{task_id}/apply",
    response_model=ApplyResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
@limiter.limit(settings.rate_limit_write)
async def apply(
    task_id: str, request: Request, caller: Caller = AuthCaller, session=Depends(get_db_session)
):
    """Apply to a task. Applying twice is a no-op."""
    result = await apply_to_task(session, task_id, caller.id)
    return render_response(request, result)


@router.post(
    "/v1/tasks/{task_id}/select",
    response_model=TaskResponse,
    responses={
        400: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
@limiter.limit(settings.rate_limit_write)
async def select(
    task_id: str, request: Request, caller: Caller = AuthCaller, session=Depends(get_db_session)
):
    """Pick the worker for your task. Opens the workroom."""
    body = await parse_body(request, body_key="applicant_id")
    try:
        validated = SelectApplicantRequest(**body)
    except ValidationError:
        return render_response(request, {"error": "Invalid request body"}, status_code=400)

    task = await select_applicant(session, task_id, caller.id, validated.applicant_id)
    return render_response(request, task)
