"""User registration and profile routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError

from cyphire.auth import AuthCaller, Caller
from cyphire.config import settings
from cyphire.content import parse_body, render_response
from cyphire.database import get_db_session
from cyphire.models import ErrorResponse, MeResponse, RegisterRequest, RegisterResponse
from cyphire.rate_limit import limiter
from cyphire.services.users import register

router = APIRouter()


@router.post(
    "/v1/register",
    response_model=RegisterResponse,
    status_code=201,
    responses={400: {"model": ErrorResponse}},
)
@limiter.limit(settings.rate_limit_register)
async def register_user(request: Request, session=Depends(get_db_session)):
    """Register a user. The API key is shown once."""
    body = await parse_body(request, body_key="name")
    try:
        req = RegisterRequest(**body)
    except ValidationError:
        return render_response(request, {"error": "Invalid request body"}, status_code=400)

    result = await register(session, req.name, avatar=req.avatar)
    return render_response(
        request,
        RegisterResponse(user_id=result["user_id"], api_key=result["api_key"]),
        status_code=201,
    )


@router.get("/v1/me", response_model=MeResponse, responses={401: {"model": ErrorResponse}})
@limiter.limit(settings.rate_limit_read)
async def me(request: Request, caller: Caller = AuthCaller):
    return render_response(request, MeResponse(**caller.profile(), is_admin=caller.is_admin))
