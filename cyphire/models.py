"""Pydantic models for request/response schemas."""

from __future__ import annotations

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    error: str


class RegisterRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200, description="Display name")
    avatar: str | None = Field(default=None, max_length=2000, description="Avatar URL")


class RegisterResponse(BaseModel):
    user_id: str
    api_key: str
    message: str = "Welcome to Cyphire! Save your API key, it cannot be recovered."


class UserProfile(BaseModel):
    id: str
    name: str | None = None
    avatar: str | None = None


class MeResponse(UserProfile):
    is_admin: bool = False


class TaskCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=300)
    description: str | None = Field(default=None, max_length=50_000)
    capacity: int = Field(default=0, ge=0, le=10_000, description="Max applicants, 0 = no cap")


class SelectApplicantRequest(BaseModel):
    applicant_id: str = Field(..., min_length=1, max_length=100)


class TaskResponse(BaseModel):
    task_id: str
    title: str
    description: str | None = None
    owner_id: str
    status: str
    capacity: int
    applicant_count: int = 0
    selected_worker_id: str | None = None
    engagement_id: str | None = None
    created_at: str | None = None


class ApplyResponse(BaseModel):
    task_id: str
    applicant_count: int
    message: str | None = None


class PostMessageRequest(BaseModel):
    text: str = Field(default="", description="Message text, may be empty with attachments")


class AttachmentResponse(BaseModel):
    url: str
    id: str
    type: str
    name: str
    size: int
    content_type: str


class MessageResponse(BaseModel):
    id: str
    engagement_id: str
    sender: UserProfile
    text: str
    attachments: list[AttachmentResponse] = []
    created_at: str | None = None


class MessagesListResponse(BaseModel):
    items: list[MessageResponse]
    next_cursor: str | None = None


class FinaliseResponse(BaseModel):
    owner_finalised: bool
    worker_finalised: bool
    finalised_at: str | None = None


class WorkroomMetaResponse(FinaliseResponse):
    engagement_id: str
    task_id: str
    title: str
    owner_id: str
    worker_id: str
    role: str


class AdminWorkroomSummary(FinaliseResponse):
    engagement_id: str
    task_id: str
    title: str
    owner: UserProfile
    worker: UserProfile
    created_at: str | None = None
    expire_at: str | None = None


class AdminWorkroomResponse(BaseModel):
    workroom: AdminWorkroomSummary
    messages: list[MessageResponse]
