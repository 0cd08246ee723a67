"""SQLModel table definitions for Cyphire."""

from __future__ import annotations

import enum
from datetime import UTC, datetime

from sqlalchemy import Index
from sqlmodel import Field, SQLModel


class TaskStatus(str, enum.Enum):
    open = "open"
    in_progress = "in_progress"
    completed = "completed"


class AttachmentType(str, enum.Enum):
    image = "image"
    video = "video"
    file = "file"


def _utcnow() -> datetime:
    return datetime.now(UTC)


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: str = Field(primary_key=True)
    name: str
    avatar: str | None = None
    key_hash: str
    key_fingerprint: str = Field(index=True)
    is_admin: bool = Field(default=False)
    created_at: datetime = Field(default_factory=_utcnow)


class Task(SQLModel, table=True):
    __tablename__ = "tasks"

    id: str = Field(primary_key=True)
    owner_id: str = Field(foreign_key="users.id", index=True)
    title: str
    description: str | None = None
    capacity: int = Field(default=0)  # 0 = unlimited applicants
    status: TaskStatus = Field(default=TaskStatus.open, index=True)
    selected_worker_id: str | None = Field(default=None, foreign_key="users.id", index=True)
    engagement_id: str | None = Field(default=None, unique=True)
    created_at: datetime = Field(default_factory=_utcnow, index=True)


class Application(SQLModel, table=True):
    __tablename__ = "applications"
    __table_args__ = (
        Index("ix_applications_task_applicant", "task_id", "applicant_id", unique=True),
    )

    id: int | None = Field(default=None, primary_key=True)
    task_id: str = Field(foreign_key="tasks.id", index=True)
    applicant_id: str = Field(foreign_key="users.id", index=True)
    created_at: datetime = Field(default_factory=_utcnow)


class Engagement(SQLModel, table=True):
    __tablename__ = "engagements"

    id: str = Field(primary_key=True)
    task_id: str = Field(foreign_key="tasks.id", unique=True)
    title: str
    owner_id: str = Field(foreign_key="users.id", index=True)
    worker_id: str = Field(foreign_key="users.id", index=True)
    owner_finalised: bool = Field(default=False)
    worker_finalised: bool = Field(default=False)
    finalised_at: datetime | None = None
    created_at: datetime = Field(default_factory=_utcnow)


class MessageLog(SQLModel, table=True):
    __tablename__ = "message_logs"

    engagement_id: str = Field(primary_key=True)
    expire_at: datetime | None = Field(default=None, index=True)
    created_at: datetime = Field(default_factory=_utcnow)


class WorkroomMessage(SQLModel, table=True):
    __tablename__ = "workroom_messages"
    __table_args__ = (Index("ix_workroom_messages_log_seq", "engagement_id", "seq"),)

    seq: int | None = Field(default=None, primary_key=True)  # insertion order
    id: str = Field(unique=True)
    engagement_id: str = Field(foreign_key="message_logs.engagement_id")
    sender_id: str = Field(foreign_key="users.id")
    text: str = Field(default="")
    attachments: str | None = None  # JSON-encoded list of attachment dicts
    created_at: datetime = Field(default_factory=_utcnow)
