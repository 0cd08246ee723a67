"""Initial schema: users, tasks, applications, engagements and the message log.

Revision ID: 001
Revises: None
Create Date: 2026-10-18
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.VARCHAR(), nullable=False),
        sa.Column("name", sa.VARCHAR(), nullable=False),
        sa.Column("avatar", sa.VARCHAR(), nullable=True),
        sa.Column("key_hash", sa.VARCHAR(), nullable=False),
        sa.Column("key_fingerprint", sa.VARCHAR(), nullable=False),
        sa.Column("is_admin", sa.BOOLEAN(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DATETIME(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_key_fingerprint", "users", ["key_fingerprint"])

    op.create_table(
        "tasks",
        sa.Column("id", sa.VARCHAR(), nullable=False),
        sa.Column("owner_id", sa.VARCHAR(), nullable=False),
        sa.Column("title", sa.VARCHAR(), nullable=False),
        sa.Column("description", sa.VARCHAR(), nullable=True),
        sa.Column("capacity", sa.INTEGER(), nullable=False, server_default="0"),
        sa.Column("status", sa.VARCHAR(), nullable=False, server_default="open"),
        sa.Column("selected_worker_id", sa.VARCHAR(), nullable=True),
        sa.Column("engagement_id", sa.VARCHAR(), nullable=True),
        sa.Column("created_at", sa.DATETIME(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["owner_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["selected_worker_id"], ["users.id"]),
        sa.UniqueConstraint("engagement_id"),
    )
    op.create_index("ix_tasks_owner_id", "tasks", ["owner_id"])
    op.create_index("ix_tasks_status", "tasks", ["status"])
    op.create_index("ix_tasks_selected_worker_id", "tasks", ["selected_worker_id"])
    op.create_index("ix_tasks_created_at", "tasks", ["created_at"])

    op.create_table(
        "applications",
        sa.Column("id", sa.INTEGER(), primary_key=True, autoincrement=True),
        sa.Column("task_id", sa.VARCHAR(), nullable=False),
        sa.Column("applicant_id", sa.VARCHAR(), nullable=False),
        sa.Column("created_at", sa.DATETIME(), nullable=False),
        sa.ForeignKeyConstraint(["task_id"], ["tasks.id"]),
        sa.ForeignKeyConstraint(["applicant_id"], ["users.id"]),
    )
    op.create_index("ix_applications_task_id", "applications", ["task_id"])
    op.create_index("ix_applications_applicant_id", "applications", ["applicant_id"])
    op.create_index(
        "ix_applications_task_applicant",
        "applications",
        ["task_id", "applicant_id"],
        unique=True,
    )

    op.create_table(
        "engagements",
        sa.Column("id", sa.VARCHAR(), nullable=False),
        sa.Column("task_id", sa.VARCHAR(), nullable=False),
        sa.Column("title", sa.VARCHAR(), nullable=False),
        sa.Column("owner_id", sa.VARCHAR(), nullable=False),
        sa.Column("worker_id", sa.VARCHAR(), nullable=False),
        sa.Column("owner_finalised", sa.BOOLEAN(), nullable=False, server_default="0"),
        sa.Column("worker_finalised", sa.BOOLEAN(), nullable=False, server_default="0"),
        sa.Column("finalised_at", sa.DATETIME(), nullable=True),
        sa.Column("created_at", sa.DATETIME(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["task_id"], ["tasks.id"]),
        sa.ForeignKeyConstraint(["owner_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["worker_id"], ["users.id"]),
        sa.UniqueConstraint("task_id"),
    )
    op.create_index("ix_engagements_owner_id", "engagements", ["owner_id"])
    op.create_index("ix_engagements_worker_id", "engagements", ["worker_id"])

    op.create_table(
        "message_logs",
        sa.Column("engagement_id", sa.VARCHAR(), nullable=False),
        sa.Column("expire_at", sa.DATETIME(), nullable=True),
        sa.Column("created_at", sa.DATETIME(), nullable=False),
        sa.PrimaryKeyConstraint("engagement_id"),
    )
    op.create_index("ix_message_logs_expire_at", "message_logs", ["expire_at"])

    op.create_table(
        "workroom_messages",
        sa.Column("seq", sa.INTEGER(), primary_key=True, autoincrement=True),
        sa.Column("id", sa.VARCHAR(), nullable=False),
        sa.Column("engagement_id", sa.VARCHAR(), nullable=False),
        sa.Column("sender_id", sa.VARCHAR(), nullable=False),
        sa.Column("text", sa.VARCHAR(), nullable=False, server_default=""),
        sa.Column("attachments", sa.VARCHAR(), nullable=True),
        sa.Column("created_at", sa.DATETIME(), nullable=False),
        sa.ForeignKeyConstraint(["engagement_id"], ["message_logs.engagement_id"]),
        sa.ForeignKeyConstraint(["sender_id"], ["users.id"]),
        sa.UniqueConstraint("id"),
    )
    op.create_index(
        "ix_workroom_messages_log_seq", "workroom_messages", ["engagement_id", "seq"]
    )


def downgrade() -> None:
    op.drop_index("ix_workroom_messages_log_seq", "workroom_messages")
    op.drop_table("workroom_messages")
    op.drop_index("ix_message_logs_expire_at", "message_logs")
    op.drop_table("message_logs")
    op.drop_index("ix_engagements_worker_id", "engagements")
    op.drop_index("ix_engagements_owner_id", "engagements")
    op.drop_table("engagements")
    op.drop_index("ix_applications_task_applicant", "applications")
    op.drop_index("ix_applications_applicant_id", "applications")
    op.drop_index("ix_applications_task_id", "applications")
    op.drop_table("applications")
    op.drop_index("ix_tasks_created_at", "tasks")
    op.drop_index("ix_tasks_selected_worker_id", "tasks")
    op.drop_index("ix_tasks_status", "tasks")
    op.drop_index("ix_tasks_owner_id", "tasks")
    op.drop_table("tasks")
    op.drop_index("ix_users_key_fingerprint", "users")
    op.drop_table("users")
