"""Task posting, applications and applicant selection (SQLModel)."""

from __future__ import annotations

import logging

from fastapi import HTTPException
from sqlalchemy import func, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from cyphire.db_models import Application, Engagement, Task, TaskStatus
from cyphire.events import Event, event_bus, user_channel
from cyphire.ids import engagement_id as make_engagement_id
from cyphire.ids import task_id as make_task_id
from cyphire.utils import iso

logger = logging.getLogger("cyphire.tasks")


async def _applicant_count(session: AsyncSession, tid: str) -> int:
    result = await session.execute(
        select(func.count()).select_from(Application).where(Application.task_id == tid)
    )
    return result.scalar_one()


async def _task_to_dict(session: AsyncSession, task: Task) -> dict:
    return {
        "task_id": task.id,
        "title": task.title,
        "description": task.description,
        "owner_id": task.owner_id,
        "status": task.status.value if isinstance(task.status, TaskStatus) else task.status,
        "capacity": task.capacity,
        "applicant_count": await _applicant_count(session, task.id),
        "selected_worker_id": task.selected_worker_id,
        "engagement_id": task.engagement_id,
        "created_at": iso(task.created_at),
    }


async def create_task(
    session: AsyncSession,
    owner_id: str,
    title: str,
    description: str | None = None,
    capacity: int = 0,
) -> dict:
    task = Task(
        id=make_task_id(),
        owner_id=owner_id,
        title=title,
        description=description,
        capacity=capacity,
    )
    session.add(task)
    await session.commit()
    logger.info("Task %s posted by %s", task.id, owner_id)
    return await _task_to_dict(session, task)


async def get_task(session: AsyncSession, tid: str) -> dict | None:
    task = await session.get(Task, tid)
    if not task:
        return None
    return await _task_to_dict(session, task)


async def apply_to_task(session: AsyncSession, tid: str, applicant_id: str) -> dict:
    """Apply to an open task. Re-applying is harmless."""
    task = await session.get(Task, tid)
    if not task:
        raise HTTPException(status_code=404, detail="Task not found")
    if task.owner_id == applicant_id:
        raise HTTPException(status_code=409, detail="You cannot apply to your own task")

    existing = await session.execute(
        select(Application).where(
            Application.task_id == tid, Application.applicant_id == applicant_id
        )
    )
    if existing.scalar_one_or_none():
        return {
            "task_id": tid,
            "applicant_count": await _applicant_count(session, tid),
            "message": "Already applied",
        }

    if task.status != TaskStatus.open:
        raise HTTPException(status_code=409, detail="Task is no longer accepting applications")

    count = await _applicant_count(session, tid)
    if task.capacity and count >= task.capacity:
        raise HTTPException(status_code=409, detail="Applications are full")

    session.add(Application(task_id=tid, applicant_id=applicant_id))
    try:
        await session.commit()
    except IntegrityError:
        # Lost a race with a concurrent apply from the same user
        await session.rollback()
        return {
            "task_id": tid,
            "applicant_count": await _applicant_count(session, tid),
            "message": "Already applied",
        }

    return {"task_id": tid, "applicant_count": count + 1, "message": None}


async def select_applicant(
    session: AsyncSession, tid: str, owner_id: str, applicant_id: str
) -> dict:
    """Pick the worker for a task and open the engagement workroom. Happens once."""
    task = await session.get(Task, tid)
    if not task:
        raise HTTPException(status_code=404, detail="Task not found")
    if task.owner_id != owner_id:
        raise HTTPException(status_code=403, detail="Only the task owner can select an applicant")

    applied = await session.execute(
        select(Application).where(
            Application.task_id == tid, Application.applicant_id == applicant_id
        )
    )
    if not applied.scalar_one_or_none():
        raise HTTPException(status_code=400, detail="This user has not applied to the task")

    if task.selected_worker_id:
        raise HTTPException(status_code=409, detail="An applicant has already been selected")

    eid = make_engagement_id(tid, applicant_id)

    # Atomic selection to prevent two concurrent picks
    select_result = await session.execute(
        text(
            "UPDATE tasks SET selected_worker_id = :worker_id, engagement_id = :eid, "
            "status = 'in_progress' WHERE id = :id AND selected_worker_id IS NULL"
        ),
        {"worker_id": applicant_id, "eid": eid, "id": tid},
    )
    if select_result.rowcount == 0:
        raise HTTPException(status_code=409, detail="An applicant has already been selected")

    session.add(
        Engagement(
            id=eid,
            task_id=tid,
            title=task.title,
            owner_id=owner_id,
            worker_id=applicant_id,
        )
    )
    await session.commit()
    await session.refresh(task)
    logger.info("Engagement %s opened for task %s", eid, tid)

    event_bus.publish(
        Event(
            type="task:selected",
            channel=user_channel(applicant_id),
            data={"task_id": tid, "engagement_id": eid, "title": task.title},
        )
    )

    return await _task_to_dict(session, task)
