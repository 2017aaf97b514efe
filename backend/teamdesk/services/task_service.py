"""
Task Service - loading, serializing and auditing tasks

Endpoints go through here so that every task they return or broadcast has
its subtasks, steps, participants, responsible user, workflow and stage
loaded, and so that every change leaves a TaskHistory row.
"""
from typing import Optional, List, Dict, Any, Iterable

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from teamdesk.core.logging_config import logger
from teamdesk.models import Task, TaskParticipant, TaskHistory, User
from teamdesk.schemas.task import TaskResponse
from teamdesk.schemas.user import UserBrief


TASK_LOAD_OPTIONS = (
    selectinload(Task.subtasks),
    selectinload(Task.steps),
    selectinload(Task.participants).selectinload(TaskParticipant.user),
    selectinload(Task.responsible),
    selectinload(Task.workflow),
    selectinload(Task.stage),
)


async def get_task(db: AsyncSession, task_id: str) -> Optional[Task]:
    """Fetch a task with everything TaskResponse needs, refreshing any stale copy"""
    result = await db.execute(
        select(Task)
        .where(Task.id == task_id)
        .options(*TASK_LOAD_OPTIONS)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_task_or_404(db: AsyncSession, task_id: str) -> Task:
    task = await get_task(db, task_id)
    if not task:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")
    return task


async def list_tasks(db: AsyncSession, stage_id: Optional[str] = None) -> List[Task]:
    query = select(Task).options(*TASK_LOAD_OPTIONS).order_by(Task.created_at.desc())
    if stage_id is not None:
        query = query.where(Task.stage_id == stage_id)
    result = await db.execute(query)
    return list(result.scalars().all())


def serialize_task(task: Task) -> TaskResponse:
    return TaskResponse(
        id=task.id,
        title=task.title,
        description=task.description,
        status=task.status,
        priority=task.priority,
        due_date=task.due_date,
        creator_id=task.creator_id,
        responsible_id=task.responsible_id,
        workflow_id=task.workflow_id,
        stage_id=task.stage_id,
        created_at=task.created_at,
        updated_at=task.updated_at,
        subtasks=task.subtasks,
        steps=task.steps,
        participants=[UserBrief.model_validate(p.user) for p in task.participants if p.user is not None],
        responsible=task.responsible,
        workflow=task.workflow,
        stage=task.stage,
    )


def task_payload(task: Task) -> Dict[str, Any]:
    """JSON-safe task for WebSocket events"""
    return serialize_task(task).model_dump(mode="json")


async def ensure_users_exist(db: AsyncSession, user_ids: Iterable[str]) -> Dict[str, User]:
    """Load the given users, 400 if any id is unknown"""
    wanted = {uid for uid in user_ids if uid}
    if not wanted:
        return {}

    result = await db.execute(select(User).where(User.id.in_(wanted)))
    users = {u.id: u for u in result.scalars().all()}

    missing = wanted - users.keys()
    if missing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown user id(s): {', '.join(sorted(missing))}"
        )
    return users


def set_participants(task: Task, user_ids: Iterable[str]) -> List[str]:
    """
    Replace the participant set of a loaded task.

    Returns the ids that were not participants before.
    """
    wanted = list(dict.fromkeys(uid for uid in user_ids if uid))
    current = {p.user_id: p for p in task.participants}

    for user_id, participant in current.items():
        if user_id not in wanted:
            task.participants.remove(participant)

    added = [uid for uid in wanted if uid not in current]
    for user_id in added:
        task.participants.append(TaskParticipant(user_id=user_id))

    return added


async def record_history(
    db: AsyncSession,
    task_id: str,
    user_id: Optional[str],
    action: str,
    details: Optional[Dict[str, Any]] = None
) -> TaskHistory:
    entry = TaskHistory(task_id=task_id, user_id=user_id, action=action, details=details)
    db.add(entry)
    await db.flush()
    logger.debug(f"[Tasks] {action} on task {task_id} by {user_id}")
    return entry
