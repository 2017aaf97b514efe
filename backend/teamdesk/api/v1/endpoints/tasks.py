"""
Task endpoints

Every mutation records a TaskHistory row, commits, then broadcasts the
resulting task over WebSocket. Assignment emails go out after the commit and
never fail the request.
"""
from fastapi import APIRouter, Depends, HTTPException, status, Response
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.orm import selectinload
from typing import List, Optional, Dict, Any, Iterable
from datetime import datetime
from enum import Enum

from teamdesk.core.database import get_db
from teamdesk.core.logging_config import logger
from teamdesk.models import (
    User,
    Task,
    TaskStatus,
    Subtask,
    TaskStep,
    TaskParticipant,
    TaskHistory,
    Comment,
    Workflow,
    WorkflowStage,
)
from teamdesk.schemas.task import (
    TaskCreate,
    TaskUpdate,
    TaskStatusUpdate,
    TaskResponse,
    TaskHistoryResponse,
    CompletionUpdate,
    SubtaskResponse,
    StepResponse,
    CommentResponse,
)
from teamdesk.modules.auth.dependencies import get_current_user
from teamdesk.services.connection_manager import connection_manager, EventType
from teamdesk.services.notification_service import NotificationService
from teamdesk.services.task_service import (
    get_task,
    get_task_or_404,
    list_tasks,
    serialize_task,
    task_payload,
    ensure_users_exist,
    set_participants,
    record_history,
)


router = APIRouter()


def _jsonable(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    return value


async def notify_assignees(
    db: AsyncSession,
    task: Task,
    user_ids: Iterable[str],
    assigner: User
) -> None:
    """Send task_assignment emails; failures are logged only"""
    recipients = [uid for uid in dict.fromkeys(user_ids) if uid and uid != assigner.id]
    if not recipients:
        return

    try:
        users = await ensure_users_exist(db, recipients)
        service = NotificationService(db)
        for user_id in recipients:
            await service.notify_task_assignment(task, users[user_id], assigner)
        await db.commit()
    except Exception as e:
        await db.rollback()
        logger.log_error_with_context(e, context="task assignment notification", task_id=task.id)


async def resolve_placement(
    db: AsyncSession,
    workflow_id: Optional[str],
    stage_id: Optional[str]
) -> Dict[str, Optional[str]]:
    """Validate workflow/stage ids; a stage implies its workflow"""
    if stage_id:
        stage = await db.get(WorkflowStage, stage_id)
        if not stage:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid stage")
        if workflow_id and workflow_id != stage.workflow_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Stage does not belong to the given workflow"
            )
        return {"workflow_id": stage.workflow_id, "stage_id": stage.id}

    if workflow_id:
        if not await db.get(Workflow, workflow_id):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid workflow")

    return {"workflow_id": workflow_id, "stage_id": None}


@router.get("", response_model=List[TaskResponse])
async def get_tasks(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    tasks = await list_tasks(db)
    return [serialize_task(t) for t in tasks]


@router.post("", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
async def create_task(
    task_data: TaskCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Create a task with its subtasks, steps and participants.

    New tasks always start as todo. The responsible user and participants
    (other than the creator) get a task_assignment email.
    """
    await ensure_users_exist(db, [task_data.responsible_id, *task_data.participant_ids])
    placement = await resolve_placement(db, task_data.workflow_id, task_data.stage_id)

    task = Task(
        title=task_data.title,
        description=task_data.description,
        status=TaskStatus.TODO,
        priority=task_data.priority,
        due_date=task_data.due_date,
        creator_id=current_user.id,
        responsible_id=task_data.responsible_id,
        **placement,
    )
    db.add(task)
    await db.flush()

    for user_id in dict.fromkeys(task_data.participant_ids):
        db.add(TaskParticipant(task_id=task.id, user_id=user_id))
    for subtask in task_data.subtasks:
        db.add(Subtask(task_id=task.id, title=subtask.title, completed=subtask.completed))
    for index, step in enumerate(task_data.steps):
        db.add(TaskStep(
            task_id=task.id,
            title=step.title,
            description=step.description,
            order=step.order if step.order is not None else index,
        ))

    await record_history(db, task.id, current_user.id, "created", {"title": task.title})
    await db.commit()

    task = await get_task(db, task.id)
    logger.info(f"[Tasks] Task {task.id} created by {current_user.username}")

    response = serialize_task(task)
    await connection_manager.broadcast(EventType.TASK_CREATED, {
        "task": task_payload(task),
        "created_by": current_user.id,
    })
    await notify_assignees(db, task, [task.responsible_id, *task.participant_ids], current_user)

    return response


# ==================== Subtask / step toggles ====================

@router.patch("/subtasks/{subtask_id}/status", response_model=SubtaskResponse)
async def update_subtask_status(
    subtask_id: str,
    update: CompletionUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    if update.completed is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="completed is required")

    subtask = await db.get(Subtask, subtask_id)
    if not subtask:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Subtask not found")

    subtask.completed = update.completed
    await record_history(db, subtask.task_id, current_user.id, "subtask_updated", {
        "subtask_id": subtask.id,
        "completed": update.completed,
    })
    await db.commit()

    task = await get_task(db, subtask.task_id)
    await connection_manager.broadcast(EventType.TASK_UPDATED, {
        "task": task_payload(task),
        "updated_by": current_user.id,
    })
    return subtask


@router.patch("/steps/{step_id}/status", response_model=StepResponse)
async def update_step_status(
    step_id: str,
    update: CompletionUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    if update.completed is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="completed is required")

    step = await db.get(TaskStep, step_id)
    if not step:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Step not found")

    step.completed = update.completed
    await record_history(db, step.task_id, current_user.id, "step_updated", {
        "step_id": step.id,
        "completed": update.completed,
    })
    await db.commit()

    task = await get_task(db, step.task_id)
    await connection_manager.broadcast(EventType.TASK_UPDATED, {
        "task": task_payload(task),
        "updated_by": current_user.id,
    })
    return step


# ==================== Single task ====================

@router.get("/{task_id}", response_model=TaskResponse)
async def get_task_detail(
    task_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return serialize_task(await get_task_or_404(db, task_id))


@router.put("/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: str,
    update: TaskUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Partial update; participant_ids, when given, replaces the whole set"""
    task = await get_task_or_404(db, task_id)
    data = update.model_dump(exclude_unset=True)

    participant_ids = data.pop("participant_ids", None)
    await ensure_users_exist(db, [data.get("responsible_id"), *(participant_ids or [])])

    changes: Dict[str, Dict[str, Any]] = {}
    newly_assigned: List[str] = []

    for field, value in data.items():
        if field in ("title", "status", "priority") and value is None:
            continue
        old = getattr(task, field)
        if old != value:
            changes[field] = {"from": _jsonable(old), "to": _jsonable(value)}
            setattr(task, field, value)
            if field == "responsible_id" and value:
                newly_assigned.append(value)

    if participant_ids is not None:
        before = sorted(task.participant_ids)
        added = set_participants(task, participant_ids)
        after = sorted(dict.fromkeys(participant_ids))
        if before != after:
            changes["participant_ids"] = {"from": before, "to": after}
        newly_assigned.extend(added)

    if changes:
        task.updated_at = datetime.utcnow()
        await record_history(db, task.id, current_user.id, "updated", {"changes": changes})

    await db.commit()
    task = await get_task(db, task.id)

    response = serialize_task(task)
    await connection_manager.broadcast(EventType.TASK_UPDATED, {
        "task": task_payload(task),
        "updated_by": current_user.id,
    })
    await notify_assignees(db, task, newly_assigned, current_user)

    return response


@router.patch("/{task_id}/status", response_model=TaskResponse)
async def update_task_status(
    task_id: str,
    update: TaskStatusUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    task = await get_task_or_404(db, task_id)

    previous = task.status
    task.status = update.status
    task.updated_at = datetime.utcnow()
    await record_history(db, task.id, current_user.id, "status_changed", {
        "from": previous.value if previous else None,
        "to": update.status.value,
    })
    await db.commit()

    task = await get_task(db, task.id)
    await connection_manager.broadcast(EventType.TASK_UPDATED, {
        "task": task_payload(task),
        "updated_by": current_user.id,
    })
    return serialize_task(task)


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(
    task_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Delete a task together with its participants, subtasks, steps, comments and history"""
    result = await db.execute(
        select(Task)
        .where(Task.id == task_id)
        .options(
            selectinload(Task.subtasks),
            selectinload(Task.steps),
            selectinload(Task.participants),
            selectinload(Task.comments),
            selectinload(Task.history),
        )
    )
    task = result.scalar_one_or_none()
    if not task:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")

    await db.delete(task)
    await db.commit()

    logger.info(f"[Tasks] Task {task_id} deleted by {current_user.username}")
    await connection_manager.broadcast(EventType.TASK_DELETED, {
        "task_id": task_id,
        "deleted_by": current_user.id,
    })
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{task_id}/history", response_model=List[TaskHistoryResponse])
async def get_task_history(
    task_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Audit trail, newest first"""
    if not await db.get(Task, task_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")

    result = await db.execute(
        select(TaskHistory)
        .where(TaskHistory.task_id == task_id)
        .options(selectinload(TaskHistory.user))
        .order_by(TaskHistory.created_at.desc())
    )
    return result.scalars().all()


@router.get("/{task_id}/comments", response_model=List[CommentResponse])
async def get_task_comments(
    task_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    if not await db.get(Task, task_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")

    result = await db.execute(
        select(Comment)
        .where(Comment.task_id == task_id)
        .options(selectinload(Comment.user))
        .order_by(Comment.created_at)
    )
    return result.scalars().all()
