"""
Workflow endpoints: workflows, their stages and transitions, and moving
tasks between stages.
"""
from fastapi import APIRouter, Depends, HTTPException, status, Response
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, delete, func, or_
from sqlalchemy.orm import selectinload
from typing import List

from teamdesk.core.database import get_db
from teamdesk.core.logging_config import logger
from teamdesk.models import User, Task, Workflow, WorkflowStage, WorkflowTransition
from teamdesk.schemas.workflow import (
    WorkflowCreate,
    WorkflowUpdate,
    WorkflowResponse,
    StageCreate,
    StageResponse,
    TransitionCreate,
    TransitionResponse,
    TaskStageUpdate,
)
from teamdesk.schemas.task import TaskResponse
from teamdesk.modules.auth.dependencies import get_current_user
from teamdesk.services.connection_manager import connection_manager, EventType
from teamdesk.services.task_service import (
    get_task,
    get_task_or_404,
    list_tasks,
    serialize_task,
    task_payload,
    record_history,
)


router = APIRouter()
stages_router = APIRouter()


async def get_workflow_or_404(db: AsyncSession, workflow_id: str) -> Workflow:
    workflow = await db.get(Workflow, workflow_id)
    if not workflow:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Workflow not found")
    return workflow


async def get_stage_in_workflow(db: AsyncSession, workflow_id: str, stage_id: str) -> WorkflowStage:
    stage = await db.scalar(
        select(WorkflowStage).where(WorkflowStage.id == stage_id, WorkflowStage.workflow_id == workflow_id)
    )
    if not stage:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Stage not found in this workflow")
    return stage


async def all_stages(db: AsyncSession) -> List[WorkflowStage]:
    result = await db.execute(
        select(WorkflowStage).order_by(WorkflowStage.workflow_id, WorkflowStage.order)
    )
    return list(result.scalars().all())


# ==================== Static paths ====================

@router.get("/stages/all", response_model=List[StageResponse])
async def get_all_stages(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await all_stages(db)


@router.post("/transitions", response_model=TransitionResponse, status_code=status.HTTP_201_CREATED)
async def create_transition(
    transition_data: TransitionCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Allow moving from one stage to another; both stages must exist"""
    from_stage = await db.get(WorkflowStage, transition_data.from_stage_id)
    to_stage = await db.get(WorkflowStage, transition_data.to_stage_id)
    if not from_stage or not to_stage:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid stage id(s)")

    transition = WorkflowTransition(**transition_data.model_dump())
    db.add(transition)
    await db.commit()
    return transition


@router.patch("/tasks/{task_id}/stage", response_model=TaskResponse)
async def move_task_to_stage(
    task_id: str,
    stage_update: TaskStageUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Place a task on a stage (and that stage's workflow), or take it off with stage_id null"""
    task = await get_task_or_404(db, task_id)

    previous_stage_id = task.stage_id
    if stage_update.stage_id is not None:
        stage = await db.get(WorkflowStage, stage_update.stage_id)
        if not stage:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid stage")
        task.stage_id = stage.id
        task.workflow_id = stage.workflow_id
    else:
        task.stage_id = None

    await record_history(db, task.id, current_user.id, "stage_changed", {
        "from": previous_stage_id,
        "to": task.stage_id,
    })
    await db.commit()

    task = await get_task(db, task.id)
    await connection_manager.broadcast(EventType.TASK_UPDATED, {
        "task": task_payload(task),
        "updated_by": current_user.id,
    })
    return serialize_task(task)


# ==================== Workflows ====================

@router.get("", response_model=List[WorkflowResponse])
async def list_workflows(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    result = await db.execute(select(Workflow).order_by(Workflow.created_at))
    return result.scalars().all()


@router.post("", response_model=WorkflowResponse, status_code=status.HTTP_201_CREATED)
async def create_workflow(
    workflow_data: WorkflowCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    workflow = Workflow(
        name=workflow_data.name,
        description=workflow_data.description,
        is_default=workflow_data.is_default,
        extra_data=workflow_data.metadata,
        creator_id=current_user.id,
    )
    db.add(workflow)
    await db.commit()

    logger.info(f"[Workflows] {current_user.username} created workflow {workflow.name}")
    return workflow


@router.get("/{workflow_id}", response_model=WorkflowResponse)
async def get_workflow(
    workflow_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await get_workflow_or_404(db, workflow_id)


@router.put("/{workflow_id}", response_model=WorkflowResponse)
async def update_workflow(
    workflow_id: str,
    update_data: WorkflowUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    workflow = await get_workflow_or_404(db, workflow_id)

    data = update_data.model_dump(exclude_unset=True)
    if "metadata" in data:
        workflow.extra_data = data.pop("metadata")
    for field, value in data.items():
        if value is None and field in ("name", "is_default"):
            continue
        setattr(workflow, field, value)

    await db.commit()
    await db.refresh(workflow)
    return workflow


@router.delete("/{workflow_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_workflow(
    workflow_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Creator or admin only. Removes stages and transitions; tasks are detached, not deleted."""
    result = await db.execute(
        select(Workflow).where(Workflow.id == workflow_id).options(selectinload(Workflow.stages))
    )
    workflow = result.scalar_one_or_none()
    if not workflow:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Workflow not found")

    if workflow.creator_id != current_user.id and not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the workflow creator or an admin can delete it"
        )

    stage_ids = [s.id for s in workflow.stages]
    if stage_ids:
        await db.execute(
            delete(WorkflowTransition).where(or_(
                WorkflowTransition.from_stage_id.in_(stage_ids),
                WorkflowTransition.to_stage_id.in_(stage_ids),
            ))
        )
    await db.execute(
        update(Task)
        .where(or_(Task.workflow_id == workflow_id, Task.stage_id.in_(stage_ids)))
        .values(workflow_id=None, stage_id=None)
        .execution_options(synchronize_session=False)
    )

    await db.delete(workflow)
    await db.commit()

    logger.info(f"[Workflows] Workflow {workflow_id} deleted by {current_user.username}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ==================== Stages ====================

@router.get("/{workflow_id}/stages", response_model=List[StageResponse])
async def list_stages(
    workflow_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    await get_workflow_or_404(db, workflow_id)
    result = await db.execute(
        select(WorkflowStage).where(WorkflowStage.workflow_id == workflow_id).order_by(WorkflowStage.order)
    )
    return result.scalars().all()


@router.post("/{workflow_id}/stages", response_model=StageResponse, status_code=status.HTTP_201_CREATED)
async def create_stage(
    workflow_id: str,
    stage_data: StageCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Add a stage; without an explicit order it goes after the last one"""
    await get_workflow_or_404(db, workflow_id)

    order = stage_data.order
    if order is None:
        last = await db.scalar(
            select(func.max(WorkflowStage.order)).where(WorkflowStage.workflow_id == workflow_id)
        )
        order = 0 if last is None else last + 1

    stage = WorkflowStage(
        workflow_id=workflow_id,
        name=stage_data.name,
        description=stage_data.description,
        color=stage_data.color,
        order=order,
        extra_data=stage_data.metadata,
    )
    db.add(stage)
    await db.commit()
    return stage


@router.get("/{workflow_id}/stages/{stage_id}", response_model=StageResponse)
async def get_stage(
    workflow_id: str,
    stage_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await get_stage_in_workflow(db, workflow_id, stage_id)


@router.get("/{workflow_id}/stages/{stage_id}/tasks", response_model=List[TaskResponse])
async def get_stage_tasks(
    workflow_id: str,
    stage_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    await get_stage_in_workflow(db, workflow_id, stage_id)
    return [serialize_task(t) for t in await list_tasks(db, stage_id=stage_id)]


@router.get("/{workflow_id}/transitions", response_model=List[TransitionResponse])
async def list_transitions(
    workflow_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    await get_workflow_or_404(db, workflow_id)
    stage_ids = select(WorkflowStage.id).where(WorkflowStage.workflow_id == workflow_id)
    result = await db.execute(
        select(WorkflowTransition)
        .where(WorkflowTransition.from_stage_id.in_(stage_ids))
        .order_by(WorkflowTransition.created_at)
    )
    return result.scalars().all()


# ==================== /stages ====================

@stages_router.get("", response_model=List[StageResponse])
async def list_every_stage(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await all_stages(db)
