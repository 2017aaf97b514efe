from fastapi import APIRouter, Depends, HTTPException, status, Response
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.orm import selectinload
from datetime import datetime

from teamdesk.core.database import get_db
from teamdesk.core.logging_config import logger
from teamdesk.models import User, Task, TaskParticipant, Comment
from teamdesk.schemas.task import CommentCreate, CommentUpdate, CommentResponse
from teamdesk.modules.auth.dependencies import get_current_user
from teamdesk.services.connection_manager import connection_manager, EventType
from teamdesk.services.notification_service import NotificationService


router = APIRouter()


async def get_comment_with_author(db: AsyncSession, comment_id: str) -> Comment:
    result = await db.execute(
        select(Comment)
        .where(Comment.id == comment_id)
        .options(selectinload(Comment.user))
        .execution_options(populate_existing=True)
    )
    comment = result.scalar_one_or_none()
    if not comment:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Comment not found")
    return comment


def ensure_can_edit(comment: Comment, user: User) -> None:
    if comment.user_id != user.id and not user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only modify your own comments"
        )


def comment_payload(comment: Comment) -> dict:
    return CommentResponse.model_validate(comment).model_dump(mode="json")


async def notify_followers(db: AsyncSession, task: Task, comment: Comment, commenter: User) -> None:
    """Email participants, the responsible user and the creator, once each, never the commenter"""
    recipients = {p.user_id: p.user for p in task.participants if p.user is not None}
    if task.responsible is not None:
        recipients.setdefault(task.responsible.id, task.responsible)
    if task.creator is not None:
        recipients.setdefault(task.creator.id, task.creator)
    recipients.pop(commenter.id, None)

    if not recipients:
        return

    try:
        service = NotificationService(db)
        for recipient in recipients.values():
            await service.notify_task_comment(task, comment, commenter, recipient)
        await db.commit()
    except Exception as e:
        await db.rollback()
        logger.log_error_with_context(e, context="comment notification", task_id=task.id, comment_id=comment.id)


@router.post("", response_model=CommentResponse, status_code=status.HTTP_201_CREATED)
async def create_comment(
    comment_data: CommentCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    result = await db.execute(
        select(Task)
        .where(Task.id == comment_data.task_id)
        .options(
            selectinload(Task.participants).selectinload(TaskParticipant.user),
            selectinload(Task.responsible),
            selectinload(Task.creator),
        )
    )
    task = result.scalar_one_or_none()
    if not task:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")

    comment = Comment(task_id=task.id, user_id=current_user.id, content=comment_data.content)
    db.add(comment)
    await db.commit()

    comment = await get_comment_with_author(db, comment.id)
    payload = comment_payload(comment)

    await connection_manager.broadcast(EventType.COMMENT_CREATED, {
        "comment": payload,
        "task_id": task.id,
    })
    await notify_followers(db, task, comment, current_user)

    return payload


@router.put("/{comment_id}", response_model=CommentResponse)
async def update_comment(
    comment_id: str,
    update: CommentUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    comment = await get_comment_with_author(db, comment_id)
    ensure_can_edit(comment, current_user)

    comment.content = update.content
    comment.updated_at = datetime.utcnow()
    await db.commit()

    payload = comment_payload(comment)
    await connection_manager.broadcast(EventType.COMMENT_UPDATED, {
        "comment": payload,
        "task_id": comment.task_id,
    })
    return payload


@router.delete("/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_comment(
    comment_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    comment = await get_comment_with_author(db, comment_id)
    ensure_can_edit(comment, current_user)

    task_id = comment.task_id
    await db.delete(comment)
    await db.commit()

    await connection_manager.broadcast(EventType.COMMENT_DELETED, {
        "comment_id": comment_id,
        "task_id": task_id,
    })
    return Response(status_code=status.HTTP_204_NO_CONTENT)
