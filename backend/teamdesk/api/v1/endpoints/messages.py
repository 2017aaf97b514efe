"""
Direct message endpoints

Each new message is pushed over WebSocket to both sides of the conversation
as a private_message event, and emailed to the recipient when their
private_message preference is on.
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, func, or_, and_
from sqlalchemy.orm import selectinload
from typing import List, Dict
from datetime import datetime

from teamdesk.core.database import get_db
from teamdesk.core.logging_config import logger
from teamdesk.models import User, PrivateMessage
from teamdesk.schemas.message import (
    MessageCreate,
    PrivateMessageResponse,
    PrivateMessageWithAttachments,
    ConversationResponse,
    UnreadCountResponse,
    MarkReadResponse,
)
from teamdesk.schemas.user import UserBrief
from teamdesk.modules.auth.dependencies import get_current_user
from teamdesk.services.connection_manager import connection_manager, EventType
from teamdesk.services.notification_service import NotificationService


router = APIRouter()


async def get_user_or_404(db: AsyncSession, user_id: str) -> User:
    user = await db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


@router.get("/conversations", response_model=List[ConversationResponse])
async def get_conversations(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """One entry per counterpart, most recent conversation first"""
    result = await db.execute(
        select(PrivateMessage)
        .where(or_(PrivateMessage.sender_id == current_user.id, PrivateMessage.recipient_id == current_user.id))
        .options(selectinload(PrivateMessage.sender), selectinload(PrivateMessage.recipient))
        .order_by(PrivateMessage.created_at.desc())
    )

    conversations: Dict[str, dict] = {}
    for message in result.scalars().all():
        incoming = message.recipient_id == current_user.id
        counterpart = message.sender if incoming else message.recipient
        entry = conversations.get(counterpart.id)
        if entry is None:
            entry = conversations[counterpart.id] = {
                "user": UserBrief.model_validate(counterpart),
                "last_message": PrivateMessageResponse.model_validate(message),
                "unread_count": 0,
            }
        if incoming and message.read_at is None:
            entry["unread_count"] += 1

    return list(conversations.values())


@router.get("/unread", response_model=UnreadCountResponse)
async def get_unread_count(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    count = await db.scalar(
        select(func.count(PrivateMessage.id)).where(
            PrivateMessage.recipient_id == current_user.id,
            PrivateMessage.read_at.is_(None),
        )
    )
    return {"count": count or 0}


@router.get("/{user_id}", response_model=List[PrivateMessageWithAttachments])
async def get_thread(
    user_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Conversation with one user, oldest first"""
    await get_user_or_404(db, user_id)

    result = await db.execute(
        select(PrivateMessage)
        .where(or_(
            and_(PrivateMessage.sender_id == current_user.id, PrivateMessage.recipient_id == user_id),
            and_(PrivateMessage.sender_id == user_id, PrivateMessage.recipient_id == current_user.id),
        ))
        .options(selectinload(PrivateMessage.sender), selectinload(PrivateMessage.attachments))
        .order_by(PrivateMessage.created_at)
        .execution_options(populate_existing=True)
    )
    return result.scalars().all()


async def publish_private_message(
    db: AsyncSession,
    message: PrivateMessage,
    sender: User,
    recipient: User,
    response: PrivateMessageResponse,
) -> None:
    """Push to both sides of the conversation, then email the recipient"""
    await connection_manager.broadcast(
        EventType.PRIVATE_MESSAGE,
        {
            **response.model_dump(mode="json"),
            "sender": {"id": sender.id, "username": sender.username},
        },
        target_user_ids=[sender.id, recipient.id],
    )

    if recipient.id != sender.id:
        try:
            await NotificationService(db).notify_private_message(message, sender, recipient)
            await db.commit()
        except Exception as e:
            await db.rollback()
            logger.log_error_with_context(e, context="private message notification", message_id=response.id)


@router.post("/{user_id}", response_model=PrivateMessageResponse, status_code=status.HTTP_201_CREATED)
async def send_message(
    user_id: str,
    message_data: MessageCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    recipient = await get_user_or_404(db, user_id)

    message = PrivateMessage(
        sender_id=current_user.id,
        recipient_id=recipient.id,
        content=message_data.content,
    )
    db.add(message)
    await db.commit()

    response = PrivateMessageResponse(
        id=message.id,
        content=message.content,
        sender_id=message.sender_id,
        recipient_id=message.recipient_id,
        created_at=message.created_at,
        read_at=message.read_at,
        sender=UserBrief.model_validate(current_user),
    )
    await publish_private_message(db, message, current_user, recipient, response)
    return response


@router.post("/{user_id}/read", response_model=MarkReadResponse)
async def mark_thread_read(
    user_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Mark every unread message from user_id to the caller as read"""
    result = await db.execute(
        update(PrivateMessage)
        .where(
            PrivateMessage.sender_id == user_id,
            PrivateMessage.recipient_id == current_user.id,
            PrivateMessage.read_at.is_(None),
        )
        .values(read_at=datetime.utcnow())
    )
    await db.commit()
    return {"updated": result.rowcount or 0}
