from fastapi import APIRouter, Depends, HTTPException, status, Response
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.orm import selectinload
from typing import List, Optional

from teamdesk.core.database import get_db
from teamdesk.core.logging_config import logger
from teamdesk.models import User, GroupChannel, ChannelMember, GroupMessage
from teamdesk.schemas.message import (
    ChannelCreate,
    ChannelUpdate,
    ChannelResponse,
    ChannelMemberAdd,
    ChannelMemberResponse,
    GroupMessageResponse,
    GroupMessageWithAttachments,
    MessageCreate,
)
from teamdesk.schemas.user import UserBrief
from teamdesk.modules.auth.dependencies import get_current_user
from teamdesk.services.connection_manager import connection_manager, EventType


router = APIRouter()


async def get_channel_or_404(db: AsyncSession, channel_id: str) -> GroupChannel:
    channel = await db.get(GroupChannel, channel_id)
    if not channel:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Channel not found")
    return channel


async def get_membership(db: AsyncSession, channel_id: str, user_id: str) -> Optional[ChannelMember]:
    return await db.scalar(
        select(ChannelMember).where(ChannelMember.channel_id == channel_id, ChannelMember.user_id == user_id)
    )


async def require_member(db: AsyncSession, channel_id: str, user: User) -> Optional[ChannelMember]:
    """403 unless the user belongs to the channel (admins pass without a membership row)"""
    await get_channel_or_404(db, channel_id)
    membership = await get_membership(db, channel_id, user.id)
    if membership is None and not user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not a member of this channel")
    return membership


async def require_channel_admin(db: AsyncSession, channel_id: str, user: User) -> None:
    membership = await require_member(db, channel_id, user)
    if not user.is_admin and not (membership and membership.is_admin):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Channel admin access required")


async def member_ids(db: AsyncSession, channel_id: str) -> List[str]:
    result = await db.execute(select(ChannelMember.user_id).where(ChannelMember.channel_id == channel_id))
    return list(result.scalars().all())


@router.get("", response_model=List[ChannelResponse])
async def list_channels(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Channels the caller belongs to"""
    result = await db.execute(
        select(GroupChannel)
        .join(ChannelMember, ChannelMember.channel_id == GroupChannel.id)
        .where(ChannelMember.user_id == current_user.id)
        .order_by(GroupChannel.name)
    )
    return result.scalars().all()


@router.post("", response_model=ChannelResponse, status_code=status.HTTP_201_CREATED)
async def create_channel(
    channel_data: ChannelCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    channel = GroupChannel(**channel_data.model_dump(), creator_id=current_user.id)
    db.add(channel)
    await db.flush()

    db.add(ChannelMember(channel_id=channel.id, user_id=current_user.id, is_admin=True))
    await db.commit()

    logger.info(f"[Channels] {current_user.username} created channel {channel.name}")
    return channel


@router.get("/{channel_id}", response_model=ChannelResponse)
async def get_channel(
    channel_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    await require_member(db, channel_id, current_user)
    return await get_channel_or_404(db, channel_id)


@router.put("/{channel_id}", response_model=ChannelResponse)
async def update_channel(
    channel_id: str,
    update: ChannelUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    await require_channel_admin(db, channel_id, current_user)
    channel = await get_channel_or_404(db, channel_id)

    for field, value in update.model_dump(exclude_unset=True).items():
        if value is None and field in ("name", "is_private"):
            continue
        setattr(channel, field, value)

    await db.commit()
    await db.refresh(channel)
    return channel


@router.get("/{channel_id}/members", response_model=List[ChannelMemberResponse])
async def list_members(
    channel_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    await require_member(db, channel_id, current_user)
    result = await db.execute(
        select(ChannelMember)
        .where(ChannelMember.channel_id == channel_id)
        .options(selectinload(ChannelMember.user))
        .order_by(ChannelMember.joined_at)
    )
    return result.scalars().all()


@router.post("/{channel_id}/members", response_model=ChannelMemberResponse, status_code=status.HTTP_201_CREATED)
async def add_member(
    channel_id: str,
    member_data: ChannelMemberAdd,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    await require_channel_admin(db, channel_id, current_user)

    user = await db.get(User, member_data.user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    if await get_membership(db, channel_id, user.id):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User is already a member of this channel")

    membership = ChannelMember(channel_id=channel_id, user_id=user.id, is_admin=member_data.is_admin)
    db.add(membership)
    await db.commit()

    response = ChannelMemberResponse(
        id=membership.id,
        channel_id=channel_id,
        user_id=user.id,
        is_admin=membership.is_admin,
        joined_at=membership.joined_at,
        user=UserBrief.model_validate(user),
    )
    channel = await get_channel_or_404(db, channel_id)
    await connection_manager.send_to_user(user.id, EventType.CHANNEL_MEMBER_ADDED, {
        "channel": ChannelResponse.model_validate(channel).model_dump(mode="json"),
        "added_by": current_user.id,
    })
    return response


@router.delete("/{channel_id}/members/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_member(
    channel_id: str,
    user_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Leave a channel, or remove someone from it as channel admin"""
    if user_id != current_user.id:
        await require_channel_admin(db, channel_id, current_user)
    else:
        await get_channel_or_404(db, channel_id)

    membership = await get_membership(db, channel_id, user_id)
    if not membership:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Membership not found")

    await db.delete(membership)
    await db.commit()

    await connection_manager.send_to_user(user_id, EventType.CHANNEL_MEMBER_REMOVED, {
        "channel_id": channel_id,
        "removed_by": current_user.id,
    })
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{channel_id}/messages", response_model=List[GroupMessageWithAttachments])
async def list_messages(
    channel_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    await require_member(db, channel_id, current_user)
    result = await db.execute(
        select(GroupMessage)
        .where(GroupMessage.channel_id == channel_id)
        .options(selectinload(GroupMessage.sender), selectinload(GroupMessage.attachments))
        .order_by(GroupMessage.created_at)
        .execution_options(populate_existing=True)
    )
    return result.scalars().all()


async def publish_group_message(db: AsyncSession, response: GroupMessageResponse) -> None:
    await connection_manager.broadcast(
        EventType.NEW_GROUP_MESSAGE,
        response.model_dump(mode="json"),
        target_user_ids=await member_ids(db, response.channel_id),
    )


async def require_poster(db: AsyncSession, channel_id: str, user: User) -> GroupChannel:
    """Posting needs a membership row, admins included"""
    channel = await get_channel_or_404(db, channel_id)
    if not await get_membership(db, channel_id, user.id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not a member of this channel")
    return channel


@router.post("/{channel_id}/messages", response_model=GroupMessageResponse, status_code=status.HTTP_201_CREATED)
async def post_message(
    channel_id: str,
    message_data: MessageCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    await require_poster(db, channel_id, current_user)

    message = GroupMessage(channel_id=channel_id, sender_id=current_user.id, content=message_data.content)
    db.add(message)
    await db.commit()

    response = GroupMessageResponse(
        id=message.id,
        channel_id=channel_id,
        sender_id=current_user.id,
        content=message.content,
        created_at=message.created_at,
        sender=UserBrief.model_validate(current_user),
    )
    await publish_group_message(db, response)
    return response
