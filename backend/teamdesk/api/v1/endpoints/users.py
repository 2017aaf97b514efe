from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import List

from teamdesk.core.database import get_db
from teamdesk.core.security import get_password_hash
from teamdesk.core.logging_config import logger
from teamdesk.models.user import User
from teamdesk.schemas.user import UserResponse, UserUpdate
from teamdesk.modules.auth.dependencies import get_current_user, get_current_admin


router = APIRouter()


@router.get("", response_model=List[UserResponse])
async def list_users(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """All users, for assignment pickers and the people list"""
    result = await db.execute(select(User).order_by(User.username))
    return result.scalars().all()


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    user = await db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: str,
    update: UserUpdate,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    """Admin edit of any account, including role and password"""
    user = await db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    data = update.model_dump(exclude_unset=True)

    new_username = data.pop("username", None)
    if new_username and new_username != user.username:
        taken = await db.scalar(select(User).where(User.username == new_username, User.id != user.id))
        if taken:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Username already exists")
        user.username = new_username

    new_password = data.pop("new_password", None)
    if new_password:
        user.hashed_password = get_password_hash(new_password)

    preferences = data.pop("notification_preferences", None)
    if preferences is not None:
        user.notification_preferences = {**(user.notification_preferences or {}), **preferences}

    for field, value in data.items():
        if value is None and field in ("is_admin", "is_active"):
            continue
        setattr(user, field, value)

    await db.commit()
    await db.refresh(user)

    logger.info(f"[Users] {admin.username} updated user {user.id} (fields: {', '.join(update.model_fields_set)})")
    return user
