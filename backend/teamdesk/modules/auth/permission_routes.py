"""
Routes for reading and granting per-user permission records.

Every gated area (stock, clients, proformas, expenses) exposes the same three
routes under its own /permissions prefix:

    GET  /permissions            list every record
    GET  /permissions/{user_id}  one record, or all-false defaults
    POST /permissions/{user_id}  create or replace a record

Who may manage an area's access is either the holders of its
can_manage_access flag (clients, proformas, expenses) or admins only (stock).
"""
from typing import List, Optional, Type

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from teamdesk.core.database import get_db, Base
from teamdesk.core.logging_config import logger
from teamdesk.models import User
from teamdesk.modules.auth.dependencies import get_current_user, get_current_admin
from teamdesk.modules.auth.permissions import PermissionArea, has_permission, require_area_permission


def build_permission_router(
    area_name: str,
    model: Type[Base],
    update_schema: Type[BaseModel],
    response_schema: Type[BaseModel],
    area: Optional[PermissionArea] = None,
) -> APIRouter:
    router = APIRouter()
    manager = require_area_permission(area, "access") if area else get_current_admin

    async def can_read(db: AsyncSession, user: User, user_id: str) -> bool:
        if user.is_admin or user.id == user_id:
            return True
        return area is not None and await has_permission(db, user, area, "access")

    async def load_record(db: AsyncSession, user_id: str):
        result = await db.execute(
            select(model)
            .where(model.user_id == user_id)
            .options(selectinload(model.user))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    @router.get("", response_model=List[response_schema])
    async def list_permissions(
        current_user: User = Depends(manager),
        db: AsyncSession = Depends(get_db)
    ):
        result = await db.execute(
            select(model).options(selectinload(model.user)).order_by(model.created_at)
        )
        return result.scalars().all()

    @router.get("/{user_id}", response_model=response_schema)
    async def get_permissions(
        user_id: str,
        current_user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db)
    ):
        if not await can_read(db, current_user, user_id):
            logger.log_permission_denied(area_name, "access", current_user.id, target_user_id=user_id)
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You can only view your own permissions"
            )

        record = await load_record(db, user_id)
        if record is None:
            return response_schema(user_id=user_id)
        return record

    @router.post("/{user_id}", response_model=response_schema)
    async def set_permissions(
        user_id: str,
        permissions: update_schema,
        current_user: User = Depends(manager),
        db: AsyncSession = Depends(get_db)
    ):
        if not await db.get(User, user_id):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

        record = await db.scalar(select(model).where(model.user_id == user_id))
        if record is None:
            record = model(user_id=user_id)
            db.add(record)

        for field, value in permissions.model_dump().items():
            setattr(record, field, value)
        record.granted_by_id = current_user.id

        await db.commit()
        logger.info(
            f"[Permissions] {current_user.username} set {area_name} permissions for {user_id}: "
            f"{permissions.model_dump()}"
        )
        return await load_record(db, user_id)

    return router
