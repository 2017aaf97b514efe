"""
Per-user permission records for the back-office areas.

Stock, clients, proformas and expenses are each gated by a row of boolean
flags (one row per user). Admins bypass every gate. A user with no row is
denied everything in that area.

Usage:
    @router.get("/items")
    async def list_items(
        current_user: User = Depends(require_stock_permission("view")),
        db: AsyncSession = Depends(get_db)
    ):
        ...
"""
from dataclasses import dataclass
from typing import Dict, Optional, Type

from fastapi import HTTPException, Depends, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from teamdesk.core.database import get_db, Base
from teamdesk.core.logging_config import logger
from teamdesk.models import (
    User,
    UserStockPermission,
    UserClientPermission,
    UserProformaPermission,
    UserExpensePermission,
)
from teamdesk.modules.auth.dependencies import get_current_user


@dataclass(frozen=True)
class PermissionArea:
    """A feature area gated by a per-user permission row"""
    name: str
    model: Type[Base]
    flags: Dict[str, str]  # level -> column


CLIENT_PERMISSIONS = PermissionArea("clients", UserClientPermission, {
    "view": "can_view_clients",
    "manage": "can_manage_clients",
    "delete": "can_delete_clients",
    "access": "can_manage_access",
})

PROFORMA_PERMISSIONS = PermissionArea("proformas", UserProformaPermission, {
    "view": "can_view_proformas",
    "manage": "can_manage_proformas",
    "delete": "can_delete_proformas",
    "access": "can_manage_access",
})

EXPENSE_PERMISSIONS = PermissionArea("expenses", UserExpensePermission, {
    "view": "can_view_expenses",
    "manage": "can_manage_expenses",
    "delete": "can_delete_expenses",
    "access": "can_manage_access",
})

STOCK_FLAGS = {
    "view": ("can_view_stock", "No permission to view stock"),
    "manage": ("can_manage_stock", "No permission to manage stock items"),
    "adjust": ("can_adjust_quantities", "No permission to adjust quantities"),
}


async def get_permission_record(db: AsyncSession, model: Type[Base], user_id: str):
    return await db.scalar(select(model).where(model.user_id == user_id))


async def has_permission(db: AsyncSession, user: User, area: PermissionArea, level: str) -> bool:
    """Non-raising check, for endpoints that combine a flag with ownership rules"""
    if user.is_admin:
        return True
    record = await get_permission_record(db, area.model, user.id)
    return bool(record is not None and getattr(record, area.flags[level]))


def require_area_permission(area: PermissionArea, level: str):
    """
    Dependency factory for the clients / proformas / expenses gates.

    Returns the current user when allowed, raises 403 otherwise.
    """
    if level not in area.flags:
        raise ValueError(f"Unknown {area.name} permission level: {level}")

    async def permission_checker(
        current_user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db)
    ) -> User:
        if not await has_permission(db, current_user, area, level):
            logger.log_permission_denied(area.name, level, current_user.id)
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. You do not have permission to {level} {area.name}."
            )
        return current_user

    return permission_checker


def require_client_permission(level: str):
    return require_area_permission(CLIENT_PERMISSIONS, level)


def require_proforma_permission(level: str):
    return require_area_permission(PROFORMA_PERMISSIONS, level)


def require_expense_permission(level: str):
    return require_area_permission(EXPENSE_PERMISSIONS, level)


async def get_stock_permission(db: AsyncSession, user_id: str) -> Optional[UserStockPermission]:
    return await get_permission_record(db, UserStockPermission, user_id)


def require_stock_permission(level: str):
    """Dependency factory for the stock gate (view / manage / adjust)"""
    column, denied_message = STOCK_FLAGS[level]

    async def stock_permission_checker(
        current_user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db)
    ) -> User:
        if current_user.is_admin:
            return current_user

        record = await get_stock_permission(db, current_user.id)
        if record is None:
            logger.log_permission_denied("stock", level, current_user.id, reason="no_record")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="No stock access permissions"
            )

        if not getattr(record, column):
            logger.log_permission_denied("stock", level, current_user.id)
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=denied_message
            )

        return current_user

    return stock_permission_checker
