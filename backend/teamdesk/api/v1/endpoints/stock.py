"""
Stock endpoints

Items are gated by the per-user stock permission record. Quantity changes go
through /adjust, which logs a StockMovement for every change.
"""
from fastapi import APIRouter, Depends, HTTPException, status, Response
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.orm import selectinload
from typing import List, Optional
from datetime import datetime

from teamdesk.core.database import get_db
from teamdesk.core.logging_config import logger
from teamdesk.models import User, StockItem, StockMovement, UserStockPermission
from teamdesk.schemas.stock import (
    StockItemCreate,
    StockItemUpdate,
    StockItemResponse,
    StockAdjustRequest,
    StockMovementResponse,
    StockPermissionUpdate,
    StockPermissionResponse,
)
from teamdesk.modules.auth.dependencies import get_current_user
from teamdesk.modules.auth.permissions import require_stock_permission, get_stock_permission
from teamdesk.modules.auth.permission_routes import build_permission_router


router = APIRouter()

router.include_router(
    build_permission_router("stock", UserStockPermission, StockPermissionUpdate, StockPermissionResponse),
    prefix="/permissions",
)


async def get_item(db: AsyncSession, item_id: str) -> Optional[StockItem]:
    result = await db.execute(
        select(StockItem)
        .where(StockItem.id == item_id)
        .options(selectinload(StockItem.assigned_user))
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_item_or_404(db: AsyncSession, item_id: str) -> StockItem:
    item = await get_item(db, item_id)
    if not item:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Stock item not found")
    return item


async def validate_assignee(db: AsyncSession, user_id: Optional[str]) -> None:
    if user_id and not await db.get(User, user_id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Assigned user not found")


async def can_adjust(db: AsyncSession, user: User, item: StockItem) -> bool:
    """Admins, holders of can_adjust_quantities, and the item's assigned user"""
    if user.is_admin or item.assigned_user_id == user.id:
        return True
    record = await get_stock_permission(db, user.id)
    return bool(record and record.can_adjust_quantities)


@router.get("/items", response_model=List[StockItemResponse])
async def list_items(
    current_user: User = Depends(require_stock_permission("view")),
    db: AsyncSession = Depends(get_db)
):
    result = await db.execute(
        select(StockItem).options(selectinload(StockItem.assigned_user)).order_by(StockItem.name)
    )
    return result.scalars().all()


@router.post("/items", response_model=StockItemResponse, status_code=status.HTTP_201_CREATED)
async def create_item(
    item_data: StockItemCreate,
    current_user: User = Depends(require_stock_permission("manage")),
    db: AsyncSession = Depends(get_db)
):
    await validate_assignee(db, item_data.assigned_user_id)

    item = StockItem(**item_data.model_dump())
    db.add(item)
    await db.flush()

    if item.quantity:
        db.add(StockMovement(
            stock_item_id=item.id,
            user_id=current_user.id,
            previous_quantity=0,
            new_quantity=item.quantity,
            change=item.quantity,
            reason="Initial stock",
        ))
    await db.commit()

    logger.info(f"[Stock] {current_user.username} created item {item.name} (qty={item.quantity})")
    return await get_item(db, item.id)


@router.get("/items/{item_id}", response_model=StockItemResponse)
async def get_item_detail(
    item_id: str,
    current_user: User = Depends(require_stock_permission("view")),
    db: AsyncSession = Depends(get_db)
):
    return await get_item_or_404(db, item_id)


@router.put("/items/{item_id}", response_model=StockItemResponse)
async def update_item(
    item_id: str,
    update: StockItemUpdate,
    current_user: User = Depends(require_stock_permission("manage")),
    db: AsyncSession = Depends(get_db)
):
    item = await get_item_or_404(db, item_id)
    data = update.model_dump(exclude_unset=True)

    if "assigned_user_id" in data:
        await validate_assignee(db, data["assigned_user_id"])

    new_quantity = data.pop("quantity", None)
    for field, value in data.items():
        if value is None and field in ("name", "cost"):
            continue
        setattr(item, field, value)

    if new_quantity is not None and new_quantity != item.quantity:
        db.add(StockMovement(
            stock_item_id=item.id,
            user_id=current_user.id,
            previous_quantity=item.quantity,
            new_quantity=new_quantity,
            change=new_quantity - item.quantity,
            reason="Item updated",
        ))
        item.quantity = new_quantity

    item.updated_at = datetime.utcnow()
    await db.commit()
    return await get_item(db, item.id)


@router.delete("/items/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_item(
    item_id: str,
    current_user: User = Depends(require_stock_permission("manage")),
    db: AsyncSession = Depends(get_db)
):
    result = await db.execute(
        select(StockItem).where(StockItem.id == item_id).options(selectinload(StockItem.movements))
    )
    item = result.scalar_one_or_none()
    if not item:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Stock item not found")

    await db.delete(item)
    await db.commit()

    logger.info(f"[Stock] Item {item_id} deleted by {current_user.username}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/items/{item_id}/adjust", response_model=StockItemResponse)
async def adjust_quantity(
    item_id: str,
    adjustment: StockAdjustRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Set a new absolute quantity and log the movement"""
    item = await get_item_or_404(db, item_id)

    if not await can_adjust(db, current_user, item):
        logger.log_permission_denied("stock", "adjust", current_user.id, item_id=item_id)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="No permission to adjust this item's quantity"
        )

    previous = item.quantity
    db.add(StockMovement(
        stock_item_id=item.id,
        user_id=current_user.id,
        previous_quantity=previous,
        new_quantity=adjustment.quantity,
        change=adjustment.quantity - previous,
        reason=adjustment.reason,
    ))
    item.quantity = adjustment.quantity
    item.updated_at = datetime.utcnow()
    await db.commit()

    logger.info(f"[Stock] {item.name}: {previous} -> {adjustment.quantity} by {current_user.username}")
    return await get_item(db, item.id)


@router.get("/items/{item_id}/movements", response_model=List[StockMovementResponse])
async def list_movements(
    item_id: str,
    current_user: User = Depends(require_stock_permission("view")),
    db: AsyncSession = Depends(get_db)
):
    """Movement log for one item, newest first"""
    await get_item_or_404(db, item_id)
    result = await db.execute(
        select(StockMovement)
        .where(StockMovement.stock_item_id == item_id)
        .options(selectinload(StockMovement.user))
        .order_by(StockMovement.created_at.desc())
    )
    return result.scalars().all()
