"""
Estimation endpoints

Estimations are open to every signed-in user. Line items reference stock
items; adding, changing or removing a line recomputes the estimation total
and reprices its draft proformas.
"""
from fastapi import APIRouter, Depends, status, Response
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from teamdesk.core.database import get_db
from teamdesk.core.logging_config import logger
from teamdesk.models import User, Estimation
from teamdesk.schemas.estimation import (
    EstimationCreate,
    EstimationUpdate,
    EstimationResponse,
    EstimationItemCreate,
    EstimationItemUpdate,
    EstimationItemResponse,
)
from teamdesk.modules.auth.dependencies import get_current_user
from teamdesk.services import estimation_service


router = APIRouter()


@router.get("", response_model=List[EstimationResponse])
async def list_estimations(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await estimation_service.list_estimations(db)


@router.post("", response_model=EstimationResponse, status_code=status.HTTP_201_CREATED)
async def create_estimation(
    estimation_data: EstimationCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    estimation = Estimation(**estimation_data.model_dump(), total_cost=0, created_by_id=current_user.id)
    db.add(estimation)
    await db.commit()

    logger.info(f"[Estimations] {estimation.name} created by {current_user.username}")
    return await estimation_service.get_estimation(db, estimation.id)


@router.get("/{estimation_id}", response_model=EstimationResponse)
async def get_estimation(
    estimation_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await estimation_service.get_estimation(db, estimation_id)


@router.put("/{estimation_id}", response_model=EstimationResponse)
async def update_estimation(
    estimation_id: str,
    update: EstimationUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    estimation = await estimation_service.get_estimation(db, estimation_id)
    for field, value in update.model_dump(exclude_unset=True).items():
        if value is None and field in ("name", "date"):
            continue
        setattr(estimation, field, value)

    await db.commit()
    return await estimation_service.get_estimation(db, estimation_id)


@router.delete("/{estimation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_estimation(
    estimation_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """409 while a proforma still prices this estimation"""
    estimation = await estimation_service.get_estimation(db, estimation_id)
    await estimation_service.delete_estimation(db, estimation)
    await db.commit()

    logger.info(f"[Estimations] {estimation.name} deleted by {current_user.username}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ==================== Line items ====================

@router.post("/{estimation_id}/items", response_model=EstimationItemResponse, status_code=status.HTTP_201_CREATED)
async def add_item(
    estimation_id: str,
    item_data: EstimationItemCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    estimation = await estimation_service.get_estimation(db, estimation_id)
    item = await estimation_service.add_item(db, estimation, item_data.stock_item_id, item_data.quantity)
    await db.commit()
    return item


@router.put("/{estimation_id}/items/{item_id}", response_model=EstimationItemResponse)
async def update_item(
    estimation_id: str,
    item_id: str,
    item_data: EstimationItemUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    estimation = await estimation_service.get_estimation(db, estimation_id)
    item = await estimation_service.update_item(db, estimation, item_id, item_data.quantity)
    await db.commit()
    return item


@router.delete("/{estimation_id}/items/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_item(
    estimation_id: str,
    item_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    estimation = await estimation_service.get_estimation(db, estimation_id)
    await estimation_service.remove_item(db, estimation, item_id)
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
