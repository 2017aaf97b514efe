"""Service catalog endpoints"""
from fastapi import APIRouter, Depends, HTTPException, status, Response
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.orm import selectinload
from typing import List, Optional
from datetime import datetime

from teamdesk.core.database import get_db
from teamdesk.core.logging_config import logger
from teamdesk.models import User, Service
from teamdesk.schemas.client import ServiceCreate, ServiceUpdate, ServiceResponse
from teamdesk.modules.auth.dependencies import get_current_user


router = APIRouter()


async def get_service_or_404(db: AsyncSession, service_id: str) -> Service:
    service = await db.get(Service, service_id)
    if not service:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Service not found")
    return service


@router.get("", response_model=List[ServiceResponse])
async def list_services(
    is_active: Optional[bool] = None,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    query = select(Service).order_by(Service.name)
    if is_active is not None:
        query = query.where(Service.is_active == is_active)
    result = await db.execute(query)
    return result.scalars().all()


@router.post("", response_model=ServiceResponse, status_code=status.HTTP_201_CREATED)
async def create_service(
    service_data: ServiceCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    service = Service(**service_data.model_dump())
    db.add(service)
    await db.commit()

    logger.info(f"[Services] {current_user.username} added {service.name} to the catalog")
    return service


@router.get("/{service_id}", response_model=ServiceResponse)
async def get_service(
    service_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await get_service_or_404(db, service_id)


@router.put("/{service_id}", response_model=ServiceResponse)
async def update_service(
    service_id: str,
    update: ServiceUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    service = await get_service_or_404(db, service_id)

    for field, value in update.model_dump(exclude_unset=True).items():
        if value is None and field in ("name", "type", "is_active"):
            continue
        setattr(service, field, value)

    service.updated_at = datetime.utcnow()
    await db.commit()
    await db.refresh(service)
    return service


@router.delete("/{service_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_service(
    service_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Removing a catalog entry also removes every client assignment of it"""
    result = await db.execute(
        select(Service).where(Service.id == service_id).options(selectinload(Service.client_services))
    )
    service = result.scalar_one_or_none()
    if not service:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Service not found")

    await db.delete(service)
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
