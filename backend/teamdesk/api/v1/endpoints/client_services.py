"""
Services assigned to clients

Access follows the client gate: reading needs view, changing needs manage,
removing needs delete.
"""
from fastapi import APIRouter, Depends, HTTPException, status, Response
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.orm import selectinload
from typing import List
from datetime import datetime

from teamdesk.core.database import get_db
from teamdesk.core.logging_config import logger
from teamdesk.models import User, Client, Service, ClientService
from teamdesk.schemas.client import ClientServiceCreate, ClientServiceUpdate, ClientServiceResponse
from teamdesk.modules.auth.permissions import require_client_permission


router = APIRouter()


async def get_client_service(db: AsyncSession, client_service_id: str) -> ClientService:
    result = await db.execute(
        select(ClientService)
        .where(ClientService.id == client_service_id)
        .options(selectinload(ClientService.service))
        .execution_options(populate_existing=True)
    )
    client_service = result.scalar_one_or_none()
    if not client_service:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Client service not found")
    return client_service


@router.get("", response_model=List[ClientServiceResponse])
async def list_client_services(
    current_user: User = Depends(require_client_permission("view")),
    db: AsyncSession = Depends(get_db)
):
    result = await db.execute(
        select(ClientService)
        .options(selectinload(ClientService.service))
        .order_by(ClientService.start_date.desc())
    )
    return result.scalars().all()


@router.get("/client/{client_id}", response_model=List[ClientServiceResponse])
async def list_services_for_client(
    client_id: str,
    current_user: User = Depends(require_client_permission("view")),
    db: AsyncSession = Depends(get_db)
):
    if not await db.get(Client, client_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Client not found")

    result = await db.execute(
        select(ClientService)
        .where(ClientService.client_id == client_id)
        .options(selectinload(ClientService.service))
        .order_by(ClientService.start_date.desc())
    )
    return result.scalars().all()


@router.post("", response_model=ClientServiceResponse, status_code=status.HTTP_201_CREATED)
async def create_client_service(
    data: ClientServiceCreate,
    current_user: User = Depends(require_client_permission("manage")),
    db: AsyncSession = Depends(get_db)
):
    if not await db.get(Client, data.client_id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Client not found")
    if not await db.get(Service, data.service_id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Service not found")
    if data.end_date and data.end_date < data.start_date:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="end_date is before start_date")

    values = data.model_dump()
    values["characteristics"] = [c.value for c in data.characteristics]
    client_service = ClientService(**values)
    if data.contract_file:
        client_service.contract_file_upload_date = datetime.utcnow()

    db.add(client_service)
    await db.commit()

    logger.info(
        f"[Clients] Service {data.service_id} assigned to client {data.client_id} by {current_user.username}"
    )
    return await get_client_service(db, client_service.id)


@router.get("/{client_service_id}", response_model=ClientServiceResponse)
async def get_client_service_detail(
    client_service_id: str,
    current_user: User = Depends(require_client_permission("view")),
    db: AsyncSession = Depends(get_db)
):
    return await get_client_service(db, client_service_id)


@router.put("/{client_service_id}", response_model=ClientServiceResponse)
async def update_client_service(
    client_service_id: str,
    update: ClientServiceUpdate,
    current_user: User = Depends(require_client_permission("manage")),
    db: AsyncSession = Depends(get_db)
):
    client_service = await get_client_service(db, client_service_id)
    data = update.model_dump(exclude_unset=True)

    if data.get("characteristics") is not None:
        data["characteristics"] = [c.value for c in update.characteristics]
    if data.get("contract_file") and data["contract_file"] != client_service.contract_file:
        client_service.contract_file_upload_date = datetime.utcnow()

    for field, value in data.items():
        if value is None and field in ("characteristics", "price", "frequency", "start_date", "is_active"):
            continue
        setattr(client_service, field, value)

    if client_service.end_date and client_service.end_date < client_service.start_date:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="end_date is before start_date")

    client_service.updated_at = datetime.utcnow()
    await db.commit()
    return await get_client_service(db, client_service.id)


@router.delete("/{client_service_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_client_service(
    client_service_id: str,
    current_user: User = Depends(require_client_permission("delete")),
    db: AsyncSession = Depends(get_db)
):
    client_service = await get_client_service(db, client_service_id)
    await db.delete(client_service)
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
