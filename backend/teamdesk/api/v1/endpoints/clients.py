from fastapi import APIRouter, Depends, HTTPException, status, Response
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.orm import selectinload
from typing import List, Optional
from datetime import datetime

from teamdesk.core.database import get_db
from teamdesk.core.logging_config import logger
from teamdesk.models import User, Client, UserClientPermission
from teamdesk.schemas.client import (
    ClientCreate,
    ClientUpdate,
    ClientResponse,
    ClientPermissionUpdate,
    ClientPermissionResponse,
)
from teamdesk.modules.auth.permissions import CLIENT_PERMISSIONS, require_client_permission
from teamdesk.modules.auth.permission_routes import build_permission_router


router = APIRouter()

router.include_router(
    build_permission_router(
        "clients", UserClientPermission, ClientPermissionUpdate, ClientPermissionResponse,
        area=CLIENT_PERMISSIONS,
    ),
    prefix="/permissions",
)


async def get_client_or_404(db: AsyncSession, client_id: str) -> Client:
    client = await db.get(Client, client_id)
    if not client:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Client not found")
    return client


@router.get("", response_model=List[ClientResponse])
async def list_clients(
    is_active: Optional[bool] = None,
    current_user: User = Depends(require_client_permission("view")),
    db: AsyncSession = Depends(get_db)
):
    query = select(Client).order_by(Client.name)
    if is_active is not None:
        query = query.where(Client.is_active == is_active)
    result = await db.execute(query)
    return result.scalars().all()


@router.post("", response_model=ClientResponse, status_code=status.HTTP_201_CREATED)
async def create_client(
    client_data: ClientCreate,
    current_user: User = Depends(require_client_permission("manage")),
    db: AsyncSession = Depends(get_db)
):
    client = Client(**client_data.model_dump(), created_by_id=current_user.id)
    db.add(client)
    await db.commit()

    logger.info(f"[Clients] {current_user.username} created client {client.name}")
    return client


@router.get("/{client_id}", response_model=ClientResponse)
async def get_client(
    client_id: str,
    current_user: User = Depends(require_client_permission("view")),
    db: AsyncSession = Depends(get_db)
):
    return await get_client_or_404(db, client_id)


@router.put("/{client_id}", response_model=ClientResponse)
async def update_client(
    client_id: str,
    update: ClientUpdate,
    current_user: User = Depends(require_client_permission("manage")),
    db: AsyncSession = Depends(get_db)
):
    client = await get_client_or_404(db, client_id)

    for field, value in update.model_dump(exclude_unset=True).items():
        if value is None and field in ("name", "type", "is_active"):
            continue
        setattr(client, field, value)

    client.updated_at = datetime.utcnow()
    await db.commit()
    await db.refresh(client)
    return client


@router.delete("/{client_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_client(
    client_id: str,
    current_user: User = Depends(require_client_permission("delete")),
    db: AsyncSession = Depends(get_db)
):
    """Delete a client and the services assigned to it"""
    result = await db.execute(
        select(Client).where(Client.id == client_id).options(selectinload(Client.services))
    )
    client = result.scalar_one_or_none()
    if not client:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Client not found")

    await db.delete(client)
    await db.commit()

    logger.info(f"[Clients] Client {client_id} deleted by {current_user.username}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
