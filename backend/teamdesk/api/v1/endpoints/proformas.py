"""
Proforma endpoints

A proforma prices an estimation: total_cost is read from the estimation and
total_amount adds profit_percentage on top. The issuing company (the given
one, else the default) is copied onto the proforma when it is written.
"""
from fastapi import APIRouter, Depends, HTTPException, Query, status, Response
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import List, Optional
from datetime import datetime

from teamdesk.core.database import get_db
from teamdesk.core.logging_config import logger
from teamdesk.models import User, Proforma, ProformaStatus, UserProformaPermission
from teamdesk.schemas.finance import (
    ProformaCreate,
    ProformaUpdate,
    ProformaResponse,
    ProformaPermissionUpdate,
    ProformaPermissionResponse,
)
from teamdesk.modules.auth.permissions import PROFORMA_PERMISSIONS, require_proforma_permission
from teamdesk.modules.auth.permission_routes import build_permission_router
from teamdesk.services import estimation_service
from teamdesk.services.estimation_service import serialize_proforma


router = APIRouter()

router.include_router(
    build_permission_router(
        "proformas", UserProformaPermission, ProformaPermissionUpdate, ProformaPermissionResponse,
        area=PROFORMA_PERMISSIONS,
    ),
    prefix="/permissions",
)


async def get_proforma_or_404(db: AsyncSession, proforma_id: str) -> Proforma:
    proforma = await estimation_service.get_proforma(db, proforma_id)
    if not proforma:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Proforma not found")
    return proforma


async def ensure_number_free(db: AsyncSession, number: str, exclude_id: Optional[str] = None) -> None:
    query = select(Proforma.id).where(Proforma.proforma_number == number)
    if exclude_id:
        query = query.where(Proforma.id != exclude_id)
    if await db.scalar(query):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Proforma number already exists")


@router.get("", response_model=List[ProformaResponse])
async def list_proformas(
    status_filter: Optional[ProformaStatus] = Query(None, alias="status"),
    current_user: User = Depends(require_proforma_permission("view")),
    db: AsyncSession = Depends(get_db)
):
    proformas = await estimation_service.list_proformas(db, status_filter)
    return [serialize_proforma(proforma) for proforma in proformas]


@router.post("", response_model=ProformaResponse, status_code=status.HTTP_201_CREATED)
async def create_proforma(
    proforma_data: ProformaCreate,
    current_user: User = Depends(require_proforma_permission("manage")),
    db: AsyncSession = Depends(get_db)
):
    await ensure_number_free(db, proforma_data.proforma_number)
    estimation = await estimation_service.resolve_estimation(db, proforma_data.estimation_id)
    company = await estimation_service.resolve_company(db, proforma_data.company_id)

    proforma = Proforma(
        **proforma_data.model_dump(exclude={"estimation_id", "company_id"}),
        created_by_id=current_user.id,
    )
    estimation_service.price_proforma(proforma, estimation)
    estimation_service.apply_company(proforma, company)
    db.add(proforma)
    await db.commit()

    logger.info(f"[Proformas] {proforma.proforma_number} created by {current_user.username} "
                f"(cost={proforma.total_cost}, total={proforma.total_amount})")
    return serialize_proforma(await get_proforma_or_404(db, proforma.id))


@router.get("/{proforma_id}", response_model=ProformaResponse)
async def get_proforma(
    proforma_id: str,
    current_user: User = Depends(require_proforma_permission("view")),
    db: AsyncSession = Depends(get_db)
):
    return serialize_proforma(await get_proforma_or_404(db, proforma_id))


@router.put("/{proforma_id}", response_model=ProformaResponse)
async def update_proforma(
    proforma_id: str,
    update: ProformaUpdate,
    current_user: User = Depends(require_proforma_permission("manage")),
    db: AsyncSession = Depends(get_db)
):
    """Every write re-reads the estimation total; company is re-copied only when company_id is sent"""
    proforma = await get_proforma_or_404(db, proforma_id)
    data = update.model_dump(exclude_unset=True)

    if data.get("proforma_number"):
        await ensure_number_free(db, data["proforma_number"], exclude_id=proforma.id)

    estimation_id = data.pop("estimation_id", None) or proforma.estimation_id
    if estimation_id is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Proforma has no estimation")
    estimation = await estimation_service.resolve_estimation(db, estimation_id)

    if "company_id" in data:
        company = await estimation_service.resolve_company(db, data.pop("company_id"))
        estimation_service.apply_company(proforma, company)

    for field, value in data.items():
        if value is None and field in ("proforma_number", "profit_percentage", "status"):
            continue
        setattr(proforma, field, value)

    estimation_service.price_proforma(proforma, estimation)
    proforma.updated_at = datetime.utcnow()
    await db.commit()
    return serialize_proforma(await get_proforma_or_404(db, proforma.id))


@router.delete("/{proforma_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_proforma(
    proforma_id: str,
    current_user: User = Depends(require_proforma_permission("delete")),
    db: AsyncSession = Depends(get_db)
):
    proforma = await get_proforma_or_404(db, proforma_id)
    await db.delete(proforma)
    await db.commit()

    logger.info(f"[Proformas] {proforma.proforma_number} deleted by {current_user.username}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
