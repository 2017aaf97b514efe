"""
Estimation Service - line items, totals and proforma pricing

An estimation's total_cost is the sum of its lines, and a line's unit_cost
is the stock item's cost at the moment the line was added. Proformas take
total_cost from their estimation and add profit_percentage on top:

    total_amount = total_cost * (1 + profit_percentage / 100)

Draft proformas are repriced whenever their estimation changes; sent,
accepted and rejected proformas keep the figures they were issued with.
"""
from typing import Optional, List

from sqlalchemy import select, func, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from teamdesk.core.exceptions import ConflictError, ResourceNotFoundError, ValidationError
from teamdesk.core.logging_config import logger
from teamdesk.models import (
    Company,
    Estimation,
    EstimationItem,
    Proforma,
    ProformaStatus,
    StockItem,
)
from teamdesk.schemas.finance import ProformaLine, ProformaResponse


PROFORMA_LOAD_OPTIONS = (
    selectinload(Proforma.estimation).selectinload(Estimation.items),
)


# ==================== Estimations ====================

async def get_estimation(db: AsyncSession, estimation_id: str) -> Estimation:
    """Estimation with its lines loaded, or ResourceNotFoundError"""
    result = await db.execute(
        select(Estimation)
        .where(Estimation.id == estimation_id)
        .options(selectinload(Estimation.items))
        .execution_options(populate_existing=True)
    )
    estimation = result.scalar_one_or_none()
    if estimation is None:
        raise ResourceNotFoundError("Estimation", estimation_id)
    return estimation


async def list_estimations(db: AsyncSession) -> List[Estimation]:
    result = await db.execute(
        select(Estimation)
        .options(selectinload(Estimation.items))
        .order_by(Estimation.created_at.desc())
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def reprice_estimation(db: AsyncSession, estimation: Estimation) -> None:
    estimation.total_cost = round(sum(item.total_cost for item in estimation.items), 2)
    await db.flush()

    result = await db.execute(
        select(Proforma).where(Proforma.estimation_id == estimation.id, Proforma.status == ProformaStatus.DRAFT)
    )
    for proforma in result.scalars().all():
        proforma.total_cost = estimation.total_cost
        proforma.recalculate_total()


async def add_item(db: AsyncSession, estimation: Estimation, stock_item_id: str, quantity: int) -> EstimationItem:
    stock_item = await db.get(StockItem, stock_item_id)
    if stock_item is None:
        raise ValidationError("Stock item not found", field="stock_item_id")

    item = EstimationItem(
        stock_item_id=stock_item.id,
        stock_item_name=stock_item.name,
        unit_cost=stock_item.cost or 0,
    )
    item.set_quantity(quantity)
    estimation.items.append(item)
    await reprice_estimation(db, estimation)

    logger.info(f"[Estimations] {estimation.name}: added {quantity} x {stock_item.name} "
                f"(total={estimation.total_cost})")
    return item


def find_item(estimation: Estimation, item_id: str) -> EstimationItem:
    for item in estimation.items:
        if item.id == item_id:
            return item
    raise ResourceNotFoundError("Estimation item", item_id)


async def update_item(db: AsyncSession, estimation: Estimation, item_id: str, quantity: int) -> EstimationItem:
    item = find_item(estimation, item_id)
    item.set_quantity(quantity)
    await reprice_estimation(db, estimation)
    return item


async def remove_item(db: AsyncSession, estimation: Estimation, item_id: str) -> None:
    estimation.items.remove(find_item(estimation, item_id))
    await reprice_estimation(db, estimation)


async def delete_estimation(db: AsyncSession, estimation: Estimation) -> None:
    in_use = await db.scalar(select(func.count(Proforma.id)).where(Proforma.estimation_id == estimation.id))
    if in_use:
        raise ConflictError(
            f"Estimation is used by {in_use} proforma(s)",
            details={"estimation_id": estimation.id, "proformas": in_use},
        )
    await db.delete(estimation)


# ==================== Companies ====================

async def get_company(db: AsyncSession, company_id: str) -> Company:
    company = await db.get(Company, company_id)
    if company is None:
        raise ResourceNotFoundError("Company", company_id)
    return company


async def make_default(db: AsyncSession, company: Company) -> None:
    """At most one company is the default"""
    await db.flush()
    await db.execute(update(Company).where(Company.id != company.id).values(is_default=False))
    company.is_default = True


async def detach_company(db: AsyncSession, company: Company) -> None:
    """Proformas keep their company copy but lose the link"""
    await db.execute(update(Proforma).where(Proforma.company_id == company.id).values(company_id=None))
    await db.delete(company)


# ==================== Proformas ====================

async def resolve_estimation(db: AsyncSession, estimation_id: str) -> Estimation:
    estimation = await db.get(Estimation, estimation_id)
    if estimation is None:
        raise ValidationError("Estimation not found", field="estimation_id")
    return estimation


async def resolve_company(db: AsyncSession, company_id: Optional[str]) -> Optional[Company]:
    """The given company, else the default one (which may not exist)"""
    if company_id:
        company = await db.get(Company, company_id)
        if company is None:
            raise ValidationError("Company not found", field="company_id")
        return company
    return await db.scalar(select(Company).where(Company.is_default.is_(True)))


def apply_company(proforma: Proforma, company: Optional[Company]) -> None:
    proforma.company_id = company.id if company else None
    proforma.company_name = company.name if company else None
    proforma.company_address = company.address if company else None
    proforma.company_phone = company.phone if company else None
    proforma.company_email = company.email if company else None
    proforma.company_logo = company.logo if company else None


def price_proforma(proforma: Proforma, estimation: Estimation) -> None:
    proforma.estimation_id = estimation.id
    proforma.total_cost = estimation.total_cost or 0
    proforma.recalculate_total()


async def get_proforma(db: AsyncSession, proforma_id: str) -> Optional[Proforma]:
    result = await db.execute(
        select(Proforma)
        .where(Proforma.id == proforma_id)
        .options(*PROFORMA_LOAD_OPTIONS)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def list_proformas(db: AsyncSession, status: Optional[ProformaStatus] = None) -> List[Proforma]:
    query = (
        select(Proforma)
        .options(*PROFORMA_LOAD_OPTIONS)
        .order_by(Proforma.created_at.desc())
        .execution_options(populate_existing=True)
    )
    if status is not None:
        query = query.where(Proforma.status == status)
    result = await db.execute(query)
    return list(result.scalars().all())


def proforma_lines(proforma: Proforma) -> List[ProformaLine]:
    if proforma.estimation is None:
        return []
    markup = 1 + (proforma.profit_percentage or 0) / 100
    return [
        ProformaLine(
            id=item.id,
            stock_item_name=item.stock_item_name,
            quantity=item.quantity,
            unit_cost=item.unit_cost,
            unit_price=round(item.unit_cost * markup, 2),
            total_price=round(item.total_cost * markup, 2),
        )
        for item in proforma.estimation.items
    ]


def serialize_proforma(proforma: Proforma) -> ProformaResponse:
    """Needs PROFORMA_LOAD_OPTIONS (or a freshly priced estimation) on the proforma"""
    response = ProformaResponse.model_validate(proforma, from_attributes=True)
    response.items = proforma_lines(proforma)
    return response
