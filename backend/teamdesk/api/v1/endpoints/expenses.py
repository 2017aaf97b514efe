"""
Recurring expense endpoints

Marking an expense paid stamps today's date and moves next_payment_date one
period forward. Payment receipts are kept per expense.
"""
from fastapi import APIRouter, Depends, HTTPException, Query, status, Response
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.orm import selectinload
from typing import List, Optional
from datetime import date, datetime
import calendar

from teamdesk.core.database import get_db
from teamdesk.core.logging_config import logger
from teamdesk.core.types import today
from teamdesk.models import (
    User,
    Expense,
    ExpenseFrequency,
    ExpenseStatus,
    ExpenseReceipt,
    UserExpensePermission,
)
from teamdesk.schemas.finance import (
    ExpenseCreate,
    ExpenseUpdate,
    ExpenseResponse,
    ExpenseWithReceipts,
    ReceiptCreate,
    ReceiptResponse,
    ExpensePermissionUpdate,
    ExpensePermissionResponse,
)
from teamdesk.modules.auth.permissions import EXPENSE_PERMISSIONS, require_expense_permission
from teamdesk.modules.auth.permission_routes import build_permission_router


router = APIRouter()

router.include_router(
    build_permission_router(
        "expenses", UserExpensePermission, ExpensePermissionUpdate, ExpensePermissionResponse,
        area=EXPENSE_PERMISSIONS,
    ),
    prefix="/permissions",
)

PERIOD_MONTHS = {
    ExpenseFrequency.MONTHLY: 1,
    ExpenseFrequency.QUARTERLY: 3,
    ExpenseFrequency.YEARLY: 12,
}


def add_months(start: date, months: int) -> date:
    """Shift by whole months, clamping the day (Jan 31 + 1 month -> Feb 28/29)"""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def next_payment_after(current: date, frequency: ExpenseFrequency) -> date:
    return add_months(current, PERIOD_MONTHS[frequency])


async def get_expense_or_404(db: AsyncSession, expense_id: str) -> Expense:
    expense = await db.get(Expense, expense_id)
    if not expense:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Expense not found")
    return expense


# ==================== Static paths ====================

@router.delete("/receipts/{receipt_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_receipt(
    receipt_id: str,
    current_user: User = Depends(require_expense_permission("delete")),
    db: AsyncSession = Depends(get_db)
):
    receipt = await db.get(ExpenseReceipt, receipt_id)
    if not receipt:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Receipt not found")

    await db.delete(receipt)
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ==================== Expenses ====================

@router.get("", response_model=List[ExpenseResponse])
async def list_expenses(
    status_filter: Optional[ExpenseStatus] = Query(None, alias="status"),
    current_user: User = Depends(require_expense_permission("view")),
    db: AsyncSession = Depends(get_db)
):
    """Ordered by the next payment due"""
    query = select(Expense).order_by(Expense.next_payment_date)
    if status_filter is not None:
        query = query.where(Expense.status == status_filter)
    result = await db.execute(query)
    return result.scalars().all()


@router.post("", response_model=ExpenseResponse, status_code=status.HTTP_201_CREATED)
async def create_expense(
    expense_data: ExpenseCreate,
    current_user: User = Depends(require_expense_permission("manage")),
    db: AsyncSession = Depends(get_db)
):
    expense = Expense(**expense_data.model_dump(), created_by_id=current_user.id)
    db.add(expense)
    await db.commit()

    logger.info(f"[Expenses] {expense.service_name} ({expense.amount} {expense.frequency.value}) "
                f"created by {current_user.username}")
    return expense


@router.get("/{expense_id}", response_model=ExpenseWithReceipts)
async def get_expense(
    expense_id: str,
    current_user: User = Depends(require_expense_permission("view")),
    db: AsyncSession = Depends(get_db)
):
    result = await db.execute(
        select(Expense).where(Expense.id == expense_id).options(selectinload(Expense.receipts))
    )
    expense = result.scalar_one_or_none()
    if not expense:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Expense not found")
    return expense


@router.put("/{expense_id}", response_model=ExpenseResponse)
async def update_expense(
    expense_id: str,
    update: ExpenseUpdate,
    current_user: User = Depends(require_expense_permission("manage")),
    db: AsyncSession = Depends(get_db)
):
    expense = await get_expense_or_404(db, expense_id)

    required = ("service_name", "beneficiary", "amount", "frequency", "next_payment_date", "status")
    for field, value in update.model_dump(exclude_unset=True).items():
        if value is None and field in required:
            continue
        setattr(expense, field, value)

    expense.updated_at = datetime.utcnow()
    await db.commit()
    await db.refresh(expense)
    return expense


@router.delete("/{expense_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_expense(
    expense_id: str,
    current_user: User = Depends(require_expense_permission("delete")),
    db: AsyncSession = Depends(get_db)
):
    result = await db.execute(
        select(Expense).where(Expense.id == expense_id).options(selectinload(Expense.receipts))
    )
    expense = result.scalar_one_or_none()
    if not expense:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Expense not found")

    await db.delete(expense)
    await db.commit()

    logger.info(f"[Expenses] Expense {expense_id} deleted by {current_user.username}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{expense_id}/mark-paid", response_model=ExpenseResponse)
async def mark_paid(
    expense_id: str,
    current_user: User = Depends(require_expense_permission("manage")),
    db: AsyncSession = Depends(get_db)
):
    expense = await get_expense_or_404(db, expense_id)

    expense.last_paid_date = today()
    expense.next_payment_date = next_payment_after(expense.next_payment_date, expense.frequency)
    expense.updated_at = datetime.utcnow()
    await db.commit()
    await db.refresh(expense)

    logger.info(f"[Expenses] {expense.service_name} paid; next payment {expense.next_payment_date}")
    return expense


# ==================== Receipts ====================

@router.get("/{expense_id}/receipts", response_model=List[ReceiptResponse])
async def list_receipts(
    expense_id: str,
    current_user: User = Depends(require_expense_permission("view")),
    db: AsyncSession = Depends(get_db)
):
    await get_expense_or_404(db, expense_id)
    result = await db.execute(
        select(ExpenseReceipt)
        .where(ExpenseReceipt.expense_id == expense_id)
        .order_by(ExpenseReceipt.payment_date.desc())
    )
    return result.scalars().all()


@router.post("/{expense_id}/receipts", response_model=ReceiptResponse, status_code=status.HTTP_201_CREATED)
async def create_receipt(
    expense_id: str,
    receipt_data: ReceiptCreate,
    current_user: User = Depends(require_expense_permission("manage")),
    db: AsyncSession = Depends(get_db)
):
    await get_expense_or_404(db, expense_id)

    receipt = ExpenseReceipt(
        expense_id=expense_id,
        uploaded_by_id=current_user.id,
        **receipt_data.model_dump(),
    )
    db.add(receipt)
    await db.commit()
    return receipt
