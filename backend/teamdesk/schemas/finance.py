from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List
from datetime import date, datetime

from teamdesk.models.finance import ProformaStatus, ExpenseFrequency, ExpenseStatus
from teamdesk.schemas.user import UserBrief


# ==================== Proformas ====================

class ProformaCreate(BaseModel):
    proforma_number: str = Field(..., min_length=1, max_length=50)
    estimation_id: str
    company_id: Optional[str] = None
    profit_percentage: float = Field(0, ge=0, le=1000)
    notes: Optional[str] = None
    valid_until: Optional[date] = None
    status: ProformaStatus = ProformaStatus.DRAFT


class ProformaUpdate(BaseModel):
    proforma_number: Optional[str] = Field(None, min_length=1, max_length=50)
    estimation_id: Optional[str] = None
    company_id: Optional[str] = None
    profit_percentage: Optional[float] = Field(None, ge=0, le=1000)
    notes: Optional[str] = None
    valid_until: Optional[date] = None
    status: Optional[ProformaStatus] = None


class ProformaLine(BaseModel):
    """An estimation line priced with the proforma's profit margin"""
    id: str
    stock_item_name: str
    quantity: int
    unit_cost: float
    unit_price: float
    total_price: float


class ProformaResponse(BaseModel):
    id: str
    proforma_number: str
    estimation_id: Optional[str] = None
    company_id: Optional[str] = None
    company_name: Optional[str] = None
    company_address: Optional[str] = None
    company_phone: Optional[str] = None
    company_email: Optional[str] = None
    company_logo: Optional[str] = None
    total_cost: float
    profit_percentage: float
    total_amount: float
    items: List[ProformaLine] = []
    notes: Optional[str] = None
    valid_until: Optional[date] = None
    status: ProformaStatus
    created_by_id: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# ==================== Expenses ====================

class ExpenseCreate(BaseModel):
    service_name: str = Field(..., min_length=1, max_length=255)
    beneficiary: str = Field(..., min_length=1, max_length=255)
    amount: float = Field(..., gt=0)
    frequency: ExpenseFrequency
    last_paid_date: Optional[date] = None
    next_payment_date: date
    status: ExpenseStatus = ExpenseStatus.ACTIVE
    description: Optional[str] = None


class ExpenseUpdate(BaseModel):
    service_name: Optional[str] = Field(None, min_length=1, max_length=255)
    beneficiary: Optional[str] = Field(None, min_length=1, max_length=255)
    amount: Optional[float] = Field(None, gt=0)
    frequency: Optional[ExpenseFrequency] = None
    last_paid_date: Optional[date] = None
    next_payment_date: Optional[date] = None
    status: Optional[ExpenseStatus] = None
    description: Optional[str] = None


class ExpenseResponse(BaseModel):
    id: str
    service_name: str
    beneficiary: str
    amount: float
    frequency: ExpenseFrequency
    last_paid_date: Optional[date] = None
    next_payment_date: date
    status: ExpenseStatus
    description: Optional[str] = None
    created_by_id: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ReceiptCreate(BaseModel):
    payment_date: date
    amount: float = Field(..., gt=0)
    notes: Optional[str] = None
    file_name: Optional[str] = Field(None, max_length=255)


class ReceiptResponse(BaseModel):
    id: str
    expense_id: str
    payment_date: date
    amount: float
    notes: Optional[str] = None
    file_name: Optional[str] = None
    uploaded_by_id: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ==================== Permissions ====================

class ProformaPermissionUpdate(BaseModel):
    can_view_proformas: bool = False
    can_manage_proformas: bool = False
    can_delete_proformas: bool = False
    can_manage_access: bool = False


class ProformaPermissionResponse(ProformaPermissionUpdate):
    user_id: str
    granted_by_id: Optional[str] = None
    created_at: Optional[datetime] = None
    user: Optional[UserBrief] = None

    model_config = ConfigDict(from_attributes=True)


class ExpensePermissionUpdate(BaseModel):
    can_view_expenses: bool = False
    can_manage_expenses: bool = False
    can_delete_expenses: bool = False
    can_manage_access: bool = False


class ExpensePermissionResponse(ExpensePermissionUpdate):
    user_id: str
    granted_by_id: Optional[str] = None
    created_at: Optional[datetime] = None
    user: Optional[UserBrief] = None

    model_config = ConfigDict(from_attributes=True)


class ExpenseWithReceipts(ExpenseResponse):
    receipts: List[ReceiptResponse] = []
