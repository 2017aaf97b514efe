from pydantic import BaseModel, Field, ConfigDict
from typing import Optional
from datetime import datetime

from teamdesk.schemas.user import UserBrief


class StockItemCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    cost: float = Field(0, ge=0)
    quantity: int = Field(0, ge=0)
    assigned_user_id: Optional[str] = None


class StockItemUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    cost: Optional[float] = Field(None, ge=0)
    quantity: Optional[int] = Field(None, ge=0)
    assigned_user_id: Optional[str] = None


class StockItemResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    cost: float
    quantity: int
    assigned_user_id: Optional[str] = None
    assigned_user: Optional[UserBrief] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class StockAdjustRequest(BaseModel):
    """Sets the absolute quantity; the change is derived and logged"""
    quantity: int = Field(..., ge=0)
    reason: Optional[str] = Field(None, max_length=1000)


class StockMovementResponse(BaseModel):
    id: str
    stock_item_id: str
    user_id: Optional[str] = None
    previous_quantity: int
    new_quantity: int
    change: int
    reason: Optional[str] = None
    created_at: datetime
    user: Optional[UserBrief] = None

    model_config = ConfigDict(from_attributes=True)


class StockPermissionUpdate(BaseModel):
    can_view_stock: bool = False
    can_manage_stock: bool = False
    can_adjust_quantities: bool = False


class StockPermissionResponse(BaseModel):
    user_id: str
    can_view_stock: bool = False
    can_manage_stock: bool = False
    can_adjust_quantities: bool = False
    granted_by_id: Optional[str] = None
    created_at: Optional[datetime] = None
    user: Optional[UserBrief] = None

    model_config = ConfigDict(from_attributes=True)
