"""Pydantic schemas for companies, estimations and estimation line items"""
from pydantic import BaseModel, Field, ConfigDict, EmailStr
from typing import Optional, List
from datetime import date, datetime


# ==================== Companies ====================

class CompanyForm(BaseModel):
    """Company fields as posted in the multipart form next to the optional logo"""
    name: str = Field(..., min_length=1, max_length=255)
    address: str = Field(..., min_length=1)
    phone: Optional[str] = Field(None, max_length=50)
    email: Optional[EmailStr] = None
    is_default: bool = False


class CompanyResponse(BaseModel):
    id: str
    name: str
    address: str
    phone: Optional[str] = None
    email: Optional[str] = None
    logo: Optional[str] = None
    is_default: bool
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# ==================== Estimations ====================

class EstimationCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    date: date
    client_name: Optional[str] = Field(None, max_length=255)
    address: Optional[str] = None
    client_information: Optional[str] = None


class EstimationUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    date: Optional[date] = None
    client_name: Optional[str] = Field(None, max_length=255)
    address: Optional[str] = None
    client_information: Optional[str] = None


class EstimationItemCreate(BaseModel):
    stock_item_id: str
    quantity: int = Field(..., gt=0)


class EstimationItemUpdate(BaseModel):
    quantity: int = Field(..., gt=0)


class EstimationItemResponse(BaseModel):
    id: str
    estimation_id: str
    stock_item_id: Optional[str] = None
    stock_item_name: str
    quantity: int
    unit_cost: float
    total_cost: float
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class EstimationResponse(BaseModel):
    id: str
    name: str
    date: date
    client_name: Optional[str] = None
    address: Optional[str] = None
    client_information: Optional[str] = None
    total_cost: float
    created_by_id: Optional[str] = None
    items: List[EstimationItemResponse] = []
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
