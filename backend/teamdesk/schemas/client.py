"""Pydantic schemas for clients, the service catalog and client services"""
from pydantic import BaseModel, EmailStr, Field, ConfigDict
from typing import Optional, List
from datetime import date, datetime

from teamdesk.models.client import ClientType, ServiceType, ServiceCharacteristic, BillingFrequency
from teamdesk.schemas.user import UserBrief


class ContactInfo(BaseModel):
    phone: Optional[str] = Field(None, max_length=50)
    whatsapp: Optional[str] = Field(None, max_length=50)
    email: Optional[EmailStr] = None


# ==================== Clients ====================

class ClientCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    address: Optional[str] = None
    type: ClientType
    start_date: Optional[date] = None
    contact_info: Optional[ContactInfo] = None
    is_active: bool = True


class ClientUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    address: Optional[str] = None
    type: Optional[ClientType] = None
    start_date: Optional[date] = None
    contact_info: Optional[ContactInfo] = None
    is_active: Optional[bool] = None


class ClientResponse(BaseModel):
    id: str
    name: str
    address: Optional[str] = None
    type: ClientType
    start_date: Optional[date] = None
    contact_info: Optional[ContactInfo] = None
    is_active: bool
    created_by_id: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# ==================== Service catalog ====================

class ServiceCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    type: ServiceType
    is_active: bool = True


class ServiceUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    type: Optional[ServiceType] = None
    is_active: Optional[bool] = None


class ServiceResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    type: ServiceType
    is_active: bool
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# ==================== Client services ====================

class ClientServiceCreate(BaseModel):
    client_id: str
    service_id: str
    characteristics: List[ServiceCharacteristic] = []
    price: float = Field(..., ge=0)
    frequency: BillingFrequency
    start_date: date
    end_date: Optional[date] = None
    notes: Optional[str] = None
    is_active: bool = True
    contract_file: Optional[str] = Field(None, max_length=500)


class ClientServiceUpdate(BaseModel):
    characteristics: Optional[List[ServiceCharacteristic]] = None
    price: Optional[float] = Field(None, ge=0)
    frequency: Optional[BillingFrequency] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    notes: Optional[str] = None
    is_active: Optional[bool] = None
    contract_file: Optional[str] = Field(None, max_length=500)


class ClientServiceResponse(BaseModel):
    id: str
    client_id: str
    service_id: str
    characteristics: List[ServiceCharacteristic] = []
    price: float
    frequency: BillingFrequency
    start_date: date
    end_date: Optional[date] = None
    notes: Optional[str] = None
    is_active: bool
    contract_file: Optional[str] = None
    contract_file_upload_date: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    service: Optional[ServiceResponse] = None

    model_config = ConfigDict(from_attributes=True)


# ==================== Permissions ====================

class ClientPermissionUpdate(BaseModel):
    can_view_clients: bool = False
    can_manage_clients: bool = False
    can_delete_clients: bool = False
    can_manage_access: bool = False


class ClientPermissionResponse(BaseModel):
    user_id: str
    can_view_clients: bool = False
    can_manage_clients: bool = False
    can_delete_clients: bool = False
    can_manage_access: bool = False
    granted_by_id: Optional[str] = None
    created_at: Optional[datetime] = None
    user: Optional[UserBrief] = None

    model_config = ConfigDict(from_attributes=True)
