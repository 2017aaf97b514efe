from pydantic import BaseModel, EmailStr, Field, ConfigDict
from typing import Optional, Dict
from datetime import datetime


class UserRegister(BaseModel):
    """User registration"""
    username: str = Field(..., min_length=3, max_length=100)
    password: str = Field(..., min_length=6, max_length=128)
    email: Optional[EmailStr] = None
    full_name: Optional[str] = Field(None, max_length=255)


class UserLogin(BaseModel):
    username: str
    password: str


class RefreshTokenRequest(BaseModel):
    refresh_token: str


class UserBrief(BaseModel):
    """Compact user embedded in other responses"""
    id: str
    username: str
    full_name: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class UserResponse(BaseModel):
    id: str
    username: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    is_admin: bool
    is_active: bool
    notification_preferences: Dict[str, bool] = {}
    created_at: datetime
    last_login: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class UserUpdate(BaseModel):
    """Admin edit of another account"""
    username: Optional[str] = Field(None, min_length=3, max_length=100)
    email: Optional[EmailStr] = None
    full_name: Optional[str] = Field(None, max_length=255)
    is_admin: Optional[bool] = None
    is_active: Optional[bool] = None
    notification_preferences: Optional[Dict[str, bool]] = None
    new_password: Optional[str] = Field(None, min_length=6, max_length=128)


class Token(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class LoginResponse(Token):
    user: UserResponse
