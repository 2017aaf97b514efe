"""Pydantic schemas for email notifications, preferences and SMTP settings"""
from pydantic import BaseModel, EmailStr, Field, ConfigDict
from typing import Optional, Dict, Any, List
from datetime import datetime

from teamdesk.models.notification import NotificationStatus, NotificationType


PASSWORD_MASK = "••••••••"


class EmailNotificationCreate(BaseModel):
    user_id: str
    subject: str = Field(..., min_length=1, max_length=500)
    content: str = Field(..., min_length=1)
    type: NotificationType = NotificationType.GENERAL
    related_entity_type: Optional[str] = Field(None, max_length=50)
    related_entity_id: Optional[str] = Field(None, max_length=64)
    metadata: Optional[Dict[str, Any]] = None
    send_at: Optional[datetime] = Field(None, description="Leave the notification pending until then")


class EmailNotificationUpdate(BaseModel):
    subject: Optional[str] = Field(None, min_length=1, max_length=500)
    content: Optional[str] = Field(None, min_length=1)
    status: Optional[NotificationStatus] = None
    is_read: Optional[bool] = None
    send_at: Optional[datetime] = None


class EmailNotificationResponse(BaseModel):
    id: str
    user_id: str
    subject: str
    content: str
    type: str
    status: NotificationStatus
    recipient_email: Optional[str] = None
    related_entity_type: Optional[str] = None
    related_entity_id: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = Field(None, validation_alias="extra_data")
    error: Optional[str] = None
    send_at: Optional[datetime] = None
    sent_at: Optional[datetime] = None
    is_read: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class SendResult(BaseModel):
    id: str
    status: NotificationStatus
    error: Optional[str] = None


class SendPendingResponse(BaseModel):
    sent: int
    failed: int
    details: List[SendResult] = []


class ProcessRemindersResponse(BaseModel):
    processed: int


class NotificationSettingsUpdate(BaseModel):
    email: Optional[EmailStr] = None
    notification_preferences: Optional[Dict[str, bool]] = None


class SmtpSettings(BaseModel):
    host: str = Field(..., min_length=1)
    port: int = Field(587, ge=1, le=65535)
    username: Optional[str] = None
    password: Optional[str] = None
    use_tls: bool = True
    from_email: EmailStr
    from_name: Optional[str] = None


class SmtpSettingsResponse(BaseModel):
    host: Optional[str] = None
    port: int
    username: Optional[str] = None
    password: Optional[str] = None
    use_tls: bool
    from_email: Optional[str] = None
    from_name: Optional[str] = None
    configured: bool


class SendTestEmailRequest(BaseModel):
    to: Optional[EmailStr] = None


class SendTestEmailResponse(BaseModel):
    success: bool
    to: str
    error: Optional[str] = None
