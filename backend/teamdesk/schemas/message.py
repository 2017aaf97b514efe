"""Pydantic schemas for direct messages and group channels"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List
from datetime import datetime

from teamdesk.schemas.user import UserBrief


class MessageCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=10000)


class PrivateMessageResponse(BaseModel):
    id: str
    content: str
    sender_id: str
    recipient_id: str
    created_at: datetime
    read_at: Optional[datetime] = None
    sender: Optional[UserBrief] = None

    model_config = ConfigDict(from_attributes=True)


class ConversationResponse(BaseModel):
    user: UserBrief
    last_message: PrivateMessageResponse
    unread_count: int = 0


class UnreadCountResponse(BaseModel):
    count: int


class MarkReadResponse(BaseModel):
    updated: int


# ==================== Channels ====================

class ChannelCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=1000)
    is_private: bool = False


class ChannelUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=1000)
    is_private: Optional[bool] = None


class ChannelResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    is_private: bool
    creator_id: str
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ChannelMemberAdd(BaseModel):
    user_id: str
    is_admin: bool = False


class ChannelMemberResponse(BaseModel):
    id: str
    channel_id: str
    user_id: str
    is_admin: bool
    joined_at: datetime
    user: Optional[UserBrief] = None

    model_config = ConfigDict(from_attributes=True)


class GroupMessageResponse(BaseModel):
    id: str
    channel_id: str
    sender_id: str
    content: str
    created_at: datetime
    sender: Optional[UserBrief] = None

    model_config = ConfigDict(from_attributes=True)


# ==================== Attachments ====================

class AttachmentResponse(BaseModel):
    id: str
    file_name: str
    original_name: str
    content_type: Optional[str] = None
    size: int
    url: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PrivateMessageWithAttachments(PrivateMessageResponse):
    attachments: List[AttachmentResponse] = []


class GroupMessageWithAttachments(GroupMessageResponse):
    attachments: List[AttachmentResponse] = []
