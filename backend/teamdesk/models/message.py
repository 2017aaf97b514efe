"""Direct messages and group channels"""
from sqlalchemy import Column, String, Integer, Text, Boolean, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship

from teamdesk.core.config import settings
from teamdesk.core.database import Base
from teamdesk.core.types import GUID, generate_uuid, utcnow


class PrivateMessage(Base):
    __tablename__ = "private_messages"

    __table_args__ = (
        Index('ix_private_messages_pair', 'sender_id', 'recipient_id'),
        Index('ix_private_messages_recipient_read', 'recipient_id', 'read_at'),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    content = Column(Text, nullable=False)
    sender_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    recipient_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    read_at = Column(DateTime, nullable=True)

    sender = relationship("User", foreign_keys=[sender_id])
    recipient = relationship("User", foreign_keys=[recipient_id])
    attachments = relationship("MessageAttachment", back_populates="private_message", cascade="all, delete-orphan",
                               order_by="MessageAttachment.created_at")

    def __repr__(self):
        return f"<PrivateMessage {self.sender_id} -> {self.recipient_id}>"


class GroupChannel(Base):
    __tablename__ = "group_channels"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    is_private = Column(Boolean, default=False, nullable=False)
    creator_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, nullable=True, onupdate=utcnow)

    creator = relationship("User")
    members = relationship("ChannelMember", back_populates="channel", cascade="all, delete-orphan")
    messages = relationship("GroupMessage", back_populates="channel", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<GroupChannel {self.name}>"


class ChannelMember(Base):
    __tablename__ = "channel_members"

    __table_args__ = (
        Index('ix_channel_members_channel_user', 'channel_id', 'user_id', unique=True),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    channel_id = Column(GUID, ForeignKey("group_channels.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    is_admin = Column(Boolean, default=False, nullable=False)
    joined_at = Column(DateTime, default=utcnow, nullable=False)

    channel = relationship("GroupChannel", back_populates="members")
    user = relationship("User")


class GroupMessage(Base):
    __tablename__ = "group_messages"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    channel_id = Column(GUID, ForeignKey("group_channels.id", ondelete="CASCADE"), nullable=False, index=True)
    sender_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    channel = relationship("GroupChannel", back_populates="messages")
    sender = relationship("User")
    attachments = relationship("MessageAttachment", back_populates="group_message", cascade="all, delete-orphan",
                               order_by="MessageAttachment.created_at")


class MessageAttachment(Base):
    """A file sent with a direct or group message; exactly one of the message ids is set"""
    __tablename__ = "message_attachments"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    private_message_id = Column(GUID, ForeignKey("private_messages.id", ondelete="CASCADE"), nullable=True, index=True)
    group_message_id = Column(GUID, ForeignKey("group_messages.id", ondelete="CASCADE"), nullable=True, index=True)
    # Name on disk under UPLOAD_DIR, unique per upload
    file_name = Column(String(300), nullable=False, unique=True)
    original_name = Column(String(255), nullable=False)
    content_type = Column(String(255), nullable=True)
    size = Column(Integer, nullable=False)
    uploaded_by_id = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    private_message = relationship("PrivateMessage", back_populates="attachments")
    group_message = relationship("GroupMessage", back_populates="attachments")

    @property
    def url(self) -> str:
        return f"/api/{settings.API_VERSION}/uploads/file/{self.file_name}"
