"""Outbound email notifications and their delivery status"""
from sqlalchemy import Column, String, Text, Boolean, DateTime, ForeignKey, JSON, Index, Enum as SQLEnum
from sqlalchemy.orm import relationship
import enum

from teamdesk.core.database import Base
from teamdesk.core.types import GUID, generate_uuid, utcnow, enum_values


class NotificationStatus(str, enum.Enum):
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"


class NotificationType(str, enum.Enum):
    TASK_ASSIGNMENT = "task_assignment"
    TASK_COMMENT = "task_comment"
    TASK_DUE = "task_due"
    PRIVATE_MESSAGE = "private_message"
    GENERAL = "general"


class EmailNotification(Base):
    """
    One email addressed to a user.

    Rows start as pending, then move to sent (with sent_at) or failed (with
    error). is_read backs the in-app notification list.
    """
    __tablename__ = "email_notifications"

    __table_args__ = (
        Index('ix_email_notifications_user_id', 'user_id'),
        Index('ix_email_notifications_status', 'status'),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    subject = Column(String(500), nullable=False)
    content = Column(Text, nullable=False)
    type = Column(String(50), default=NotificationType.GENERAL.value, nullable=False)
    status = Column(SQLEnum(NotificationStatus, values_callable=enum_values, name="notification_status"),
                    default=NotificationStatus.PENDING, nullable=False)
    recipient_email = Column(String(255), nullable=True)

    related_entity_type = Column(String(50), nullable=True)
    related_entity_id = Column(String(64), nullable=True)
    extra_data = Column("metadata", JSON, nullable=True)

    error = Column(Text, nullable=True)
    send_at = Column(DateTime, nullable=True)
    sent_at = Column(DateTime, nullable=True)
    is_read = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, nullable=True, onupdate=utcnow)

    user = relationship("User", back_populates="email_notifications")

    def __repr__(self):
        return f"<EmailNotification {self.type} -> {self.user_id} ({self.status})>"
