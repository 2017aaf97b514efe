from sqlalchemy import Column, String, Boolean, DateTime, JSON
from sqlalchemy.orm import relationship

from teamdesk.core.database import Base
from teamdesk.core.types import GUID, generate_uuid, utcnow


# Email notification switches; missing keys fall back to these values
DEFAULT_NOTIFICATION_PREFERENCES = {
    "task_assigned": True,
    "task_updated": True,
    "task_commented": True,
    "mentioned_in_comment": True,
    "private_message": True,
    "group_message": False,
    "task_due_reminder": True,
}


def default_preferences() -> dict:
    return dict(DEFAULT_NOTIFICATION_PREFERENCES)


class User(Base):
    """User model"""
    __tablename__ = "users"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    username = Column(String(100), unique=True, index=True, nullable=False)
    email = Column(String(255), nullable=True, index=True)
    hashed_password = Column(String(255), nullable=False)
    full_name = Column(String(255), nullable=True)

    is_admin = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    notification_preferences = Column(JSON, default=default_preferences, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
    last_login = Column(DateTime, nullable=True)

    # Relationships
    created_tasks = relationship("Task", back_populates="creator", foreign_keys="Task.creator_id")
    email_notifications = relationship("EmailNotification", back_populates="user", cascade="all, delete-orphan")

    def wants(self, preference: str) -> bool:
        """Whether the user has the given email notification switch on"""
        prefs = {**DEFAULT_NOTIFICATION_PREFERENCES, **(self.notification_preferences or {})}
        return bool(prefs.get(preference, False))

    def __repr__(self):
        return f"<User {self.username}>"
