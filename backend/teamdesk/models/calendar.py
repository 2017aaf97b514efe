"""Personal calendar events"""
from sqlalchemy import Column, String, Text, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from teamdesk.core.database import Base
from teamdesk.core.types import GUID, generate_uuid, utcnow


class CalendarEvent(Base):
    __tablename__ = "calendar_events"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=True)
    all_day = Column(Boolean, default=False, nullable=False)
    # task_due, meeting, reminder, ...
    type = Column(String(50), nullable=False)
    related_entity_id = Column(String(64), nullable=True)
    related_entity_type = Column(String(50), nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, nullable=True, onupdate=utcnow)

    user = relationship("User")

    def __repr__(self):
        return f"<CalendarEvent {self.title} @ {self.start_time}>"
