"""Pydantic schemas for calendar events"""
from pydantic import AfterValidator, BaseModel, Field, ConfigDict, model_validator
from typing import Annotated, Optional
from datetime import datetime

from teamdesk.core.types import as_naive_utc


UtcDateTime = Annotated[datetime, AfterValidator(as_naive_utc)]


class CalendarEventCreate(BaseModel):
    user_id: Optional[str] = None
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    start_time: UtcDateTime
    end_time: Optional[UtcDateTime] = None
    all_day: bool = False
    type: str = Field(..., min_length=1, max_length=50)
    related_entity_id: Optional[str] = Field(None, max_length=64)
    related_entity_type: Optional[str] = Field(None, max_length=50)

    @model_validator(mode="after")
    def end_after_start(self):
        if self.end_time and self.end_time < self.start_time:
            raise ValueError("end_time must not be before start_time")
        return self


class CalendarEventUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    start_time: Optional[UtcDateTime] = None
    end_time: Optional[UtcDateTime] = None
    all_day: Optional[bool] = None
    type: Optional[str] = Field(None, min_length=1, max_length=50)


class CalendarEventResponse(BaseModel):
    id: str
    user_id: str
    title: str
    description: Optional[str] = None
    start_time: datetime
    end_time: Optional[datetime] = None
    all_day: bool
    type: str
    related_entity_id: Optional[str] = None
    related_entity_type: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
