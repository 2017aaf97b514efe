"""Column types and defaults shared by the models"""
import uuid
from datetime import date, datetime, timezone
from enum import Enum
from typing import List, Optional, Type

from sqlalchemy import String, TypeDecorator


def generate_uuid() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    # DateTime columns are timezone-naive and hold UTC
    return datetime.utcnow()


def today() -> date:
    return utcnow().date()


def as_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Aware datetimes from clients, converted to what the columns hold"""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def enum_values(enum_cls: Type[Enum]) -> List[str]:
    """Store enum members by value ("in-progress"), not by name"""
    return [member.value for member in enum_cls]


class GUID(TypeDecorator):
    """UUID kept as its 36-character string on SQLite and PostgreSQL alike"""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect) -> Optional[str]:
        # Path ids are compared as given so a malformed one simply matches nothing
        return None if value is None else str(value)

    def process_result_value(self, value, dialect) -> Optional[str]:
        return None if value is None else str(value)
