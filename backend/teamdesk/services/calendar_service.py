"""
Calendar Service - event ownership and iCalendar export

Events are private to their owner. Exports are built with the icalendar
package, one VEVENT per event, with times in UTC.
"""
from datetime import datetime, timezone
from typing import Iterable, Optional

from icalendar import Calendar, Event, vCalAddress, vText
from sqlalchemy.ext.asyncio import AsyncSession

from teamdesk.core.config import settings
from teamdesk.core.exceptions import AuthorizationError, ResourceNotFoundError
from teamdesk.models import CalendarEvent, User


# Reminders do not block time
FREE_EVENT_TYPES = {"reminder"}


async def get_own_event(db: AsyncSession, event_id: str, user: User) -> CalendarEvent:
    event = await db.get(CalendarEvent, event_id)
    if event is None:
        raise ResourceNotFoundError("Event", event_id)
    if event.user_id != user.id:
        raise AuthorizationError()
    return event


def _utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def location_for(event: CalendarEvent) -> Optional[str]:
    if event.related_entity_type == "task":
        return f"Task #{event.related_entity_id}"
    if event.related_entity_type == "meeting":
        return f"Meeting #{event.related_entity_id}"
    return None


def build_calendar(name: str) -> Calendar:
    calendar = Calendar()
    calendar.add("prodid", f"-//{settings.APP_NAME}//Calendar//EN")
    calendar.add("version", "2.0")
    calendar.add("calscale", "GREGORIAN")
    calendar.add("x-wr-calname", name)
    calendar.add("x-wr-timezone", "UTC")
    return calendar


def to_ical_event(event: CalendarEvent, organizer: str) -> Event:
    vevent = Event()
    vevent.add("uid", f"{event.id}@{settings.APP_NAME.lower()}")
    vevent.add("summary", event.title)
    vevent.add("dtstamp", _utc(event.updated_at or event.created_at))
    vevent.add("created", _utc(event.created_at))
    vevent.add("last-modified", _utc(event.updated_at or event.created_at))

    if event.all_day:
        vevent.add("dtstart", event.start_time.date())
        if event.end_time:
            vevent.add("dtend", event.end_time.date())
    else:
        vevent.add("dtstart", _utc(event.start_time))
        if event.end_time:
            vevent.add("dtend", _utc(event.end_time))

    if event.description:
        vevent.add("description", event.description)
    location = location_for(event)
    if location:
        vevent.add("location", location)

    vevent.add("status", "CONFIRMED")
    vevent.add("transp", "TRANSPARENT" if event.type in FREE_EVENT_TYPES else "OPAQUE")
    vevent.add("categories", [event.type])

    address = vCalAddress(f"MAILTO:{settings.EMAIL_FROM}")
    address.params["cn"] = vText(organizer)
    vevent["organizer"] = address
    return vevent


def export_events(events: Iterable[CalendarEvent], organizer: str, name: Optional[str] = None) -> bytes:
    calendar = build_calendar(name or f"{organizer}'s Calendar - {settings.APP_NAME}")
    for event in events:
        calendar.add_component(to_ical_event(event, organizer))
    return calendar.to_ical()
