"""
Calendar endpoints

Every user sees and edits only their own events. /ical exports them as a
.ics file for calendar clients.
"""
from fastapi import APIRouter, Depends, HTTPException, status, Response
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import List

from teamdesk.core.config import settings
from teamdesk.core.database import get_db
from teamdesk.core.logging_config import logger
from teamdesk.models import User, CalendarEvent
from teamdesk.schemas.calendar import CalendarEventCreate, CalendarEventUpdate, CalendarEventResponse
from teamdesk.modules.auth.dependencies import get_current_user
from teamdesk.services import calendar_service


router = APIRouter()

ICAL_MEDIA_TYPE = "text/calendar"


def ical_response(content: bytes, filename: str) -> Response:
    return Response(
        content=content,
        media_type=ICAL_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


async def own_events(db: AsyncSession, user: User) -> List[CalendarEvent]:
    result = await db.execute(
        select(CalendarEvent).where(CalendarEvent.user_id == user.id).order_by(CalendarEvent.start_time)
    )
    return list(result.scalars().all())


@router.get("/events", response_model=List[CalendarEventResponse])
async def list_events(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await own_events(db, current_user)


@router.post("/events", response_model=CalendarEventResponse, status_code=status.HTTP_201_CREATED)
async def create_event(
    event_data: CalendarEventCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """user_id may be omitted; when given it must be the caller"""
    if event_data.user_id and event_data.user_id != current_user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Cannot create events for other users")

    event = CalendarEvent(**event_data.model_dump(exclude={"user_id"}), user_id=current_user.id)
    db.add(event)
    await db.commit()

    logger.debug(f"[Calendar] {current_user.username} added '{event.title}' at {event.start_time}")
    return event


@router.get("/events/{event_id}", response_model=CalendarEventResponse)
async def get_event(
    event_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await calendar_service.get_own_event(db, event_id, current_user)


@router.put("/events/{event_id}", response_model=CalendarEventResponse)
async def update_event(
    event_id: str,
    update: CalendarEventUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    event = await calendar_service.get_own_event(db, event_id, current_user)
    for field, value in update.model_dump(exclude_unset=True).items():
        if value is None and field in ("title", "start_time", "all_day", "type"):
            continue
        setattr(event, field, value)

    await db.commit()
    await db.refresh(event)
    return event


@router.delete("/events/{event_id}")
async def delete_event(
    event_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    event = await calendar_service.get_own_event(db, event_id, current_user)
    await db.delete(event)
    await db.commit()
    return {"success": True}


@router.get("/ical")
async def export_calendar(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    events = await own_events(db, current_user)
    content = calendar_service.export_events(events, current_user.username)
    return ical_response(content, f"{current_user.username}-calendar.ics")


@router.get("/ical/{event_id}")
async def export_event(
    event_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    event = await calendar_service.get_own_event(db, event_id, current_user)
    content = calendar_service.export_events(
        [event], current_user.username, name=f"{event.title} - {settings.APP_NAME}"
    )
    return ical_response(content, f"event-{event.id}.ics")
