"""
Email notification endpoints

Users manage their own notification rows and preferences; admins manage SMTP
settings and run the pending-queue and overdue-reminder jobs.
"""
from fastapi import APIRouter, Depends, HTTPException, status, Response
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import List
from datetime import datetime

from teamdesk.core.database import get_db
from teamdesk.core.exceptions import EmailError
from teamdesk.core.logging_config import logger
from teamdesk.models import User, EmailNotification, NotificationStatus
from teamdesk.schemas.notification import (
    PASSWORD_MASK,
    EmailNotificationCreate,
    EmailNotificationUpdate,
    EmailNotificationResponse,
    SendPendingResponse,
    ProcessRemindersResponse,
    NotificationSettingsUpdate,
    SmtpSettings,
    SmtpSettingsResponse,
    SendTestEmailRequest,
    SendTestEmailResponse,
)
from teamdesk.schemas.user import UserResponse
from teamdesk.modules.auth.dependencies import get_current_user, get_current_admin
from teamdesk.services.email_service import email_service
from teamdesk.services.notification_service import NotificationService


router = APIRouter()


async def get_notification_for(db: AsyncSession, notification_id: str, user: User) -> EmailNotification:
    """The notification if the user owns it or is an admin"""
    notification = await db.get(EmailNotification, notification_id)
    if not notification:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    if notification.user_id != user.id and not user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not your notification")
    return notification


def masked_smtp_settings() -> SmtpSettingsResponse:
    current = email_service.get_settings()
    if current["password"]:
        current["password"] = PASSWORD_MASK
    return SmtpSettingsResponse(**current)


# ==================== Notifications ====================

@router.get("/notifications", response_model=List[EmailNotificationResponse])
async def list_notifications(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    result = await db.execute(
        select(EmailNotification)
        .where(EmailNotification.user_id == current_user.id)
        .order_by(EmailNotification.created_at.desc())
    )
    return result.scalars().all()


@router.post("/notifications", response_model=EmailNotificationResponse, status_code=status.HTTP_201_CREATED)
async def create_notification(
    notification_data: EmailNotificationCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Queue an email to yourself.

    Without send_at it is delivered immediately and comes back sent or
    failed; with send_at it stays pending for send-pending to pick up.
    """
    if notification_data.user_id != current_user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only create notifications for yourself"
        )

    service = NotificationService(db)
    notification = await service.create_notification(
        current_user,
        notification_data.subject,
        notification_data.content,
        type=notification_data.type.value,
        related_entity_type=notification_data.related_entity_type,
        related_entity_id=notification_data.related_entity_id,
        metadata=notification_data.metadata,
        send_at=notification_data.send_at,
    )
    if notification_data.send_at is None:
        await service.dispatch(notification)

    await db.commit()
    return notification


@router.get("/notifications/{notification_id}", response_model=EmailNotificationResponse)
async def get_notification(
    notification_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await get_notification_for(db, notification_id, current_user)


@router.put("/notifications/{notification_id}", response_model=EmailNotificationResponse)
async def update_notification(
    notification_id: str,
    update: EmailNotificationUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Owners may edit pending rows; once sent or failed only admins can"""
    notification = await get_notification_for(db, notification_id, current_user)
    data = update.model_dump(exclude_unset=True)

    if not current_user.is_admin:
        if notification.status != NotificationStatus.PENDING:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Only pending notifications can be edited"
            )
        if "status" in data:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Only admins can change notification status"
            )

    for field, value in data.items():
        if value is None and field in ("subject", "content", "status", "is_read"):
            continue
        setattr(notification, field, value)

    notification.updated_at = datetime.utcnow()
    await db.commit()
    await db.refresh(notification)
    return notification


@router.delete("/notifications/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_notification(
    notification_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    notification = await get_notification_for(db, notification_id, current_user)
    await db.delete(notification)
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/notifications/{notification_id}/read", response_model=EmailNotificationResponse)
async def mark_notification_read(
    notification_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    notification = await get_notification_for(db, notification_id, current_user)
    notification.is_read = True
    await db.commit()
    await db.refresh(notification)
    return notification


# ==================== Jobs ====================

@router.post("/send-pending", response_model=SendPendingResponse)
async def send_pending_notifications(
    current_user: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    result = await NotificationService(db).send_pending()
    await db.commit()

    logger.info(f"[Notify] send-pending by {current_user.username}: sent={result['sent']} failed={result['failed']}")
    return result


@router.post("/process-reminders", response_model=ProcessRemindersResponse)
async def process_reminders(
    current_user: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    processed = await NotificationService(db).process_overdue_task_reminders()
    await db.commit()
    return {"processed": processed}


# ==================== Settings ====================

@router.put("/settings", response_model=UserResponse)
async def update_notification_settings(
    settings_data: NotificationSettingsUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Change your email address and/or merge notification preference switches"""
    if settings_data.email is not None:
        current_user.email = settings_data.email
    if settings_data.notification_preferences is not None:
        current_user.notification_preferences = {
            **(current_user.notification_preferences or {}),
            **settings_data.notification_preferences,
        }

    await db.commit()
    await db.refresh(current_user)
    return current_user


@router.get("/smtp", response_model=SmtpSettingsResponse)
async def get_smtp_settings(current_user: User = Depends(get_current_admin)):
    return masked_smtp_settings()


@router.put("/smtp", response_model=SmtpSettingsResponse)
async def update_smtp_settings(
    smtp: SmtpSettings,
    current_user: User = Depends(get_current_admin)
):
    """The masked placeholder (or no password) keeps the stored password"""
    password = smtp.password
    if password is None or password == PASSWORD_MASK:
        password = email_service.smtp_password

    email_service.configure(
        host=smtp.host,
        port=smtp.port,
        username=smtp.username,
        password=password,
        use_tls=smtp.use_tls,
        from_email=smtp.from_email,
        from_name=smtp.from_name,
    )
    logger.info(f"[Email] SMTP settings changed by {current_user.username}")
    return masked_smtp_settings()


@router.post("/test", response_model=SendTestEmailResponse)
async def send_test_email(
    request: SendTestEmailRequest,
    current_user: User = Depends(get_current_user)
):
    """Send a test message to `to`, or to your own address"""
    to_email = request.to or current_user.email
    if not to_email:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No recipient: pass `to` or set an email on your account"
        )

    try:
        await email_service.send_test_email(to_email)
    except EmailError as e:
        return SendTestEmailResponse(success=False, to=to_email, error=e.message)

    return SendTestEmailResponse(success=True, to=to_email)
