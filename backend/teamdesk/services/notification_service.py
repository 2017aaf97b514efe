"""
Notification Service

Email notification pipeline for task and message events:

    preference check -> pending row -> send -> sent (sent_at) | failed (error)

Delivery problems are recorded on the notification row and logged. They are
never raised to the caller, so a failed email cannot fail the request that
triggered it. There is no retry: failed rows stay failed, and rows that are
still pending (scheduled with send_at) go out through send_pending().
"""

import html
import math
from datetime import datetime
from typing import Optional, Dict, Any, List

from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from teamdesk.core.config import settings
from teamdesk.core.exceptions import EmailError
from teamdesk.core.logging_config import logger
from teamdesk.models import (
    User,
    Task,
    TaskStatus,
    TaskParticipant,
    Comment,
    PrivateMessage,
    EmailNotification,
    NotificationStatus,
    NotificationType,
)
from teamdesk.services.email_service import EmailService, email_service, render_template


def due_text(due_date: datetime, now: Optional[datetime] = None) -> str:
    """Human wording for how far a due date is from now"""
    now = now or datetime.utcnow()
    days = math.ceil((due_date - now).total_seconds() / 86400)
    if days < 0:
        return f"{abs(days)} day(s) ago"
    if days == 0:
        return "today"
    if days == 1:
        return "tomorrow"
    return f"in {days} day(s)"


def task_url(task: Task) -> str:
    return f"{settings.FRONTEND_URL.rstrip('/')}/tasks/{task.id}"


class NotificationService:
    """Creates EmailNotification rows and delivers them through EmailService"""

    def __init__(self, db: AsyncSession, mailer: Optional[EmailService] = None):
        self.db = db
        self.mailer = mailer or email_service

    async def create_notification(
        self,
        user: User,
        subject: str,
        content: str,
        type: str = NotificationType.GENERAL.value,
        related_entity_type: Optional[str] = None,
        related_entity_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        send_at: Optional[datetime] = None,
    ) -> EmailNotification:
        notification = EmailNotification(
            user_id=user.id,
            subject=subject,
            content=content,
            type=type,
            status=NotificationStatus.PENDING,
            recipient_email=user.email,
            related_entity_type=related_entity_type,
            related_entity_id=related_entity_id,
            extra_data=metadata,
            send_at=send_at,
        )
        self.db.add(notification)
        await self.db.flush()
        return notification

    async def dispatch(self, notification: EmailNotification) -> bool:
        """Send one pending notification and record the outcome on the row"""
        if not notification.recipient_email:
            notification.status = NotificationStatus.FAILED
            notification.error = "Recipient has no email address"
            await self.db.flush()
            logger.warning(f"[Notify] Notification {notification.id} has no recipient email")
            return False

        try:
            await self.mailer.deliver(notification.recipient_email, notification.subject, notification.content)
        except EmailError as e:
            notification.status = NotificationStatus.FAILED
            notification.error = e.message
            await self.db.flush()
            logger.warning(f"[Notify] {notification.type} to user {notification.user_id} failed: {e.message}")
            return False
        except Exception as e:
            notification.status = NotificationStatus.FAILED
            notification.error = str(e) or type(e).__name__
            await self.db.flush()
            logger.log_error_with_context(e, "notification_dispatch", notification_id=notification.id)
            return False

        notification.status = NotificationStatus.SENT
        notification.sent_at = datetime.utcnow()
        notification.error = None
        await self.db.flush()
        logger.info(f"[Notify] {notification.type} sent to user {notification.user_id}")
        return True

    async def notify(
        self,
        user: User,
        preference: str,
        type: NotificationType,
        subject: str,
        content: str,
        related_entity_type: Optional[str] = None,
        related_entity_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Optional[EmailNotification]:
        """
        Run the full pipeline for one recipient.

        Returns None when the user has no email or has switched the
        preference off, otherwise the notification row in its final state.
        """
        if not user.email or not user.wants(preference):
            logger.debug(
                f"[Notify] Skipping {type.value} for user {user.id} "
                f"(has_email={bool(user.email)}, {preference}={user.wants(preference)})"
            )
            return None

        notification = await self.create_notification(
            user,
            subject,
            content,
            type=type.value,
            related_entity_type=related_entity_type,
            related_entity_id=related_entity_id,
            metadata=metadata,
        )
        await self.dispatch(notification)
        return notification

    # ==================== Task events ====================

    async def notify_task_assignment(self, task: Task, assignee: User, assigner: User) -> Optional[EmailNotification]:
        content = render_template("task_assignment", {
            "recipient_name": assignee.full_name or assignee.username,
            "assigner_name": assigner.full_name or assigner.username,
            "task_title": task.title,
            "task_description": task.description,
            "due_date": task.due_date.strftime("%Y-%m-%d") if task.due_date else None,
            "priority": task.priority.value if task.priority else None,
            "task_url": task_url(task),
        })
        return await self.notify(
            assignee,
            "task_assigned",
            NotificationType.TASK_ASSIGNMENT,
            f"New Task Assignment: {task.title}",
            content,
            related_entity_type="task",
            related_entity_id=task.id,
            metadata={"task_id": task.id, "assigned_by": assigner.id},
        )

    async def notify_task_comment(
        self,
        task: Task,
        comment: Comment,
        commenter: User,
        recipient: User
    ) -> Optional[EmailNotification]:
        if commenter.id == recipient.id:
            return None

        content = render_template("task_comment", {
            "recipient_name": recipient.full_name or recipient.username,
            "commenter_name": commenter.full_name or commenter.username,
            "task_title": task.title,
            "comment_content": comment.content,
            "comment_time": comment.created_at.strftime("%Y-%m-%d %H:%M") if comment.created_at else None,
            "task_url": task_url(task),
        })
        return await self.notify(
            recipient,
            "task_commented",
            NotificationType.TASK_COMMENT,
            f"New Comment on Task: {task.title}",
            content,
            related_entity_type="comment",
            related_entity_id=comment.id,
            metadata={"task_id": task.id, "comment_id": comment.id},
        )

    async def notify_task_due(
        self,
        task: Task,
        recipient: User,
        now: Optional[datetime] = None
    ) -> Optional[EmailNotification]:
        wording = due_text(task.due_date, now)
        content = render_template("task_due", {
            "recipient_name": recipient.full_name or recipient.username,
            "task_title": task.title,
            "task_description": task.description,
            "due_date": task.due_date.strftime("%Y-%m-%d"),
            "due_text": wording,
            "status": task.status.value if task.status else None,
            "task_url": task_url(task),
        })
        return await self.notify(
            recipient,
            "task_due_reminder",
            NotificationType.TASK_DUE,
            f"Task Due Reminder: {task.title}",
            content,
            related_entity_type="task",
            related_entity_id=task.id,
            metadata={"task_id": task.id, "due_text": wording},
        )

    async def notify_private_message(
        self,
        message: PrivateMessage,
        sender: User,
        recipient: User
    ) -> Optional[EmailNotification]:
        sender_name = html.escape(sender.full_name or sender.username)
        content = f"""
        <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
            <h2>New Message</h2>
            <p>{sender_name} sent you a message:</p>
            <blockquote style="border-left: 3px solid #4CAF50; padding-left: 10px;">{html.escape(message.content)}</blockquote>
        </div>
        """
        return await self.notify(
            recipient,
            "private_message",
            NotificationType.PRIVATE_MESSAGE,
            f"New message from {sender.full_name or sender.username}",
            content,
            related_entity_type="private_message",
            related_entity_id=message.id,
            metadata={"sender_id": sender.id},
        )

    async def process_overdue_task_reminders(self, now: Optional[datetime] = None) -> int:
        """
        Send due reminders to the participants of every overdue task that is
        not done.

        Returns the number of notification rows created.
        """
        now = now or datetime.utcnow()
        result = await self.db.execute(
            select(Task)
            .where(Task.due_date.is_not(None), Task.due_date < now, Task.status != TaskStatus.DONE)
            .options(selectinload(Task.participants).selectinload(TaskParticipant.user))
        )
        tasks = result.scalars().all()

        processed = 0
        for task in tasks:
            for participant in task.participants:
                if participant.user is None:
                    continue
                if await self.notify_task_due(task, participant.user, now) is not None:
                    processed += 1

        logger.info(f"[Notify] Processed overdue reminders: {len(tasks)} task(s), {processed} notification(s)")
        return processed

    async def send_pending(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Deliver every pending notification whose send_at has passed.

        Returns:
            {"sent": int, "failed": int, "details": [{"id", "status", "error"}]}
        """
        now = now or datetime.utcnow()
        result = await self.db.execute(
            select(EmailNotification)
            .where(
                EmailNotification.status == NotificationStatus.PENDING,
                or_(EmailNotification.send_at.is_(None), EmailNotification.send_at <= now),
            )
            .options(selectinload(EmailNotification.user))
            .order_by(EmailNotification.created_at)
        )
        pending = result.scalars().all()

        sent = 0
        details: List[Dict[str, Any]] = []
        for notification in pending:
            if not notification.recipient_email and notification.user is not None:
                notification.recipient_email = notification.user.email
            if await self.dispatch(notification):
                sent += 1
            details.append({
                "id": notification.id,
                "status": notification.status,
                "error": notification.error,
            })

        failed = len(pending) - sent
        logger.info(f"[Notify] Processed {len(pending)} pending notification(s): {sent} sent, {failed} failed")
        return {"sent": sent, "failed": failed, "details": details}
