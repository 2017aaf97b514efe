"""
Unit Tests for NotificationService

A recording mailer stands in for SMTP; rows go to the test database.
"""
from datetime import datetime, timedelta

import pytest
from sqlalchemy import select

from teamdesk.core.exceptions import EmailDeliveryError
from teamdesk.models import (
    Task,
    TaskStatus,
    TaskParticipant,
    EmailNotification,
    NotificationStatus,
    NotificationType,
)
from teamdesk.services.notification_service import NotificationService, due_text


class RecordingMailer:
    def __init__(self, fail: bool = False, fail_for=None, crash: bool = False):
        self.fail = fail
        self.fail_for = fail_for
        self.crash = crash
        self.sent = []

    async def deliver(self, to_email, subject, html_content, text_content=None):
        if self.crash:
            raise RuntimeError("template engine blew up")
        if self.fail or to_email == self.fail_for:
            raise EmailDeliveryError(to_email, "relay refused")
        self.sent.append((to_email, subject))


NOW = datetime(2026, 3, 10, 12, 0, 0)


class TestDueText:

    def test_future(self):
        assert due_text(NOW + timedelta(days=5), NOW) == "in 5 day(s)"

    def test_tomorrow(self):
        assert due_text(NOW + timedelta(days=1), NOW) == "tomorrow"

    def test_today(self):
        assert due_text(NOW, NOW) == "today"

    def test_past(self):
        assert due_text(NOW - timedelta(days=2), NOW) == "2 day(s) ago"


class TestPipeline:

    @pytest.mark.asyncio
    async def test_successful_send(self, db_session, test_user):
        mailer = RecordingMailer()
        service = NotificationService(db_session, mailer=mailer)

        notification = await service.notify(
            test_user, "task_assigned", NotificationType.TASK_ASSIGNMENT, "Subject", "<p>Body</p>"
        )

        assert notification.status == NotificationStatus.SENT
        assert notification.sent_at is not None
        assert notification.error is None
        assert mailer.sent == [(test_user.email, "Subject")]

    @pytest.mark.asyncio
    async def test_failed_send_is_recorded(self, db_session, test_user):
        service = NotificationService(db_session, mailer=RecordingMailer(fail=True))

        notification = await service.notify(
            test_user, "task_assigned", NotificationType.TASK_ASSIGNMENT, "Subject", "<p>Body</p>"
        )

        assert notification.status == NotificationStatus.FAILED
        assert "relay refused" in notification.error
        assert notification.sent_at is None

    @pytest.mark.asyncio
    async def test_preference_off_skips(self, db_session, test_user):
        test_user.notification_preferences = {"task_assigned": False}
        mailer = RecordingMailer()
        service = NotificationService(db_session, mailer=mailer)

        notification = await service.notify(
            test_user, "task_assigned", NotificationType.TASK_ASSIGNMENT, "Subject", "<p>Body</p>"
        )

        assert notification is None
        assert mailer.sent == []
        rows = (await db_session.execute(select(EmailNotification))).scalars().all()
        assert rows == []

    @pytest.mark.asyncio
    async def test_commenter_is_not_notified(self, db_session, test_user):
        task = Task(title="Write report", creator_id=test_user.id)
        db_session.add(task)
        await db_session.flush()
        service = NotificationService(db_session, mailer=RecordingMailer())

        result = await service.notify_task_comment(task, None, test_user, test_user)

        assert result is None


async def add_task(db_session, creator, participants, **fields) -> Task:
    task = Task(title=fields.pop("title", "Overdue task"), creator_id=creator.id, **fields)
    db_session.add(task)
    await db_session.flush()
    for user in participants:
        db_session.add(TaskParticipant(task_id=task.id, user_id=user.id))
    await db_session.commit()
    return task


class TestOverdueReminders:

    @pytest.mark.asyncio
    async def test_reminds_participants_of_overdue_tasks(self, db_session, test_user, other_user):
        await add_task(db_session, test_user, [test_user, other_user],
                       due_date=NOW - timedelta(days=1), status=TaskStatus.IN_PROGRESS)
        await add_task(db_session, test_user, [test_user], title="Finished",
                       due_date=NOW - timedelta(days=1), status=TaskStatus.DONE)
        await add_task(db_session, test_user, [test_user], title="Not yet due",
                       due_date=NOW + timedelta(days=3))
        mailer = RecordingMailer()

        processed = await NotificationService(db_session, mailer=mailer).process_overdue_task_reminders(NOW)

        assert processed == 2
        assert sorted(to for to, _ in mailer.sent) == sorted([test_user.email, other_user.email])
        assert all(subject == "Task Due Reminder: Overdue task" for _, subject in mailer.sent)

    @pytest.mark.asyncio
    async def test_reminder_respects_preference(self, db_session, test_user, other_user):
        other_user.notification_preferences = {"task_due_reminder": False}
        await add_task(db_session, test_user, [test_user, other_user], due_date=NOW - timedelta(days=1))

        processed = await NotificationService(
            db_session, mailer=RecordingMailer()
        ).process_overdue_task_reminders(NOW)

        assert processed == 1


class TestSendPending:

    @pytest.mark.asyncio
    async def test_only_due_rows_are_sent(self, db_session, test_user):
        mailer = RecordingMailer()
        service = NotificationService(db_session, mailer=mailer)
        due = await service.create_notification(test_user, "Due", "<p>x</p>", send_at=NOW - timedelta(hours=1))
        unscheduled = await service.create_notification(test_user, "Unscheduled", "<p>x</p>")
        later = await service.create_notification(test_user, "Later", "<p>x</p>", send_at=NOW + timedelta(hours=1))

        result = await service.send_pending(NOW)

        assert result["sent"] == 2
        assert result["failed"] == 0
        assert {d["id"] for d in result["details"]} == {due.id, unscheduled.id}
        assert later.status == NotificationStatus.PENDING

    @pytest.mark.asyncio
    async def test_missing_recipient_fails(self, db_session, test_user):
        service = NotificationService(db_session, mailer=RecordingMailer())
        notification = await service.create_notification(test_user, "Hi", "<p>x</p>")
        notification.recipient_email = None
        test_user.email = None
        await db_session.flush()

        result = await service.send_pending(NOW)

        assert result["failed"] == 1
        assert notification.error == "Recipient has no email address"

    @pytest.mark.asyncio
    async def test_unexpected_error_is_recorded_not_raised(self, db_session, test_user):
        service = NotificationService(db_session, mailer=RecordingMailer(crash=True))
        notification = await service.create_notification(test_user, "Hi", "<p>x</p>")

        result = await service.send_pending(NOW)

        assert result == {
            "sent": 0,
            "failed": 1,
            "details": [{"id": notification.id, "status": NotificationStatus.FAILED,
                         "error": "template engine blew up"}],
        }

    @pytest.mark.asyncio
    async def test_one_failure_keeps_earlier_rows_sent(self, db_session, test_user, other_user):
        mailer = RecordingMailer(fail_for=other_user.email)
        service = NotificationService(db_session, mailer=mailer)
        first = await service.create_notification(test_user, "First", "<p>x</p>", send_at=NOW - timedelta(hours=2))
        second = await service.create_notification(other_user, "Second", "<p>x</p>", send_at=NOW - timedelta(hours=1))
        await db_session.commit()

        result = await service.send_pending(NOW)
        await db_session.commit()

        assert result["sent"] == 1
        assert result["failed"] == 1
        await db_session.refresh(first)
        await db_session.refresh(second)
        assert first.status == NotificationStatus.SENT
        assert second.status == NotificationStatus.FAILED
