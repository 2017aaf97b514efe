"""Email notification endpoints, preferences and SMTP settings"""
from datetime import datetime, timedelta

import pytest
from httpx import AsyncClient

from teamdesk.schemas.notification import PASSWORD_MASK
from teamdesk.services.email_service import email_service


async def create_notification(client: AsyncClient, headers: dict, user_id: str, **overrides) -> dict:
    payload = {"user_id": user_id, "subject": "Reminder", "content": "<p>Standup at 10</p>"}
    payload.update(overrides)
    response = await client.post("/api/v1/email/notifications", json=payload, headers=headers)
    assert response.status_code == 201
    return response.json()


class TestNotifications:

    @pytest.mark.asyncio
    async def test_immediate_send_fails_without_smtp(self, client: AsyncClient, test_user, auth_headers):
        notification = await create_notification(client, auth_headers, test_user.id, metadata={"source": "test"})

        assert notification["status"] == "failed"
        assert notification["error"] == "Email service not configured"
        assert notification["recipient_email"] == test_user.email
        assert notification["metadata"] == {"source": "test"}

    @pytest.mark.asyncio
    async def test_immediate_send_with_working_mailer(self, client: AsyncClient, test_user, auth_headers, monkeypatch):
        delivered = []

        async def fake_deliver(to_email, subject, html_content, text_content=None):
            delivered.append((to_email, subject))

        monkeypatch.setattr(email_service, "deliver", fake_deliver)

        notification = await create_notification(client, auth_headers, test_user.id)

        assert notification["status"] == "sent"
        assert notification["sent_at"] is not None
        assert delivered == [(test_user.email, "Reminder")]

    @pytest.mark.asyncio
    async def test_cannot_create_for_someone_else(self, client: AsyncClient, other_user, auth_headers):
        response = await client.post(
            "/api/v1/email/notifications",
            json={"user_id": other_user.id, "subject": "Hi", "content": "x"},
            headers=auth_headers
        )

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_scheduled_stays_pending(self, client: AsyncClient, test_user, auth_headers):
        send_at = (datetime.utcnow() + timedelta(days=1)).isoformat()

        notification = await create_notification(client, auth_headers, test_user.id, send_at=send_at)

        assert notification["status"] == "pending"
        assert notification["sent_at"] is None

    @pytest.mark.asyncio
    async def test_list_only_own(self, client: AsyncClient, test_user, other_user, auth_headers, other_auth_headers):
        mine = await create_notification(client, auth_headers, test_user.id)
        await create_notification(client, other_auth_headers, other_user.id)

        response = await client.get("/api/v1/email/notifications", headers=auth_headers)

        assert [n["id"] for n in response.json()] == [mine["id"]]

    @pytest.mark.asyncio
    async def test_other_users_notification_forbidden(self, client: AsyncClient, other_user, auth_headers,
                                                      other_auth_headers, admin_auth_headers):
        theirs = await create_notification(client, other_auth_headers, other_user.id)

        forbidden = await client.get(f"/api/v1/email/notifications/{theirs['id']}", headers=auth_headers)
        assert forbidden.status_code == 403

        as_admin = await client.get(f"/api/v1/email/notifications/{theirs['id']}", headers=admin_auth_headers)
        assert as_admin.status_code == 200

    @pytest.mark.asyncio
    async def test_edit_rules(self, client: AsyncClient, test_user, auth_headers, admin_auth_headers):
        send_at = (datetime.utcnow() + timedelta(days=1)).isoformat()
        pending = await create_notification(client, auth_headers, test_user.id, send_at=send_at)
        failed = await create_notification(client, auth_headers, test_user.id)

        edited = await client.put(
            f"/api/v1/email/notifications/{pending['id']}", json={"subject": "Moved"}, headers=auth_headers
        )
        assert edited.json()["subject"] == "Moved"

        status_change = await client.put(
            f"/api/v1/email/notifications/{pending['id']}", json={"status": "sent"}, headers=auth_headers
        )
        assert status_change.status_code == 403

        locked = await client.put(
            f"/api/v1/email/notifications/{failed['id']}", json={"subject": "Retry"}, headers=auth_headers
        )
        assert locked.status_code == 403
        assert locked.json()["detail"] == "Only pending notifications can be edited"

        by_admin = await client.put(
            f"/api/v1/email/notifications/{failed['id']}", json={"status": "pending"}, headers=admin_auth_headers
        )
        assert by_admin.json()["status"] == "pending"

    @pytest.mark.asyncio
    async def test_mark_read_and_delete(self, client: AsyncClient, test_user, auth_headers):
        notification = await create_notification(client, auth_headers, test_user.id)
        assert notification["is_read"] is False

        read = await client.post(f"/api/v1/email/notifications/{notification['id']}/read", headers=auth_headers)
        assert read.json()["is_read"] is True

        deleted = await client.delete(f"/api/v1/email/notifications/{notification['id']}", headers=auth_headers)
        assert deleted.status_code == 204

        missing = await client.get(f"/api/v1/email/notifications/{notification['id']}", headers=auth_headers)
        assert missing.status_code == 404


class TestJobs:

    @pytest.mark.asyncio
    async def test_send_pending_is_admin_only(self, client: AsyncClient, auth_headers):
        response = await client.post("/api/v1/email/send-pending", headers=auth_headers)

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_send_pending_picks_up_due_rows(self, client: AsyncClient, test_user, auth_headers,
                                                  admin_auth_headers):
        due = (datetime.utcnow() - timedelta(minutes=5)).isoformat()
        later = (datetime.utcnow() + timedelta(days=2)).isoformat()
        ready = await create_notification(client, auth_headers, test_user.id, send_at=due)
        await create_notification(client, auth_headers, test_user.id, send_at=later)

        response = await client.post("/api/v1/email/send-pending", headers=admin_auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["sent"] == 0
        assert data["failed"] == 1
        assert data["details"][0]["id"] == ready["id"]
        assert data["details"][0]["status"] == "failed"

    @pytest.mark.asyncio
    async def test_process_reminders(self, client: AsyncClient, auth_headers, admin_auth_headers):
        denied = await client.post("/api/v1/email/process-reminders", headers=auth_headers)
        assert denied.status_code == 403

        response = await client.post("/api/v1/email/process-reminders", headers=admin_auth_headers)
        assert response.json() == {"processed": 0}


class TestSettings:

    @pytest.mark.asyncio
    async def test_preferences_merge(self, client: AsyncClient, auth_headers):
        response = await client.put(
            "/api/v1/email/settings",
            json={"email": "new.address@example.com", "notification_preferences": {"task_commented": False}},
            headers=auth_headers
        )

        assert response.status_code == 200
        data = response.json()
        assert data["email"] == "new.address@example.com"
        assert data["notification_preferences"]["task_commented"] is False
        assert data["notification_preferences"]["task_assigned"] is True

    @pytest.mark.asyncio
    async def test_smtp_settings_are_admin_only(self, client: AsyncClient, auth_headers):
        response = await client.get("/api/v1/email/smtp", headers=auth_headers)

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_smtp_password_is_masked_and_kept(self, client: AsyncClient, admin_auth_headers):
        settings_payload = {
            "host": "smtp.example.com",
            "port": 2525,
            "username": "mailer",
            "password": "s3cret",
            "use_tls": False,
            "from_email": "desk@example.com",
        }

        saved = await client.put("/api/v1/email/smtp", json=settings_payload, headers=admin_auth_headers)
        assert saved.status_code == 200
        assert saved.json()["password"] == PASSWORD_MASK
        assert saved.json()["configured"] is True

        settings_payload["password"] = PASSWORD_MASK
        settings_payload["port"] = 587
        await client.put("/api/v1/email/smtp", json=settings_payload, headers=admin_auth_headers)

        assert email_service.smtp_password == "s3cret"
        assert email_service.smtp_port == 587

    @pytest.mark.asyncio
    async def test_test_email_reports_failure(self, client: AsyncClient, test_user, auth_headers):
        response = await client.post("/api/v1/email/test", json={}, headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == {
            "success": False,
            "to": test_user.email,
            "error": "Email service not configured",
        }
