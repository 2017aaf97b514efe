"""
Unit Tests for EmailService and the email templates
"""
import pytest
import aiosmtplib

from teamdesk.core.exceptions import EmailDeliveryError, EmailNotConfiguredError, EmailTemplateError
from teamdesk.services.email_service import EmailService, render_template, strip_html, TEMPLATES


def configured_service() -> EmailService:
    service = EmailService()
    service.configure(
        host="smtp.example.com",
        port=2525,
        username="mailer",
        password="secret",
        use_tls=False,
        from_email="desk@example.com",
    )
    return service


class TestTemplates:

    def test_known_templates(self):
        assert set(TEMPLATES) == {"task_assignment", "task_comment", "task_due", "welcome"}

    def test_no_template_without_a_sender(self):
        # There is no reset flow, so there is no reset email
        with pytest.raises(EmailTemplateError):
            render_template("password_reset", {})

    def test_unknown_template_raises(self):
        with pytest.raises(EmailTemplateError) as exc_info:
            render_template("newsletter", {})

        assert exc_info.value.details == {"template": "newsletter"}

    def test_task_assignment_fills_fields(self):
        rendered = render_template("task_assignment", {
            "recipient_name": "Dana",
            "assigner_name": "Sam",
            "task_title": "Quarterly report",
            "task_url": "http://desk.local/tasks/1",
        })

        assert "Hello Dana" in rendered
        assert "by Sam" in rendered
        assert "Quarterly report" in rendered
        assert "No due date" in rendered
        assert 'href="http://desk.local/tasks/1"' in rendered

    def test_values_are_escaped(self):
        rendered = render_template("task_comment", {"comment_content": "<script>alert(1)</script>"})

        assert "<script>" not in rendered
        assert "&lt;script&gt;" in rendered

    def test_missing_values_use_defaults(self):
        rendered = render_template("task_due", {})

        assert "Hello there" in rendered
        assert "due soon" in rendered


class TestStripHtml:

    def test_strips_tags_and_collapses_whitespace(self):
        assert strip_html("<p>Hello   <b>world</b></p>\n<br>") == "Hello world"


class TestConfiguration:

    def test_unconfigured_without_credentials(self):
        service = EmailService()
        service.smtp_user = ""

        assert service.is_configured is False

    def test_configure_replaces_settings(self):
        service = configured_service()

        current = service.get_settings()
        assert current["host"] == "smtp.example.com"
        assert current["port"] == 2525
        assert current["configured"] is True


class TestDelivery:

    @pytest.mark.asyncio
    async def test_deliver_unconfigured_raises(self):
        service = EmailService()
        service.smtp_password = ""

        with pytest.raises(EmailNotConfiguredError):
            await service.deliver("someone@example.com", "Subject", "<p>Body</p>")

    @pytest.mark.asyncio
    async def test_send_email_unconfigured_returns_false(self):
        service = EmailService()
        service.smtp_password = ""

        assert await service.send_email("someone@example.com", "Subject", "<p>Body</p>") is False

    @pytest.mark.asyncio
    async def test_deliver_builds_multipart_message(self, monkeypatch):
        captured = {}

        async def fake_send(message, **kwargs):
            captured["message"] = message
            captured["kwargs"] = kwargs

        monkeypatch.setattr(aiosmtplib, "send", fake_send)

        await configured_service().deliver("dana@example.com", "Hello", "<p>Hi <b>Dana</b></p>")

        message = captured["message"]
        assert message["To"] == "dana@example.com"
        assert message["Subject"] == "Hello"
        parts = message.get_payload()
        assert [p.get_content_type() for p in parts] == ["text/plain", "text/html"]
        assert parts[0].get_payload() == "Hi Dana"
        assert captured["kwargs"]["hostname"] == "smtp.example.com"
        assert captured["kwargs"]["start_tls"] is False

    @pytest.mark.asyncio
    async def test_smtp_error_becomes_delivery_error(self, monkeypatch):
        async def refusing_send(message, **kwargs):
            raise aiosmtplib.SMTPException("mailbox unavailable")

        monkeypatch.setattr(aiosmtplib, "send", refusing_send)

        with pytest.raises(EmailDeliveryError) as exc_info:
            await configured_service().deliver("dana@example.com", "Hello", "<p>Hi</p>")

        assert exc_info.value.details["to_email"] == "dana@example.com"

    @pytest.mark.asyncio
    async def test_connection_error_becomes_delivery_error(self, monkeypatch):
        async def unreachable(message, **kwargs):
            raise ConnectionRefusedError("connection refused")

        monkeypatch.setattr(aiosmtplib, "send", unreachable)

        service = configured_service()
        with pytest.raises(EmailDeliveryError):
            await service.deliver("dana@example.com", "Hello", "<p>Hi</p>")
        assert await service.send_email("dana@example.com", "Hello", "<p>Hi</p>") is False
