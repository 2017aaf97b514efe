"""
Outbound email for TeamDesk.

Templates are plain functions from a data dict to HTML; every value is
escaped and missing values fall back to a readable default. Delivery goes
through aiosmtplib. SMTP settings start from the environment and an admin
can replace them at runtime (in memory only, see /email/smtp).

Two sending styles:
  deliver()     raises EmailNotConfiguredError / EmailDeliveryError
  send_email()  returns True/False for best-effort mail (welcome)
"""
import html
import re
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any, Callable, Dict, Optional

import aiosmtplib

from teamdesk.core.config import settings
from teamdesk.core.exceptions import EmailDeliveryError, EmailNotConfiguredError, EmailTemplateError
from teamdesk.core.logging_config import logger


_TAG_RE = re.compile(r"<[^>]+>")
_SPACE_RE = re.compile(r"\s+")

ACCENT = "#2f6fde"
PANEL_STYLE = "background:#f4f6f9;border-radius:6px;padding:14px 18px;margin:16px 0;"
BUTTON_STYLE = (
    f"background:{ACCENT};color:#fff;padding:10px 22px;border-radius:4px;"
    "text-decoration:none;display:inline-block;"
)


def strip_html(content: str) -> str:
    """Plain-text alternative for an HTML body"""
    return _SPACE_RE.sub(" ", _TAG_RE.sub("", content)).strip()


def _field(data: Dict[str, Any], key: str, default: str) -> str:
    value = data.get(key)
    if value is None or value == "":
        return default
    return html.escape(str(value))


def _page(heading: str, *blocks: str) -> str:
    body = "\n".join(blocks)
    return (
        f'<div style="font-family:Helvetica,Arial,sans-serif;max-width:600px;margin:0 auto;color:#222;">'
        f"<h2 style=\"color:{ACCENT};\">{heading}</h2>{body}"
        f"<p style=\"color:#777;font-size:12px;\">Sent by {html.escape(settings.APP_NAME)}</p></div>"
    )


def _greeting(data: Dict[str, Any]) -> str:
    return f"<p>Hello {_field(data, 'recipient_name', 'there')},</p>"


def _panel(*lines: str) -> str:
    return f'<div style="{PANEL_STYLE}">' + "".join(lines) + "</div>"


def _button(url: Optional[str], label: str) -> str:
    href = html.escape(url or "#", quote=True)
    return f'<p style="margin:24px 0;"><a href="{href}" style="{BUTTON_STYLE}">{label}</a></p>'


def _task_assignment(data: Dict[str, Any]) -> str:
    return _page(
        "You have a new task",
        _greeting(data),
        f"<p>You were assigned a task by {_field(data, 'assigner_name', 'a team member')}.</p>",
        _panel(
            f"<h3>{_field(data, 'task_title', 'Task')}</h3>",
            f"<p>{_field(data, 'task_description', 'No description provided.')}</p>",
            f"<p><b>Due:</b> {_field(data, 'due_date', 'No due date')}"
            f" &middot; <b>Priority:</b> {_field(data, 'priority', 'Normal')}</p>",
        ),
        _button(data.get("task_url"), "Open task"),
    )


def _task_comment(data: Dict[str, Any]) -> str:
    author = _field(data, "commenter_name", "Someone")
    return _page(
        "New comment",
        _greeting(data),
        f"<p>{author} commented on <b>{_field(data, 'task_title', 'Task')}</b>:</p>",
        _panel(
            f"<blockquote style=\"margin:0;border-left:3px solid {ACCENT};padding-left:10px;\">"
            f"{_field(data, 'comment_content', 'No comment content')}</blockquote>",
            f"<p style=\"color:#777;font-size:12px;\">{author}, {_field(data, 'comment_time', 'recently')}</p>",
        ),
        _button(data.get("task_url"), "Reply"),
    )


def _task_due(data: Dict[str, Any]) -> str:
    return _page(
        "Task reminder",
        _greeting(data),
        f"<p>A task assigned to you is due {_field(data, 'due_text', 'soon')}.</p>",
        _panel(
            f"<h3>{_field(data, 'task_title', 'Task')}</h3>",
            f"<p>{_field(data, 'task_description', 'No description provided.')}</p>",
            f"<p><b>Due:</b> {_field(data, 'due_date', 'Soon')}"
            f" &middot; <b>Status:</b> {_field(data, 'status', 'Open')}</p>",
        ),
        _button(data.get("task_url"), "Open task"),
    )


def _welcome(data: Dict[str, Any]) -> str:
    return _page(
        f"Welcome to {html.escape(settings.APP_NAME)}",
        _greeting(data),
        "<p>Your account is ready. Create your first task, join a channel "
        "or invite a colleague to get going.</p>",
        _button(data.get("dashboard_url"), "Open dashboard"),
    )


TEMPLATES: Dict[str, Callable[[Dict[str, Any]], str]] = {
    "task_assignment": _task_assignment,
    "task_comment": _task_comment,
    "task_due": _task_due,
    "welcome": _welcome,
}


def render_template(template: str, data: Dict[str, Any]) -> str:
    try:
        renderer = TEMPLATES[template]
    except KeyError:
        raise EmailTemplateError(template)
    return renderer(data)


class EmailService:
    """SMTP sender whose connection settings can be swapped at runtime"""

    def __init__(self):
        self.frontend_url = settings.FRONTEND_URL
        self.configure(
            host=settings.SMTP_HOST,
            port=settings.SMTP_PORT,
            username=settings.SMTP_USER,
            password=settings.SMTP_PASSWORD,
            use_tls=settings.SMTP_USE_TLS,
            from_email=settings.EMAIL_FROM,
            from_name=settings.EMAIL_FROM_NAME,
            announce=False,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.smtp_host and self.smtp_user and self.smtp_password)

    def configure(
        self,
        host: str,
        port: int,
        username: Optional[str],
        password: Optional[str],
        use_tls: bool,
        from_email: str,
        from_name: Optional[str] = None,
        announce: bool = True,
    ) -> None:
        self.smtp_host = host
        self.smtp_port = port
        self.smtp_user = username or ""
        self.smtp_password = password or ""
        self.smtp_use_tls = use_tls
        self.from_email = from_email
        self.from_name = from_name or settings.EMAIL_FROM_NAME
        if announce:
            logger.info(f"[Email] SMTP now {host}:{port} (tls={use_tls}, user={self.smtp_user or '-'})")

    def get_settings(self) -> Dict[str, Any]:
        """Current settings including the raw password; callers mask it"""
        return {
            "host": self.smtp_host,
            "port": self.smtp_port,
            "username": self.smtp_user,
            "password": self.smtp_password,
            "use_tls": self.smtp_use_tls,
            "from_email": self.from_email,
            "from_name": self.from_name,
            "configured": self.is_configured,
        }

    def _build_message(self, to_email: str, subject: str, html_content: str, text_content: str) -> MIMEMultipart:
        message = MIMEMultipart("alternative")
        message["From"] = f"{self.from_name} <{self.from_email}>"
        message["To"] = to_email
        message["Subject"] = subject
        # Last part is the preferred rendering
        message.attach(MIMEText(text_content, "plain"))
        message.attach(MIMEText(html_content, "html"))
        return message

    def _smtp_kwargs(self) -> Dict[str, Any]:
        return {
            "hostname": self.smtp_host,
            "port": self.smtp_port,
            "username": self.smtp_user or None,
            "password": self.smtp_password or None,
            "start_tls": self.smtp_use_tls,
        }

    async def deliver(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None,
    ) -> None:
        """
        Send one email or raise.

        Raises:
            EmailNotConfiguredError: no SMTP credentials
            EmailDeliveryError: the server refused the message or could not be reached
        """
        if not self.is_configured:
            raise EmailNotConfiguredError()

        message = self._build_message(to_email, subject, html_content, text_content or strip_html(html_content))
        try:
            await aiosmtplib.send(message, **self._smtp_kwargs())
        except aiosmtplib.SMTPException as e:
            logger.error(f"[Email/SMTP] {to_email} rejected: {e}")
            raise EmailDeliveryError(to_email, str(e)) from e
        except OSError as e:
            logger.error(f"[Email/SMTP] Cannot reach {self.smtp_host}:{self.smtp_port}: {e}")
            raise EmailDeliveryError(to_email, str(e)) from e

        logger.info(f"[Email/SMTP] Sent '{subject}' to {to_email}")

    async def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None,
    ) -> bool:
        if not self.is_configured:
            logger.debug(f"[Email] Not configured, dropping '{subject}' for {to_email}")
            return False
        try:
            await self.deliver(to_email, subject, html_content, text_content)
        except EmailDeliveryError:
            return False
        return True

    async def send_test_email(self, to_email: str) -> None:
        sent_at = datetime.utcnow().strftime("%Y-%m-%d %H:%M:%S")
        await self.deliver(
            to_email,
            f"{settings.APP_NAME} SMTP test",
            _page("SMTP settings work", f"<p>This test message left the server at {sent_at} UTC.</p>"),
            f"SMTP settings work. This test message left the server at {sent_at} UTC.",
        )

    async def send_welcome_email(self, to_email: str, user_name: Optional[str]) -> bool:
        html_content = render_template("welcome", {
            "recipient_name": user_name,
            "dashboard_url": self.frontend_url,
        })
        return await self.send_email(to_email, f"Welcome to {settings.APP_NAME}", html_content)


email_service = EmailService()
