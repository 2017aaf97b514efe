from teamdesk.services.connection_manager import ConnectionManager, EventType, connection_manager
from teamdesk.services.email_service import EmailService, email_service, render_template, strip_html
from teamdesk.services.notification_service import NotificationService, due_text

__all__ = [
    # Real-time
    "ConnectionManager",
    "EventType",
    "connection_manager",
    # Email
    "EmailService",
    "email_service",
    "render_template",
    "strip_html",
    "NotificationService",
    "due_text",
]
