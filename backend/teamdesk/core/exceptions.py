"""
TeamDesk errors that are not plain HTTPExceptions.

Request parsing and permission gates raise HTTPException directly in the
endpoints. The classes here come from services (estimations, calendar,
attachments, email) and carry their own HTTP status, so anything that
escapes an endpoint is rendered by the handler in main.py as

    {"success": false, "error": {"code": ..., "message": ..., "details": {...}}}

Usage:
    estimation = await db.get(Estimation, estimation_id)
    if estimation is None:
        raise ResourceNotFoundError("Estimation", estimation_id)
"""
from typing import Any, Dict, Optional


class TeamDeskError(Exception):
    status_code: int = 500
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


# ==================== Request-level errors ====================

class AuthorizationError(TeamDeskError):
    """The caller is authenticated but may not touch this record"""
    status_code = 403
    code = "NOT_AUTHORIZED"

    def __init__(self, message: str = "Access denied"):
        super().__init__(message)


class ResourceNotFoundError(TeamDeskError):
    status_code = 404

    def __init__(self, resource_type: str, resource_id: Optional[str] = None):
        super().__init__(
            f"{resource_type} not found",
            code=f"{resource_type.upper().replace(' ', '_')}_NOT_FOUND",
            details={"resource_type": resource_type, "resource_id": resource_id},
        )


class ValidationError(TeamDeskError):
    status_code = 400
    code = "VALIDATION_ERROR"

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, details={"field": field} if field else {})


class ConflictError(TeamDeskError):
    """The change would break a reference another record holds"""
    status_code = 409
    code = "CONFLICT"


# ==================== Email ====================

class EmailError(TeamDeskError):
    """Any failure to render or deliver a notification email"""
    status_code = 502
    code = "EMAIL_ERROR"


class EmailNotConfiguredError(EmailError):
    status_code = 503
    code = "EMAIL_NOT_CONFIGURED"

    def __init__(self):
        super().__init__("Email service not configured")


class EmailDeliveryError(EmailError):
    code = "EMAIL_DELIVERY_FAILED"

    def __init__(self, to_email: str, reason: str):
        super().__init__(
            f"Failed to send email to {to_email}: {reason}",
            details={"to_email": to_email, "reason": reason},
        )


class EmailTemplateError(EmailError):
    status_code = 500
    code = "EMAIL_TEMPLATE_UNKNOWN"

    def __init__(self, template: str):
        super().__init__(f"Unknown email template: {template}", details={"template": template})


def error_response(error: TeamDeskError) -> Dict[str, Any]:
    return {"success": False, "error": error.to_dict()}
