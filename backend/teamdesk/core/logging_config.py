"""
TeamDesk logging.

Every module logs through the single `logger` exported here (a
TeamDeskLogger named "teamdesk"). Messages carry a bracketed subsystem
prefix ([HTTP], [Auth], [WS], [Notify], [Email/SMTP], [Stock] ...).

Request and user ids live in context variables set by the request logging
middleware and the auth dependency, and are attached to every record:
JSON lines in production, a readable single line elsewhere.
"""
import json
import logging
import sys
import traceback
import uuid
from contextvars import ContextVar
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, List, Optional

from teamdesk.core.config import settings


request_id_var: ContextVar[str] = ContextVar("request_id", default="")
user_id_var: ContextVar[str] = ContextVar("user_id", default="")

# Attributes of a bare LogRecord; everything else was passed through `extra`
_STANDARD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message", "asctime", "request_id", "user_id",
}

_NOISY_LOGGERS = ("httpx", "httpcore", "uvicorn.access", "sqlalchemy.engine", "aiosmtplib")

MAX_LOG_BYTES = 10 * 1024 * 1024


def get_request_id() -> str:
    return request_id_var.get()


def set_request_id(request_id: str) -> None:
    request_id_var.set(request_id)


def get_user_id() -> str:
    return user_id_var.get()


def set_user_id(user_id: str) -> None:
    user_id_var.set(str(user_id) if user_id else "")


def generate_request_id() -> str:
    return uuid.uuid4().hex[:8]


class JSONFormatter(logging.Formatter):
    """One JSON object per line"""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.utcnow().isoformat() + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        if get_request_id():
            entry["request_id"] = get_request_id()
        if get_user_id():
            entry["user_id"] = get_user_id()

        entry.update({
            key: value for key, value in vars(record).items()
            if key not in _STANDARD_ATTRS and not key.startswith("_")
        })

        if record.exc_info and record.exc_info[0] is not None:
            exc_type, exc_value, exc_tb = record.exc_info
            entry["exception"] = {
                "type": exc_type.__name__,
                "message": str(exc_value),
                "traceback": traceback.format_exception(exc_type, exc_value, exc_tb),
            }

        return json.dumps(entry, default=str)


class ContextualFormatter(logging.Formatter):
    """Plain text with the request and user ids filled in (or '-')"""

    def format(self, record: logging.LogRecord) -> str:
        record.request_id = get_request_id() or "-"
        record.user_id = get_user_id() or "-"
        return super().format(record)


class TeamDeskLogger(logging.Logger):
    """logging.Logger plus helpers for the events TeamDesk logs everywhere"""

    def log_request(self, method: str, path: str, status_code: int, duration_ms: float, **extra) -> None:
        if status_code >= 500:
            level = logging.ERROR
        elif status_code >= 400:
            level = logging.WARNING
        else:
            level = logging.INFO
        self.log(
            level,
            f"[HTTP] {method} {path} -> {status_code} ({duration_ms:.0f}ms)",
            extra={
                "event_type": "http_request",
                "http_method": method,
                "http_path": path,
                "http_status": status_code,
                "duration_ms": round(duration_ms, 2),
                **extra,
            },
        )

    def log_auth_event(self, event: str, success: bool, username: Optional[str] = None,
                       reason: Optional[str] = None, **extra) -> None:
        outcome = "ok" if success else f"failed ({reason or 'unknown'})"
        who = f" for {username}" if username else ""
        self.log(
            logging.INFO if success else logging.WARNING,
            f"[Auth] {event}{who}: {outcome}",
            extra={"event_type": "auth", "auth_event": event, "auth_success": success, **extra},
        )

    def log_permission_denied(self, area: str, level: str, user_id: str, **extra) -> None:
        self.warning(
            f"[Permissions] {area}:{level} denied for user {user_id}",
            extra={"event_type": "permission_denied", "permission_area": area, "permission_level": level, **extra},
        )

    def log_error_with_context(self, error: Exception, context: Optional[str] = None, **extra) -> None:
        """Error with traceback; context names what was being attempted"""
        self.error(
            f"[Error] {context or 'unhandled'}: {type(error).__name__}: {error}",
            exc_info=error,
            extra={"event_type": "error", "error_type": type(error).__name__, "error_context": context, **extra},
        )

    def log_performance(self, operation: str, duration_ms: float, threshold_ms: float = 1000, **extra) -> None:
        slow = duration_ms > threshold_ms
        self.log(
            logging.WARNING if slow else logging.DEBUG,
            f"[Perf] {operation} took {duration_ms:.0f}ms" + (f" (over {threshold_ms:.0f}ms)" if slow else ""),
            extra={"event_type": "performance", "duration_ms": round(duration_ms, 2), "slow": slow, **extra},
        )


def _build_handlers(json_output: bool) -> List[logging.Handler]:
    if json_output:
        console_format = file_format = JSONFormatter()
    else:
        console_format = ContextualFormatter("%(levelname)-8s | %(message)s")
        file_format = ContextualFormatter(
            "%(asctime)s | %(levelname)-8s | [%(request_id)s] [%(user_id)s] | "
            "%(name)s:%(lineno)d | %(message)s"
        )

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(logging.INFO)
    console.setFormatter(console_format)
    handlers: List[logging.Handler] = [console]

    if settings.LOG_FILE:
        path = Path(settings.LOG_FILE)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(path, maxBytes=MAX_LOG_BYTES, backupCount=10 if json_output else 5)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(file_format)
        handlers.append(file_handler)

    return handlers


def setup_logging() -> TeamDeskLogger:
    logging.setLoggerClass(TeamDeskLogger)
    app_logger = logging.getLogger("teamdesk")
    # getLogger may hand back a plain Logger created before the class was set
    app_logger.__class__ = TeamDeskLogger
    app_logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    app_logger.propagate = False

    app_logger.handlers.clear()
    for handler in _build_handlers(json_output=settings.is_production):
        app_logger.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    app_logger.debug(f"[Logging] Ready (env={settings.ENVIRONMENT}, level={settings.LOG_LEVEL})")
    return app_logger


logger: TeamDeskLogger = setup_logging()
