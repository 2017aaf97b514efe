"""
HTTP middleware for TeamDesk.

Order in main.py: request logging wraps everything, then security headers,
then the body size limit. WebSocket traffic passes through untouched.
"""
import time
from typing import Callable, Dict

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp

from teamdesk.core.logging_config import logger, generate_request_id, set_request_id, set_user_id


QUIET_PATHS = frozenset({"/", "/health", "/favicon.ico", "/docs", "/redoc", "/openapi.json"})

SLOW_REQUEST_MS = 1000

SECURITY_HEADERS: Dict[str, str] = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Tags each request with an id (the caller's X-Request-ID if sent), logs
    the outcome with its duration and echoes X-Request-ID / X-Response-Time.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or generate_request_id()
        set_request_id(request_id)
        label = f"{request.method} {request.url.path}"
        quiet = request.url.path in QUIET_PATHS
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as exc:
            elapsed_ms = (time.perf_counter() - started) * 1000
            logger.error(
                f"[HTTP] {label} raised {type(exc).__name__} after {elapsed_ms:.0f}ms",
                exc_info=True,
                extra={"event_type": "http_request_error", "duration_ms": elapsed_ms},
            )
            raise
        finally:
            set_user_id("")

        elapsed_ms = (time.perf_counter() - started) * 1000
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time"] = f"{elapsed_ms:.2f}ms"

        if not quiet:
            logger.log_request(request.method, request.url.path, response.status_code, elapsed_ms)
            if elapsed_ms > SLOW_REQUEST_MS:
                logger.log_performance(label, elapsed_ms, SLOW_REQUEST_MS)

        set_request_id("")
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        response.headers.update(SECURITY_HEADERS)
        return response


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """413 for bodies whose declared Content-Length exceeds max_size bytes"""

    def __init__(self, app: ASGIApp, max_size: int):
        super().__init__(app)
        self.max_size = max_size

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        declared = request.headers.get("content-length", "")
        if declared.isdigit() and int(declared) > self.max_size:
            logger.warning(f"[HTTP] Rejected {declared}-byte body on {request.url.path}")
            return JSONResponse(
                status_code=413,
                content={"detail": f"Request body too large (limit {self.max_size // (1024 * 1024)}MB)"},
            )
        return await call_next(request)
