"""
slowapi limiter for the public auth endpoints.

Counters live in process memory, so limits are per worker. Disabled
entirely with RATE_LIMIT_ENABLED=false (the test suite does).
"""
from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from teamdesk.core.config import settings
from teamdesk.core.logging_config import logger


LOGIN_LIMIT = "5/minute"
REGISTER_LIMIT = "3/minute"

RETRY_AFTER_SECONDS = 60


def get_user_identifier(request: Request) -> str:
    user_id = getattr(request.state, "user_id", None)
    return f"user:{user_id}" if user_id else f"ip:{get_remote_address(request)}"


limiter = Limiter(
    key_func=get_user_identifier,
    default_limits=[f"{settings.RATE_LIMIT_PER_MINUTE}/minute"],
    storage_uri="memory://",
    enabled=settings.RATE_LIMIT_ENABLED,
)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    logger.warning(f"[RateLimit] {request.url.path} limited for {get_user_identifier(request)} ({exc.detail})")
    return JSONResponse(
        status_code=429,
        content={
            "error": "rate_limit_exceeded",
            "message": "Too many requests. Please slow down.",
            "detail": str(exc.detail),
            "retry_after_seconds": RETRY_AFTER_SECONDS,
        },
        headers={"Retry-After": str(RETRY_AFTER_SECONDS)},
    )
