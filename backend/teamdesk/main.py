"""
TeamDesk API application.

`app` is built by create_app(); run() serves it with uvicorn (the
`teamdesk-api` console script).
"""
from contextlib import asynccontextmanager
from typing import List

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from teamdesk.api.v1.router import api_router
from teamdesk.core.config import settings
from teamdesk.core.database import close_db, init_db
from teamdesk.core.exceptions import TeamDeskError, error_response
from teamdesk.core.logging_config import logger
from teamdesk.core.middleware import (
    RequestLoggingMiddleware,
    RequestSizeLimitMiddleware,
    SecurityHeadersMiddleware,
)
from teamdesk.core.rate_limiter import limiter, rate_limit_exceeded_handler
from teamdesk.services.connection_manager import connection_manager


APP_VERSION = "1.0.0"

PLACEHOLDER_SECRETS = {"", "CHANGE_ME", "changeme", "secret"}


async def validate_critical_config() -> List[str]:
    """
    Refuse to start without a database URL and real signing secrets.

    Returns the non-fatal warnings (also logged) so callers can surface them.
    """
    problems = []
    if not settings.DATABASE_URL:
        problems.append("DATABASE_URL is not set")
    for name in ("SECRET_KEY", "JWT_SECRET_KEY"):
        if getattr(settings, name) in PLACEHOLDER_SECRETS:
            problems.append(f"{name} is missing or a placeholder")

    if problems:
        for problem in problems:
            logger.critical(f"[Startup] {problem}")
        raise RuntimeError("Invalid configuration: " + "; ".join(problems))

    warnings = []
    if not settings.smtp_configured:
        warnings.append("SMTP credentials not set, notification emails will be stored as failed")
    if settings.is_production and settings.DATABASE_URL.startswith("sqlite"):
        warnings.append("production is running on SQLite")
    if settings.is_production and settings.DEBUG:
        warnings.append("DEBUG is on in production, error messages leak to clients")

    for warning in warnings:
        logger.warning(f"[Startup] {warning}")
    return warnings


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        f"[Startup] {settings.APP_NAME} {APP_VERSION} "
        f"(env={settings.ENVIRONMENT}, api={settings.API_VERSION})"
    )
    await validate_critical_config()
    await init_db()
    logger.info("[Startup] Database ready")

    yield

    open_sockets = connection_manager.connection_count
    if open_sockets:
        logger.info(f"[Shutdown] Dropping {open_sockets} WebSocket connection(s)")
    await close_db()
    logger.info(f"[Shutdown] {settings.APP_NAME} stopped")


def register_middleware(app: FastAPI) -> None:
    # Starlette runs the last added middleware first, so CORS sees requests first
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestSizeLimitMiddleware, max_size=settings.MAX_REQUEST_SIZE_MB * 1024 * 1024)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Response-Time"],
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    @app.exception_handler(TeamDeskError)
    async def handle_teamdesk_error(request: Request, exc: TeamDeskError):
        logger.warning(f"[{exc.code}] {request.method} {request.url.path}: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=error_response(exc))

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.log_error_with_context(exc, context=f"{request.method} {request.url.path}")
        return JSONResponse(
            status_code=500,
            content={
                "detail": "Internal server error",
                "message": str(exc) if settings.DEBUG else "An error occurred",
            },
        )


def register_system_routes(app: FastAPI) -> None:

    @app.get("/health", tags=["System"])
    async def health():
        return {
            "status": "healthy",
            "app_name": settings.APP_NAME,
            "version": APP_VERSION,
            "environment": settings.ENVIRONMENT,
            "websocket_connections": connection_manager.connection_count,
            "online_users": len(connection_manager.online_user_ids()),
        }

    @app.get("/", tags=["System"])
    async def index():
        return {
            "message": f"{settings.APP_NAME} API",
            "version": APP_VERSION,
            "api": f"/api/{settings.API_VERSION}",
            "docs": "/docs",
            "health": "/health",
        }


def create_app() -> FastAPI:
    application = FastAPI(
        title=settings.APP_NAME,
        description="Team tasks, workflows, chat, stock and back-office API",
        version=APP_VERSION,
        lifespan=lifespan,
        # Trailing-slash redirects break CORS preflights
        redirect_slashes=False,
    )
    register_exception_handlers(application)
    register_middleware(application)
    register_system_routes(application)
    application.include_router(api_router, prefix=f"/api/{settings.API_VERSION}")
    return application


app = create_app()


def run():
    import uvicorn

    uvicorn.run(
        "teamdesk.main:app",
        host=settings.SERVER_HOST,
        port=settings.SERVER_PORT,
        reload=settings.DEBUG,
    )


if __name__ == "__main__":
    run()
