"""
TeamDesk settings, read from the environment and an optional .env file.

SECRET_KEY and JWT_SECRET_KEY have no defaults; the app refuses to start
without them.
"""
from pathlib import Path
from typing import Any, List
import json

from pydantic_settings import BaseSettings, SettingsConfigDict


def parse_cors_origins(value: Any) -> List[str]:
    """Accept a JSON list, a comma-separated string or an actual list"""
    if isinstance(value, (list, tuple)):
        return [str(origin) for origin in value]
    if not isinstance(value, str):
        return []

    value = value.strip()
    if value.startswith("["):
        try:
            return [str(origin) for origin in json.loads(value)]
        except json.JSONDecodeError:
            pass
    return [origin.strip() for origin in value.split(",") if origin.strip()]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # --- Application ---
    APP_NAME: str = "TeamDesk"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    SECRET_KEY: str
    API_VERSION: str = "v1"
    SERVER_HOST: str = "0.0.0.0"
    SERVER_PORT: int = 8000
    # Multipart uploads carry up to MAX_UPLOAD_FILES files of MAX_UPLOAD_SIZE_MB
    MAX_REQUEST_SIZE_MB: int = 60

    # --- Database ---
    DATABASE_URL: str = "sqlite+aiosqlite:///./teamdesk.db"
    DB_ECHO: bool = False
    # Only used for PostgreSQL outside development
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_RECYCLE_SECONDS: int = 1800

    # --- Auth ---
    JWT_SECRET_KEY: str
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24
    REFRESH_TOKEN_EXPIRE_DAYS: int = 30
    BCRYPT_ROUNDS: int = 12

    # --- Outbound email ---
    SMTP_HOST: str = "smtp.gmail.com"
    SMTP_PORT: int = 587
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_USE_TLS: bool = True
    EMAIL_FROM: str = "noreply@teamdesk.local"
    EMAIL_FROM_NAME: str = "TeamDesk"
    # Links in notification emails point here
    FRONTEND_URL: str = "http://localhost:5173"

    # --- CORS ---
    CORS_ORIGINS_STR: str = "http://localhost:3000,http://localhost:5173"

    # --- Rate limiting (register / login) ---
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_PER_MINUTE: int = 60

    # --- Uploads (chat attachments, company logos) ---
    UPLOAD_DIR: str = "uploads"
    MAX_UPLOAD_SIZE_MB: int = 10
    MAX_UPLOAD_FILES: int = 5

    # --- Real-time ---
    WS_PING_INTERVAL_SECONDS: int = 30

    # --- Logging ---
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "logs/teamdesk.log"

    def __init__(self, **values: Any):
        super().__init__(**values)
        if self.LOG_FILE:
            Path(self.LOG_FILE).parent.mkdir(parents=True, exist_ok=True)

    @property
    def CORS_ORIGINS(self) -> List[str]:
        return parse_cors_origins(self.CORS_ORIGINS_STR)

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @property
    def smtp_configured(self) -> bool:
        return bool(self.SMTP_HOST and self.SMTP_USER and self.SMTP_PASSWORD)


settings = Settings()
