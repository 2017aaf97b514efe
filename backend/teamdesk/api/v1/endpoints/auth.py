"""
Registration, login and token refresh.

Register and login are rate limited per client (slowapi). Every outcome is
written to the auth log with the reason for failures.
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from teamdesk.core.database import get_db
from teamdesk.core.logging_config import logger, set_user_id
from teamdesk.core.rate_limiter import LOGIN_LIMIT, REGISTER_LIMIT, limiter
from teamdesk.core.security import (
    REFRESH,
    create_access_token,
    create_token_pair,
    decode_token,
    get_password_hash,
    token_claims,
    verify_password,
)
from teamdesk.core.types import utcnow
from teamdesk.models.user import User, default_preferences
from teamdesk.modules.auth.dependencies import get_current_user, subject_from_payload
from teamdesk.schemas.user import (
    LoginResponse,
    RefreshTokenRequest,
    Token,
    UserLogin,
    UserRegister,
    UserResponse,
)
from teamdesk.services.email_service import email_service


router = APIRouter()


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def _reject(event: str, status_code: int, detail: str, username: Optional[str] = None, **extra) -> HTTPException:
    logger.log_auth_event(event=event, success=False, username=username, reason=detail, **extra)
    return HTTPException(status_code=status_code, detail=detail)


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(REGISTER_LIMIT)
async def register(request: Request, payload: UserRegister, db: AsyncSession = Depends(get_db)):
    """Create an account; new users get every notification preference switched on"""
    taken = await db.scalar(select(User.id).where(User.username == payload.username))
    if taken:
        raise _reject("register", status.HTTP_400_BAD_REQUEST, "Username already exists", payload.username)

    user = User(
        username=payload.username,
        email=payload.email,
        full_name=payload.full_name,
        hashed_password=get_password_hash(payload.password),
        notification_preferences=default_preferences(),
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    logger.log_auth_event(event="register", success=True, username=user.username)

    if user.email:
        await email_service.send_welcome_email(user.email, user.full_name or user.username)

    return user


@router.post("/login", response_model=LoginResponse)
@limiter.limit(LOGIN_LIMIT)
async def login(request: Request, credentials: UserLogin, db: AsyncSession = Depends(get_db)):
    client_ip = _client_ip(request)
    user = await db.scalar(select(User).where(User.username == credentials.username))

    # Same answer for unknown user and wrong password
    if user is None or not verify_password(credentials.password, user.hashed_password):
        raise _reject("login", status.HTTP_401_UNAUTHORIZED, "Incorrect username or password",
                      credentials.username, client_ip=client_ip)
    if not user.is_active:
        raise _reject("login", status.HTTP_403_FORBIDDEN, "Account is inactive",
                      credentials.username, client_ip=client_ip)

    user.last_login = utcnow()
    await db.commit()

    set_user_id(user.id)
    logger.log_auth_event(event="login", success=True, username=user.username, client_ip=client_ip)
    return {**create_token_pair(user), "user": UserResponse.model_validate(user)}


@router.get("/me", response_model=UserResponse)
async def me(current_user: User = Depends(get_current_user)):
    return current_user


@router.post("/refresh", response_model=Token)
async def refresh(body: RefreshTokenRequest, db: AsyncSession = Depends(get_db)):
    """New access token for a refresh token; the refresh token itself is returned unchanged"""
    user_id = subject_from_payload(decode_token(body.refresh_token), token_type=REFRESH)

    user = await db.get(User, user_id)
    if user is None:
        raise _reject("token_refresh", status.HTTP_401_UNAUTHORIZED, "User not found")
    if not user.is_active:
        raise _reject("token_refresh", status.HTTP_403_FORBIDDEN, "Account is inactive", user.username)

    logger.log_auth_event(event="token_refresh", success=True, username=user.username)
    return {
        "access_token": create_access_token(token_claims(user)),
        "refresh_token": body.refresh_token,
        "token_type": "bearer",
    }
