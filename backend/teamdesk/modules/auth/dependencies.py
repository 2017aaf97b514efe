"""
Request dependencies resolving the caller from a bearer token.

HTTP routes use get_current_user / get_current_admin; the WebSocket
handshake has no dependency injection for the query-string token and calls
get_user_from_token with its own session.
"""
import uuid
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from teamdesk.core.database import get_db
from teamdesk.core.logging_config import set_user_id
from teamdesk.core.security import ACCESS, decode_access_token_or_none, decode_token, security
from teamdesk.models.user import User


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


def subject_from_payload(payload: dict, token_type: str = ACCESS) -> str:
    """The user id a token of `token_type` was issued for; 401 when malformed"""
    if payload.get("type") != token_type:
        raise _unauthorized(f"Invalid token type - expected {token_type} token")

    subject = payload.get("sub")
    if not subject:
        raise _unauthorized("Invalid token payload")
    try:
        uuid.UUID(str(subject))
    except ValueError:
        raise _unauthorized("Invalid user ID format")
    return str(subject)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> User:
    user_id = subject_from_payload(decode_token(credentials.credentials))

    user = await db.get(User, user_id)
    if user is None:
        raise _unauthorized("User not found")
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User account is inactive")

    set_user_id(user.id)
    return user


async def get_current_admin(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return current_user


async def get_user_from_token(token: str, db: AsyncSession) -> Optional[User]:
    """Active user for an access token, or None for anything unusable"""
    payload = decode_access_token_or_none(token)
    if payload is None:
        return None

    user = await db.get(User, payload["sub"])
    if user is None or not user.is_active:
        return None
    return user
