"""
Password hashing (bcrypt) and JWT access / refresh tokens (python-jose).

Tokens carry the user id in "sub" plus a "type" claim; only "access"
tokens authenticate requests and WebSocket connections, "refresh" tokens
are accepted by /auth/refresh alone.
"""
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

import bcrypt
from fastapi import HTTPException, status
from fastapi.security import HTTPBearer
from jose import JWTError, jwt

from teamdesk.core.config import settings


security = HTTPBearer()

ACCESS = "access"
REFRESH = "refresh"

# bcrypt ignores input past 72 bytes and newer releases reject it outright
BCRYPT_MAX_BYTES = 72


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def get_password_hash(password: str) -> str:
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(_password_bytes(password), salt).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return bcrypt.checkpw(_password_bytes(plain_password), hashed_password.encode("utf-8"))


def _sign(claims: Dict[str, Any], token_type: str, lifetime: timedelta) -> str:
    payload = {**claims, "type": token_type, "exp": datetime.utcnow() + lifetime}
    return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    return _sign(data, ACCESS, lifetime)


def create_refresh_token(data: Dict[str, Any]) -> str:
    return _sign(data, REFRESH, timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS))


def token_claims(user) -> Dict[str, Any]:
    return {"sub": str(user.id), "username": user.username, "is_admin": bool(user.is_admin)}


def create_token_pair(user) -> Dict[str, str]:
    claims = token_claims(user)
    return {
        "access_token": create_access_token(claims),
        "refresh_token": create_refresh_token(claims),
        "token_type": "bearer",
    }


def _verify(token: str) -> Dict[str, Any]:
    return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])


def decode_token(token: str) -> Dict[str, Any]:
    """Claims of a valid token of either type; 401 for a bad signature or expiry"""
    try:
        return _verify(token)
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )


def decode_access_token_or_none(token: str) -> Optional[Dict[str, Any]]:
    """Claims of a usable access token, None otherwise (never raises)"""
    try:
        claims = _verify(token)
    except JWTError:
        return None
    if claims.get("type") != ACCESS or not claims.get("sub"):
        return None
    return claims
