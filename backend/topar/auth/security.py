"""
JWT access token helpers
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt

from ..config import Settings
from ..core.exceptions import UnauthenticatedError


def create_access_token(subject: int, settings: Settings, expires_delta: Optional[timedelta] = None) -> str:
    """Issue a signed access token whose ``sub`` claim is the account id"""
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))
    to_encode = {
        "sub": str(subject),
        "iat": now,
        "exp": expire,
        "type": "access",
    }
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str, settings: Settings) -> int:
    """
    Verify a bearer token and return the account id it was issued for.

    Raises:
        UnauthenticatedError: signature, expiry or claims are invalid
    """
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        raise UnauthenticatedError("Invalid token")

    if payload.get("type") != "access":
        raise UnauthenticatedError("Invalid token type")

    try:
        return int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        raise UnauthenticatedError("Invalid token subject")
