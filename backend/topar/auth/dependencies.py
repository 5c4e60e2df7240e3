"""
Authentication dependencies for FastAPI routes
"""

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from ..config import Settings
from ..core.exceptions import UnauthenticatedError
from ..core.logging import get_logger
from ..database import get_db
from ..models.user import User
from .security import decode_access_token

logger = get_logger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def get_app_settings(request: Request) -> Settings:
    """Settings the application was created with"""
    return request.app.state.settings


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    settings: Settings = Depends(get_app_settings),
    db: Session = Depends(get_db),
) -> User:
    """
    Resolve the caller from the bearer token.
    Any failure is reported as 401 before a route body runs.
    """
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise UnauthenticatedError("No token provided")

    user_id = decode_access_token(credentials.credentials, settings)

    user = db.query(User).filter(User.id == user_id).first()
    if not user or not user.is_active:
        logger.warning(f"Token presented for unknown or inactive user {user_id}")
        raise UnauthenticatedError("Invalid token")

    return user
