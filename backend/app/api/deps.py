from __future__ import annotations

import logging
from typing import Generator

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from backend.app.core.security import decode_access_token
from backend.app.db.models.core_types import Role
from backend.app.db.models.models_v1 import User
from backend.app.db.session import SessionLocal

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def get_db() -> Generator:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the bearer token to an active user, 401 otherwise."""
    if credentials is None or not credentials.credentials:
        raise _unauthorized("Not authenticated")

    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise _unauthorized("Invalid or expired token")

    try:
        user_id = int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        raise _unauthorized("Invalid token payload")

    user = db.get(User, user_id)
    if not user or not user.is_active:
        logger.info("Rejected token for missing or disabled user id=%s", user_id)
        raise _unauthorized("User not found or disabled")
    return user


def require_roles(*roles: Role):
    """Dependency allowing only the listed roles through (403 otherwise)."""
    allowed = frozenset(roles)

    def role_checker(user: User = Depends(get_current_user)) -> User:
        if user.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Role {user.role.value} is not allowed to perform this action",
            )
        return user

    return role_checker


def ensure_hotel_access(user: User, hotel_id: int) -> None:
    """Hotel managers only act on their own hotel."""
    if user.role == Role.hotel_manager and user.hotel_id != hotel_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only access data for your own hotel",
        )
