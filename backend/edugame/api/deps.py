"""FastAPI dependencies shared across routes."""

import uuid

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from edugame.core.security import decode_access_token
from edugame.db.models import RoleEnum, User
from edugame.db.session import get_db
from edugame.services.notifier import Notifier, build_notifier

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/users/login")

_notifier: Notifier | None = None


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> User:
    """Decode JWT and return the authenticated user, or 401."""
    payload = decode_access_token(token)
    if payload is None:
        raise _unauthorized("Invalid or expired token")
    try:
        user_id = uuid.UUID(payload["sub"])
    except (KeyError, ValueError):
        raise _unauthorized("Invalid token payload")

    user = db.query(User).filter(User.id == user_id).first()
    if user is None or not user.is_active:
        raise _unauthorized("User not found or inactive")
    return user


def require_roles(*roles: RoleEnum):
    """Dependency factory: 403 unless the caller holds one of *roles*."""

    def _check(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Requires role: {' or '.join(r.value for r in roles)}",
            )
        return current_user

    return _check


require_admin = require_roles(RoleEnum.ADMIN)
require_author = require_roles(RoleEnum.ADMIN, RoleEnum.TEACHER)


def get_notifier() -> Notifier:
    """Process-wide notifier, built from settings on first use."""
    global _notifier
    if _notifier is None:
        _notifier = build_notifier()
    return _notifier
