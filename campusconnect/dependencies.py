"""FastAPI dependencies for the signed-in user and role checks."""
from typing import Callable, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from campusconnect.database import get_db
from campusconnect.errors import PermissionDeniedError
from campusconnect.models.user import User, UserRole
from campusconnect.services import auth_service

# auto_error=False so a missing header surfaces as our own 401, not a bare 403
bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    token = credentials.credentials if credentials else None
    return auth_service.current_user(db, token)


def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> Optional[User]:
    """The signed-in user, or None for anonymous callers. A bad token is still a 401."""
    if credentials is None:
        return None
    return auth_service.current_user(db, credentials.credentials)


def require_roles(*roles: UserRole) -> Callable[..., User]:
    """Dependency factory: the current user must hold one of ``roles``."""

    def _check(user: User = Depends(get_current_user)) -> User:
        if user.role not in roles:
            raise PermissionDeniedError(
                f"This action requires one of: {', '.join(r.value for r in roles)}"
            )
        return user

    return _check
