"""User API routes: registration and the read-only user directory."""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from campusconnect.database import get_db, commit_or_raise
from campusconnect.dependencies import get_current_user, get_optional_user
from campusconnect.errors import ConflictError, InputValidationError, PermissionDeniedError
from campusconnect.models.user import User, UserRole
from campusconnect.schemas.user import UserCreate, UserOut
from campusconnect.services import auth_service, directory

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def create_user(
    payload: UserCreate,
    db: Session = Depends(get_db),
    caller: Optional[User] = Depends(get_optional_user),
):
    """Register a user with a role and optional department / club assignment.

    Anyone may self-register as a student; every other role is created by an
    SSG admin.
    """
    try:
        role = UserRole(payload.role)
    except ValueError:
        raise InputValidationError(f"Invalid role: {payload.role}")
    if role != UserRole.student and (caller is None or caller.role != UserRole.ssg_admin):
        raise PermissionDeniedError(f"Only an SSG admin can create {role.value} accounts")
    email = payload.email.strip().lower()
    if "@" not in email:
        raise InputValidationError("A valid email address is required")
    if not payload.full_name.strip():
        raise InputValidationError("Full name is required")
    auth_service.validate_new_password(payload.password)

    if db.query(User).filter(User.email == email).first():
        raise ConflictError("An account with this email already exists")
    if payload.department_id:
        directory.get_department(db, payload.department_id)
    if payload.club_id:
        directory.get_club(db, payload.club_id)

    user = User(
        email=email,
        full_name=payload.full_name.strip(),
        role=role,
        password_hash=auth_service.hash_password(payload.password),
        department_id=payload.department_id,
        club_id=payload.club_id,
    )
    db.add(user)
    commit_or_raise(db, "create the user")
    db.refresh(user)
    logger.info("Created user %s (%s, %s)", user.user_id, user.email, role.value)
    return user


@router.get("/", response_model=list[UserOut])
def list_users(db: Session = Depends(get_db), _: User = Depends(get_current_user)):
    """List all users (directory for starting conversations)."""
    return db.query(User).order_by(User.full_name).all()


@router.get("/{user_id}", response_model=UserOut)
def get_user(user_id: str, db: Session = Depends(get_db), _: User = Depends(get_current_user)):
    """Fetch a single user by ID."""
    return directory.get_user(db, user_id)
