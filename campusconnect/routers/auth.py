"""Authentication API routes."""
import logging
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from campusconnect.database import get_db
from campusconnect.dependencies import get_current_user
from campusconnect.models.user import User
from campusconnect.schemas.auth import LoginRequest, PasswordChange, TokenOut
from campusconnect.schemas.user import UserOut
from campusconnect.services import auth_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/login", response_model=TokenOut)
def login(payload: LoginRequest, db: Session = Depends(get_db)):
    """Exchange email and password for a bearer token."""
    user = auth_service.authenticate(db, payload.email, payload.password)
    return TokenOut(access_token=auth_service.create_access_token(user), user=UserOut.model_validate(user))


@router.get("/me", response_model=UserOut)
def me(user: User = Depends(get_current_user)):
    return user


@router.post("/change-password", status_code=status.HTTP_204_NO_CONTENT)
def change_password(
    payload: PasswordChange,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Re-authenticate with the current password, then set a new one."""
    auth_service.change_password(db, user, payload.current_password, payload.new_password)
