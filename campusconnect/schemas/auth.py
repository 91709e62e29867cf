"""Pydantic schemas for sign-in and password changes."""
from pydantic import BaseModel, Field

from campusconnect.schemas.user import UserOut


class LoginRequest(BaseModel):
    email: str
    password: str


class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserOut


class PasswordChange(BaseModel):
    current_password: str
    new_password: str = Field(min_length=1)
