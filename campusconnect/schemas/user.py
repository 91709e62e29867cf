"""Pydantic schemas for Users."""
from __future__ import annotations
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from campusconnect.models.user import UserRole


class UserCreate(BaseModel):
    email: str
    full_name: str
    password: str
    role: str = "student"
    department_id: Optional[str] = None
    club_id: Optional[str] = None


class UserOut(BaseModel):
    user_id: str = Field(serialization_alias="userID")
    email: str
    full_name: str = Field(serialization_alias="fullName")
    role: UserRole
    department_id: Optional[str] = Field(default=None, serialization_alias="departmentID")
    club_id: Optional[str] = Field(default=None, serialization_alias="clubID")
    created_at: Optional[datetime] = Field(default=None, serialization_alias="createdAt")

    model_config = {"from_attributes": True}
