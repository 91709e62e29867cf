"""Pydantic schemas for Departments and Clubs."""
from typing import Optional
from pydantic import BaseModel, Field


class DepartmentCreate(BaseModel):
    name: str


class DepartmentOut(BaseModel):
    id: str
    name: str

    model_config = {"from_attributes": True}


class ClubCreate(BaseModel):
    name: str
    department_id: Optional[str] = None
    description: Optional[str] = None


class ClubOut(BaseModel):
    id: str
    name: str
    department_id: Optional[str] = Field(default=None, serialization_alias="departmentId")
    description: Optional[str] = None

    model_config = {"from_attributes": True}
