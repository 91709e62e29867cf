"""Pydantic schemas for ClearanceRequests.

Responses use the stored document field names (``clubApprovalStatus``,
``unifiedClearanceID`` ...).
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from campusconnect.models.clearance_request import ApprovalStatus, OverallStatus


class StageDecision(BaseModel):
    status: str  # approved | rejected
    notes: Optional[str] = None


class ClearanceRequestOut(BaseModel):
    id: str
    student_user_id: str = Field(serialization_alias="studentUserID")
    student_full_name: str = Field(serialization_alias="studentFullName")
    student_department_name: str = Field(serialization_alias="studentDepartmentName")
    student_club_name: Optional[str] = Field(default=None, serialization_alias="studentClubName")
    requested_date: Optional[datetime] = Field(default=None, serialization_alias="requestedDate")
    club_id_at_request: Optional[str] = Field(default=None, serialization_alias="clubIdAtRequest")
    department_id_at_request: str = Field(serialization_alias="departmentIdAtRequest")

    club_approval_status: ApprovalStatus = Field(serialization_alias="clubApprovalStatus")
    club_approver_id: Optional[str] = Field(default=None, serialization_alias="clubApproverID")
    club_approval_date: Optional[datetime] = Field(default=None, serialization_alias="clubApprovalDate")
    club_approval_notes: Optional[str] = Field(default=None, serialization_alias="clubApprovalNotes")

    department_approval_status: ApprovalStatus = Field(serialization_alias="departmentApprovalStatus")
    department_approver_id: Optional[str] = Field(default=None, serialization_alias="departmentApproverID")
    department_approval_date: Optional[datetime] = Field(default=None, serialization_alias="departmentApprovalDate")
    department_approval_notes: Optional[str] = Field(default=None, serialization_alias="departmentApprovalNotes")

    ssg_status: ApprovalStatus = Field(serialization_alias="ssgStatus")
    ssg_approver_id: Optional[str] = Field(default=None, serialization_alias="ssgApproverID")
    ssg_approval_date: Optional[datetime] = Field(default=None, serialization_alias="ssgApprovalDate")
    ssg_approval_notes: Optional[str] = Field(default=None, serialization_alias="ssgApprovalNotes")

    unified_clearance_id: Optional[str] = Field(default=None, serialization_alias="unifiedClearanceID")
    overall_status: OverallStatus = Field(serialization_alias="overallStatus")
    version: int

    model_config = {"from_attributes": True}
