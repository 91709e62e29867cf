"""ClearanceRequest ORM model: three-stage (club, department, SSG) approval record.

Column names keep the stored document field names so existing data
(``clubApprovalStatus``, ``ssgStatus``, ``unifiedClearanceID`` ...) stays readable.
"""
import enum
import uuid
from typing import NamedTuple
from sqlalchemy import Column, String, Text, Integer, DateTime, ForeignKey
from sqlalchemy.sql import func
from campusconnect.database import Base
from campusconnect.models import enum_type


class ApprovalStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    not_applicable = "not_applicable"


class OverallStatus(str, enum.Enum):
    pending = "Pending"
    approved = "Approved"
    rejected = "Rejected"
    # Reserved for sanction-flagged requests; never derived by the workflow
    action_required = "Action Required"


class Stage(str, enum.Enum):
    club = "club"
    department = "department"
    ssg = "ssg"


class StageFields(NamedTuple):
    """Attribute names holding one stage's state."""

    status: str
    approver: str
    date: str
    notes: str


STAGE_FIELDS = {
    Stage.club: StageFields("club_approval_status", "club_approver_id", "club_approval_date", "club_approval_notes"),
    Stage.department: StageFields(
        "department_approval_status", "department_approver_id", "department_approval_date", "department_approval_notes"
    ),
    Stage.ssg: StageFields("ssg_status", "ssg_approver_id", "ssg_approval_date", "ssg_approval_notes"),
}


class ClearanceRequest(Base):
    __tablename__ = "clearance_requests"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    student_user_id = Column("studentUserID", String(36), ForeignKey("users.userID"), nullable=False, index=True)
    student_full_name = Column("studentFullName", String(150), nullable=False)
    # Snapshots taken at request time, never re-derived
    student_department_name = Column("studentDepartmentName", String(150), nullable=False)
    student_club_name = Column("studentClubName", String(150), nullable=True)
    department_id_at_request = Column("departmentIdAtRequest", String(36), nullable=False, index=True)
    club_id_at_request = Column("clubIdAtRequest", String(36), nullable=True, index=True)
    requested_date = Column("requestedDate", DateTime(timezone=True), server_default=func.now())

    club_approval_status = Column(
        "clubApprovalStatus", enum_type(ApprovalStatus, "approval_status"), nullable=False
    )
    club_approver_id = Column("clubApproverID", String(36), nullable=True)
    club_approval_date = Column("clubApprovalDate", DateTime(timezone=True), nullable=True)
    club_approval_notes = Column("clubApprovalNotes", Text, nullable=True)

    department_approval_status = Column(
        "departmentApprovalStatus", enum_type(ApprovalStatus, "approval_status"), nullable=False
    )
    department_approver_id = Column("departmentApproverID", String(36), nullable=True)
    department_approval_date = Column("departmentApprovalDate", DateTime(timezone=True), nullable=True)
    department_approval_notes = Column("departmentApprovalNotes", Text, nullable=True)

    ssg_status = Column("ssgStatus", enum_type(ApprovalStatus, "approval_status"), nullable=False)
    ssg_approver_id = Column("ssgApproverID", String(36), nullable=True)
    ssg_approval_date = Column("ssgApprovalDate", DateTime(timezone=True), nullable=True)
    ssg_approval_notes = Column("ssgApprovalNotes", Text, nullable=True)

    # Not unique: the 4-character suffix can repeat within a year
    unified_clearance_id = Column("unifiedClearanceID", String(32), nullable=True, index=True)
    overall_status = Column(
        "overallStatus", enum_type(OverallStatus, "overall_status"), nullable=False, default=OverallStatus.pending
    )
    # Compare-and-swap counter for stage updates
    version = Column(Integer, nullable=False, default=1)

    def stage_status(self, stage: Stage) -> ApprovalStatus:
        return getattr(self, STAGE_FIELDS[stage].status)
