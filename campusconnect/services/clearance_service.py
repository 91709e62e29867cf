"""Clearance workflow service: club → department → SSG approval.

Responsibilities:
- Initiation: one non-terminal request per student, org names snapshotted
- Stage updates: role/scope authorization, per-stage state machine
  (pending → approved | rejected)
- Derived state: cascading rejection, overall status, one-time unified ID
- Compare-and-swap writes on ``version`` so concurrent approvers cannot
  derive the overall status from a stale copy of the request
"""
import logging
import time
from datetime import datetime, timezone
from typing import Any, Optional

import pytz
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from campusconnect.config import settings
from campusconnect.database import commit_or_raise
from campusconnect.errors import (
    ConflictError,
    InputValidationError,
    NotFoundError,
    PermissionDeniedError,
    StorageError,
)
from campusconnect.models.clearance_request import (
    STAGE_FIELDS,
    ApprovalStatus,
    ClearanceRequest,
    OverallStatus,
    Stage,
)
from campusconnect.models.user import User, UserRole
from campusconnect.services import directory

logger = logging.getLogger(__name__)

STAGE_APPROVER_ROLE = {
    Stage.club: UserRole.club_admin,
    Stage.department: UserRole.department_admin,
    Stage.ssg: UserRole.ssg_admin,
}

RESOLVED = (ApprovalStatus.approved, ApprovalStatus.rejected)
CLUB_CLEARED = (ApprovalStatus.approved, ApprovalStatus.not_applicable)


def make_unified_clearance_id(request_id: str, year: int) -> str:
    return f"UC-{year}-{request_id[:4].upper()}"


def campus_year(moment: datetime) -> int:
    return moment.astimezone(pytz.timezone(settings.CAMPUS_TIMEZONE)).year


def _clean_notes(notes: Optional[str]) -> Optional[str]:
    if notes is None:
        return None
    notes = notes.strip()
    return notes or None


def derive_stage_update(
    request: ClearanceRequest,
    stage: Stage,
    new_status: ApprovalStatus,
    approver_id: str,
    notes: Optional[str],
    now: datetime,
) -> dict[str, Any]:
    """Compute every attribute a stage transition writes, derived state included.

    ``request`` must be the latest stored copy; the result is applied in one
    conditional UPDATE guarded by ``request.version``.
    """
    fields = STAGE_FIELDS[stage]
    notes = _clean_notes(notes)
    values: dict[str, Any] = {
        fields.status: new_status,
        fields.approver: approver_id,
        fields.date: now,
        fields.notes: notes,
    }

    statuses = {s: request.stage_status(s) for s in Stage}
    statuses[stage] = new_status

    if new_status == ApprovalStatus.rejected and stage != Stage.ssg and statuses[Stage.ssg] == ApprovalStatus.pending:
        ssg = STAGE_FIELDS[Stage.ssg]
        values[ssg.status] = ApprovalStatus.rejected
        values[ssg.date] = now
        values[ssg.notes] = notes or f"Auto-rejected due to {stage.value} rejection"
        statuses[Stage.ssg] = ApprovalStatus.rejected

    # A rejection anywhere is terminal, even when a later call repeats an approval
    if ApprovalStatus.rejected in statuses.values():
        values["overall_status"] = OverallStatus.rejected
    elif (
        statuses[Stage.club] in CLUB_CLEARED
        and statuses[Stage.department] == ApprovalStatus.approved
        and statuses[Stage.ssg] == ApprovalStatus.approved
    ):
        values["overall_status"] = OverallStatus.approved
        if not request.unified_clearance_id:
            values["unified_clearance_id"] = make_unified_clearance_id(request.id, campus_year(now))
    else:
        values["overall_status"] = OverallStatus.pending

    values["version"] = request.version + 1
    return values


# ── Reads ──────────────────────────────────────────────────────────


def get_request(db: Session, request_id: str) -> ClearanceRequest:
    request = db.query(ClearanceRequest).filter(ClearanceRequest.id == request_id).first()
    if not request:
        raise NotFoundError("Clearance request", request_id)
    return request


def _load_latest(db: Session, request_id: str) -> ClearanceRequest:
    """Read the stored row, discarding whatever the session had cached."""
    request = (
        db.query(ClearanceRequest)
        .populate_existing()
        .filter(ClearanceRequest.id == request_id)
        .first()
    )
    if not request:
        raise NotFoundError("Clearance request", request_id)
    return request


def get_current_request(db: Session, student_id: str) -> Optional[ClearanceRequest]:
    """The student's most recent request, terminal or not."""
    return (
        db.query(ClearanceRequest)
        .filter(ClearanceRequest.student_user_id == student_id)
        .order_by(ClearanceRequest.requested_date.desc())
        .first()
    )


def get_request_for_viewer(db: Session, request_id: str, viewer: User) -> ClearanceRequest:
    request = get_request(db, request_id)
    if viewer.role == UserRole.student:
        if request.student_user_id != viewer.user_id:
            raise PermissionDeniedError("You can only view your own clearance requests")
    else:
        _check_scope(request, viewer)
    return request


def list_requests(
    db: Session,
    viewer: User,
    overall_status: Optional[OverallStatus] = None,
) -> list[ClearanceRequest]:
    """Requests visible to an approver, newest first."""
    query = db.query(ClearanceRequest)
    if viewer.role == UserRole.ssg_admin:
        pass
    elif viewer.role == UserRole.department_admin:
        if not viewer.department_id:
            raise PermissionDeniedError("Department admin has no assigned department")
        query = query.filter(ClearanceRequest.department_id_at_request == viewer.department_id)
    elif viewer.role == UserRole.club_admin:
        if not viewer.club_id:
            raise PermissionDeniedError("Club admin has no assigned club")
        query = query.filter(ClearanceRequest.club_id_at_request == viewer.club_id)
    else:
        raise PermissionDeniedError("Only approvers can list clearance requests")

    if overall_status is not None:
        query = query.filter(ClearanceRequest.overall_status == overall_status)
    return query.order_by(ClearanceRequest.requested_date.desc()).all()


# ── Initiation ─────────────────────────────────────────────────────


def initiate_request(db: Session, student: User) -> ClearanceRequest:
    """Create a new clearance request for a student.

    The active-request check is a pre-write read, so two simultaneous
    initiations by the same student can still both succeed.
    """
    if student.role != UserRole.student:
        raise PermissionDeniedError("Only students can initiate a clearance request")
    if not student.department_id:
        raise InputValidationError("Student has no department assignment")

    latest = get_current_request(db, student.user_id)
    if latest is not None and latest.overall_status != OverallStatus.rejected:
        raise ConflictError(
            f"A clearance request already exists with status {latest.overall_status.value}"
        )

    department = directory.get_department(db, student.department_id)
    club = directory.get_club(db, student.club_id) if student.club_id else None

    request = ClearanceRequest(
        student_user_id=student.user_id,
        student_full_name=student.full_name,
        student_department_name=department.name,
        student_club_name=club.name if club else None,
        department_id_at_request=department.id,
        club_id_at_request=club.id if club else None,
        requested_date=datetime.now(timezone.utc),
        club_approval_status=ApprovalStatus.pending if club else ApprovalStatus.not_applicable,
        department_approval_status=ApprovalStatus.pending,
        ssg_status=ApprovalStatus.pending,
        overall_status=OverallStatus.pending,
        version=1,
    )
    db.add(request)
    commit_or_raise(db, "create the clearance request")
    db.refresh(request)
    logger.info("Clearance request %s initiated by student %s", request.id, student.user_id)
    return request


# ── Stage updates ──────────────────────────────────────────────────


def _check_scope(request: ClearanceRequest, approver: User) -> None:
    """Department and club admins act only on their own unit's requests."""
    if approver.role == UserRole.department_admin:
        if approver.department_id != request.department_id_at_request:
            raise PermissionDeniedError("Request belongs to another department")
    elif approver.role == UserRole.club_admin:
        if not request.club_id_at_request or approver.club_id != request.club_id_at_request:
            raise PermissionDeniedError("Request belongs to another club")
    elif approver.role != UserRole.ssg_admin:
        raise PermissionDeniedError()


def _check_transition(request: ClearanceRequest, stage: Stage, new_status: ApprovalStatus) -> None:
    current = request.stage_status(stage)
    if current == ApprovalStatus.not_applicable:
        raise InputValidationError(f"The {stage.value} stage does not apply to this request")
    if current in RESOLVED and current != new_status:
        raise ConflictError(f"The {stage.value} stage is already {current.value}")
    if current == ApprovalStatus.pending and request.overall_status in (
        OverallStatus.rejected,
        OverallStatus.approved,
    ):
        raise ConflictError(f"Clearance request is already {request.overall_status.value}")
    # SSG decides last, once the lower stages are cleared
    if (
        stage == Stage.ssg
        and current == ApprovalStatus.pending
        and (
            request.stage_status(Stage.club) not in CLUB_CLEARED
            or request.stage_status(Stage.department) != ApprovalStatus.approved
        )
    ):
        raise ConflictError("The SSG stage waits for the club and department stages to be approved")


def parse_stage(value: str) -> Stage:
    try:
        return Stage(value)
    except ValueError:
        raise InputValidationError(f"Unknown clearance stage: {value}")


def parse_decision(value: str) -> ApprovalStatus:
    if value not in (ApprovalStatus.approved.value, ApprovalStatus.rejected.value):
        raise InputValidationError(f"Stage status must be 'approved' or 'rejected', got '{value}'")
    return ApprovalStatus(value)


def update_stage(
    db: Session,
    request_id: str,
    stage: Stage,
    new_status: ApprovalStatus,
    approver: User,
    notes: Optional[str] = None,
) -> ClearanceRequest:
    """Record one approver's decision and recompute the derived state.

    Read, derive, and conditional write run in a loop; a version mismatch
    means another approver wrote in between, so the cycle starts over on the
    fresh row. Attempts are bounded with exponential backoff.
    """
    if new_status not in RESOLVED:
        raise InputValidationError("Stage status must be 'approved' or 'rejected'")
    if approver.role != STAGE_APPROVER_ROLE[stage]:
        raise PermissionDeniedError(
            f"Only a {STAGE_APPROVER_ROLE[stage].value} can update the {stage.value} stage"
        )

    attempts = max(1, settings.CLEARANCE_UPDATE_MAX_ATTEMPTS)
    for attempt in range(1, attempts + 1):
        request = _load_latest(db, request_id)
        _check_scope(request, approver)
        _check_transition(request, stage, new_status)

        values = derive_stage_update(
            request, stage, new_status, approver.user_id, notes, datetime.now(timezone.utc)
        )
        expected_version = request.version
        try:
            updated = (
                db.query(ClearanceRequest)
                .filter(ClearanceRequest.id == request_id, ClearanceRequest.version == expected_version)
                .update(
                    {getattr(ClearanceRequest, attr): value for attr, value in values.items()},
                    synchronize_session=False,
                )
            )
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error("Clearance %s: stage update failed: %s", request_id, exc)
            raise StorageError("Could not update the clearance request. Temporary failure, try again.") from exc
        if updated == 1:
            commit_or_raise(db, "update the clearance request")
            request = _load_latest(db, request_id)
            logger.info(
                "Clearance %s: %s stage %s by %s (overall %s, version %d)",
                request_id,
                stage.value,
                new_status.value,
                approver.user_id,
                request.overall_status.value,
                request.version,
            )
            return request

        db.rollback()
        if attempt < attempts:
            delay = settings.CLEARANCE_RETRY_BACKOFF_SECONDS * (2 ** (attempt - 1))
            logger.warning(
                "Clearance %s changed during %s stage update (attempt %d/%d), retrying in %.2fs",
                request_id,
                stage.value,
                attempt,
                attempts,
                delay,
            )
            time.sleep(delay)

    logger.error("Clearance %s: gave up on %s stage update after %d attempts", request_id, stage.value, attempts)
    raise StorageError("The clearance request is being updated by someone else. Temporary failure, try again.")
