"""Unit tests for clearance derivation rules and compare-and-swap retries."""
from datetime import datetime, timezone

import pytest
from sqlalchemy.orm import sessionmaker

from campusconnect.config import settings
from campusconnect.errors import ConflictError, InputValidationError, StorageError
from campusconnect.models.clearance_request import ApprovalStatus, ClearanceRequest, OverallStatus, Stage
from campusconnect.models.organization import Department
from campusconnect.models.user import User, UserRole
from campusconnect.services import clearance_service

NOW = datetime(2025, 3, 14, 9, 30, tzinfo=timezone.utc)


def _request(club=ApprovalStatus.pending, department=ApprovalStatus.pending, ssg=ApprovalStatus.pending, **kw):
    return ClearanceRequest(
        id=kw.pop("id", "ab12cd34-0000-0000-0000-000000000000"),
        club_approval_status=club,
        department_approval_status=department,
        ssg_status=ssg,
        overall_status=kw.pop("overall_status", OverallStatus.pending),
        unified_clearance_id=kw.pop("unified_clearance_id", None),
        version=kw.pop("version", 1),
        **kw,
    )


class TestDeriveStageUpdate:
    def test_partial_approval_stays_pending(self):
        values = clearance_service.derive_stage_update(
            _request(), Stage.club, ApprovalStatus.approved, "club-admin", None, NOW
        )
        assert values["club_approval_status"] == ApprovalStatus.approved
        assert values["club_approver_id"] == "club-admin"
        assert values["club_approval_date"] == NOW
        assert values["overall_status"] == OverallStatus.pending
        assert "unified_clearance_id" not in values
        assert values["version"] == 2

    def test_last_approval_issues_unified_id(self):
        request = _request(club=ApprovalStatus.not_applicable, ssg=ApprovalStatus.approved, version=4)
        values = clearance_service.derive_stage_update(
            request, Stage.department, ApprovalStatus.approved, "dept-admin", None, NOW
        )
        assert values["overall_status"] == OverallStatus.approved
        assert values["unified_clearance_id"] == "UC-2025-AB12"
        assert values["version"] == 5

    def test_existing_unified_id_is_kept(self):
        request = _request(
            club=ApprovalStatus.approved,
            department=ApprovalStatus.approved,
            ssg=ApprovalStatus.approved,
            overall_status=OverallStatus.approved,
            unified_clearance_id="UC-2024-AB12",
        )
        values = clearance_service.derive_stage_update(
            request, Stage.ssg, ApprovalStatus.approved, "ssg-admin", None, NOW
        )
        assert values["overall_status"] == OverallStatus.approved
        assert "unified_clearance_id" not in values

    def test_rejection_auto_rejects_pending_ssg(self):
        values = clearance_service.derive_stage_update(
            _request(), Stage.club, ApprovalStatus.rejected, "club-admin", "   ", NOW
        )
        assert values["club_approval_notes"] is None
        assert values["ssg_status"] == ApprovalStatus.rejected
        assert values["ssg_approval_date"] == NOW
        assert values["ssg_approval_notes"] == "Auto-rejected due to club rejection"
        assert "ssg_approver_id" not in values
        assert values["overall_status"] == OverallStatus.rejected

    def test_rejection_leaves_resolved_ssg_alone(self):
        request = _request(ssg=ApprovalStatus.approved)
        values = clearance_service.derive_stage_update(
            request, Stage.department, ApprovalStatus.rejected, "dept-admin", "Missing forms", NOW
        )
        assert "ssg_status" not in values
        assert values["overall_status"] == OverallStatus.rejected

    def test_ssg_rejection(self):
        values = clearance_service.derive_stage_update(
            _request(), Stage.ssg, ApprovalStatus.rejected, "ssg-admin", "Sanctioned", NOW
        )
        assert values["ssg_approval_notes"] == "Sanctioned"
        assert values["overall_status"] == OverallStatus.rejected


class TestTransitionChecks:
    def test_not_applicable_stage(self):
        request = _request(club=ApprovalStatus.not_applicable)
        with pytest.raises(InputValidationError):
            clearance_service._check_transition(request, Stage.club, ApprovalStatus.approved)

    def test_flip_conflicts(self):
        request = _request(department=ApprovalStatus.rejected, overall_status=OverallStatus.rejected)
        with pytest.raises(ConflictError):
            clearance_service._check_transition(request, Stage.department, ApprovalStatus.approved)

    def test_repeat_is_allowed(self):
        request = _request(department=ApprovalStatus.approved)
        clearance_service._check_transition(request, Stage.department, ApprovalStatus.approved)

    @pytest.mark.parametrize("decision", [ApprovalStatus.approved, ApprovalStatus.rejected])
    def test_ssg_waits_for_lower_stages(self, decision):
        for club, department in (
            (ApprovalStatus.pending, ApprovalStatus.approved),
            (ApprovalStatus.approved, ApprovalStatus.pending),
            (ApprovalStatus.not_applicable, ApprovalStatus.pending),
        ):
            with pytest.raises(ConflictError):
                clearance_service._check_transition(_request(club=club, department=department), Stage.ssg, decision)

    def test_ssg_after_lower_stages(self):
        request = _request(club=ApprovalStatus.not_applicable, department=ApprovalStatus.approved)
        clearance_service._check_transition(request, Stage.ssg, ApprovalStatus.approved)

    def test_parse_decision(self):
        assert clearance_service.parse_decision("approved") == ApprovalStatus.approved
        with pytest.raises(InputValidationError):
            clearance_service.parse_decision("not_applicable")


class TestUnifiedId:
    def test_format(self):
        assert clearance_service.make_unified_clearance_id("9f3ab2c1-xyz", 2026) == "UC-2026-9F3A"

    def test_year_follows_campus_timezone(self, monkeypatch):
        monkeypatch.setattr(settings, "CAMPUS_TIMEZONE", "Asia/Manila")
        new_years_eve_utc = datetime(2024, 12, 31, 17, 0, tzinfo=timezone.utc)
        assert clearance_service.campus_year(new_years_eve_utc) == 2025
        monkeypatch.setattr(settings, "CAMPUS_TIMEZONE", "UTC")
        assert clearance_service.campus_year(new_years_eve_utc) == 2024


# ---------------------------------------------------------------------------
# Compare-and-swap: a second writer lands between read and conditional write
# ---------------------------------------------------------------------------
@pytest.fixture
def pending_request(db):
    dept = Department(name="Engineering")
    db.add(dept)
    db.commit()
    student = User(email="s@campus.edu", full_name="Sam", role=UserRole.student, department_id=dept.id)
    dept_admin = User(email="d@campus.edu", full_name="Dee", role=UserRole.department_admin, department_id=dept.id)
    ssg_admin = User(email="g@campus.edu", full_name="Gil", role=UserRole.ssg_admin)
    db.add_all([student, dept_admin, ssg_admin])
    db.commit()
    request = clearance_service.initiate_request(db, student)
    return request.id, dept_admin, ssg_admin


def _annotate_department_elsewhere(db_engine, request_id, notes):
    other = sessionmaker(bind=db_engine)()
    try:
        other.query(ClearanceRequest).filter(ClearanceRequest.id == request_id).update(
            {
                ClearanceRequest.department_approval_notes: notes,
                ClearanceRequest.version: ClearanceRequest.version + 1,
            },
            synchronize_session=False,
        )
        other.commit()
    finally:
        other.close()


class TestCompareAndSwap:
    def test_concurrent_write_is_not_lost(self, db, db_engine, pending_request, monkeypatch):
        request_id, dept_admin, ssg_admin = pending_request
        clearance_service.update_stage(db, request_id, Stage.department, ApprovalStatus.approved, dept_admin)
        original = clearance_service._load_latest
        calls = {"n": 0}

        def racing_load(session, rid):
            request = original(session, rid)
            calls["n"] += 1
            if calls["n"] == 1:
                _annotate_department_elsewhere(db_engine, rid, "Library fines settled")
            return request

        monkeypatch.setattr(clearance_service, "_load_latest", racing_load)
        result = clearance_service.update_stage(db, request_id, Stage.ssg, ApprovalStatus.approved, ssg_admin)

        assert calls["n"] >= 2
        assert result.department_approval_notes == "Library fines settled"
        assert result.ssg_status == ApprovalStatus.approved
        assert result.overall_status == OverallStatus.approved
        assert result.unified_clearance_id is not None
        assert result.version == 4

    def test_gives_up_after_max_attempts(self, db, db_engine, pending_request, monkeypatch):
        request_id, dept_admin, _ = pending_request
        monkeypatch.setattr(settings, "CLEARANCE_UPDATE_MAX_ATTEMPTS", 3)
        original = clearance_service._load_latest
        calls = {"n": 0}

        def always_stale(session, rid):
            request = original(session, rid)
            calls["n"] += 1
            other = sessionmaker(bind=db_engine)()
            try:
                other.query(ClearanceRequest).filter(ClearanceRequest.id == rid).update(
                    {ClearanceRequest.version: ClearanceRequest.version + 1}, synchronize_session=False
                )
                other.commit()
            finally:
                other.close()
            return request

        monkeypatch.setattr(clearance_service, "_load_latest", always_stale)
        with pytest.raises(StorageError):
            clearance_service.update_stage(db, request_id, Stage.department, ApprovalStatus.approved, dept_admin)
        assert calls["n"] == 3


class TestSharedUnifiedId:
    def test_requests_sharing_an_id_prefix_both_clear(self, db):
        dept = Department(name="Engineering")
        db.add(dept)
        db.commit()
        dept_admin = User(email="d@campus.edu", full_name="Dee", role=UserRole.department_admin, department_id=dept.id)
        ssg_admin = User(email="g@campus.edu", full_name="Gil", role=UserRole.ssg_admin)
        db.add_all([dept_admin, ssg_admin])
        request_ids = ["abcd1111-0000-0000-0000-000000000000", "abcd2222-0000-0000-0000-000000000000"]
        for n, request_id in enumerate(request_ids):
            student = User(email=f"s{n}@campus.edu", full_name=f"Student {n}", role=UserRole.student, department_id=dept.id)
            db.add(student)
            db.flush()
            db.add(_request(
                id=request_id,
                club=ApprovalStatus.not_applicable,
                student_user_id=student.user_id,
                student_full_name=student.full_name,
                student_department_name=dept.name,
                department_id_at_request=dept.id,
                requested_date=NOW,
            ))
        db.commit()

        unified = []
        for request_id in request_ids:
            clearance_service.update_stage(db, request_id, Stage.department, ApprovalStatus.approved, dept_admin)
            result = clearance_service.update_stage(db, request_id, Stage.ssg, ApprovalStatus.approved, ssg_admin)
            assert result.overall_status == OverallStatus.approved
            unified.append(result.unified_clearance_id)

        assert unified[0] == unified[1]
        assert unified[0].endswith("-ABCD")
