"""Clearance API routes: student initiation and staged approver decisions."""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from campusconnect.database import get_db
from campusconnect.dependencies import get_current_user
from campusconnect.errors import InputValidationError, NotFoundError
from campusconnect.models.clearance_request import OverallStatus
from campusconnect.models.user import User
from campusconnect.schemas.clearance import ClearanceRequestOut, StageDecision
from campusconnect.services import clearance_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/", response_model=ClearanceRequestOut, status_code=status.HTTP_201_CREATED)
def initiate_clearance_request(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    """Start a clearance request for the signed-in student."""
    return clearance_service.initiate_request(db, user)


@router.get("/me", response_model=ClearanceRequestOut)
def get_my_clearance_request(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    """The signed-in student's most recent request."""
    request = clearance_service.get_current_request(db, user.user_id)
    if request is None:
        raise NotFoundError("Clearance request")
    return request


@router.get("/", response_model=list[ClearanceRequestOut])
def list_clearance_requests(
    status_filter: Optional[str] = None,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """List requests in the approver's scope, optionally filtered by overall status."""
    overall = None
    if status_filter:
        try:
            overall = OverallStatus(status_filter)
        except ValueError:
            raise InputValidationError(f"Invalid overall status: {status_filter}")
    return clearance_service.list_requests(db, user, overall)


@router.get("/{request_id}", response_model=ClearanceRequestOut)
def get_clearance_request(request_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return clearance_service.get_request_for_viewer(db, request_id, user)


@router.post("/{request_id}/stages/{stage}", response_model=ClearanceRequestOut)
def decide_stage(
    request_id: str,
    stage: str,
    payload: StageDecision,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Approve or reject one stage; overall status and unified ID are derived server-side."""
    return clearance_service.update_stage(
        db,
        request_id=request_id,
        stage=clearance_service.parse_stage(stage),
        new_status=clearance_service.parse_decision(payload.status),
        approver=user,
        notes=payload.notes,
    )
