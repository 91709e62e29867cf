"""Department and Club API routes."""
import logging
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from campusconnect.database import get_db, commit_or_raise
from campusconnect.dependencies import require_roles
from campusconnect.errors import ConflictError, InputValidationError
from campusconnect.models.organization import Club, Department
from campusconnect.models.user import User, UserRole
from campusconnect.schemas.organization import ClubCreate, ClubOut, DepartmentCreate, DepartmentOut
from campusconnect.services import directory

logger = logging.getLogger(__name__)
departments_router = APIRouter()
clubs_router = APIRouter()


@departments_router.post("/", response_model=DepartmentOut, status_code=status.HTTP_201_CREATED)
def create_department(
    payload: DepartmentCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_roles(UserRole.ssg_admin)),
):
    name = payload.name.strip()
    if not name:
        raise InputValidationError("Department name is required")
    if db.query(Department).filter(Department.name == name).first():
        raise ConflictError(f"Department '{name}' already exists")
    department = Department(name=name)
    db.add(department)
    commit_or_raise(db, "create the department")
    db.refresh(department)
    logger.info("Created department %s (%s) by %s", department.id, name, admin.user_id)
    return department


@departments_router.get("/", response_model=list[DepartmentOut])
def list_departments(db: Session = Depends(get_db)):
    """Public so the registration form can offer departments."""
    return db.query(Department).order_by(Department.name).all()


@clubs_router.post("/", response_model=ClubOut, status_code=status.HTTP_201_CREATED)
def create_club(
    payload: ClubCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_roles(UserRole.ssg_admin)),
):
    name = payload.name.strip()
    if not name:
        raise InputValidationError("Club name is required")
    if db.query(Club).filter(Club.name == name).first():
        raise ConflictError(f"Club '{name}' already exists")
    if payload.department_id:
        directory.get_department(db, payload.department_id)
    club = Club(name=name, department_id=payload.department_id, description=payload.description)
    db.add(club)
    commit_or_raise(db, "create the club")
    db.refresh(club)
    logger.info("Created club %s (%s) by %s", club.id, name, admin.user_id)
    return club


@clubs_router.get("/", response_model=list[ClubOut])
def list_clubs(db: Session = Depends(get_db)):
    return db.query(Club).order_by(Club.name).all()
