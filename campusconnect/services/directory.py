"""User directory: read-only lookups used for name snapshots and scoping."""
from sqlalchemy.orm import Session

from campusconnect.errors import NotFoundError
from campusconnect.models.organization import Club, Department
from campusconnect.models.user import User


def get_user(db: Session, user_id: str) -> User:
    user = db.query(User).filter(User.user_id == user_id).first()
    if not user:
        raise NotFoundError("User", user_id)
    return user


def get_users(db: Session, user_ids: list[str]) -> list[User]:
    """Resolve every ID or raise NotFoundError for the first missing one."""
    found = {u.user_id: u for u in db.query(User).filter(User.user_id.in_(user_ids)).all()}
    for uid in user_ids:
        if uid not in found:
            raise NotFoundError("User", uid)
    return [found[uid] for uid in user_ids]


def get_department(db: Session, department_id: str) -> Department:
    department = db.query(Department).filter(Department.id == department_id).first()
    if not department:
        raise NotFoundError("Department", department_id)
    return department


def get_club(db: Session, club_id: str) -> Club:
    club = db.query(Club).filter(Club.id == club_id).first()
    if not club:
        raise NotFoundError("Club", club_id)
    return club
