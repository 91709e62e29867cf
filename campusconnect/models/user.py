"""User ORM model: campus identities and their org assignments."""
import enum
import uuid
from sqlalchemy import Column, String, DateTime, ForeignKey
from sqlalchemy.sql import func
from campusconnect.database import Base
from campusconnect.models import enum_type


class UserRole(str, enum.Enum):
    ssg_admin = "ssg_admin"
    club_admin = "club_admin"
    department_admin = "department_admin"
    oic = "oic"
    student = "student"


class User(Base):
    __tablename__ = "users"

    user_id = Column("userID", String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), nullable=False, unique=True)
    full_name = Column("fullName", String(150), nullable=False)
    role = Column(enum_type(UserRole, "user_role"), nullable=False, default=UserRole.student)
    password_hash = Column("passwordHash", String(255), nullable=False, default="")
    # Students: home department / club membership. Admins: the unit they administer.
    department_id = Column("departmentID", String(36), ForeignKey("departments.id"), nullable=True)
    club_id = Column("clubID", String(36), ForeignKey("clubs.id"), nullable=True)
    created_at = Column("createdAt", DateTime(timezone=True), server_default=func.now())
