"""Department and Club ORM models."""
import uuid
from sqlalchemy import Column, String, Text, ForeignKey
from campusconnect.database import Base


class Department(Base):
    __tablename__ = "departments"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(150), nullable=False, unique=True)


class Club(Base):
    __tablename__ = "clubs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(150), nullable=False, unique=True)
    department_id = Column("departmentId", String(36), ForeignKey("departments.id"), nullable=True)
    description = Column(Text, nullable=True)
