"""ORM models."""
import enum
from typing import Type

from sqlalchemy import Enum as SAEnum


def enum_type(enum_cls: Type[enum.Enum], name: str) -> SAEnum:
    """SQLAlchemy Enum that stores member values, not member names."""
    return SAEnum(enum_cls, name=name, values_callable=lambda members: [m.value for m in members])
