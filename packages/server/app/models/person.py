"""Person model (owned by the roster subsystem, read-only here)."""

from typing import Optional
import uuid

from sqlmodel import Field, SQLModel

from .base import UUIDMixin


class Person(UUIDMixin, SQLModel, table=True):
    __tablename__ = "people"

    display_name: str = Field(nullable=False)
    email: Optional[str] = Field(default=None, unique=True, index=True)
    area_id: Optional[uuid.UUID] = Field(default=None, foreign_key="areas.id", index=True)
    role: str = Field(nullable=False, index=True)  # subject | supervisor | peer
    active: bool = Field(default=True, nullable=False)
