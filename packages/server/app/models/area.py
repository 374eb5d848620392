"""Area model (owned by the roster subsystem, read-only here)."""

from sqlmodel import Field, SQLModel

from .base import UUIDMixin


class Area(UUIDMixin, SQLModel, table=True):
    __tablename__ = "areas"

    name: str = Field(nullable=False, index=True)
    active: bool = Field(default=True, nullable=False)
