"""Assignment model: one area/period/window fan-out event."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import SoftDeleteMixin, TimestampMixin, UUIDMixin, utc_datetime_field


class Assignment(UUIDMixin, TimestampMixin, SoftDeleteMixin, SQLModel, table=True):
    __tablename__ = "assignments"
    __table_args__ = (
        # One live assignment per area/period/window; soft-deleted rows don't count.
        sa.Index(
            "uq_assignments_live_window",
            "area_id",
            "period_label",
            "starts_at",
            "ends_at",
            unique=True,
            postgresql_where=sa.text("deleted_at IS NULL"),
            sqlite_where=sa.text("deleted_at IS NULL"),
        ),
    )

    area_id: uuid.UUID = Field(foreign_key="areas.id", nullable=False, index=True)
    period_label: str = Field(nullable=False)
    starts_at: datetime = utc_datetime_field()
    ends_at: datetime = utc_datetime_field()
    status: str = Field(default="Open", nullable=False)  # Open | Closed
    created_by: uuid.UUID = Field(foreign_key="people.id", nullable=False, index=True)
    closed_at: Optional[datetime] = utc_datetime_field(nullable=True, default=None)
