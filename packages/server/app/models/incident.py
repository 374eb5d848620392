"""Incident model: an escalated evaluation failure."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import UUIDMixin, utc_datetime_field, utcnow


class Incident(UUIDMixin, SQLModel, table=True):
    __tablename__ = "incidents"
    __table_args__ = (
        sa.UniqueConstraint("task_id", "category", name="uq_incidents_task_category"),
    )

    occurred_at: datetime = utc_datetime_field(default_factory=utcnow)
    description: str = Field(nullable=False)
    category: str = Field(nullable=False, index=True)  # evaluation expired | evaluation below threshold
    status: str = Field(default="Pending", nullable=False)  # Pending | Resolved
    reporter_id: uuid.UUID = Field(foreign_key="people.id", nullable=False, index=True)
    affected_id: uuid.UUID = Field(foreign_key="people.id", nullable=False, index=True)
    task_id: Optional[uuid.UUID] = Field(default=None, foreign_key="evaluation_tasks.id", index=True)
    action_taken: Optional[str] = None
    resolved_at: Optional[datetime] = utc_datetime_field(nullable=True, default=None)
