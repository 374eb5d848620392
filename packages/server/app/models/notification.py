"""Notification model: a person's inbox entry, usually about an incident."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import UUIDMixin, utc_datetime_field, utcnow


class Notification(UUIDMixin, SQLModel, table=True):
    __tablename__ = "notifications"
    __table_args__ = (
        sa.Index("ix_notifications_person_unread", "person_id", "read"),
    )

    person_id: uuid.UUID = Field(foreign_key="people.id", nullable=False, index=True)
    incident_id: Optional[uuid.UUID] = Field(default=None, foreign_key="incidents.id", index=True)
    message: str = Field(nullable=False)
    read: bool = Field(default=False, nullable=False)
    created_at: datetime = utc_datetime_field(default_factory=utcnow)
    read_at: Optional[datetime] = utc_datetime_field(nullable=True, default=None)
