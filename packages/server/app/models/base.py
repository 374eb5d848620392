"""Shared column helpers and mixins for the evaluation tables."""

from datetime import datetime, timezone
from typing import Any, Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def utc_datetime_field(*, nullable: bool = False, **kwargs: Any) -> Any:
    """A timezone-aware timestamp column. SQLite hands these back naive; see clock.ensure_utc."""
    return Field(nullable=nullable, sa_type=sa.DateTime(timezone=True), **kwargs)


class UUIDMixin(SQLModel):
    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
        nullable=False,
    )


class TimestampMixin(SQLModel):
    created_at: datetime = utc_datetime_field(
        default_factory=utcnow,
        sa_column_kwargs={"server_default": sa.func.now()},
    )
    updated_at: datetime = utc_datetime_field(
        default_factory=utcnow,
        sa_column_kwargs={"server_default": sa.func.now(), "onupdate": utcnow},
    )


class SoftDeleteMixin(SQLModel):
    """Rows are hidden by setting deleted_at instead of being removed."""

    deleted_at: Optional[datetime] = utc_datetime_field(nullable=True, default=None)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None
