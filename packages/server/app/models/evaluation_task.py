"""Evaluation task model: one evaluator -> subject evaluation with its own lifecycle."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin, utc_datetime_field


class EvaluationTask(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "evaluation_tasks"
    __table_args__ = (
        sa.UniqueConstraint(
            "assignment_id", "type", "evaluator_id", "subject_id",
            name="uq_evaluation_tasks_pairing",
        ),
        sa.CheckConstraint(
            "type != 'SelfEvaluation' OR evaluator_id = subject_id",
            name="self_evaluation_same_person",
        ),
    )

    assignment_id: uuid.UUID = Field(foreign_key="assignments.id", nullable=False, index=True)
    type: str = Field(nullable=False, index=True)  # SelfEvaluation | SupervisorToSubject | PeerToSubject
    evaluator_id: uuid.UUID = Field(foreign_key="people.id", nullable=False, index=True)
    subject_id: uuid.UUID = Field(foreign_key="people.id", nullable=False, index=True)
    scheduled_at: datetime = utc_datetime_field()
    due_at: datetime = utc_datetime_field(index=True)
    status: str = Field(default="Pending", nullable=False, index=True)  # Pending | Active | Completed | Expired | Cancelled
    score: Optional[float] = None
    comment: Optional[str] = None
    completed_at: Optional[datetime] = utc_datetime_field(nullable=True, default=None)
