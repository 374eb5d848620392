"""Evaluation task schemas: score submission, task views, criterion catalog."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field
from uuid import UUID

from .common import EvaluationType, TaskStatus


# ---------------------------------------------------------------------------
# Criterion catalog
# ---------------------------------------------------------------------------

class SubcriterionRead(BaseModel):
    subcriterion_id: UUID
    name: str
    weight: float = 1.0


class CriterionRead(BaseModel):
    criterion_id: UUID
    name: str
    subcriteria: List[SubcriterionRead] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Submission
# ---------------------------------------------------------------------------

class ScoreDetailIn(BaseModel):
    """One sub-criterion mark: 0, 0.5 or 1."""
    subcriterion_id: UUID
    points: float = Field(ge=0, le=1)


class TaskSubmission(BaseModel):
    """Request body for PUT /tasks/{taskId}/scores."""
    details: List[ScoreDetailIn] = Field(default_factory=list)
    comment: Optional[str] = Field(default=None, max_length=2000)
    finalize: bool = False


class TaskEscalation(BaseModel):
    """Request body for POST /tasks/{taskId}/escalate."""
    description: Optional[str] = Field(default=None, max_length=2000)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

class ScoreDetailRead(BaseModel):
    subcriterion_id: UUID
    points: float


class TaskSummary(BaseModel):
    id: UUID
    assignment_id: UUID
    type: EvaluationType
    evaluator_id: UUID
    subject_id: UUID
    status: TaskStatus
    score: Optional[float] = None
    passed: Optional[bool] = None
    scheduled_at: datetime
    due_at: datetime


class TaskDetail(TaskSummary):
    comment: Optional[str] = None
    details: List[ScoreDetailRead] = Field(default_factory=list)
    completed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
