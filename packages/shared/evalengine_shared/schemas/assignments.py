"""Assignment-related Pydantic schemas: validation, fan-out result, progress."""

from __future__ import annotations

from datetime import date, datetime, time
from typing import Dict, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from .common import AssignmentStatus, EvaluationType


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

class AssignmentWindow(BaseModel):
    """Area plus the date range and optional daily time window."""
    area_id: UUID
    start_date: date
    end_date: date
    start_time: Optional[time] = None
    end_time: Optional[time] = None


class AssignmentCreate(AssignmentWindow):
    period_label: str = Field(min_length=1, max_length=64)


class AssignmentUpdate(BaseModel):
    area_id: Optional[UUID] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

class ValidationResult(BaseModel):
    area_id: UUID
    area_name: str
    subjects_count: int
    starts_at: datetime
    ends_at: datetime


class AssignmentResult(BaseModel):
    assignment_id: UUID
    tasks_created: int
    tasks_by_type: Dict[EvaluationType, int] = Field(default_factory=dict)


class ProgressStats(BaseModel):
    total: int = 0
    completed: int = 0
    pending: int = 0
    active: int = 0
    expired: int = 0
    cancelled: int = 0
    passing: int = 0
    failing: int = 0
    by_type: Dict[EvaluationType, int] = Field(default_factory=dict)
    progress_percent: int = 0


class AssignmentRead(BaseModel):
    id: UUID
    area_id: UUID
    period_label: str
    starts_at: datetime
    ends_at: datetime
    status: AssignmentStatus
    created_by: UUID
    closed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    stats: Optional[ProgressStats] = None

    model_config = {"from_attributes": True}
