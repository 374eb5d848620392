from typing import Optional
from pydantic import BaseModel, Field
from uuid import UUID
from datetime import datetime
from .common import IncidentCategory, IncidentStatus


class IncidentRead(BaseModel):
    id: UUID
    occurred_at: datetime
    description: str
    category: IncidentCategory
    status: IncidentStatus
    reporter_id: UUID
    affected_id: UUID
    task_id: Optional[UUID] = None
    action_taken: Optional[str] = None
    resolved_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class IncidentResolve(BaseModel):
    action_taken: str = Field(min_length=1, max_length=2000)
