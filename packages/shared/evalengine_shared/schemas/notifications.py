from typing import Optional
from pydantic import BaseModel
from uuid import UUID
from datetime import datetime
from .common import IncidentCategory


class NotificationRead(BaseModel):
    id: UUID
    person_id: UUID
    message: str
    read: bool
    created_at: datetime
    read_at: Optional[datetime] = None
    incident_id: Optional[UUID] = None
    incident_category: Optional[IncidentCategory] = None
    incident_description: Optional[str] = None


class UnreadCount(BaseModel):
    count: int
