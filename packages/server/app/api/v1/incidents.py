"""
Incident endpoints: list escalations and record how they were handled.
"""

from __future__ import annotations

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import AuthenticatedPerson, require_person, require_supervisor
from app.core.clock import Clock, get_clock
from app.core.database import get_session
from app.services.escalation import list_incidents, resolve_incident
from evalengine_shared.schemas.common import IncidentCategory, IncidentStatus
from evalengine_shared.schemas.incidents import IncidentRead, IncidentResolve

router = APIRouter()


@router.get("", response_model=List[IncidentRead])
async def list_incidents_endpoint(
    person_id: Optional[uuid.UUID] = None,
    category: Optional[IncidentCategory] = None,
    status: Optional[IncidentStatus] = None,
    auth: AuthenticatedPerson = Depends(require_person),
    session: AsyncSession = Depends(get_session),
):
    """Supervisors see every incident; everyone else only those they are part of."""
    if not auth.is_supervisor:
        person_id = auth.person_id
    incidents = await list_incidents(session, person_id=person_id, category=category, status=status)
    return [IncidentRead.model_validate(i) for i in incidents]


@router.post("/{incident_id}/resolve", response_model=IncidentRead)
async def resolve_incident_endpoint(
    incident_id: uuid.UUID,
    body: IncidentResolve,
    auth: AuthenticatedPerson = Depends(require_supervisor),
    session: AsyncSession = Depends(get_session),
    clock: Clock = Depends(get_clock),
):
    incident = await resolve_incident(session, incident_id, body.action_taken, now=clock.now())
    await session.commit()
    return IncidentRead.model_validate(incident)
