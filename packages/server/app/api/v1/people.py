"""
Per-person listings: evaluations and the notification inbox.
"""

from __future__ import annotations

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import AuthenticatedPerson, require_person
from app.core.clock import Clock, get_clock
from app.core.database import get_session
from app.services.lifecycle import list_tasks_for_person
from app.services.notifications import list_notifications, unread_count
from evalengine_shared.schemas.common import EvaluationType
from evalengine_shared.schemas.notifications import NotificationRead, UnreadCount
from evalengine_shared.schemas.tasks import TaskSummary

router = APIRouter()


@router.get("/{person_id}/tasks", response_model=List[TaskSummary])
async def list_person_tasks_endpoint(
    person_id: uuid.UUID,
    type: Optional[EvaluationType] = None,
    as_evaluator: bool = Query(True),
    auth: AuthenticatedPerson = Depends(require_person),
    session: AsyncSession = Depends(get_session),
    clock: Clock = Depends(get_clock),
):
    """Evaluations a person has to fill in (or, with as_evaluator=false, those about them)."""
    if person_id != auth.person_id and not auth.is_supervisor:
        raise HTTPException(status_code=403, detail="Not allowed to list another person's evaluations")
    return await list_tasks_for_person(
        session, person_id, evaluation_type=type, as_evaluator=as_evaluator, clock=clock
    )


def _own_or_supervisor(auth: AuthenticatedPerson, person_id: uuid.UUID) -> None:
    if person_id != auth.person_id and not auth.is_supervisor:
        raise HTTPException(status_code=403, detail="Not allowed to read another person's notifications")


@router.get("/{person_id}/notifications", response_model=List[NotificationRead])
async def list_person_notifications_endpoint(
    person_id: uuid.UUID,
    unread: bool = Query(False),
    auth: AuthenticatedPerson = Depends(require_person),
    session: AsyncSession = Depends(get_session),
):
    """A person's notification inbox, newest first; unread=true hides read entries."""
    _own_or_supervisor(auth, person_id)
    return await list_notifications(session, person_id, unread_only=unread)


@router.get("/{person_id}/notifications/unread-count", response_model=UnreadCount)
async def unread_notifications_count_endpoint(
    person_id: uuid.UUID,
    auth: AuthenticatedPerson = Depends(require_person),
    session: AsyncSession = Depends(get_session),
):
    _own_or_supervisor(auth, person_id)
    return UnreadCount(count=await unread_count(session, person_id))
