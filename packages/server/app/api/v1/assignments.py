"""
Assignment endpoints: validate, create (fan-out), edit, delete, close, stats.

All routes are supervisor-only. Creation and edits run validation and task
generation inside the request transaction; a failure leaves nothing behind.
"""

from __future__ import annotations

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import AuthenticatedPerson, require_supervisor
from app.core.clock import Clock, get_clock
from app.core.database import get_session
from app.core.notify import Notifier, get_notifier
from app.services.assignments import (
    close_assignment,
    create_assignment,
    delete_assignment,
    get_assignment_or_404,
    list_assignments,
    to_read,
    update_assignment,
)
from app.services.progress import get_assignment_stats
from app.services.roster import SqlRosterProvider
from app.services.validation import validate_assignment
from evalengine_shared.schemas.assignments import (
    AssignmentCreate,
    AssignmentRead,
    AssignmentResult,
    AssignmentUpdate,
    AssignmentWindow,
    ProgressStats,
    ValidationResult,
)
from evalengine_shared.schemas.common import AssignmentStatus

router = APIRouter()


@router.post("/validate", response_model=ValidationResult)
async def validate_assignment_endpoint(
    window: AssignmentWindow,
    auth: AuthenticatedPerson = Depends(require_supervisor),
    session: AsyncSession = Depends(get_session),
):
    """Dry run: check the window and the area roster without writing anything."""
    return await validate_assignment(window, SqlRosterProvider(session))


@router.post("", response_model=AssignmentResult, status_code=201)
async def create_assignment_endpoint(
    assignment_in: AssignmentCreate,
    auth: AuthenticatedPerson = Depends(require_supervisor),
    session: AsyncSession = Depends(get_session),
):
    """Create an assignment and every evaluation task it requires."""
    result = await create_assignment(session, assignment_in, auth.person_id)
    await session.commit()
    return result


@router.get("", response_model=List[AssignmentRead])
async def list_assignments_endpoint(
    created_by: Optional[uuid.UUID] = None,
    area_id: Optional[uuid.UUID] = None,
    status: Optional[AssignmentStatus] = None,
    auth: AuthenticatedPerson = Depends(require_supervisor),
    session: AsyncSession = Depends(get_session),
):
    """List live assignments, newest first, each with its progress stats."""
    return await list_assignments(session, created_by=created_by, area_id=area_id, status=status)


@router.get("/{assignment_id}", response_model=AssignmentRead)
async def get_assignment_endpoint(
    assignment_id: uuid.UUID,
    auth: AuthenticatedPerson = Depends(require_supervisor),
    session: AsyncSession = Depends(get_session),
):
    assignment = await get_assignment_or_404(session, assignment_id)
    return await to_read(session, assignment)


@router.patch("/{assignment_id}", response_model=AssignmentRead)
async def update_assignment_endpoint(
    assignment_id: uuid.UUID,
    assignment_in: AssignmentUpdate,
    auth: AuthenticatedPerson = Depends(require_supervisor),
    session: AsyncSession = Depends(get_session),
    clock: Clock = Depends(get_clock),
    notifier: Notifier = Depends(get_notifier),
):
    """Move the window or change the area while every task is still Pending."""
    assignment = await update_assignment(
        session, assignment_id, assignment_in, now=clock.now(), notifier=notifier
    )
    await session.commit()
    return await to_read(session, assignment)


@router.delete("/{assignment_id}", status_code=204)
async def delete_assignment_endpoint(
    assignment_id: uuid.UUID,
    auth: AuthenticatedPerson = Depends(require_supervisor),
    session: AsyncSession = Depends(get_session),
    clock: Clock = Depends(get_clock),
    notifier: Notifier = Depends(get_notifier),
):
    """Delete an untouched assignment; its tasks become Cancelled."""
    await delete_assignment(session, assignment_id, now=clock.now(), notifier=notifier)
    await session.commit()
    return Response(status_code=204)


@router.post("/{assignment_id}/close", response_model=AssignmentRead)
async def close_assignment_endpoint(
    assignment_id: uuid.UUID,
    auth: AuthenticatedPerson = Depends(require_supervisor),
    session: AsyncSession = Depends(get_session),
    clock: Clock = Depends(get_clock),
):
    assignment = await close_assignment(session, assignment_id, now=clock.now())
    await session.commit()
    return await to_read(session, assignment)


@router.get("/{assignment_id}/stats", response_model=ProgressStats)
async def assignment_stats_endpoint(
    assignment_id: uuid.UUID,
    auth: AuthenticatedPerson = Depends(require_supervisor),
    session: AsyncSession = Depends(get_session),
):
    """Progress of one assignment: counts by status and type, percent complete."""
    await get_assignment_or_404(session, assignment_id)
    return await get_assignment_stats(session, assignment_id)
