"""
Evaluation task endpoints: read, score, finalize, escalate.

Status: Pending -> Active -> Completed, with Expired when the window closes
unscored and Cancelled when the assignment is deleted.
- Reading a task applies any overdue deadline transition first.
- Scoring after the window closes persists the timeout, then answers 409.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import AuthenticatedPerson, require_person, require_supervisor
from app.core.clock import Clock, get_clock
from app.core.database import get_session
from app.core.notify import Notifier, get_notifier
from app.services.escalation import report_low_score
from app.services.lifecycle import (
    build_task_detail,
    finalize_task,
    get_task,
    get_task_or_404,
    submit_task,
)
from evalengine_shared.schemas.incidents import IncidentRead
from evalengine_shared.schemas.tasks import TaskDetail, TaskEscalation, TaskSubmission

router = APIRouter()


@router.get("/{task_id}", response_model=TaskDetail)
async def get_task_endpoint(
    task_id: uuid.UUID,
    auth: AuthenticatedPerson = Depends(require_person),
    session: AsyncSession = Depends(get_session),
    clock: Clock = Depends(get_clock),
    notifier: Notifier = Depends(get_notifier),
):
    """Get one evaluation with its marks. Visible to its evaluator, its subject and supervisors."""
    task = await get_task_or_404(session, task_id)
    if not auth.is_supervisor and auth.person_id not in (task.evaluator_id, task.subject_id):
        raise HTTPException(status_code=403, detail="Not allowed to view this evaluation")
    detail = await get_task(session, task_id, clock=clock, notifier=notifier)
    await session.commit()
    return detail


@router.put("/{task_id}/scores", response_model=TaskDetail)
async def submit_scores_endpoint(
    task_id: uuid.UUID,
    submission: TaskSubmission,
    auth: AuthenticatedPerson = Depends(require_person),
    session: AsyncSession = Depends(get_session),
    clock: Clock = Depends(get_clock),
    notifier: Notifier = Depends(get_notifier),
):
    """Replace every mark of the evaluation; set finalize to complete it."""
    task = await submit_task(
        session,
        task_id,
        submission,
        clock=clock,
        notifier=notifier,
        actor_id=auth.person_id,
    )
    await session.commit()
    return await build_task_detail(session, task)


@router.post("/{task_id}/finalize", response_model=TaskDetail)
async def finalize_task_endpoint(
    task_id: uuid.UUID,
    auth: AuthenticatedPerson = Depends(require_person),
    session: AsyncSession = Depends(get_session),
    clock: Clock = Depends(get_clock),
    notifier: Notifier = Depends(get_notifier),
):
    task = await finalize_task(
        session,
        task_id,
        clock=clock,
        notifier=notifier,
        actor_id=auth.person_id,
    )
    await session.commit()
    return await build_task_detail(session, task)


@router.post("/{task_id}/escalate", response_model=IncidentRead, status_code=201)
async def escalate_task_endpoint(
    task_id: uuid.UUID,
    body: TaskEscalation,
    auth: AuthenticatedPerson = Depends(require_supervisor),
    session: AsyncSession = Depends(get_session),
    clock: Clock = Depends(get_clock),
    notifier: Notifier = Depends(get_notifier),
):
    """Record a below-threshold incident for a completed, failing evaluation."""
    task = await get_task_or_404(session, task_id)
    incident = await report_low_score(
        session,
        task,
        auth.person_id,
        now=clock.now(),
        notifier=notifier,
        description=body.description,
    )
    await session.commit()
    return IncidentRead.model_validate(incident)
