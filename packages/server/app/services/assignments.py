"""
Assignment service: create (validate + fan-out), edit, delete, close, list.

Creation is all-or-nothing: the assignment row and its whole task set are
flushed in the caller's transaction, and any error propagates so the session
rolls both back.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

import structlog
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.clock import ensure_utc
from app.core.errors import DuplicateAssignment, IllegalTransition, NotFound
from app.core.notify import Notifier
from app.models.assignment import Assignment
from app.models.evaluation_task import EvaluationTask
from app.models.score_detail import ScoreDetail
from app.services.fanout import count_by_type, generate_tasks
from app.services.lifecycle import apply_deadline
from app.services.progress import get_assignment_stats
from app.services.roster import RosterProvider, SqlRosterProvider
from app.services.validation import validate_assignment
from evalengine_shared.schemas.assignments import (
    AssignmentCreate,
    AssignmentRead,
    AssignmentResult,
    AssignmentUpdate,
    AssignmentWindow,
)
from evalengine_shared.schemas.common import AssignmentStatus, TaskStatus

log = structlog.get_logger()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def get_assignment_or_404(session: AsyncSession, assignment_id: uuid.UUID) -> Assignment:
    assignment = await session.get(Assignment, assignment_id)
    if not assignment or assignment.is_deleted:
        raise NotFound("Assignment not found")
    return assignment


async def _find_live_duplicate(
    session: AsyncSession,
    area_id: uuid.UUID,
    period_label: str,
    starts_at: datetime,
    ends_at: datetime,
    exclude_id: Optional[uuid.UUID] = None,
) -> Optional[Assignment]:
    stmt = select(Assignment).where(
        Assignment.area_id == area_id,
        Assignment.period_label == period_label,
        Assignment.starts_at == starts_at,
        Assignment.ends_at == ends_at,
        Assignment.deleted_at.is_(None),
    )
    if exclude_id:
        stmt = stmt.where(Assignment.id != exclude_id)
    result = await session.execute(stmt)
    return result.scalars().first()


async def _assert_untouched(session: AsyncSession, assignment: Assignment, action: str) -> None:
    """Edits and deletion need every task still Pending and unscored."""
    if assignment.status == AssignmentStatus.CLOSED.value:
        raise IllegalTransition(f"Cannot {action} a closed assignment")

    started = await session.execute(
        select(func.count(EvaluationTask.id)).where(
            EvaluationTask.assignment_id == assignment.id,
            EvaluationTask.status != TaskStatus.PENDING.value,
        )
    )
    scored = await session.execute(
        select(func.count(ScoreDetail.id))
        .join(EvaluationTask, EvaluationTask.id == ScoreDetail.task_id)
        .where(EvaluationTask.assignment_id == assignment.id)
    )
    if started.scalar_one() or scored.scalar_one():
        raise IllegalTransition(f"Cannot {action} an assignment once evaluations have started")


async def _settle_deadlines(
    session: AsyncSession,
    assignment: Assignment,
    action: str,
    *,
    now: datetime,
    notifier: Notifier,
) -> None:
    """Apply the deadline rule to every task before an edit or delete looks at them.

    When the window has already closed, the resulting Expired tasks and their
    incidents are committed and the request is refused.
    """
    result = await session.execute(
        select(EvaluationTask)
        .where(EvaluationTask.assignment_id == assignment.id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    changed = 0
    for task in result.scalars().all():
        if await apply_deadline(session, task, now, notifier=notifier):
            changed += 1
    if changed:
        await session.commit()
        log.info(
            "assignment.deadline_settled",
            assignment_id=str(assignment.id),
            action=action,
            changed=changed,
        )
        raise IllegalTransition(f"Cannot {action} an assignment whose window has closed")


async def _tasks_of(session: AsyncSession, assignment_id: uuid.UUID) -> list[EvaluationTask]:
    result = await session.execute(
        select(EvaluationTask).where(EvaluationTask.assignment_id == assignment_id)
    )
    return list(result.scalars().all())


async def to_read(session: AsyncSession, assignment: Assignment) -> AssignmentRead:
    return AssignmentRead(
        id=assignment.id,
        area_id=assignment.area_id,
        period_label=assignment.period_label,
        starts_at=ensure_utc(assignment.starts_at),
        ends_at=ensure_utc(assignment.ends_at),
        status=assignment.status,
        created_by=assignment.created_by,
        closed_at=ensure_utc(assignment.closed_at) if assignment.closed_at else None,
        created_at=ensure_utc(assignment.created_at),
        updated_at=ensure_utc(assignment.updated_at),
        stats=await get_assignment_stats(session, assignment.id),
    )


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------


async def create_assignment(
    session: AsyncSession,
    assignment_in: AssignmentCreate,
    actor_id: uuid.UUID,
    *,
    roster: Optional[RosterProvider] = None,
) -> AssignmentResult:
    roster = roster or SqlRosterProvider(session)
    validated = await validate_assignment(assignment_in, roster)

    if await _find_live_duplicate(
        session,
        assignment_in.area_id,
        assignment_in.period_label,
        validated.starts_at,
        validated.ends_at,
    ):
        raise DuplicateAssignment()

    assignment = Assignment(
        area_id=assignment_in.area_id,
        period_label=assignment_in.period_label,
        starts_at=validated.starts_at,
        ends_at=validated.ends_at,
        status=AssignmentStatus.OPEN.value,
        created_by=actor_id,
    )
    session.add(assignment)
    try:
        await session.flush()
    except IntegrityError as exc:
        # Lost the race against an identical concurrent request.
        raise DuplicateAssignment() from exc

    tasks = await generate_tasks(session, assignment, roster)

    log.info(
        "assignment.created",
        assignment_id=str(assignment.id),
        area_id=str(assignment.area_id),
        period=assignment.period_label,
        tasks=len(tasks),
        created_by=str(actor_id),
    )
    return AssignmentResult(
        assignment_id=assignment.id,
        tasks_created=len(tasks),
        tasks_by_type=count_by_type(tasks),
    )


async def update_assignment(
    session: AsyncSession,
    assignment_id: uuid.UUID,
    assignment_in: AssignmentUpdate,
    *,
    now: datetime,
    notifier: Notifier,
    roster: Optional[RosterProvider] = None,
) -> Assignment:
    """Change the window and/or area while no evaluation has started."""
    assignment = await get_assignment_or_404(session, assignment_id)
    await _settle_deadlines(session, assignment, "edit", now=now, notifier=notifier)
    await _assert_untouched(session, assignment, "edit")

    data = assignment_in.model_dump(exclude_unset=True)
    starts_at = ensure_utc(assignment.starts_at)
    ends_at = ensure_utc(assignment.ends_at)
    window = AssignmentWindow(
        area_id=data.get("area_id") or assignment.area_id,
        start_date=data.get("start_date") or starts_at.date(),
        end_date=data.get("end_date") or ends_at.date(),
        start_time=data.get("start_time") or starts_at.timetz(),
        end_time=data.get("end_time") or ends_at.timetz(),
    )

    roster = roster or SqlRosterProvider(session)
    validated = await validate_assignment(window, roster)
    if await _find_live_duplicate(
        session,
        window.area_id,
        assignment.period_label,
        validated.starts_at,
        validated.ends_at,
        exclude_id=assignment.id,
    ):
        raise DuplicateAssignment()

    area_changed = window.area_id != assignment.area_id
    assignment.area_id = window.area_id
    assignment.starts_at = validated.starts_at
    assignment.ends_at = validated.ends_at
    session.add(assignment)

    tasks = await _tasks_of(session, assignment.id)
    if area_changed:
        for task in tasks:
            await session.delete(task)
        await session.flush()
        await generate_tasks(session, assignment, roster)
    else:
        for task in tasks:
            task.scheduled_at = validated.starts_at
            task.due_at = validated.ends_at
            session.add(task)

    try:
        await session.flush()
    except IntegrityError as exc:
        raise DuplicateAssignment() from exc

    log.info(
        "assignment.updated",
        assignment_id=str(assignment.id),
        area_changed=area_changed,
        starts_at=validated.starts_at.isoformat(),
        ends_at=validated.ends_at.isoformat(),
    )
    return assignment


async def delete_assignment(
    session: AsyncSession,
    assignment_id: uuid.UUID,
    *,
    now: datetime,
    notifier: Notifier,
) -> int:
    """Soft-delete an untouched assignment, cancelling its tasks. Returns the cancelled count."""
    assignment = await get_assignment_or_404(session, assignment_id)
    await _settle_deadlines(session, assignment, "delete", now=now, notifier=notifier)
    await _assert_untouched(session, assignment, "delete")

    tasks = await _tasks_of(session, assignment.id)
    for task in tasks:
        task.status = TaskStatus.CANCELLED.value
        session.add(task)
    assignment.deleted_at = now
    session.add(assignment)
    await session.flush()

    log.info("assignment.deleted", assignment_id=str(assignment.id), cancelled=len(tasks))
    return len(tasks)


async def close_assignment(
    session: AsyncSession,
    assignment_id: uuid.UUID,
    *,
    now: datetime,
) -> Assignment:
    assignment = await get_assignment_or_404(session, assignment_id)
    if assignment.status == AssignmentStatus.CLOSED.value:
        raise IllegalTransition("Assignment is already closed")

    assignment.status = AssignmentStatus.CLOSED.value
    assignment.closed_at = now
    session.add(assignment)
    await session.flush()

    log.info("assignment.closed", assignment_id=str(assignment.id))
    return assignment


async def list_assignments(
    session: AsyncSession,
    created_by: Optional[uuid.UUID] = None,
    area_id: Optional[uuid.UUID] = None,
    status: Optional[AssignmentStatus] = None,
) -> list[AssignmentRead]:
    stmt = select(Assignment).where(Assignment.deleted_at.is_(None))
    if created_by:
        stmt = stmt.where(Assignment.created_by == created_by)
    if area_id:
        stmt = stmt.where(Assignment.area_id == area_id)
    if status:
        stmt = stmt.where(Assignment.status == status.value)
    result = await session.execute(stmt.order_by(Assignment.created_at.desc(), Assignment.starts_at.desc()))
    return [await to_read(session, a) for a in result.scalars().all()]
