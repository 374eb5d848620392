"""
Evaluation lifecycle engine: score submission, finalization and deadlines.

Every mutation path locks the task row, applies the deadline rule first and
only then looks at the request. A submission that arrives after the deadline
still moves the task to its timed-out state (committed, with escalation)
before DeadlinePassed is raised.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

import structlog
from fastapi import HTTPException
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.clock import Clock, ensure_utc
from app.core.config import get_settings
from app.core.errors import (
    DeadlinePassed,
    IllegalTransition,
    IncompleteScoring,
    InvalidScore,
    NotFound,
)
from app.core.notify import Notifier
from app.models.assignment import Assignment
from app.models.evaluation_task import EvaluationTask
from app.models.score_detail import ScoreDetail
from app.services import escalation
from app.services.catalog import CriterionCatalog, SqlCriterionCatalog, required_subcriteria
from evalengine_shared.schemas.common import ALLOWED_MARKS, EvaluationType, TaskStatus
from evalengine_shared.schemas.lifecycle import (
    deadline_passed,
    is_passing,
    is_terminal,
    normalize_score,
    resolve_status,
    validate_transition,
)
from evalengine_shared.schemas.tasks import (
    ScoreDetailIn,
    ScoreDetailRead,
    TaskDetail,
    TaskSubmission,
    TaskSummary,
)

log = structlog.get_logger()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def get_task_or_404(
    session: AsyncSession, task_id: uuid.UUID, *, for_update: bool = False
) -> EvaluationTask:
    stmt = select(EvaluationTask).where(EvaluationTask.id == task_id)
    if for_update:
        stmt = stmt.with_for_update().execution_options(populate_existing=True)
    result = await session.execute(stmt)
    task = result.scalars().first()
    if not task:
        raise NotFound("Evaluation not found")
    return task


async def _get_details(session: AsyncSession, task_id: uuid.UUID) -> list[ScoreDetail]:
    result = await session.execute(
        select(ScoreDetail)
        .where(ScoreDetail.task_id == task_id)
        .order_by(ScoreDetail.position)
    )
    return list(result.scalars().all())


def _summary(task: EvaluationTask, status: Optional[TaskStatus] = None) -> TaskSummary:
    # Pass/fail is only a verdict once the evaluation is Completed.
    effective = status or TaskStatus(task.status)
    passed = None
    if effective == TaskStatus.COMPLETED:
        passed = is_passing(task.score, get_settings().approval_threshold)
    return TaskSummary(
        id=task.id,
        assignment_id=task.assignment_id,
        type=task.type,
        evaluator_id=task.evaluator_id,
        subject_id=task.subject_id,
        status=effective,
        score=task.score,
        passed=passed,
        scheduled_at=ensure_utc(task.scheduled_at),
        due_at=ensure_utc(task.due_at),
    )


async def build_task_detail(session: AsyncSession, task: EvaluationTask) -> TaskDetail:
    details = await _get_details(session, task.id)
    summary = _summary(task)
    return TaskDetail(
        **summary.model_dump(),
        comment=task.comment,
        details=[ScoreDetailRead(subcriterion_id=d.subcriterion_id, points=d.points) for d in details],
        completed_at=ensure_utc(task.completed_at) if task.completed_at else None,
        created_at=ensure_utc(task.created_at),
        updated_at=ensure_utc(task.updated_at),
    )


def _move(task: EvaluationTask, target: TaskStatus, now: datetime) -> None:
    ok, message = validate_transition(TaskStatus(task.status), target)
    if not ok:
        raise IllegalTransition(message)
    task.status = target.value
    if target == TaskStatus.COMPLETED:
        task.completed_at = now


# ---------------------------------------------------------------------------
# Deadline rule
# ---------------------------------------------------------------------------


async def apply_deadline(
    session: AsyncSession,
    task: EvaluationTask,
    now: datetime,
    *,
    notifier: Notifier,
) -> bool:
    """Persist the deadline rule for one task. Returns True if the status changed."""
    target = resolve_status(task.status, ensure_utc(task.due_at), task.score, now)
    if target == TaskStatus(task.status):
        return False

    _move(task, target, now)
    session.add(task)
    await session.flush()

    log.info(
        "task.expired" if target == TaskStatus.EXPIRED else "task.closed_by_deadline",
        task_id=str(task.id),
        assignment_id=str(task.assignment_id),
        status=target.value,
        score=task.score,
    )
    await escalation.on_terminal(session, task, now=now, notifier=notifier)
    return True


async def _guard_mutation(
    session: AsyncSession,
    task: EvaluationTask,
    now: datetime,
    notifier: Notifier,
) -> None:
    if await apply_deadline(session, task, now, notifier=notifier):
        # The timeout transition stands even though the request is rejected.
        await session.commit()
        raise DeadlinePassed()
    if deadline_passed(ensure_utc(task.due_at), now):
        raise DeadlinePassed()
    if is_terminal(task.status):
        raise IllegalTransition(f"Evaluation is already {task.status}")


def _check_evaluator(task: EvaluationTask, actor_id: Optional[uuid.UUID]) -> None:
    if actor_id is not None and actor_id != task.evaluator_id:
        raise HTTPException(status_code=403, detail="Only the assigned evaluator can score this evaluation")


def _check_details(required: list[uuid.UUID], details: list[ScoreDetailIn]) -> None:
    if not required:
        raise InvalidScore("No criteria are configured for this evaluation type")

    submitted = [d.subcriterion_id for d in details]
    if len(set(submitted)) != len(submitted):
        raise InvalidScore("Each item can only be rated once")
    unknown = set(submitted) - set(required)
    if unknown:
        raise InvalidScore(f"Unknown items: {sorted(str(u) for u in unknown)}")
    if any(d.points not in ALLOWED_MARKS for d in details):
        raise InvalidScore("Marks must be 0, 0.5 or 1")
    if set(required) - set(submitted):
        raise IncompleteScoring()


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------


async def submit_task(
    session: AsyncSession,
    task_id: uuid.UUID,
    submission: TaskSubmission,
    *,
    clock: Clock,
    notifier: Notifier,
    catalog: Optional[CriterionCatalog] = None,
    actor_id: Optional[uuid.UUID] = None,
) -> EvaluationTask:
    """Replace the task's marks, recompute the score and move it forward."""
    task = await get_task_or_404(session, task_id, for_update=True)
    _check_evaluator(task, actor_id)
    now = clock.now()
    await _guard_mutation(session, task, now, notifier)

    catalog = catalog or SqlCriterionCatalog(session)
    criteria = await catalog.get_criteria(EvaluationType(task.type))
    _check_details(required_subcriteria(criteria), submission.details)

    await session.execute(delete(ScoreDetail).where(ScoreDetail.task_id == task.id))
    session.add_all(
        ScoreDetail(
            task_id=task.id,
            subcriterion_id=d.subcriterion_id,
            points=d.points,
            position=i,
        )
        for i, d in enumerate(submission.details)
    )

    task.score = normalize_score((d.points for d in submission.details), get_settings().score_scale)
    if submission.comment is not None:
        task.comment = submission.comment
    _move(task, TaskStatus.COMPLETED if submission.finalize else TaskStatus.ACTIVE, now)
    session.add(task)
    await session.flush()

    log.info(
        "task.scored",
        task_id=str(task.id),
        status=task.status,
        score=task.score,
        marks=len(submission.details),
    )
    if submission.finalize:
        await escalation.on_terminal(session, task, now=now, notifier=notifier)
    return task


async def finalize_task(
    session: AsyncSession,
    task_id: uuid.UUID,
    *,
    clock: Clock,
    notifier: Notifier,
    catalog: Optional[CriterionCatalog] = None,
    actor_id: Optional[uuid.UUID] = None,
) -> EvaluationTask:
    """Mark a fully scored task Completed before its deadline."""
    task = await get_task_or_404(session, task_id, for_update=True)
    _check_evaluator(task, actor_id)
    now = clock.now()
    await _guard_mutation(session, task, now, notifier)

    catalog = catalog or SqlCriterionCatalog(session)
    required = required_subcriteria(await catalog.get_criteria(EvaluationType(task.type)))
    scored = {d.subcriterion_id for d in await _get_details(session, task.id)}
    if task.score is None or set(required) - scored:
        raise IncompleteScoring()

    _move(task, TaskStatus.COMPLETED, now)
    session.add(task)
    await session.flush()

    log.info("task.finalized", task_id=str(task.id), score=task.score)
    await escalation.on_terminal(session, task, now=now, notifier=notifier)
    return task


async def get_task(
    session: AsyncSession,
    task_id: uuid.UUID,
    *,
    clock: Clock,
    notifier: Notifier,
) -> TaskDetail:
    """Read a task after applying any overdue deadline transition."""
    task = await get_task_or_404(session, task_id, for_update=True)
    await apply_deadline(session, task, clock.now(), notifier=notifier)
    return await build_task_detail(session, task)


async def list_tasks_for_person(
    session: AsyncSession,
    person_id: uuid.UUID,
    evaluation_type: Optional[EvaluationType] = None,
    as_evaluator: bool = True,
    *,
    clock: Clock,
) -> list[TaskSummary]:
    """Tasks a person evaluates (or is evaluated in), with the deadline rule applied for display."""
    stmt = (
        select(EvaluationTask)
        .join(Assignment, Assignment.id == EvaluationTask.assignment_id)
        .where(Assignment.deleted_at.is_(None))
    )
    if as_evaluator:
        stmt = stmt.where(EvaluationTask.evaluator_id == person_id)
    else:
        stmt = stmt.where(EvaluationTask.subject_id == person_id)
    if evaluation_type:
        stmt = stmt.where(EvaluationTask.type == evaluation_type.value)
    stmt = stmt.order_by(EvaluationTask.due_at, EvaluationTask.type, EvaluationTask.subject_id)

    result = await session.execute(stmt)
    now = clock.now()
    return [
        _summary(t, resolve_status(t.status, ensure_utc(t.due_at), t.score, now))
        for t in result.scalars().all()
    ]
