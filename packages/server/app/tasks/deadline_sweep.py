"""
ARQ background task: apply the deadline rule to every overdue evaluation.

Scheduled every `sweep_interval_minutes`. Each task is resolved in its own
short transaction so one bad row never halts the scan; the sweep itself
never raises, failures are counted in the report and logged.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Optional

import structlog
from arq import cron
from arq.connections import RedisSettings
from sqlalchemy import exists
from sqlmodel import select

from app.core.clock import Clock, system_clock
from app.core.config import get_settings
from app.core.database import get_session_context
from app.core.notify import Notifier, RedisNotifier
from app.models.assignment import Assignment
from app.models.evaluation_task import EvaluationTask
from app.services.lifecycle import apply_deadline, get_task_or_404
from evalengine_shared.schemas.common import AssignmentStatus, TaskStatus

log = structlog.get_logger()

OPEN_STATUSES = [TaskStatus.PENDING.value, TaskStatus.ACTIVE.value]


@dataclass
class SweepReport:
    scanned: int = 0
    completed: int = 0
    expired: int = 0
    failed: int = 0
    closed_assignments: int = 0


async def _resolve_one(session_factory, task_id, *, clock: Clock, notifier: Notifier) -> Optional[str]:
    async with get_session_context(session_factory) as session:
        task = await get_task_or_404(session, task_id, for_update=True)
        if await apply_deadline(session, task, clock.now(), notifier=notifier):
            return task.status
    return None


async def _close_elapsed_assignments(session_factory, *, clock: Clock) -> int:
    now = clock.now()
    still_open = exists().where(
        EvaluationTask.assignment_id == Assignment.id,
        EvaluationTask.status.in_(OPEN_STATUSES),
    )
    async with get_session_context(session_factory) as session:
        result = await session.execute(
            select(Assignment).where(
                Assignment.status == AssignmentStatus.OPEN.value,
                Assignment.deleted_at.is_(None),
                Assignment.ends_at < now,
                ~still_open,
            )
        )
        assignments = result.scalars().all()
        for assignment in assignments:
            assignment.status = AssignmentStatus.CLOSED.value
            assignment.closed_at = now
            session.add(assignment)
            log.info("assignment.closed", assignment_id=str(assignment.id), by="sweep")
    return len(assignments)


async def sweep_deadlines(
    session_factory=None,
    *,
    clock: Clock = system_clock,
    notifier: Optional[Notifier] = None,
) -> SweepReport:
    """Run one pass over every non-terminal task whose deadline has passed."""
    notifier = notifier or RedisNotifier()
    report = SweepReport()
    now = clock.now()

    try:
        async with get_session_context(session_factory) as session:
            result = await session.execute(
                select(EvaluationTask.id)
                .where(
                    EvaluationTask.status.in_(OPEN_STATUSES),
                    EvaluationTask.due_at < now,
                )
                .order_by(EvaluationTask.due_at)
            )
            task_ids = list(result.scalars().all())
    except Exception:
        log.exception("sweep.scan_failed")
        report.failed += 1
        return report

    report.scanned = len(task_ids)
    for task_id in task_ids:
        try:
            status = await _resolve_one(session_factory, task_id, clock=clock, notifier=notifier)
        except Exception:
            log.exception("sweep.task_failed", task_id=str(task_id))
            report.failed += 1
            continue
        if status == TaskStatus.COMPLETED.value:
            report.completed += 1
        elif status == TaskStatus.EXPIRED.value:
            report.expired += 1

    try:
        report.closed_assignments = await _close_elapsed_assignments(session_factory, clock=clock)
    except Exception:
        log.exception("sweep.close_failed")
        report.failed += 1

    log.info("sweep.finished", **asdict(report))
    return report


async def deadline_sweep(ctx: dict) -> dict:
    """ARQ entry point."""
    report = await sweep_deadlines()
    return asdict(report)


# ARQ worker settings
settings = get_settings()


class WorkerSettings:
    """ARQ worker configuration."""

    functions = [deadline_sweep]
    cron_jobs = [
        cron(
            deadline_sweep,
            minute=set(range(0, 60, settings.sweep_interval_minutes)),
            run_at_startup=True,
        ),
    ]
    redis_settings = RedisSettings.from_dsn(settings.redis_url)
