"""Progress aggregation over one assignment's task set (read-only)."""

from __future__ import annotations

import uuid
from typing import Iterable, Optional

from sqlalchemy import case, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.config import get_settings
from app.models.evaluation_task import EvaluationTask
from evalengine_shared.schemas.assignments import ProgressStats
from evalengine_shared.schemas.common import EvaluationType, TaskStatus


def progress_percent(completed: int, total: int) -> int:
    """Completed share rounded half-up; an empty task set is 0%."""
    if total <= 0:
        return 0
    return int(completed * 100 / total + 0.5)


def compute_stats(rows: Iterable[tuple[str, str, int, Optional[int]]]) -> ProgressStats:
    """Fold (type, status, count, passing_count) rows into ProgressStats."""
    stats = ProgressStats(by_type={kind: 0 for kind in EvaluationType})
    for kind, status, count, passing in rows:
        stats.total += count
        stats.by_type[EvaluationType(kind)] += count
        status = TaskStatus(status)
        if status == TaskStatus.COMPLETED:
            stats.completed += count
            stats.passing += passing or 0
            stats.failing += count - (passing or 0)
        elif status == TaskStatus.PENDING:
            stats.pending += count
        elif status == TaskStatus.ACTIVE:
            stats.active += count
        elif status == TaskStatus.EXPIRED:
            stats.expired += count
        elif status == TaskStatus.CANCELLED:
            stats.cancelled += count

    stats.progress_percent = progress_percent(stats.completed, stats.total)
    return stats


async def get_assignment_stats(session: AsyncSession, assignment_id: uuid.UUID) -> ProgressStats:
    threshold = get_settings().approval_threshold
    result = await session.execute(
        select(
            EvaluationTask.type,
            EvaluationTask.status,
            func.count(EvaluationTask.id),
            func.sum(case((EvaluationTask.score >= threshold, 1), else_=0)),
        )
        .where(EvaluationTask.assignment_id == assignment_id)
        .group_by(EvaluationTask.type, EvaluationTask.status)
    )
    return compute_stats(result.all())
