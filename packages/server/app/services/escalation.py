"""
Escalation emitter: incidents for expired and failing evaluations.

on_terminal() is the post-transition hook the lifecycle engine calls with the
finished task. It appends Incident rows and an inbox notification for the
affected person in the same transaction; it never mutates the task. At most
one incident exists per (task, category), so the sweep and an on-demand
check observing the same transition are harmless.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.config import get_settings
from app.core.errors import IllegalTransition, NotFound
from app.core.notify import Notifier
from app.models.assignment import Assignment
from app.models.evaluation_task import EvaluationTask
from app.models.incident import Incident
from app.services.notifications import record_notification
from evalengine_shared.schemas.common import IncidentCategory, IncidentStatus, TaskStatus
from evalengine_shared.schemas.lifecycle import is_passing

log = structlog.get_logger()


def _describe(task: EvaluationTask, category: IncidentCategory) -> str:
    if category == IncidentCategory.EVALUATION_EXPIRED:
        return f"{task.type} evaluation expired without a score"
    return f"{task.type} evaluation completed below the approval threshold (score {task.score})"


def escalation_category(task: EvaluationTask) -> Optional[IncidentCategory]:
    """Which incident, if any, a task's current state calls for."""
    status = TaskStatus(task.status)
    if status == TaskStatus.EXPIRED:
        return IncidentCategory.EVALUATION_EXPIRED
    if (
        status == TaskStatus.COMPLETED
        and task.score is not None
        and not is_passing(task.score, get_settings().approval_threshold)
    ):
        return IncidentCategory.BELOW_THRESHOLD
    return None


async def find_incident(
    session: AsyncSession, task_id: uuid.UUID, category: IncidentCategory
) -> Optional[Incident]:
    result = await session.execute(
        select(Incident).where(
            Incident.task_id == task_id,
            Incident.category == category.value,
        )
    )
    return result.scalars().first()


async def emit_incident(
    session: AsyncSession,
    task: EvaluationTask,
    category: IncidentCategory,
    reporter_id: uuid.UUID,
    *,
    now: datetime,
    notifier: Notifier,
    description: Optional[str] = None,
) -> tuple[Incident, bool]:
    """Create the incident unless one already exists. Returns (incident, created)."""
    existing = await find_incident(session, task.id, category)
    if existing:
        log.info("incident.exists", task_id=str(task.id), category=category.value)
        return existing, False

    incident = Incident(
        occurred_at=now,
        description=description or _describe(task, category),
        category=category.value,
        status=IncidentStatus.PENDING.value,
        reporter_id=reporter_id,
        affected_id=task.subject_id,
        task_id=task.id,
    )
    session.add(incident)
    await session.flush()

    log.info(
        "incident.created",
        incident_id=str(incident.id),
        task_id=str(task.id),
        category=category.value,
        affected_id=str(task.subject_id),
    )
    await record_notification(
        session,
        task.subject_id,
        f"An incident was recorded: {incident.description}",
        now=now,
        notifier=notifier,
        incident_id=incident.id,
    )
    return incident, True


async def on_terminal(
    session: AsyncSession,
    task: EvaluationTask,
    *,
    now: datetime,
    notifier: Notifier,
) -> Optional[Incident]:
    """System escalation; the assignment creator is recorded as reporter."""
    category = escalation_category(task)
    if category is None:
        return None

    assignment = await session.get(Assignment, task.assignment_id)
    incident, _ = await emit_incident(
        session, task, category, assignment.created_by, now=now, notifier=notifier
    )
    return incident


async def report_low_score(
    session: AsyncSession,
    task: EvaluationTask,
    reporter_id: uuid.UUID,
    *,
    now: datetime,
    notifier: Notifier,
    description: Optional[str] = None,
) -> Incident:
    """Manual escalation by a supervisor reviewing a failing result."""
    if escalation_category(task) != IncidentCategory.BELOW_THRESHOLD:
        raise IllegalTransition("Only completed evaluations below the approval threshold can be escalated")

    incident, _ = await emit_incident(
        session,
        task,
        IncidentCategory.BELOW_THRESHOLD,
        reporter_id,
        now=now,
        notifier=notifier,
        description=description,
    )
    return incident


# ---------------------------------------------------------------------------
# Incident queries
# ---------------------------------------------------------------------------


async def list_incidents(
    session: AsyncSession,
    person_id: Optional[uuid.UUID] = None,
    category: Optional[IncidentCategory] = None,
    status: Optional[IncidentStatus] = None,
) -> list[Incident]:
    stmt = select(Incident)
    if person_id:
        stmt = stmt.where(
            (Incident.affected_id == person_id) | (Incident.reporter_id == person_id)
        )
    if category:
        stmt = stmt.where(Incident.category == category.value)
    if status:
        stmt = stmt.where(Incident.status == status.value)
    result = await session.execute(stmt.order_by(Incident.occurred_at.desc()))
    return list(result.scalars().all())


async def resolve_incident(
    session: AsyncSession,
    incident_id: uuid.UUID,
    action_taken: str,
    *,
    now: datetime,
) -> Incident:
    incident = await session.get(Incident, incident_id)
    if not incident:
        raise NotFound("Incident not found")
    if incident.status == IncidentStatus.RESOLVED.value:
        raise IllegalTransition("Incident is already resolved")

    incident.status = IncidentStatus.RESOLVED.value
    incident.action_taken = action_taken
    incident.resolved_at = now
    session.add(incident)
    await session.flush()

    log.info("incident.resolved", incident_id=str(incident.id))
    return incident
