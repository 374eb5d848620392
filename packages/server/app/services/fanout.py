"""
Fan-out generator: the full task set an assignment requires.

For an area with S subjects, P supervisors and T peers:
- one SelfEvaluation per subject (evaluator == subject)
- one SupervisorToSubject per supervisor x subject
- one PeerToSubject per peer x subject
= S + P*S + T*S tasks, all Pending, all due when the assignment window ends.

Tasks are flushed into the caller's transaction; the caller owns commit or
rollback so a failure leaves neither the assignment nor any task behind.
"""

from __future__ import annotations

import uuid
from collections import Counter
from datetime import datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import EmptyRoster
from app.models.assignment import Assignment
from app.models.evaluation_task import EvaluationTask
from app.services.roster import RosterProvider
from evalengine_shared.schemas.common import EvaluationType, TaskStatus
from evalengine_shared.schemas.roster import PersonRef, Roster

log = structlog.get_logger()


def _unique(people: list[PersonRef]) -> list[PersonRef]:
    seen: dict[uuid.UUID, PersonRef] = {}
    for person in people:
        seen.setdefault(person.id, person)
    return sorted(seen.values(), key=lambda p: str(p.id))


def plan_tasks(
    assignment_id: uuid.UUID,
    roster: Roster,
    scheduled_at: datetime,
    due_at: datetime,
) -> list[EvaluationTask]:
    """Build (but don't persist) the task set for a roster snapshot."""
    subjects = _unique(roster.subjects)
    supervisors = _unique(roster.supervisors)
    peers = _unique(roster.peers)

    def _task(kind: EvaluationType, evaluator: PersonRef, subject: PersonRef) -> EvaluationTask:
        return EvaluationTask(
            assignment_id=assignment_id,
            type=kind.value,
            evaluator_id=evaluator.id,
            subject_id=subject.id,
            scheduled_at=scheduled_at,
            due_at=due_at,
            status=TaskStatus.PENDING.value,
        )

    tasks = [_task(EvaluationType.SELF_EVALUATION, s, s) for s in subjects]
    tasks += [
        _task(EvaluationType.SUPERVISOR_TO_SUBJECT, sup, s)
        for sup in supervisors
        for s in subjects
    ]
    tasks += [
        _task(EvaluationType.PEER_TO_SUBJECT, peer, s)
        for peer in peers
        for s in subjects
    ]
    return tasks


def count_by_type(tasks: list[EvaluationTask]) -> dict[EvaluationType, int]:
    counts = Counter(EvaluationType(t.type) for t in tasks)
    return {kind: counts.get(kind, 0) for kind in EvaluationType}


async def generate_tasks(
    session: AsyncSession,
    assignment: Assignment,
    roster_provider: RosterProvider,
) -> list[EvaluationTask]:
    """Re-read the roster inside the transaction and persist the task set."""
    roster = await roster_provider.get_active_roster(assignment.area_id)
    if not roster.subjects:
        raise EmptyRoster()

    tasks = plan_tasks(assignment.id, roster, assignment.starts_at, assignment.ends_at)
    session.add_all(tasks)
    await session.flush()

    log.info(
        "assignment.fanned_out",
        assignment_id=str(assignment.id),
        total=len(tasks),
        **{kind.value: n for kind, n in count_by_type(tasks).items()},
    )
    return tasks
