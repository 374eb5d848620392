"""
Fan-out generation: task counts, pairing rules, atomicity and duplicate
protection.
"""

from __future__ import annotations

import uuid

import pytest
from sqlalchemy import func
from sqlmodel import select

from app.core.database import get_session_context
from app.core.errors import DuplicateAssignment, EmptyRoster
from app.models import Assignment, EvaluationTask
from app.services import assignments as assignment_service
from app.services.assignments import create_assignment
from app.services.fanout import count_by_type, plan_tasks
from app.services.roster import SqlRosterProvider
from evalengine_shared.schemas.common import EvaluationType, TaskStatus
from evalengine_shared.schemas.roster import PersonRef, Roster

from conftest import ENDS_AT, STARTS_AT, assignment_request, open_assignment, seed_area


def _people(n: int) -> list[PersonRef]:
    return [PersonRef(id=uuid.uuid4(), display_name=f"p{i}") for i in range(n)]


async def _count(session_factory, model) -> int:
    async with session_factory() as session:
        result = await session.execute(select(func.count()).select_from(model))
        return result.scalar_one()


# ---------------------------------------------------------------------------
# Unit tests: plan_tasks
# ---------------------------------------------------------------------------


class TestPlanTasks:
    """The task set is S + P*S + T*S for S subjects, P supervisors, T peers."""

    @pytest.mark.parametrize("s,p,t", [(1, 0, 0), (3, 1, 2), (4, 2, 0), (5, 2, 3)])
    def test_task_count(self, s, p, t):
        roster = Roster(subjects=_people(s), supervisors=_people(p), peers=_people(t))
        tasks = plan_tasks(uuid.uuid4(), roster, STARTS_AT, ENDS_AT)

        assert len(tasks) == s + p * s + t * s
        counts = count_by_type(tasks)
        assert counts[EvaluationType.SELF_EVALUATION] == s
        assert counts[EvaluationType.SUPERVISOR_TO_SUBJECT] == p * s
        assert counts[EvaluationType.PEER_TO_SUBJECT] == t * s

    def test_self_evaluation_pairs_subject_with_itself(self):
        roster = Roster(subjects=_people(3), supervisors=_people(1), peers=_people(1))
        tasks = plan_tasks(uuid.uuid4(), roster, STARTS_AT, ENDS_AT)

        selfs = [t for t in tasks if t.type == EvaluationType.SELF_EVALUATION.value]
        assert {t.subject_id for t in selfs} == {p.id for p in roster.subjects}
        assert all(t.evaluator_id == t.subject_id for t in selfs)

    def test_one_task_per_pairing(self):
        roster = Roster(subjects=_people(3), supervisors=_people(2), peers=_people(2))
        tasks = plan_tasks(uuid.uuid4(), roster, STARTS_AT, ENDS_AT)
        keys = [(t.type, t.evaluator_id, t.subject_id) for t in tasks]
        assert len(keys) == len(set(keys))

    def test_duplicate_roster_entries_collapse(self):
        subject = PersonRef(id=uuid.uuid4())
        roster = Roster(subjects=[subject, subject], supervisors=_people(1))
        assert len(plan_tasks(uuid.uuid4(), roster, STARTS_AT, ENDS_AT)) == 2

    def test_tasks_inherit_window_and_start_pending(self):
        roster = Roster(subjects=_people(2), supervisors=_people(1))
        tasks = plan_tasks(uuid.uuid4(), roster, STARTS_AT, ENDS_AT)
        assert all(t.status == TaskStatus.PENDING.value for t in tasks)
        assert all(t.scheduled_at == STARTS_AT and t.due_at == ENDS_AT for t in tasks)


# ---------------------------------------------------------------------------
# Integration: create_assignment
# ---------------------------------------------------------------------------


class TestCreateAssignment:
    @pytest.mark.asyncio
    async def test_persists_full_task_set(self, session, session_factory):
        seeded = await seed_area(session, subjects=3, supervisors=2, peers=2)

        result = await open_assignment(session_factory, seeded)

        assert result.tasks_created == 3 + 2 * 3 + 2 * 3
        assert result.tasks_by_type[EvaluationType.SELF_EVALUATION] == 3
        assert await _count(session_factory, EvaluationTask) == 15

        async with session_factory() as check:
            assignment = await check.get(Assignment, result.assignment_id)
            assert assignment.status == "Open"
            assert assignment.created_by == seeded.supervisor.id

    @pytest.mark.asyncio
    async def test_failure_mid_generation_leaves_nothing(self, session, session_factory):
        """A roster read that fails inside the transaction rolls back the assignment too."""
        seeded = await seed_area(session, subjects=2)

        class FlakyRoster(SqlRosterProvider):
            calls = 0

            async def get_active_roster(self, area_id):
                FlakyRoster.calls += 1
                if FlakyRoster.calls > 1:
                    raise RuntimeError("roster service went away")
                return await super().get_active_roster(area_id)

        with pytest.raises(RuntimeError):
            async with get_session_context(session_factory) as s:
                await create_assignment(
                    s, assignment_request(seeded.area.id), seeded.supervisor.id, roster=FlakyRoster(s)
                )

        assert await _count(session_factory, Assignment) == 0
        assert await _count(session_factory, EvaluationTask) == 0

    @pytest.mark.asyncio
    async def test_roster_emptied_between_validation_and_generation(self, session, session_factory):
        seeded = await seed_area(session, subjects=2)

        class DrainingRoster(SqlRosterProvider):
            calls = 0

            async def get_active_roster(self, area_id):
                DrainingRoster.calls += 1
                roster = await super().get_active_roster(area_id)
                if DrainingRoster.calls > 1:
                    roster.subjects = []
                return roster

        with pytest.raises(EmptyRoster):
            async with get_session_context(session_factory) as s:
                await create_assignment(
                    s, assignment_request(seeded.area.id), seeded.supervisor.id, roster=DrainingRoster(s)
                )

        assert await _count(session_factory, Assignment) == 0

    @pytest.mark.asyncio
    async def test_second_identical_request_rejected(self, session, session_factory):
        seeded = await seed_area(session, subjects=2)
        await open_assignment(session_factory, seeded)

        with pytest.raises(DuplicateAssignment):
            await open_assignment(session_factory, seeded)

        assert await _count(session_factory, Assignment) == 1
        assert await _count(session_factory, EvaluationTask) == 2 + 2 + 2

    @pytest.mark.asyncio
    async def test_unique_index_catches_lost_race(self, session, session_factory, monkeypatch):
        """If both requests pass the existence check, the store still refuses the second."""
        seeded = await seed_area(session, subjects=2)
        await open_assignment(session_factory, seeded)

        async def _no_duplicate(*args, **kwargs):
            return None

        monkeypatch.setattr(assignment_service, "_find_live_duplicate", _no_duplicate)

        with pytest.raises(DuplicateAssignment):
            await open_assignment(session_factory, seeded)

        assert await _count(session_factory, Assignment) == 1

    @pytest.mark.asyncio
    async def test_other_period_is_not_a_duplicate(self, session, session_factory):
        seeded = await seed_area(session, subjects=1, supervisors=1, peers=0)
        await open_assignment(session_factory, seeded, period_label="2026-1")
        await open_assignment(session_factory, seeded, period_label="2026-2")
        assert await _count(session_factory, Assignment) == 2
