"""
Notification inbox: rows written with the incident, pushes sent only after
commit, listing, unread count and mark-read.
"""

from __future__ import annotations

import uuid
from datetime import timedelta

import pytest
from sqlmodel import select

from app.core.database import get_session_context
from app.core.errors import NotFound
from app.models import EvaluationTask, Incident, Notification
from app.services.lifecycle import get_task
from app.services.notifications import (
    get_notification_or_404,
    list_notifications,
    mark_read,
    unread_count,
)
from evalengine_shared.schemas.common import EvaluationType, IncidentCategory, TaskStatus

from conftest import ENDS_AT, bearer, open_assignment


async def _tasks_about(session_factory, person) -> list[EvaluationTask]:
    async with session_factory() as session:
        result = await session.execute(
            select(EvaluationTask)
            .where(EvaluationTask.subject_id == person.id)
            .order_by(EvaluationTask.type)
        )
        return list(result.scalars().all())


async def _rows(session_factory, model) -> list:
    async with session_factory() as session:
        return list((await session.execute(select(model))).scalars().all())


class TestRecording:
    @pytest.mark.asyncio
    async def test_incident_writes_inbox_row_and_pushes_after_commit(
        self, seeded, session_factory, clock, notifier
    ):
        await open_assignment(session_factory, seeded)
        task = (await _tasks_about(session_factory, seeded.subjects[0]))[0]
        clock.set(ENDS_AT + timedelta(minutes=1))

        async with get_session_context(session_factory) as session:
            await get_task(session, task.id, clock=clock, notifier=notifier)
            assert notifier.sent == []

        assert [p for p, _ in notifier.sent] == [seeded.subjects[0].id]
        [incident] = await _rows(session_factory, Incident)
        [notification] = await _rows(session_factory, Notification)
        assert notification.person_id == seeded.subjects[0].id
        assert notification.incident_id == incident.id
        assert notification.read is False
        assert notification.message == notifier.sent[0][1]

    @pytest.mark.asyncio
    async def test_rollback_leaves_no_row_and_sends_nothing(self, seeded, session_factory, clock, notifier):
        await open_assignment(session_factory, seeded)
        task = (await _tasks_about(session_factory, seeded.subjects[0]))[0]
        clock.set(ENDS_AT + timedelta(minutes=1))

        with pytest.raises(RuntimeError):
            async with get_session_context(session_factory) as session:
                await get_task(session, task.id, clock=clock, notifier=notifier)
                raise RuntimeError("request failed after the deadline check")

        assert notifier.sent == []
        assert await _rows(session_factory, Notification) == []
        assert await _rows(session_factory, Incident) == []
        async with session_factory() as session:
            stored = await session.get(EvaluationTask, task.id)
        assert stored.status == TaskStatus.PENDING.value


class TestInbox:
    async def _expire_two(self, seeded, session_factory, clock, notifier) -> list[EvaluationTask]:
        await open_assignment(session_factory, seeded)
        tasks = (await _tasks_about(session_factory, seeded.subjects[0]))[:2]
        clock.set(ENDS_AT + timedelta(minutes=1))
        for task in tasks:
            async with get_session_context(session_factory) as session:
                await get_task(session, task.id, clock=clock, notifier=notifier)
            clock.advance(minutes=1)
        return tasks

    @pytest.mark.asyncio
    async def test_newest_first_with_incident(self, seeded, session_factory, clock, notifier):
        tasks = await self._expire_two(seeded, session_factory, clock, notifier)

        async with session_factory() as session:
            inbox = await list_notifications(session, seeded.subjects[0].id)

        assert len(inbox) == 2
        assert inbox[0].created_at > inbox[1].created_at
        assert {n.incident_category for n in inbox} == {IncidentCategory.EVALUATION_EXPIRED}
        assert inbox[0].incident_description == f"{tasks[1].type} evaluation expired without a score"

    @pytest.mark.asyncio
    async def test_mark_read_updates_count_once(self, seeded, session_factory, clock, notifier):
        await self._expire_two(seeded, session_factory, clock, notifier)
        person_id = seeded.subjects[0].id

        async with session_factory() as session:
            assert await unread_count(session, person_id) == 2
            first = (await list_notifications(session, person_id))[0]

        async with get_session_context(session_factory) as session:
            stored = await get_notification_or_404(session, first.id)
            read = await mark_read(session, stored, now=clock.now())
        assert read.read is True
        read_at = read.read_at

        clock.advance(hours=1)
        async with get_session_context(session_factory) as session:
            stored = await get_notification_or_404(session, first.id)
            again = await mark_read(session, stored, now=clock.now())
        assert again.read_at == read_at

        async with session_factory() as session:
            assert await unread_count(session, person_id) == 1
            unread = await list_notifications(session, person_id, unread_only=True)
        assert len(unread) == 1
        assert unread[0].id != first.id

    @pytest.mark.asyncio
    async def test_unknown_notification(self, session):
        with pytest.raises(NotFound):
            await get_notification_or_404(session, uuid.uuid4())


class TestInboxRoutes:
    async def _expired_self_evaluation(self, client, seeded, session_factory, clock) -> str:
        await open_assignment(session_factory, seeded)
        subject = seeded.subjects[0]
        clock.set(ENDS_AT + timedelta(minutes=1))
        listing = await client.get(
            f"/api/v1/people/{subject.id}/tasks",
            params={"type": EvaluationType.SELF_EVALUATION.value},
            headers=bearer(subject),
        )
        task_id = listing.json()[0]["id"]
        detail = await client.get(f"/api/v1/tasks/{task_id}", headers=bearer(subject))
        assert detail.json()["status"] == "Expired"
        return task_id

    @pytest.mark.asyncio
    async def test_list_count_and_mark_read(self, client, seeded, session_factory, clock):
        await self._expired_self_evaluation(client, seeded, session_factory, clock)
        subject = seeded.subjects[0]
        base = f"/api/v1/people/{subject.id}/notifications"

        inbox = await client.get(base, headers=bearer(subject))
        assert inbox.status_code == 200
        [entry] = inbox.json()
        assert entry["read"] is False
        assert entry["incident_category"] == "evaluation expired"

        count = await client.get(f"{base}/unread-count", headers=bearer(subject))
        assert count.json() == {"count": 1}

        marked = await client.post(f"/api/v1/notifications/{entry['id']}/read", headers=bearer(subject))
        assert marked.status_code == 200
        assert marked.json()["read"] is True

        count = await client.get(f"{base}/unread-count", headers=bearer(subject))
        assert count.json() == {"count": 0}
        unread = await client.get(base, params={"unread": "true"}, headers=bearer(subject))
        assert unread.json() == []

    @pytest.mark.asyncio
    async def test_inbox_is_private(self, client, seeded, session_factory, clock):
        await self._expired_self_evaluation(client, seeded, session_factory, clock)
        subject, other = seeded.subjects[0], seeded.subjects[1]
        base = f"/api/v1/people/{subject.id}/notifications"

        assert (await client.get(base, headers=bearer(other))).status_code == 403
        assert (await client.get(f"{base}/unread-count", headers=bearer(other))).status_code == 403

        supervisor_view = await client.get(base, headers=bearer(seeded.supervisor))
        assert supervisor_view.status_code == 200
        entry_id = supervisor_view.json()[0]["id"]

        # Only the recipient can mark an entry read.
        for outsider in (other, seeded.supervisor):
            response = await client.post(f"/api/v1/notifications/{entry_id}/read", headers=bearer(outsider))
            assert response.status_code == 403

        missing = await client.post(f"/api/v1/notifications/{uuid.uuid4()}/read", headers=bearer(subject))
        assert missing.status_code == 404
