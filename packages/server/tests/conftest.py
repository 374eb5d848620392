"""
Shared fixtures: a file-backed SQLite database per test, a frozen clock,
a recording notifier, roster/catalog seed helpers and an API client wired
to all three through dependency overrides.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel

import app.models  # noqa: F401
from app.core.clock import get_clock
from app.core.database import get_session, get_session_context
from app.core.notify import get_notifier
from app.main import app as fastapi_app
from app.models import Area, Criterion, EvaluationTypeCriterion, Person, Subcriterion
from app.services.assignments import create_assignment
from evalengine_shared.schemas.assignments import AssignmentCreate
from evalengine_shared.schemas.common import EvaluationType, PersonRole

WINDOW_START = date(2026, 3, 2)
WINDOW_END = date(2026, 3, 6)
# Default daily window is 08:00-23:59 UTC.
STARTS_AT = datetime(2026, 3, 2, 8, 0, tzinfo=timezone.utc)
ENDS_AT = datetime(2026, 3, 6, 23, 59, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Test doubles
# ---------------------------------------------------------------------------


class FrozenClock:
    def __init__(self, now: datetime):
        self.current = now

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)

    def set(self, now: datetime) -> None:
        self.current = now


class RecordingNotifier:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: list[tuple[uuid.UUID, str]] = []

    async def notify(self, person_id: uuid.UUID, message: str) -> None:
        if self.fail:
            raise ConnectionError("notification backend unavailable")
        self.sent.append((person_id, message))


@dataclass
class SeededArea:
    area: Area
    subjects: list[Person] = field(default_factory=list)
    supervisors: list[Person] = field(default_factory=list)
    peers: list[Person] = field(default_factory=list)

    @property
    def supervisor(self) -> Person:
        return self.supervisors[0]


# ---------------------------------------------------------------------------
# Seed helpers
# ---------------------------------------------------------------------------


async def seed_area(
    session: AsyncSession,
    subjects: int = 2,
    supervisors: int = 1,
    peers: int = 1,
    name: str = "Mathematics",
) -> SeededArea:
    area = Area(name=name)
    session.add(area)
    seeded = SeededArea(area=area)

    for role, count, bucket in [
        (PersonRole.SUBJECT, subjects, seeded.subjects),
        (PersonRole.SUPERVISOR, supervisors, seeded.supervisors),
        (PersonRole.PEER, peers, seeded.peers),
    ]:
        for i in range(count):
            person = Person(display_name=f"{name} {role.value} {i}", area_id=area.id, role=role.value)
            session.add(person)
            bucket.append(person)

    await session.commit()
    return seeded


async def seed_catalog(session: AsyncSession, criteria: int = 2, subcriteria: int = 2) -> list[uuid.UUID]:
    """Same criteria for every evaluation type. Returns sub-criterion ids in catalog order."""
    ids: list[uuid.UUID] = []
    for i in range(criteria):
        criterion = Criterion(name=f"Criterion {i}", position=i)
        session.add(criterion)
        for j in range(subcriteria):
            sub = Subcriterion(criterion_id=criterion.id, name=f"Item {i}.{j}", position=j)
            session.add(sub)
            ids.append(sub.id)
        for kind in EvaluationType:
            session.add(EvaluationTypeCriterion(evaluation_type=kind.value, criterion_id=criterion.id))
    await session.commit()
    return ids


def assignment_request(area_id: uuid.UUID, period_label: str = "2026-1", **overrides) -> AssignmentCreate:
    data = dict(area_id=area_id, period_label=period_label, start_date=WINDOW_START, end_date=WINDOW_END)
    data.update(overrides)
    return AssignmentCreate(**data)


async def open_assignment(session_factory, seeded: SeededArea, actor: Person | None = None, **overrides):
    actor = actor or seeded.supervisor
    async with get_session_context(session_factory) as session:
        return await create_assignment(session, assignment_request(seeded.area.id, **overrides), actor.id)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'evaluations.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def clock():
    return FrozenClock(datetime(2026, 3, 3, 10, 0, tzinfo=timezone.utc))


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
async def seeded(session):
    return await seed_area(session, subjects=2, supervisors=1, peers=1)


@pytest.fixture
async def catalog_ids(session):
    return await seed_catalog(session)


@pytest.fixture
async def client(session_factory, clock, notifier):
    async def _get_session():
        async with get_session_context(session_factory) as session:
            yield session

    fastapi_app.dependency_overrides[get_session] = _get_session
    fastapi_app.dependency_overrides[get_clock] = lambda: clock
    fastapi_app.dependency_overrides[get_notifier] = lambda: notifier
    async with AsyncClient(transport=ASGITransport(app=fastapi_app), base_url="http://test") as ac:
        yield ac
    fastapi_app.dependency_overrides.clear()


def bearer(person: Person) -> dict[str, str]:
    return {"Authorization": f"Bearer {person.id}"}
