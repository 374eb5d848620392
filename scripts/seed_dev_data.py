#!/usr/bin/env python3
"""Seed a development database with an area, its staff and the criterion catalog.

Usage:
    uv run python scripts/seed_dev_data.py

Requires EVAL_DATABASE_URL (or defaults to localhost). Safe to re-run.
"""

import asyncio
import uuid

from app.core.database import engine, get_session_context, init_db
from app.models import Area, Criterion, EvaluationTypeCriterion, Person, Subcriterion
from evalengine_shared.schemas.common import EvaluationType, PersonRole

# Deterministic UUIDs for reproducibility
AREA_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")
SUPERVISOR_ID = uuid.UUID("00000000-0000-0000-0000-000000000010")
PEER_ID = uuid.UUID("00000000-0000-0000-0000-000000000011")
SUBJECT_IDS = [uuid.UUID(f"00000000-0000-0000-0000-0000000001{i:02d}") for i in range(4)]

CRITERIA = [
    ("Knowledge and Application", ["Subject mastery", "Practical application"]),
    ("Communication", ["Verbal clarity", "Written communication"]),
    ("Collaboration and Teamwork", ["Active participation", "Respect and empathy"]),
    ("Professionalism and Ethics", ["Professional conduct", "Ethical compliance"]),
    ("Problem Solving", ["Problem analysis", "Creative solutions"]),
]


def _criterion_id(index: int) -> uuid.UUID:
    return uuid.UUID(f"00000000-0000-0000-0000-0000000002{index:02d}")


def _subcriterion_id(index: int, sub: int) -> uuid.UUID:
    return uuid.UUID(f"00000000-0000-0000-0000-0000000003{index:01d}{sub:01d}")


async def seed():
    await init_db()

    async with get_session_context() as session:
        await session.merge(Area(id=AREA_ID, name="Computer Science"))

        await session.merge(Person(
            id=SUPERVISOR_ID, display_name="Alice Rivera", email="alice@school.dev",
            area_id=AREA_ID, role=PersonRole.SUPERVISOR.value,
        ))
        await session.merge(Person(
            id=PEER_ID, display_name="Bruno Salas", email="bruno@school.dev",
            area_id=AREA_ID, role=PersonRole.PEER.value,
        ))
        for i, pid in enumerate(SUBJECT_IDS):
            await session.merge(Person(
                id=pid, display_name=f"Teacher {i + 1}", email=f"teacher{i + 1}@school.dev",
                area_id=AREA_ID, role=PersonRole.SUBJECT.value,
            ))

        for i, (name, subs) in enumerate(CRITERIA):
            criterion_id = _criterion_id(i)
            await session.merge(Criterion(id=criterion_id, name=name, position=i))
            for j, sub_name in enumerate(subs):
                await session.merge(Subcriterion(
                    id=_subcriterion_id(i, j), criterion_id=criterion_id, name=sub_name, position=j,
                ))
            for kind in EvaluationType:
                await session.merge(EvaluationTypeCriterion(evaluation_type=kind.value, criterion_id=criterion_id))

    print("Seeded area, 6 people and", len(CRITERIA), "criteria.")
    print(f"Supervisor token: Bearer {SUPERVISOR_ID}")
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(seed())
