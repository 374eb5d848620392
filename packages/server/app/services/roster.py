"""
Roster provider: active members of an area split by functional role.

The roster belongs to the people/area subsystem; the engine only reads it.
"""

from __future__ import annotations

import uuid
from typing import Optional, Protocol

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.models.area import Area
from app.models.person import Person
from evalengine_shared.schemas.common import PersonRole
from evalengine_shared.schemas.roster import PersonRef, Roster


class RosterProvider(Protocol):
    async def get_area_name(self, area_id: uuid.UUID) -> Optional[str]: ...

    async def get_active_roster(self, area_id: uuid.UUID) -> Roster: ...


class SqlRosterProvider:
    """Roster backed by the `areas` and `people` tables."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_area_name(self, area_id: uuid.UUID) -> Optional[str]:
        result = await self.session.execute(
            select(Area.name).where(Area.id == area_id, Area.active == True)  # noqa: E712
        )
        return result.scalar_one_or_none()

    async def get_active_roster(self, area_id: uuid.UUID) -> Roster:
        result = await self.session.execute(
            select(Person).where(
                Person.area_id == area_id,
                Person.active == True,  # noqa: E712
            )
        )
        people = sorted(result.scalars().all(), key=lambda p: str(p.id))

        def _refs(role: PersonRole) -> list[PersonRef]:
            return [
                PersonRef(id=p.id, display_name=p.display_name)
                for p in people
                if p.role == role.value
            ]

        return Roster(
            subjects=_refs(PersonRole.SUBJECT),
            supervisors=_refs(PersonRole.SUPERVISOR),
            peers=_refs(PersonRole.PEER),
        )
