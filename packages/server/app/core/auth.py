"""
Caller identity for the evaluation API.

Token issuance lives in the identity subsystem; requests reach this service
with `Authorization: Bearer <person-uuid>` already vouched for upstream. The
engine only resolves that id to an active Person and checks its role.
"""

from __future__ import annotations

import uuid
from typing import Optional

import structlog
from fastapi import Depends, HTTPException, Request
from fastapi.security import APIKeyHeader
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_session
from app.models.person import Person
from evalengine_shared.schemas.common import PersonRole

log = structlog.get_logger()

api_key_header = APIKeyHeader(name="Authorization", auto_error=False)


class AuthenticatedPerson:
    """Container for the calling person."""

    def __init__(self, person: Person):
        self.person = person
        self.person_id = person.id
        self.role = person.role
        self.area_id = person.area_id

    @property
    def is_supervisor(self) -> bool:
        return self.role == PersonRole.SUPERVISOR.value


def parse_bearer(authorization: Optional[str]) -> uuid.UUID:
    """Extract the person id from a Bearer header. Raises 401 if malformed."""
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Authentication required")
    try:
        return uuid.UUID(authorization[7:].strip())
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid credentials")


async def get_authenticated_person(
    request: Request,
    authorization: Optional[str] = Depends(api_key_header),
    session: AsyncSession = Depends(get_session),
) -> AuthenticatedPerson:
    """Main authentication dependency."""
    person_id = parse_bearer(authorization)
    person = await session.get(Person, person_id)
    if not person or not person.active:
        log.warning("auth.rejected", person_id=str(person_id))
        raise HTTPException(status_code=401, detail="Invalid credentials")

    auth = AuthenticatedPerson(person)
    request.state.auth = auth
    return auth


# ---------------------------------------------------------------------------
# Authorization dependencies (role checks)
# ---------------------------------------------------------------------------


async def require_person(
    auth: AuthenticatedPerson = Depends(get_authenticated_person),
) -> AuthenticatedPerson:
    """Any active person can access this endpoint."""
    return auth


async def require_supervisor(
    auth: AuthenticatedPerson = Depends(get_authenticated_person),
) -> AuthenticatedPerson:
    """Assignment administration and manual escalation are supervisor-only."""
    if not auth.is_supervisor:
        raise HTTPException(status_code=403, detail="Supervisor access required")
    return auth
