"""Read-only views of the roster owned by the people/area subsystem."""

from __future__ import annotations

from typing import List
from uuid import UUID

from pydantic import BaseModel, Field


class PersonRef(BaseModel):
    id: UUID
    display_name: str = ""


class Roster(BaseModel):
    """Active members of one area, split into disjoint functional roles."""
    subjects: List[PersonRef] = Field(default_factory=list)
    supervisors: List[PersonRef] = Field(default_factory=list)
    peers: List[PersonRef] = Field(default_factory=list)
