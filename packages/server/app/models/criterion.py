"""Criterion catalog: criteria, their sub-criteria, and which evaluation types use them."""

import uuid

from sqlmodel import Field, SQLModel

from .base import UUIDMixin


class Criterion(UUIDMixin, SQLModel, table=True):
    __tablename__ = "criteria"

    name: str = Field(nullable=False)
    position: int = Field(default=0, nullable=False)


class Subcriterion(UUIDMixin, SQLModel, table=True):
    __tablename__ = "subcriteria"

    criterion_id: uuid.UUID = Field(foreign_key="criteria.id", nullable=False, index=True)
    name: str = Field(nullable=False)
    weight: float = Field(default=1.0, nullable=False)
    position: int = Field(default=0, nullable=False)


class EvaluationTypeCriterion(SQLModel, table=True):
    __tablename__ = "evaluation_type_criteria"

    evaluation_type: str = Field(primary_key=True)  # SelfEvaluation | SupervisorToSubject | PeerToSubject
    criterion_id: uuid.UUID = Field(foreign_key="criteria.id", primary_key=True)
