"""Score detail model: one sub-criterion mark of an evaluation task."""

import uuid

from sqlmodel import Field, SQLModel

from .base import UUIDMixin


class ScoreDetail(UUIDMixin, SQLModel, table=True):
    __tablename__ = "score_details"

    task_id: uuid.UUID = Field(foreign_key="evaluation_tasks.id", nullable=False, index=True)
    subcriterion_id: uuid.UUID = Field(foreign_key="subcriteria.id", nullable=False)
    points: float = Field(nullable=False)  # 0 | 0.5 | 1
    position: int = Field(default=0, nullable=False)
