"""Criterion catalog: ordered criteria and sub-criteria per evaluation type."""

from __future__ import annotations

import uuid
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.models.criterion import Criterion, EvaluationTypeCriterion, Subcriterion
from evalengine_shared.schemas.common import EvaluationType
from evalengine_shared.schemas.tasks import CriterionRead, SubcriterionRead


class CriterionCatalog(Protocol):
    async def get_criteria(self, evaluation_type: EvaluationType) -> list[CriterionRead]: ...


class SqlCriterionCatalog:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_criteria(self, evaluation_type: EvaluationType) -> list[CriterionRead]:
        result = await self.session.execute(
            select(Criterion)
            .join(EvaluationTypeCriterion, EvaluationTypeCriterion.criterion_id == Criterion.id)
            .where(EvaluationTypeCriterion.evaluation_type == evaluation_type.value)
            .order_by(Criterion.position, Criterion.name)
        )
        criteria = list(result.scalars().all())
        if not criteria:
            return []

        sub_result = await self.session.execute(
            select(Subcriterion)
            .where(Subcriterion.criterion_id.in_([c.id for c in criteria]))
            .order_by(Subcriterion.position, Subcriterion.name)
        )
        by_criterion: dict[uuid.UUID, list[SubcriterionRead]] = {c.id: [] for c in criteria}
        for sub in sub_result.scalars().all():
            by_criterion[sub.criterion_id].append(
                SubcriterionRead(subcriterion_id=sub.id, name=sub.name, weight=sub.weight)
            )

        return [
            CriterionRead(criterion_id=c.id, name=c.name, subcriteria=by_criterion[c.id])
            for c in criteria
        ]


def required_subcriteria(criteria: list[CriterionRead]) -> list[uuid.UUID]:
    """Every sub-criterion id a complete submission must rate, in catalog order."""
    return [s.subcriterion_id for c in criteria for s in c.subcriteria]
