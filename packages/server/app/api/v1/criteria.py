"""
Criterion catalog endpoint: what an evaluation form of a given type rates.
"""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import AuthenticatedPerson, require_person
from app.core.database import get_session
from app.services.catalog import SqlCriterionCatalog
from evalengine_shared.schemas.common import EvaluationType
from evalengine_shared.schemas.tasks import CriterionRead

router = APIRouter()


@router.get("/{evaluation_type}", response_model=List[CriterionRead])
async def list_criteria_endpoint(
    evaluation_type: EvaluationType,
    auth: AuthenticatedPerson = Depends(require_person),
    session: AsyncSession = Depends(get_session),
):
    return await SqlCriterionCatalog(session).get_criteria(evaluation_type)
