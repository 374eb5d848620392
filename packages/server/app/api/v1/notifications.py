"""
Notification inbox endpoints. Listing lives under /people/{id}/notifications.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import AuthenticatedPerson, require_person
from app.core.clock import Clock, get_clock
from app.core.database import get_session
from app.services.notifications import get_notification_or_404, mark_read
from evalengine_shared.schemas.notifications import NotificationRead

router = APIRouter()


@router.post("/{notification_id}/read", response_model=NotificationRead)
async def mark_notification_read_endpoint(
    notification_id: uuid.UUID,
    auth: AuthenticatedPerson = Depends(require_person),
    session: AsyncSession = Depends(get_session),
    clock: Clock = Depends(get_clock),
):
    """Mark one of your own notifications read."""
    notification = await get_notification_or_404(session, notification_id)
    if notification.person_id != auth.person_id:
        raise HTTPException(status_code=403, detail="Not allowed to modify another person's notifications")
    result = await mark_read(session, notification, now=clock.now())
    await session.commit()
    return result
