"""
Notification inbox: record, list, count unread, mark read.

record_notification() writes the inbox row in the caller's transaction and
queues the Redis push, which only goes out if that transaction commits.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

import structlog
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.clock import ensure_utc
from app.core.errors import NotFound
from app.core.notify import Notifier, queue_notification
from app.models.incident import Incident
from app.models.notification import Notification
from evalengine_shared.schemas.notifications import NotificationRead

log = structlog.get_logger()


async def record_notification(
    session: AsyncSession,
    person_id: uuid.UUID,
    message: str,
    *,
    now: datetime,
    notifier: Notifier,
    incident_id: Optional[uuid.UUID] = None,
) -> Notification:
    notification = Notification(
        person_id=person_id,
        incident_id=incident_id,
        message=message,
        created_at=now,
    )
    session.add(notification)
    await session.flush()
    queue_notification(session, notifier, person_id, message)

    log.info(
        "notification.recorded",
        notification_id=str(notification.id),
        person_id=str(person_id),
        incident_id=str(incident_id) if incident_id else None,
    )
    return notification


def _to_read(notification: Notification, incident: Optional[Incident]) -> NotificationRead:
    return NotificationRead(
        id=notification.id,
        person_id=notification.person_id,
        message=notification.message,
        read=notification.read,
        created_at=ensure_utc(notification.created_at),
        read_at=ensure_utc(notification.read_at) if notification.read_at else None,
        incident_id=notification.incident_id,
        incident_category=incident.category if incident else None,
        incident_description=incident.description if incident else None,
    )


async def list_notifications(
    session: AsyncSession,
    person_id: uuid.UUID,
    unread_only: bool = False,
) -> list[NotificationRead]:
    """A person's inbox, newest first, with the incident each entry is about."""
    stmt = (
        select(Notification, Incident)
        .outerjoin(Incident, Incident.id == Notification.incident_id)
        .where(Notification.person_id == person_id)
    )
    if unread_only:
        stmt = stmt.where(Notification.read == False)  # noqa: E712
    result = await session.execute(stmt.order_by(Notification.created_at.desc()))
    return [_to_read(n, i) for n, i in result.all()]


async def unread_count(session: AsyncSession, person_id: uuid.UUID) -> int:
    result = await session.execute(
        select(func.count(Notification.id)).where(
            Notification.person_id == person_id,
            Notification.read == False,  # noqa: E712
        )
    )
    return result.scalar_one()


async def get_notification_or_404(session: AsyncSession, notification_id: uuid.UUID) -> Notification:
    notification = await session.get(Notification, notification_id)
    if not notification:
        raise NotFound("Notification not found")
    return notification


async def mark_read(session: AsyncSession, notification: Notification, *, now: datetime) -> NotificationRead:
    """Mark one entry read. Marking it again changes nothing."""
    if not notification.read:
        notification.read = True
        notification.read_at = now
        session.add(notification)
        await session.flush()
        log.info("notification.read", notification_id=str(notification.id))

    incident = await session.get(Incident, notification.incident_id) if notification.incident_id else None
    return _to_read(notification, incident)
