"""
Person notifications.

The durable inbox is the notifications table, written in the same
transaction as the incident it reports. Pushing to Redis is best-effort and
only happens once that transaction has committed: pushes are queued on the
session, released by the commit, dropped by a rollback and delivered by
deliver_committed() after the session work is done.
"""

from __future__ import annotations

import json
import uuid
from datetime import datetime, timezone
from typing import Any, Protocol

import structlog
from sqlalchemy import event
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.redis import get_redis

log = structlog.get_logger()

PENDING_KEY = "notifications.pending"
COMMITTED_KEY = "notifications.committed"


class Notifier(Protocol):
    async def notify(self, person_id: uuid.UUID, message: str) -> None: ...


class RedisNotifier:
    """Publish on the notification channel for connected clients."""

    def __init__(self, channel: str | None = None):
        self._channel = channel or get_settings().notification_channel

    async def notify(self, person_id: uuid.UUID, message: str) -> None:
        payload = json.dumps(
            {
                "person_id": str(person_id),
                "message": message,
                "sent_at": datetime.now(timezone.utc).isoformat(),
            }
        )
        redis = await get_redis()
        await redis.publish(self._channel, payload)


def get_notifier() -> Notifier:
    """FastAPI dependency; overridden in tests."""
    return RedisNotifier()


async def notify_safely(notifier: Notifier, person_id: uuid.UUID, message: str) -> bool:
    """Deliver a notification, logging instead of raising on failure."""
    try:
        await notifier.notify(person_id, message)
    except Exception:
        log.warning("notification.failed", person_id=str(person_id), exc_info=True)
        return False
    return True


# ---------------------------------------------------------------------------
# Post-commit delivery
# ---------------------------------------------------------------------------


def _info(session: Any) -> dict:
    # AsyncSession keeps its state on the wrapped sync Session.
    return getattr(session, "sync_session", session).info


def queue_notification(session: Any, notifier: Notifier, person_id: uuid.UUID, message: str) -> None:
    """Hold a push until the session's transaction commits."""
    _info(session).setdefault(PENDING_KEY, []).append((notifier, person_id, message))


@event.listens_for(Session, "after_commit")
def _release_pending(session: Session) -> None:
    pending = session.info.pop(PENDING_KEY, None)
    if pending:
        session.info.setdefault(COMMITTED_KEY, []).extend(pending)


@event.listens_for(Session, "after_soft_rollback")
def _discard_pending(session: Session, previous_transaction) -> None:
    if previous_transaction.nested:
        return
    dropped = session.info.pop(PENDING_KEY, None)
    if dropped:
        log.info("notification.discarded", count=len(dropped))


async def deliver_committed(session: Any) -> int:
    """Send every push whose transaction has committed. Returns how many were attempted."""
    ready = _info(session).pop(COMMITTED_KEY, None) or []
    for notifier, person_id, message in ready:
        await notify_safely(notifier, person_id, message)
    return len(ready)
