"""
Evaluation task lifecycle rules shared by the server, the sweep worker and tests.

Pending -> Active -> Completed, with Expired and Cancelled as the other
terminal exits. Every status decision that depends on the clock goes
through resolve_status() so the sweep and the submission path agree.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional

from .common import APPROVAL_THRESHOLD, SCORE_SCALE, TERMINAL_STATUSES, TaskStatus


VALID_TRANSITIONS: dict[TaskStatus, list[TaskStatus]] = {
    TaskStatus.PENDING: [
        TaskStatus.ACTIVE,
        TaskStatus.COMPLETED,
        TaskStatus.EXPIRED,
        TaskStatus.CANCELLED,
    ],
    TaskStatus.ACTIVE: [TaskStatus.ACTIVE, TaskStatus.COMPLETED, TaskStatus.EXPIRED],
    TaskStatus.COMPLETED: [],
    TaskStatus.EXPIRED: [],
    TaskStatus.CANCELLED: [],
}


def is_terminal(status: TaskStatus | str) -> bool:
    return TaskStatus(status) in TERMINAL_STATUSES


def validate_transition(current: TaskStatus, target: TaskStatus) -> tuple[bool, str]:
    """Validate a task status transition.

    Returns (is_valid, error_message).
    """
    if current in TERMINAL_STATUSES:
        return False, f"Evaluation is already {current.value}"

    allowed = VALID_TRANSITIONS.get(current, [])
    if target not in allowed:
        return False, (
            f"Cannot transition from {current.value} to {target.value}. "
            f"Allowed: {[s.value for s in allowed]}"
        )
    return True, ""


def deadline_passed(due_at: datetime, now: datetime) -> bool:
    return now > due_at


def resolve_status(
    status: TaskStatus | str,
    due_at: datetime,
    score: Optional[float],
    now: datetime,
) -> TaskStatus:
    """Apply the deadline rule to a task.

    Before the deadline, and for terminal tasks, the status is returned
    unchanged. Once the deadline has passed an open task becomes Completed
    if it carries a score and Expired otherwise.
    """
    current = TaskStatus(status)
    if current in TERMINAL_STATUSES or not deadline_passed(due_at, now):
        return current
    if score is not None:
        return TaskStatus.COMPLETED
    return TaskStatus.EXPIRED


def normalize_score(points: Iterable[float], scale: int = SCORE_SCALE) -> float:
    """Mean of the 0 / 0.5 / 1 marks projected onto a 0..scale range."""
    marks = list(points)
    if not marks:
        raise ValueError("Cannot normalize an empty set of marks")
    return round(sum(marks) / len(marks) * scale, 2)


def is_passing(score: Optional[float], threshold: float = APPROVAL_THRESHOLD) -> Optional[bool]:
    """Pass/fail label of a score; None while the task has no score."""
    if score is None:
        return None
    return score >= threshold
