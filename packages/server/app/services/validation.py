"""
Assignment validation: date/time window and roster checks.

Runs before anything is written and again inside the fan-out transaction.
Has no side effects.
"""

from __future__ import annotations

from datetime import date, datetime, time, timezone
from typing import Optional

from app.core.config import get_settings
from app.core.errors import EmptyRoster, InvalidWindow, UnknownArea
from app.services.roster import RosterProvider
from evalengine_shared.schemas.assignments import AssignmentWindow, ValidationResult


def _at(day: date, moment: time) -> datetime:
    combined = datetime.combine(day, moment.replace(tzinfo=None), tzinfo=moment.tzinfo or timezone.utc)
    return combined.astimezone(timezone.utc)


def resolve_window(
    start_date: date,
    end_date: date,
    start_time: Optional[time] = None,
    end_time: Optional[time] = None,
) -> tuple[datetime, datetime]:
    """Turn a date range plus optional daily times into (starts_at, ends_at) in UTC."""
    if end_date < start_date:
        raise InvalidWindow("The end date cannot be before the start date")

    settings = get_settings()
    start_time = start_time or settings.default_window_start
    end_time = end_time or settings.default_window_end

    starts_at = _at(start_date, start_time)
    ends_at = _at(end_date, end_time)
    if start_date == end_date and ends_at <= starts_at:
        raise InvalidWindow("The end time must be after the start time on a single-day window")

    return starts_at, ends_at


async def validate_assignment(window: AssignmentWindow, roster: RosterProvider) -> ValidationResult:
    starts_at, ends_at = resolve_window(
        window.start_date, window.end_date, window.start_time, window.end_time
    )

    area_name = await roster.get_area_name(window.area_id)
    if area_name is None:
        raise UnknownArea()

    members = await roster.get_active_roster(window.area_id)
    if not members.subjects:
        raise EmptyRoster()

    return ValidationResult(
        area_id=window.area_id,
        area_name=area_name,
        subjects_count=len(members.subjects),
        starts_at=starts_at,
        ends_at=ends_at,
    )
