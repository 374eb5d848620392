"""
Assignment validation: window rules and roster checks.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, time, timezone

import pytest

from app.core.errors import EmptyRoster, InvalidWindow, UnknownArea
from app.services.roster import SqlRosterProvider
from app.services.validation import resolve_window, validate_assignment
from evalengine_shared.schemas.assignments import AssignmentWindow

from conftest import ENDS_AT, STARTS_AT, WINDOW_END, WINDOW_START, seed_area


class TestResolveWindow:
    """Date range plus daily times -> (starts_at, ends_at)."""

    def test_defaults_are_eight_to_midnight(self):
        starts_at, ends_at = resolve_window(WINDOW_START, WINDOW_END)
        assert starts_at == STARTS_AT
        assert ends_at == ENDS_AT

    def test_explicit_times(self):
        starts_at, ends_at = resolve_window(
            date(2026, 3, 2), date(2026, 3, 2), time(9, 30), time(17, 0)
        )
        assert starts_at == datetime(2026, 3, 2, 9, 30, tzinfo=timezone.utc)
        assert ends_at == datetime(2026, 3, 2, 17, 0, tzinfo=timezone.utc)

    def test_end_date_before_start_date_rejected(self):
        with pytest.raises(InvalidWindow):
            resolve_window(date(2026, 3, 5), date(2026, 3, 4))

    def test_same_day_end_before_start_rejected(self):
        with pytest.raises(InvalidWindow):
            resolve_window(date(2026, 3, 2), date(2026, 3, 2), time(17, 0), time(9, 0))

    def test_same_day_equal_times_rejected(self):
        with pytest.raises(InvalidWindow):
            resolve_window(date(2026, 3, 2), date(2026, 3, 2), time(9, 0), time(9, 0))

    def test_multi_day_allows_earlier_end_time(self):
        """Times only have to be ordered within a single day."""
        starts_at, ends_at = resolve_window(
            date(2026, 3, 2), date(2026, 3, 3), time(17, 0), time(9, 0)
        )
        assert ends_at > starts_at


class TestValidateAssignment:
    @pytest.mark.asyncio
    async def test_returns_area_and_subject_count(self, session):
        seeded = await seed_area(session, subjects=3, supervisors=1, peers=2, name="Physics")
        window = AssignmentWindow(area_id=seeded.area.id, start_date=WINDOW_START, end_date=WINDOW_END)

        result = await validate_assignment(window, SqlRosterProvider(session))

        assert result.area_name == "Physics"
        assert result.subjects_count == 3
        assert result.starts_at == STARTS_AT
        assert result.ends_at == ENDS_AT

    @pytest.mark.asyncio
    async def test_unknown_area(self, session):
        window = AssignmentWindow(area_id=uuid.uuid4(), start_date=WINDOW_START, end_date=WINDOW_END)
        with pytest.raises(UnknownArea):
            await validate_assignment(window, SqlRosterProvider(session))

    @pytest.mark.asyncio
    async def test_area_without_subjects(self, session):
        seeded = await seed_area(session, subjects=0, supervisors=2, peers=1)
        window = AssignmentWindow(area_id=seeded.area.id, start_date=WINDOW_START, end_date=WINDOW_END)
        with pytest.raises(EmptyRoster):
            await validate_assignment(window, SqlRosterProvider(session))

    @pytest.mark.asyncio
    async def test_inactive_people_are_not_counted(self, session):
        seeded = await seed_area(session, subjects=2)
        for person in seeded.subjects:
            person.active = False
            session.add(person)
        await session.commit()

        window = AssignmentWindow(area_id=seeded.area.id, start_date=WINDOW_START, end_date=WINDOW_END)
        with pytest.raises(EmptyRoster):
            await validate_assignment(window, SqlRosterProvider(session))

    @pytest.mark.asyncio
    async def test_bad_window_checked_before_roster(self, session):
        window = AssignmentWindow(
            area_id=uuid.uuid4(), start_date=date(2026, 3, 6), end_date=date(2026, 3, 2)
        )
        with pytest.raises(InvalidWindow):
            await validate_assignment(window, SqlRosterProvider(session))
