"""Tests for the period manager."""

from datetime import date
from uuid import uuid4

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from studio_payroll.models import SalaryPeriod
from studio_payroll.services.errors import InvalidStateError, NotFoundError
from studio_payroll.services.period_service import PeriodService, month_bounds, previous_month


class TestMonthArithmetic:
    """Calendar helpers."""

    def test_month_bounds(self):
        assert month_bounds(1, 2025) == (date(2025, 1, 1), date(2025, 1, 31))
        assert month_bounds(4, 2025) == (date(2025, 4, 1), date(2025, 4, 30))

    def test_month_bounds_leap_year(self):
        assert month_bounds(2, 2024)[1] == date(2024, 2, 29)
        assert month_bounds(2, 2025)[1] == date(2025, 2, 28)
        assert month_bounds(2, 2000)[1] == date(2000, 2, 29)
        assert month_bounds(2, 1900)[1] == date(1900, 2, 28)

    def test_previous_month_rolls_over_year(self):
        assert previous_month(1, 2025) == (12, 2024)
        assert previous_month(7, 2025) == (6, 2025)

    def test_invalid_month(self):
        with pytest.raises(InvalidStateError):
            month_bounds(13, 2025)
        with pytest.raises(InvalidStateError):
            previous_month(0, 2025)


class TestPeriodService:
    """Opening and listing periods."""

    async def test_open_creates_open_period(self, session: AsyncSession):
        period = await PeriodService(session).open_or_get_period(2, 2024)

        assert period.status == "open"
        assert period.start_date == date(2024, 2, 1)
        assert period.end_date == date(2024, 2, 29)
        assert period.label == "2/2024"

    async def test_open_is_idempotent(self, session: AsyncSession):
        service = PeriodService(session)
        first = await service.open_or_get_period(1, 2025)
        second = await service.open_or_get_period(1, 2025)

        assert first.salary_period_id == second.salary_period_id
        count = await session.scalar(select(func.count()).select_from(SalaryPeriod))
        assert count == 1

    async def test_concurrent_insert_is_absorbed(self, session: AsyncSession):
        """A row inserted behind the lookup's back is re-fetched, not duplicated."""
        service = PeriodService(session)
        winner = await service.open_or_get_period(3, 2025)

        # Simulate losing the race: the lookup misses but the insert conflicts
        real_find_period = service.repo.find_period
        calls = {"n": 0}

        async def stale_then_real(month, year):
            calls["n"] += 1
            if calls["n"] == 1:
                return None
            return await real_find_period(month, year)

        service.repo.find_period = stale_then_real
        period = await service.open_or_get_period(3, 2025)

        assert period.salary_period_id == winner.salary_period_id
        count = await session.scalar(select(func.count()).select_from(SalaryPeriod))
        assert count == 1

    async def test_list_periods_newest_first(self, session: AsyncSession):
        service = PeriodService(session)
        await service.open_or_get_period(12, 2024)
        await service.open_or_get_period(2, 2025)
        await service.open_or_get_period(1, 2025)

        periods = await service.list_periods()

        assert [(p.month, p.year) for p in periods] == [(2, 2025), (1, 2025), (12, 2024)]

    async def test_get_period_not_found(self, session: AsyncSession):
        with pytest.raises(NotFoundError):
            await PeriodService(session).get_period(uuid4())
