"""Period manager: one salary period per calendar month."""

from __future__ import annotations

import calendar
import logging
from datetime import date
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from studio_payroll.calculators.types import PeriodWindow
from studio_payroll.models import SalaryPeriod
from studio_payroll.services.errors import ExternalFailureError, InvalidStateError, NotFoundError
from studio_payroll.services.repository import PayrollRepository

logger = logging.getLogger(__name__)


def month_bounds(month: int, year: int) -> tuple[date, date]:
    """First and last calendar day of a month (leap years included)."""
    _validate_month(month)
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def previous_month(month: int, year: int) -> tuple[int, int]:
    """The (month, year) before the given one; January rolls back a year."""
    _validate_month(month)
    if month == 1:
        return 12, year - 1
    return month - 1, year


def period_window(period: SalaryPeriod) -> PeriodWindow:
    return PeriodWindow(start=period.start_date, end=period.end_date)


def _validate_month(month: int) -> None:
    if not 1 <= month <= 12:
        raise InvalidStateError(f"Month must be between 1 and 12, got {month}")


class PeriodService:
    """Looks up and opens salary periods."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.repo = PayrollRepository(session)

    async def open_or_get_period(self, month: int, year: int) -> SalaryPeriod:
        """Return the period for (month, year), creating it as ``open`` if absent.

        A concurrent insert of the same month loses on the unique constraint;
        the loser re-reads the winner's row.
        """
        existing = await self.repo.find_period(month, year)
        if existing is not None:
            return existing

        start, end = month_bounds(month, year)
        period = SalaryPeriod(month=month, year=year, start_date=start, end_date=end, status="open")
        if await self.repo.insert_if_absent(period):
            logger.info("Opened salary period %s/%s", month, year)
            return period

        existing = await self.repo.find_period(month, year)
        if existing is None:
            raise ExternalFailureError(f"re-fetch period {month}/{year}")
        return existing

    async def get_period(self, period_id: UUID) -> SalaryPeriod:
        period = await self.repo.get_period(period_id)
        if period is None:
            raise NotFoundError("Salary period", period_id)
        return period

    async def find_period(self, month: int, year: int) -> SalaryPeriod | None:
        return await self.repo.find_period(month, year)

    async def list_periods(self) -> list[SalaryPeriod]:
        return await self.repo.list_periods()
