"""Allowance carry-forward from the previous period."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from studio_payroll.calculators.types import ItemSource, SalaryItemType
from studio_payroll.models import SalaryItem, SalarySlip
from studio_payroll.services.errors import NotFoundError
from studio_payroll.services.ledger_service import LedgerService
from studio_payroll.services.period_service import previous_month
from studio_payroll.services.repository import PayrollRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CopyResult:
    success: bool
    count: int


class AllowanceService:
    """Copies ALLOWANCE items from last month's slips into this month's.

    Only staff who already have a slip in the current period receive copies.
    There is no duplicate check: copying twice yields two copies of each
    allowance.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.repo = PayrollRepository(session)
        self.ledger = LedgerService(session)

    async def copy_previous_allowances(
        self,
        current_period_id: UUID,
        month: int,
        year: int,
    ) -> CopyResult:
        current = await self.repo.get_period(current_period_id)
        if current is None:
            raise NotFoundError("Salary period", current_period_id)

        prev_month, prev_year = previous_month(month, year)
        previous = await self.repo.find_period(prev_month, prev_year)
        if previous is None:
            raise NotFoundError(
                "Salary period",
                f"{prev_month}/{prev_year}",
                "no previous period to copy allowances from",
            )

        allowances = await self.repo.period_items(
            previous.salary_period_id, SalaryItemType.ALLOWANCE.value
        )
        slips_by_staff = {
            slip.staff_id: slip for slip in await self.repo.list_slips(current.salary_period_id)
        }

        touched: dict[UUID, SalarySlip] = {}
        count = 0
        for item, staff_id in allowances:
            slip = slips_by_staff.get(staff_id)
            if slip is None:
                continue
            self.session.add(
                SalaryItem(
                    salary_slip_id=slip.salary_slip_id,
                    type=SalaryItemType.ALLOWANCE.value,
                    title=item.title,
                    amount=item.amount,
                    source=ItemSource.ALLOWANCE_COPY.value,
                    ref_id=None,
                )
            )
            touched[slip.salary_slip_id] = slip
            count += 1

        await self.repo.flush()
        for slip in touched.values():
            await self.ledger.recalculate_totals(slip)

        logger.info(
            "Copied %d allowances from %s/%s into period %s",
            count,
            prev_month,
            prev_year,
            current.label,
        )
        return CopyResult(success=True, count=count)
