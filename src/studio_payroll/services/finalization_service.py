"""Finalization: record a slip's net-pay disbursement in the cash book."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import date
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from studio_payroll.calculators.line_builder import ItemBuilder
from studio_payroll.calculators.types import ItemSource, SalaryItemType
from studio_payroll.models import Transaction, TransactionType
from studio_payroll.services.errors import InvalidStateError
from studio_payroll.services.ledger_service import LedgerService
from studio_payroll.services.repository import PayrollRepository

if TYPE_CHECKING:
    from studio_payroll.config import Settings

logger = logging.getLogger(__name__)

PAID_ITEM_TITLE = "Paid (auto)"


class FinalizationService:
    """Pays out a slip's net amount.

    Writes, in order, within the caller's unit of work:
    1. An expense transaction for the net amount, attributed to the staff member
    2. An ADVANCE item of -net referencing that transaction

    Afterwards the slip's net pay is zero. The slip is not locked; a later
    sync may add items and produce a new positive balance.
    """

    def __init__(
        self,
        session: AsyncSession,
        settings: Settings,
        clock: Callable[[], date] = date.today,
    ):
        self.session = session
        self.settings = settings
        self.clock = clock
        self.repo = PayrollRepository(session)
        self.ledger = LedgerService(session, settings.currency_symbol)

    async def finalize_slip(self, slip_id: UUID) -> Transaction:
        slip = await self.ledger.get_slip(slip_id)
        totals = await self.ledger.recalculate_totals(slip)
        if totals.net_pay <= 0:
            raise InvalidStateError(
                f"Slip {slip_id} has net pay {totals.net_pay}; nothing to disburse"
            )

        period = await self.repo.get_period(slip.salary_period_id)
        staff = await self.repo.get_staff(slip.staff_id)
        transaction = Transaction(
            type=TransactionType.EXPENSE.value,
            main_category=self.settings.payout_main_category,
            category=self.settings.payout_category,
            amount=totals.net_pay,
            description=f"Salary payment {period.month}/{period.year} - {staff.name}",
            txn_date=self.clock(),
            staff_id=staff.staff_id,
            vendor=self.settings.payout_vendor,
        )
        await self.repo.add_transaction(transaction)

        await self.ledger.save_salary_item(
            slip_id,
            SalaryItemType.ADVANCE,
            PAID_ITEM_TITLE,
            totals.net_pay,
            source=ItemSource.TRANSACTION,
            ref_id=str(transaction.transaction_id),
        )

        logger.info(
            "Finalized slip %s for %s: paid %s",
            slip_id,
            staff.name,
            ItemBuilder.format_money(totals.net_pay, self.settings.currency_symbol),
        )
        return transaction

