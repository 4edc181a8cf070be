"""Payroll sync: derive auto items from facts for one or all staff.

Each staff member is synced in its own unit of work. A failure for one staff
member rolls back only that staff's changes and is reported in the result;
the remaining staff are still processed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from studio_payroll.calculators.aggregators import CommissionAggregator, collect_candidates
from studio_payroll.calculators.kpi_rule import KpiResolver
from studio_payroll.calculators.types import SlipTotals, StaffFacts
from studio_payroll.models import SalaryPeriod
from studio_payroll.services.errors import NotFoundError
from studio_payroll.services.ledger_service import LedgerService
from studio_payroll.services.period_service import period_window
from studio_payroll.services.reconciliation import ReconcilePlan, apply_plan, build_plan
from studio_payroll.services.repository import PayrollRepository

if TYPE_CHECKING:
    from studio_payroll.config import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StaffSyncFailure:
    staff_id: UUID
    error: str


@dataclass(frozen=True)
class StaffSyncOutcome:
    """What one staff member's sync changed."""

    staff_id: UUID
    slip_id: UUID
    inserted: int
    updated: int
    deleted: int
    totals: SlipTotals


@dataclass
class SyncResult:
    """Result of a sync run."""

    success: bool
    slips_updated: int = 0
    error: str | None = None
    failures: list[StaffSyncFailure] = field(default_factory=list)
    outcomes: list[StaffSyncOutcome] = field(default_factory=list)


class PayrollSyncService:
    """Orchestrates the sync pass ("Magic Sync").

    Per staff member:
    1. Ensure the slip exists
    2. Snapshot task, sale and standing-deduction facts for the period
    3. Run the aggregators to get the desired auto items
    4. Resolve auto-KPI items against the staff member's period revenue
    5. Diff against the ledger and apply the plan in one flush
    6. Recompute slip totals and commit

    Re-running with unchanged facts writes nothing to auto items.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], settings: Settings):
        self.session_factory = session_factory
        self.settings = settings
        self.resolver = KpiResolver(settings.currency_symbol)

    async def sync_payroll(self, period_id: UUID, staff_id: UUID | None = None) -> SyncResult:
        """Sync one staff member, or every slip-eligible staff member, for a period."""
        async with self.session_factory() as session:
            repo = PayrollRepository(session)
            period = await repo.get_period(period_id)
            if period is None:
                return SyncResult(success=False, error=str(NotFoundError("Salary period", period_id)))

            if staff_id is not None:
                if await repo.get_staff(staff_id) is None:
                    return SyncResult(success=False, error=str(NotFoundError("Staff", staff_id)))
                staff_ids = [staff_id]
            else:
                staff = await repo.list_staff_by_status(self.settings.eligible_staff_statuses)
                staff_ids = [s.staff_id for s in staff]

        result = SyncResult(success=True)
        for sid in staff_ids:
            try:
                async with self.session_factory() as session:
                    async with session.begin():
                        outcome = await self.sync_staff(session, period, sid)
            except Exception as e:
                logger.exception("Payroll sync failed for staff %s in period %s", sid, period.label)
                result.failures.append(StaffSyncFailure(staff_id=sid, error=str(e)))
                continue
            result.outcomes.append(outcome)
            result.slips_updated += 1

        if result.failures:
            result.success = False
            result.error = f"{len(result.failures)} of {len(staff_ids)} staff failed to sync"

        logger.info(
            "Payroll sync for period %s: %d updated, %d failed",
            period.label,
            result.slips_updated,
            len(result.failures),
        )
        return result

    async def sync_staff(
        self,
        session: AsyncSession,
        period: SalaryPeriod,
        staff_id: UUID,
    ) -> StaffSyncOutcome:
        """Bring one staff member's slip in line with current facts.

        Runs inside the caller's transaction; raises on any failure.
        """
        repo = PayrollRepository(session)
        ledger = LedgerService(session, self.settings.currency_symbol)

        staff = await repo.get_staff(staff_id)
        if staff is None:
            raise NotFoundError("Staff", staff_id)
        slip = await ledger.initialize_salary_slip(period.salary_period_id, staff_id)

        window = period_window(period)
        facts = StaffFacts(
            staff_id=staff_id,
            staff_name=staff.name,
            base_salary=staff.base_salary or 0,
            window=window,
            tasks=await repo.task_facts(staff_id, window),
            sales=await repo.sale_facts(staff_id, window),
            deductions=await repo.deduction_facts(staff_id),
        )
        candidates = collect_candidates(facts, include_fixed=self.settings.include_base_salary)
        revenue = CommissionAggregator.revenue(staff_id, window, facts.sales)

        existing = await repo.slip_items(slip.salary_slip_id)
        plan: ReconcilePlan = build_plan(existing, candidates, revenue, self.resolver)
        await apply_plan(session, slip.salary_slip_id, plan)
        totals = await ledger.recalculate_totals(slip)

        logger.debug("Synced staff %s (%s): plan %s", staff.code, staff.name, plan.summary())
        return StaffSyncOutcome(
            staff_id=staff_id,
            slip_id=slip.salary_slip_id,
            inserted=len(plan.inserts),
            updated=len(plan.updates),
            deleted=len(plan.deletes),
            totals=totals,
        )
