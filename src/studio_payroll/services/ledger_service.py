"""Salary item ledger: slips, items and derived totals."""

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from studio_payroll.calculators.kpi_rule import (
    AutoKpiRule,
    InvalidKpiRuleError,
    KpiResolver,
    ManualKpi,
    RewardType,
    dump_item_meta,
)
from studio_payroll.calculators.line_builder import ItemBuilder
from studio_payroll.calculators.types import ItemSource, SalaryItemType, SlipTotals
from studio_payroll.models import SalaryItem, SalarySlip
from studio_payroll.services.errors import ExternalFailureError, InvalidStateError, NotFoundError
from studio_payroll.services.repository import PayrollRepository

logger = logging.getLogger(__name__)

MANUAL_KPI_PREFIX = "KPI: "


class LedgerService:
    """Service for salary slips and their items.

    Every mutation recomputes the owning slip's totals before returning, so
    ``total_earnings``, ``total_deductions`` and ``net_pay`` always match the
    items within the caller's unit of work.
    """

    def __init__(self, session: AsyncSession, currency_symbol: str = "đ"):
        self.session = session
        self.repo = PayrollRepository(session)
        self.resolver = KpiResolver(currency_symbol)

    # ----- Slips -----

    async def get_slip(self, slip_id: UUID) -> SalarySlip:
        slip = await self.repo.get_slip(slip_id)
        if slip is None:
            raise NotFoundError("Salary slip", slip_id)
        return slip

    async def initialize_salary_slip(self, period_id: UUID, staff_id: UUID) -> SalarySlip:
        """Get or create the slip for (staff, period) with zero totals."""
        if await self.repo.get_period(period_id) is None:
            raise NotFoundError("Salary period", period_id)
        if await self.repo.get_staff(staff_id) is None:
            raise NotFoundError("Staff", staff_id)

        existing = await self.repo.find_slip(staff_id, period_id)
        if existing is not None:
            return existing

        slip = SalarySlip(
            staff_id=staff_id,
            salary_period_id=period_id,
            total_earnings=0,
            total_deductions=0,
            net_pay=0,
        )
        if await self.repo.insert_if_absent(slip):
            logger.debug("Created salary slip for staff %s in period %s", staff_id, period_id)
            return slip

        existing = await self.repo.find_slip(staff_id, period_id)
        if existing is None:
            raise ExternalFailureError(f"re-fetch slip for staff {staff_id}")
        return existing

    async def recalculate_totals(self, slip: SalarySlip) -> SlipTotals:
        """Rewrite the slip totals from its current items."""
        items = await self.repo.slip_items(slip.salary_slip_id)
        totals = ItemBuilder.calculate_totals(items)
        if (
            slip.total_earnings != totals.total_earnings
            or slip.total_deductions != totals.total_deductions
            or slip.net_pay != totals.net_pay
        ):
            slip.total_earnings = totals.total_earnings
            slip.total_deductions = totals.total_deductions
            slip.net_pay = totals.net_pay
            await self.repo.flush()
        return totals

    # ----- Items -----

    async def save_salary_item(
        self,
        slip_id: UUID,
        item_type: SalaryItemType | str,
        title: str,
        amount: int,
        source: ItemSource | str = ItemSource.MANUAL,
        ref_id: str | None = None,
        rule: ManualKpi | AutoKpiRule | None = None,
    ) -> SalaryItem:
        """Insert one item with its sign normalized for the type.

        An auto-KPI rule, passed directly or as a legacy token in ``ref_id``,
        is validated, stored as metadata and mirrored as the token.
        """
        slip = await self.get_slip(slip_id)
        try:
            item_type = SalaryItemType(item_type)
            source = ItemSource(source)
        except ValueError as e:
            raise InvalidStateError(str(e)) from e

        meta: dict[str, Any] | None = None
        if rule is None and item_type == SalaryItemType.KPI:
            rule = AutoKpiRule.from_ref_token(ref_id)
        if isinstance(rule, AutoKpiRule):
            if item_type != SalaryItemType.KPI:
                raise InvalidStateError("Auto KPI rules can only be attached to KPI items")
            try:
                rule.validate_for_creation()
            except InvalidKpiRuleError as e:
                raise InvalidStateError(str(e)) from e
            ref_id = rule.to_ref_token()
            meta = dump_item_meta(rule)
        elif rule is not None:
            meta = dump_item_meta(rule)

        item = SalaryItem(
            salary_slip_id=slip.salary_slip_id,
            type=item_type.value,
            title=title,
            amount=ItemBuilder.signed_amount(item_type, amount),
            source=source.value,
            ref_id=ref_id,
            meta_json=meta,
        )
        await self.repo.add_item(item)
        await self.recalculate_totals(slip)
        return item

    async def add_manual_kpi(self, slip_id: UUID, title: str, amount: int) -> SalaryItem:
        """Fixed KPI bonus; sync never touches it."""
        return await self.save_salary_item(
            slip_id,
            SalaryItemType.KPI,
            f"{MANUAL_KPI_PREFIX}{title}",
            amount,
            source=ItemSource.KPI,
            rule=ManualKpi(),
        )

    async def add_auto_kpi(
        self,
        slip_id: UUID,
        target_revenue: int,
        reward_magnitude: int,
        reward_type: RewardType | str = RewardType.FIXED,
    ) -> SalaryItem:
        """Revenue-threshold KPI; starts at zero until the next sync resolves it."""
        rule = AutoKpiRule(
            target_revenue=target_revenue,
            reward_magnitude=reward_magnitude,
            reward_type=RewardType(reward_type),
        )
        return await self.save_salary_item(
            slip_id,
            SalaryItemType.KPI,
            self.resolver.pending_title(rule),
            0,
            source=ItemSource.KPI,
            rule=rule,
        )

    async def add_allowance(self, slip_id: UUID, title: str, amount: int) -> SalaryItem:
        return await self.save_salary_item(
            slip_id,
            SalaryItemType.ALLOWANCE,
            title,
            amount,
            source=ItemSource.ALLOWANCE,
        )

    async def delete_salary_item(self, item_id: UUID) -> SlipTotals:
        """Delete an item and return the owning slip's new totals."""
        item = await self.repo.get_item(item_id)
        if item is None:
            raise NotFoundError("Salary item", item_id)
        slip = await self.get_slip(item.salary_slip_id)
        await self.repo.delete_item(item)
        return await self.recalculate_totals(slip)

    # ----- Reads -----

    async def slip_items(self, slip_id: UUID) -> list[SalaryItem]:
        await self.get_slip(slip_id)
        return await self.repo.slip_items(slip_id)

    async def period_items(self, period_id: UUID) -> list[tuple[SalaryItem, UUID]]:
        if await self.repo.get_period(period_id) is None:
            raise NotFoundError("Salary period", period_id)
        return await self.repo.period_items(period_id)

    async def period_slips(self, period_id: UUID) -> list[SalarySlip]:
        """Slips of a period with their staff loaded."""
        if await self.repo.get_period(period_id) is None:
            raise NotFoundError("Salary period", period_id)
        return await self.repo.list_slips(period_id)

    @staticmethod
    def validate_item_signs(items: list[SalaryItem]) -> list[str]:
        return ItemBuilder.validate_item_signs(items)
