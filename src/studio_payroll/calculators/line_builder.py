"""Salary item builder: sign conventions, rounding and slip totals."""

from __future__ import annotations

from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Protocol

from studio_payroll.calculators.types import (
    DEDUCTION_TYPES,
    EARNING_TYPES,
    ItemCandidate,
    ItemSource,
    SalaryItemType,
    SlipTotals,
)


class _HasAmount(Protocol):
    amount: int


class ItemBuilder:
    """Builds salary items with consistent signs and rounding.

    Sign conventions (non-negotiable):
    - HARD, COMMISSION, WORK, REWARD, ALLOWANCE, KPI: positive (earnings)
    - PENALTY, ADVANCE: negative (deductions)
    - ADJUST: either sign

    Rounding:
    - Amounts are integers in the smallest currency unit
    - Percentages are computed in Decimal and rounded half-up once, at the end
    """

    UNIT = Decimal("1")

    @staticmethod
    def round_half_up(amount: Decimal | int | float | str) -> int:
        """Round to a whole currency unit, half away from zero."""
        value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
        return int(value.quantize(ItemBuilder.UNIT, rounding=ROUND_HALF_UP))

    @staticmethod
    def percent_of(base: int, pct: Decimal | int | float | str) -> int:
        """Compute ``base * pct / 100`` with a single final rounding."""
        rate = pct if isinstance(pct, Decimal) else Decimal(str(pct))
        return ItemBuilder.round_half_up(Decimal(base) * rate / Decimal(100))

    @staticmethod
    def signed_amount(item_type: SalaryItemType | str, amount: int) -> int:
        """Normalize the sign of an amount for its item type."""
        item_type = SalaryItemType(item_type)
        if item_type in EARNING_TYPES:
            return abs(int(amount))
        if item_type in DEDUCTION_TYPES:
            return -abs(int(amount))
        return int(amount)

    @staticmethod
    def create_work_item(task_id: Any, title: str, amount: int) -> ItemCandidate:
        """Create a piece-wage item for a completed task (positive amount)."""
        return ItemCandidate(
            item_type=SalaryItemType.WORK,
            source=ItemSource.TASK,
            ref_id=str(task_id),
            title=title,
            amount=abs(int(amount)),
        )

    @staticmethod
    def create_commission_item(contract_item_id: Any, title: str, amount: int) -> ItemCandidate:
        """Create a sales commission item (positive amount)."""
        return ItemCandidate(
            item_type=SalaryItemType.COMMISSION,
            source=ItemSource.CONTRACT,
            ref_id=str(contract_item_id),
            title=title,
            amount=abs(int(amount)),
        )

    @staticmethod
    def create_base_salary_item(staff_id: Any, title: str, amount: int) -> ItemCandidate:
        """Create the fixed base-salary item (positive amount)."""
        return ItemCandidate(
            item_type=SalaryItemType.HARD,
            source=ItemSource.BASE_SALARY,
            ref_id=str(staff_id),
            title=title,
            amount=abs(int(amount)),
        )

    @staticmethod
    def create_standing_deduction_item(deduction_id: Any, title: str, amount: int) -> ItemCandidate:
        """Create a standing deduction item (negative amount)."""
        return ItemCandidate(
            item_type=SalaryItemType.PENALTY,
            source=ItemSource.STANDING_DEDUCTION,
            ref_id=str(deduction_id),
            title=title,
            amount=-abs(int(amount)),
        )

    @staticmethod
    def calculate_totals(items: Iterable[_HasAmount]) -> SlipTotals:
        """Derive slip totals.

        EARNINGS = Σ(amount > 0)
        DEDUCTIONS = Σ|amount < 0|
        NET = EARNINGS - DEDUCTIONS
        """
        earnings = 0
        deductions = 0
        for item in items:
            if item.amount > 0:
                earnings += item.amount
            elif item.amount < 0:
                deductions += -item.amount
        return SlipTotals(total_earnings=earnings, total_deductions=deductions)

    @staticmethod
    def validate_item_signs(items: Iterable[Any]) -> list[str]:
        """Validate that all items have correct signs.

        Returns list of error messages (empty if all valid).
        """
        errors: list[str] = []

        for i, item in enumerate(items):
            item_type = SalaryItemType(getattr(item, "type", None) or item.item_type)
            if item_type in EARNING_TYPES and item.amount < 0:
                errors.append(
                    f"Item {i} ({item_type.value}) has negative amount {item.amount}, expected positive"
                )
            elif item_type in DEDUCTION_TYPES and item.amount > 0:
                errors.append(
                    f"Item {i} ({item_type.value}) has positive amount {item.amount}, expected negative"
                )

        return errors

    @staticmethod
    def format_money(amount: int, symbol: str = "đ") -> str:
        return f"{amount:,}{symbol}"
