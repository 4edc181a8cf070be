"""Type definitions for the payroll aggregation pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any
from uuid import UUID


class SalaryItemType(str, Enum):
    """Salary item types."""

    HARD = "HARD"
    COMMISSION = "COMMISSION"
    WORK = "WORK"
    REWARD = "REWARD"
    ALLOWANCE = "ALLOWANCE"
    PENALTY = "PENALTY"
    ADVANCE = "ADVANCE"
    ADJUST = "ADJUST"
    KPI = "KPI"


class ItemSource(str, Enum):
    """Where a salary item came from."""

    MANUAL = "manual"
    TASK = "task"
    CONTRACT = "contract"
    NOI_QUY = "noi_quy"  # internal-regulation penalties
    TRANSACTION = "transaction"
    KPI = "kpi"
    ALLOWANCE = "allowance"
    ALLOWANCE_COPY = "allowance_copy"
    BASE_SALARY = "base_salary"
    STANDING_DEDUCTION = "standing_deduction"


# Item types that are always earnings / always deductions; ADJUST may be either
EARNING_TYPES = frozenset(
    {
        SalaryItemType.HARD,
        SalaryItemType.COMMISSION,
        SalaryItemType.WORK,
        SalaryItemType.REWARD,
        SalaryItemType.ALLOWANCE,
        SalaryItemType.KPI,
    }
)
DEDUCTION_TYPES = frozenset({SalaryItemType.PENALTY, SalaryItemType.ADVANCE})

# Sources whose items are derived from facts and owned by sync
FACT_SOURCES = frozenset(
    {
        ItemSource.TASK,
        ItemSource.CONTRACT,
        ItemSource.BASE_SALARY,
        ItemSource.STANDING_DEDUCTION,
    }
)


@dataclass(frozen=True)
class PeriodWindow:
    """Inclusive date window of a pay period."""

    start: date
    end: date

    def contains(self, day: date | None) -> bool:
        return day is not None and self.start <= day <= self.end


@dataclass
class ItemCandidate:
    """A desired auto-generated salary item before reconciliation."""

    item_type: SalaryItemType
    source: ItemSource
    ref_id: str
    title: str
    amount: int  # Signed per conventions
    meta: dict[str, Any] | None = None

    @property
    def key(self) -> tuple[str, str]:
        """Natural key used to match against existing ledger items."""
        return (self.source.value, self.ref_id)


@dataclass(frozen=True)
class SlipTotals:
    """Derived slip totals."""

    total_earnings: int = 0
    total_deductions: int = 0

    @property
    def net_pay(self) -> int:
        return self.total_earnings - self.total_deductions


@dataclass
class StaffFacts:
    """Snapshot of external facts for one staff member and one period."""

    staff_id: UUID
    staff_name: str
    base_salary: int
    window: PeriodWindow
    tasks: list[TaskFact] = field(default_factory=list)
    sales: list[SaleFact] = field(default_factory=list)
    deductions: list[DeductionFact] = field(default_factory=list)


@dataclass(frozen=True)
class TaskFact:
    """Completed-task fact as read from the task board."""

    task_id: UUID
    name: str
    status: str
    due_date: date | None
    assigned_staff_ids: frozenset[UUID]
    work_salary: int = 0
    work_salary_source: str | None = None
    service_wage_rates: dict[str, int] | None = None
    customer_name: str | None = None
    contract_code: str | None = None


@dataclass(frozen=True)
class SaleFact:
    """Contract line item attributed to a salesperson."""

    contract_item_id: UUID
    contract_code: str
    contract_date: date
    contract_status: str
    service_name: str
    subtotal: int
    commission_pct: Any  # Decimal or number
    sales_person_id: UUID | None


@dataclass(frozen=True)
class DeductionFact:
    """Standing deduction configured for a staff member."""

    deduction_id: UUID
    title: str
    amount: int  # Positive magnitude
    active: bool = True
