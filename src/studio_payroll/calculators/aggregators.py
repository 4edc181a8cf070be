"""Fact aggregators: source facts in, candidate salary items out.

Each aggregator is a pure function of (staff id, period window, fact
snapshots). They never touch storage; the sync service gathers facts through
the repository and feeds them in.
"""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

from studio_payroll.calculators.line_builder import ItemBuilder
from studio_payroll.calculators.types import (
    DeductionFact,
    ItemCandidate,
    PeriodWindow,
    SaleFact,
    StaffFacts,
    TaskFact,
)
from studio_payroll.models.studio import ContractStatus, TaskStatus

WALK_IN_CUSTOMER = "Walk-in"
NO_CONTRACT_CODE = "N/A"


class TaskWageAggregator:
    """Piece wages for completed tasks.

    A task qualifies when the staff member is assigned, the task is
    Completed, its due date falls inside the period, and it carries a
    positive wage. The wage is the service's wage-rate field named by
    ``work_salary_source`` when set, otherwise the task's fixed
    ``work_salary``.
    """

    @staticmethod
    def wage_for(task: TaskFact) -> int:
        if task.work_salary_source and task.service_wage_rates:
            rate = task.service_wage_rates.get(task.work_salary_source)
            if rate is not None:
                return int(rate)
        return int(task.work_salary or 0)

    @staticmethod
    def title_for(task: TaskFact) -> str:
        date_str = task.due_date.strftime("%d/%m/%Y") if task.due_date else ""
        customer = task.customer_name or WALK_IN_CUSTOMER
        code = task.contract_code or NO_CONTRACT_CODE
        return f"{task.name} - {customer} - {code} - {date_str}"

    @classmethod
    def qualifies(cls, task: TaskFact, staff_id: UUID, window: PeriodWindow) -> bool:
        return (
            staff_id in task.assigned_staff_ids
            and task.status == TaskStatus.COMPLETED.value
            and window.contains(task.due_date)
            and cls.wage_for(task) > 0
        )

    @classmethod
    def aggregate(
        cls,
        staff_id: UUID,
        window: PeriodWindow,
        tasks: Iterable[TaskFact],
    ) -> list[ItemCandidate]:
        return [
            ItemBuilder.create_work_item(task.task_id, cls.title_for(task), cls.wage_for(task))
            for task in tasks
            if cls.qualifies(task, staff_id, window)
        ]


class CommissionAggregator:
    """Sales commissions on contract items attributed to the staff member.

    Contract date must fall inside the period and the contract must not be
    cancelled. Commission = round_half_up(subtotal * commission_pct / 100).
    """

    @staticmethod
    def qualifies(sale: SaleFact, staff_id: UUID, window: PeriodWindow) -> bool:
        return (
            sale.sales_person_id == staff_id
            and sale.contract_status != ContractStatus.CANCELLED.value
            and window.contains(sale.contract_date)
        )

    @classmethod
    def attributed_sales(
        cls,
        staff_id: UUID,
        window: PeriodWindow,
        sales: Iterable[SaleFact],
    ) -> list[SaleFact]:
        return [sale for sale in sales if cls.qualifies(sale, staff_id, window)]

    @classmethod
    def revenue(
        cls,
        staff_id: UUID,
        window: PeriodWindow,
        sales: Iterable[SaleFact],
    ) -> int:
        """Attributed sales revenue for the period (input to auto-KPI)."""
        return sum(int(sale.subtotal) for sale in cls.attributed_sales(staff_id, window, sales))

    @staticmethod
    def title_for(sale: SaleFact, pct: object) -> str:
        return f"Commission {pct}% - {sale.service_name} - {sale.contract_code}"

    @classmethod
    def aggregate(
        cls,
        staff_id: UUID,
        window: PeriodWindow,
        sales: Iterable[SaleFact],
    ) -> list[ItemCandidate]:
        candidates: list[ItemCandidate] = []
        for sale in cls.attributed_sales(staff_id, window, sales):
            pct = sale.commission_pct or 0
            amount = ItemBuilder.percent_of(int(sale.subtotal), pct)
            if amount <= 0:
                continue
            candidates.append(
                ItemBuilder.create_commission_item(
                    sale.contract_item_id, cls.title_for(sale, _format_pct(pct)), amount
                )
            )
        return candidates


class FixedSalaryAggregator:
    """Base salary as a HARD item plus active standing deductions."""

    BASE_SALARY_TITLE = "Base salary"

    @classmethod
    def aggregate(
        cls,
        staff_id: UUID,
        base_salary: int,
        deductions: Iterable[DeductionFact],
    ) -> list[ItemCandidate]:
        candidates: list[ItemCandidate] = []
        if base_salary > 0:
            candidates.append(
                ItemBuilder.create_base_salary_item(staff_id, cls.BASE_SALARY_TITLE, base_salary)
            )
        for deduction in deductions:
            if deduction.active and deduction.amount > 0:
                candidates.append(
                    ItemBuilder.create_standing_deduction_item(
                        deduction.deduction_id, deduction.title, deduction.amount
                    )
                )
        return candidates


def collect_candidates(facts: StaffFacts, include_fixed: bool = True) -> list[ItemCandidate]:
    """Run every aggregator for one staff member in a stable order."""
    candidates: list[ItemCandidate] = []
    if include_fixed:
        candidates.extend(
            FixedSalaryAggregator.aggregate(facts.staff_id, facts.base_salary, facts.deductions)
        )
    candidates.extend(TaskWageAggregator.aggregate(facts.staff_id, facts.window, facts.tasks))
    candidates.extend(CommissionAggregator.aggregate(facts.staff_id, facts.window, facts.sales))
    return candidates


def _format_pct(pct: object) -> str:
    text = str(pct)
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text
