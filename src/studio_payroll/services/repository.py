"""Repository over payroll tables and the studio collaborators they read.

Every storage failure surfaces as ``ExternalFailureError`` so callers can
treat it as retryable without knowing about SQLAlchemy.
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from studio_payroll.calculators.types import DeductionFact, PeriodWindow, SaleFact, TaskFact
from studio_payroll.models import (
    Contract,
    ContractItem,
    SalaryItem,
    SalaryPeriod,
    SalarySlip,
    Staff,
    StaffDeduction,
    Task,
    Transaction,
    task_assignment,
)
from studio_payroll.services.errors import ExternalFailureError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def external(operation: str) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """Translate SQLAlchemy errors raised by a repository call."""

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            try:
                return await func(*args, **kwargs)
            except SQLAlchemyError as e:
                raise ExternalFailureError(operation, e) from e

        return wrapper

    return decorator


class PayrollRepository:
    """Reads and writes used by the payroll services.

    Operations:
    - periods by id / (month, year); slips by id / (staff, period) / period
    - items by id / slip / period (optionally by type)
    - task, sale and deduction fact snapshots for one staff member
    - inserts/deletes of periods, slips, items and expense transactions
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    # ----- Periods -----

    @external("get period")
    async def get_period(self, period_id: UUID) -> SalaryPeriod | None:
        return await self.session.get(SalaryPeriod, period_id)

    @external("find period")
    async def find_period(self, month: int, year: int) -> SalaryPeriod | None:
        result = await self.session.execute(
            select(SalaryPeriod).where(SalaryPeriod.month == month, SalaryPeriod.year == year)
        )
        return result.scalar_one_or_none()

    @external("list periods")
    async def list_periods(self) -> list[SalaryPeriod]:
        result = await self.session.execute(
            select(SalaryPeriod).order_by(SalaryPeriod.year.desc(), SalaryPeriod.month.desc())
        )
        return list(result.scalars().all())

    async def insert_if_absent(self, entity: Any) -> bool:
        """Insert inside a savepoint; False if a unique constraint already holds the row."""
        try:
            async with self.session.begin_nested():
                self.session.add(entity)
                await self.session.flush()
        except IntegrityError:
            logger.info("Concurrent insert of %s ignored, re-fetching", type(entity).__name__)
            return False
        except SQLAlchemyError as e:
            raise ExternalFailureError(f"insert {type(entity).__name__}", e) from e
        return True

    # ----- Staff -----

    @external("get staff")
    async def get_staff(self, staff_id: UUID) -> Staff | None:
        return await self.session.get(Staff, staff_id)

    @external("list eligible staff")
    async def list_staff_by_status(self, statuses: Sequence[str]) -> list[Staff]:
        result = await self.session.execute(
            select(Staff).where(Staff.status.in_(list(statuses))).order_by(Staff.code)
        )
        return list(result.scalars().all())

    # ----- Slips -----

    @external("get slip")
    async def get_slip(self, slip_id: UUID) -> SalarySlip | None:
        result = await self.session.execute(
            select(SalarySlip)
            .where(SalarySlip.salary_slip_id == slip_id)
            .options(selectinload(SalarySlip.staff), selectinload(SalarySlip.salary_period))
        )
        return result.scalar_one_or_none()

    @external("find slip")
    async def find_slip(self, staff_id: UUID, period_id: UUID) -> SalarySlip | None:
        result = await self.session.execute(
            select(SalarySlip).where(
                SalarySlip.staff_id == staff_id,
                SalarySlip.salary_period_id == period_id,
            )
        )
        return result.scalar_one_or_none()

    @external("list slips")
    async def list_slips(self, period_id: UUID) -> list[SalarySlip]:
        result = await self.session.execute(
            select(SalarySlip)
            .where(SalarySlip.salary_period_id == period_id)
            .options(selectinload(SalarySlip.staff))
        )
        return list(result.scalars().all())

    # ----- Items -----

    @external("get item")
    async def get_item(self, item_id: UUID) -> SalaryItem | None:
        return await self.session.get(SalaryItem, item_id)

    @external("list slip items")
    async def slip_items(self, slip_id: UUID) -> list[SalaryItem]:
        result = await self.session.execute(
            select(SalaryItem)
            .where(SalaryItem.salary_slip_id == slip_id)
            .order_by(SalaryItem.created_at, SalaryItem.salary_item_id)
        )
        return list(result.scalars().all())

    @external("list period items")
    async def period_items(
        self,
        period_id: UUID,
        item_type: str | None = None,
    ) -> list[tuple[SalaryItem, UUID]]:
        """Items of every slip in a period, paired with the slip's staff id."""
        query = (
            select(SalaryItem, SalarySlip.staff_id)
            .join(SalarySlip, SalaryItem.salary_slip_id == SalarySlip.salary_slip_id)
            .where(SalarySlip.salary_period_id == period_id)
            .order_by(SalaryItem.created_at, SalaryItem.salary_item_id)
        )
        if item_type is not None:
            query = query.where(SalaryItem.type == item_type)
        result = await self.session.execute(query)
        return [(item, staff_id) for item, staff_id in result.all()]

    @external("add item")
    async def add_item(self, item: SalaryItem) -> SalaryItem:
        self.session.add(item)
        await self.session.flush()
        return item

    @external("delete item")
    async def delete_item(self, item: SalaryItem) -> None:
        await self.session.delete(item)
        await self.session.flush()

    @external("flush")
    async def flush(self) -> None:
        await self.session.flush()

    # ----- Facts -----

    @external("read tasks")
    async def task_facts(self, staff_id: UUID, window: PeriodWindow) -> list[TaskFact]:
        """Tasks assigned to the staff member with a due date inside the window."""
        result = await self.session.execute(
            select(Task)
            .join(task_assignment, task_assignment.c.task_id == Task.task_id)
            .where(
                task_assignment.c.staff_id == staff_id,
                Task.due_date >= window.start,
                Task.due_date <= window.end,
            )
            .options(
                selectinload(Task.assignees),
                selectinload(Task.contract),
                selectinload(Task.contract_item).selectinload(ContractItem.service),
            )
        )
        facts = []
        for task in result.scalars().unique().all():
            service = task.contract_item.service if task.contract_item else None
            facts.append(
                TaskFact(
                    task_id=task.task_id,
                    name=task.name,
                    status=task.status,
                    due_date=task.due_date,
                    assigned_staff_ids=frozenset(task.assigned_staff_ids),
                    work_salary=task.work_salary or 0,
                    work_salary_source=task.work_salary_source,
                    service_wage_rates=dict(service.wage_rates or {}) if service else None,
                    customer_name=task.contract.customer_name if task.contract else None,
                    contract_code=task.contract.contract_code if task.contract else None,
                )
            )
        return facts

    @external("read contract items")
    async def sale_facts(self, staff_id: UUID, window: PeriodWindow) -> list[SaleFact]:
        """Contract items attributed to the staff member, contract dated inside the window."""
        result = await self.session.execute(
            select(ContractItem)
            .join(Contract, ContractItem.contract_id == Contract.contract_id)
            .where(
                ContractItem.sales_person_id == staff_id,
                Contract.contract_date >= window.start,
                Contract.contract_date <= window.end,
            )
            .options(selectinload(ContractItem.contract), selectinload(ContractItem.service))
        )
        return [
            SaleFact(
                contract_item_id=ci.contract_item_id,
                contract_code=ci.contract.contract_code,
                contract_date=ci.contract.contract_date,
                contract_status=ci.contract.status,
                service_name=ci.service.name,
                subtotal=ci.subtotal or 0,
                commission_pct=ci.service.commission_pct or 0,
                sales_person_id=ci.sales_person_id,
            )
            for ci in result.scalars().all()
        ]

    @external("read standing deductions")
    async def deduction_facts(self, staff_id: UUID) -> list[DeductionFact]:
        result = await self.session.execute(
            select(StaffDeduction).where(StaffDeduction.staff_id == staff_id)
        )
        return [
            DeductionFact(
                deduction_id=d.staff_deduction_id,
                title=d.title,
                amount=d.amount,
                active=d.active,
            )
            for d in result.scalars().all()
        ]

    # ----- Cash book -----

    @external("insert transaction")
    async def add_transaction(self, transaction: Transaction) -> Transaction:
        self.session.add(transaction)
        await self.session.flush()
        return transaction
