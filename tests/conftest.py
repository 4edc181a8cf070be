"""Pytest fixtures for studio payroll tests."""

from __future__ import annotations

import itertools
from collections.abc import AsyncGenerator
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from studio_payroll.api.app import create_app
from studio_payroll.config import Settings
from studio_payroll.database import Database
from studio_payroll.models import (
    Contract,
    ContractItem,
    SalaryItem,
    SalaryPeriod,
    SalarySlip,
    Service,
    Staff,
    StaffDeduction,
    Task,
    Transaction,
    task_assignment,
)
from studio_payroll.services.period_service import PeriodService

# In-memory SQLite; each test gets a fresh database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
def settings() -> Settings:
    """Test settings."""
    return Settings(database_url=TEST_DATABASE_URL)


@pytest_asyncio.fixture
async def database(settings: Settings) -> AsyncGenerator[Database, None]:
    """Create a fresh in-memory database with all tables."""
    db = Database(settings)
    await db.create_all()
    yield db
    await db.dispose()


@pytest_asyncio.fixture
async def session(database: Database) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test.

    Only one transaction can be open on the shared in-memory connection, so
    tests that also use ``studio`` or the sync service should use
    ``database.session()`` blocks instead.
    """
    async with database.session_factory() as session:
        yield session
        await session.rollback()


class StudioSeed:
    """Inserts collaborator facts, each in its own committed unit of work."""

    def __init__(self, database: Database):
        self.database = database
        self._codes = itertools.count(1)

    async def add(self, *rows: Any) -> None:
        async with self.database.session() as session:
            session.add_all(rows)

    async def staff(
        self,
        name: str = "Lan",
        base_salary: int = 0,
        role: str = "Photographer",
        username: str | None = None,
        status: str = "Active",
        permissions: dict[str, Any] | None = None,
    ) -> Staff:
        staff = Staff(
            code=f"NV{next(self._codes):03d}",
            name=name,
            role=role,
            username=username,
            base_salary=base_salary,
            status=status,
            permissions=permissions or {},
        )
        await self.add(staff)
        return staff

    async def service(
        self,
        name: str = "Wedding album",
        commission_pct: Decimal | int = 0,
        wage_rates: dict[str, int] | None = None,
    ) -> Service:
        service = Service(
            name=name,
            unit_price=0,
            commission_pct=Decimal(commission_pct),
            wage_rates=wage_rates or {},
        )
        await self.add(service)
        return service

    async def sale(
        self,
        staff: Staff,
        service: Service,
        subtotal: int,
        contract_date: date,
        status: str = "Signed",
        customer_name: str | None = "Mai & Tuan",
    ) -> ContractItem:
        """One contract with a single line item sold by ``staff``."""
        contract = Contract(
            contract_code=f"HD{next(self._codes):04d}",
            customer_name=customer_name,
            contract_date=contract_date,
            status=status,
            total_amount=subtotal,
        )
        await self.add(contract)
        item = ContractItem(
            contract_id=contract.contract_id,
            service_id=service.service_id,
            quantity=1,
            unit_price=subtotal,
            subtotal=subtotal,
            sales_person_id=staff.staff_id,
        )
        await self.add(item)
        return item

    async def task(
        self,
        assignees: list[Staff],
        due_date: date | None,
        name: str = "Outdoor shoot",
        status: str = "Completed",
        work_salary: int = 0,
        work_salary_source: str | None = None,
        contract_item: ContractItem | None = None,
    ) -> Task:
        task = Task(
            name=name,
            status=status,
            due_date=due_date,
            work_salary=work_salary,
            work_salary_source=work_salary_source,
            contract_id=contract_item.contract_id if contract_item else None,
            contract_item_id=contract_item.contract_item_id if contract_item else None,
        )
        await self.add(task)
        await self.assign(task, assignees)
        return task

    async def assign(self, task: Task, assignees: list[Staff]) -> None:
        """Replace the task's assignees."""
        async with self.database.session() as session:
            await session.execute(
                delete(task_assignment).where(task_assignment.c.task_id == task.task_id)
            )
            for staff in assignees:
                await session.execute(
                    task_assignment.insert().values(task_id=task.task_id, staff_id=staff.staff_id)
                )

    async def deduction(self, staff: Staff, title: str, amount: int, active: bool = True) -> StaffDeduction:
        deduction = StaffDeduction(staff_id=staff.staff_id, title=title, amount=amount, active=active)
        await self.add(deduction)
        return deduction

    async def period(self, month: int, year: int) -> SalaryPeriod:
        async with self.database.session() as session:
            return await PeriodService(session).open_or_get_period(month, year)

    # ----- Reads -----

    async def slip(self, period: SalaryPeriod, staff: Staff) -> SalarySlip | None:
        async with self.database.session_factory() as session:
            result = await session.execute(
                select(SalarySlip).where(
                    SalarySlip.staff_id == staff.staff_id,
                    SalarySlip.salary_period_id == period.salary_period_id,
                )
            )
            return result.scalar_one_or_none()

    async def items(self, slip_id: UUID) -> list[SalaryItem]:
        async with self.database.session_factory() as session:
            result = await session.execute(
                select(SalaryItem).where(SalaryItem.salary_slip_id == slip_id)
            )
            return list(result.scalars().all())

    async def transactions(self) -> list[Transaction]:
        async with self.database.session_factory() as session:
            result = await session.execute(select(Transaction))
            return list(result.scalars().all())


@pytest.fixture
def studio(database: Database) -> StudioSeed:
    """Seeding and read-back helpers bound to the test database."""
    return StudioSeed(database)


@pytest_asyncio.fixture
async def client(settings: Settings, database: Database) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app, sharing the test database."""
    app = create_app(settings, database)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
