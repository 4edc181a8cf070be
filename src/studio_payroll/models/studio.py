"""Studio back-office models consumed by payroll (staff, catalog, contracts, tasks, cash book).

These tables are owned by the surrounding back-office application; the
payroll engine reads them and only ever inserts expense transactions.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    CheckConstraint,
    Column,
    Date,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Table,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from studio_payroll.models.base import Base, TimestampMixin


class StaffStatus(str, Enum):
    """Staff employment status values."""

    ACTIVE = "Active"
    INACTIVE = "Inactive"


class ContractStatus(str, Enum):
    PENDING = "Pending"
    SIGNED = "Signed"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class TaskStatus(str, Enum):
    """Task workflow status values."""

    PENDING = "Pending"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class TransactionType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


# ===== Staff =====


class Staff(Base, TimestampMixin):
    """Studio staff member."""

    __tablename__ = "staff"

    staff_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    code: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    role: Mapped[str] = mapped_column(String, nullable=False, default="")
    username: Mapped[str | None] = mapped_column(String, nullable=True, unique=True)
    base_salary: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    status: Mapped[str] = mapped_column(String, nullable=False, default=StaffStatus.ACTIVE.value)
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    # module -> sub-module -> {view, add, edit, delete, own_only}
    permissions: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    __table_args__ = (
        CheckConstraint("base_salary >= 0", name="staff_base_salary_check"),
    )

    deductions: Mapped[list[StaffDeduction]] = relationship(back_populates="staff")


class StaffDeduction(Base, TimestampMixin):
    """Standing monthly deduction configured for a staff member."""

    __tablename__ = "staff_deduction"

    staff_deduction_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    staff_id: Mapped[UUID] = mapped_column(
        ForeignKey("staff.staff_id", ondelete="CASCADE"),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(String, nullable=False)
    # Positive magnitude; the ledger stores it negated
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        CheckConstraint("amount > 0", name="staff_deduction_amount_check"),
    )

    staff: Mapped[Staff] = relationship(back_populates="deductions")


# ===== Catalog =====


class Service(Base, TimestampMixin):
    """Sellable studio service with commission and piece-wage configuration."""

    __tablename__ = "service"

    service_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False)
    unit_price: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    commission_pct: Mapped[Decimal] = mapped_column(Numeric(6, 3), nullable=False, default=0)
    # Named cost fields (e.g. "photographer_fee") referenced by task wage sources
    wage_rates: Mapped[dict[str, int]] = mapped_column(JSON, nullable=False, default=dict)

    def wage_rate(self, field_name: str) -> int | None:
        """Get a configured wage rate by field name, if present."""
        value = (self.wage_rates or {}).get(field_name)
        return int(value) if value is not None else None


# ===== Contracts =====


class Contract(Base, TimestampMixin):
    """Customer contract header."""

    __tablename__ = "contract"

    contract_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    contract_code: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    customer_name: Mapped[str | None] = mapped_column(String, nullable=True)
    contract_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default=ContractStatus.PENDING.value)
    total_amount: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    paid_amount: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    items: Mapped[list[ContractItem]] = relationship(back_populates="contract")


class ContractItem(Base):
    """Contract line item attributed to a salesperson."""

    __tablename__ = "contract_item"

    contract_item_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    contract_id: Mapped[UUID] = mapped_column(
        ForeignKey("contract.contract_id", ondelete="CASCADE"),
        nullable=False,
    )
    service_id: Mapped[UUID] = mapped_column(
        ForeignKey("service.service_id"),
        nullable=False,
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    unit_price: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    discount: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    subtotal: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    sales_person_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("staff.staff_id"),
        nullable=True,
    )

    contract: Mapped[Contract] = relationship(back_populates="items")
    service: Mapped[Service] = relationship()


# ===== Tasks =====


task_assignment = Table(
    "task_assignment",
    Base.metadata,
    Column("task_id", Uuid(as_uuid=True), ForeignKey("task.task_id", ondelete="CASCADE"), primary_key=True),
    Column("staff_id", Uuid(as_uuid=True), ForeignKey("staff.staff_id", ondelete="CASCADE"), primary_key=True),
)


class Task(Base, TimestampMixin):
    """Production task (shoot, makeup, retouch...) with an optional piece wage."""

    __tablename__ = "task"

    task_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    contract_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("contract.contract_id", ondelete="SET NULL"),
        nullable=True,
    )
    contract_item_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("contract_item.contract_item_id", ondelete="SET NULL"),
        nullable=True,
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default=TaskStatus.PENDING.value)
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    work_salary: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    work_salary_source: Mapped[str | None] = mapped_column(String, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    contract: Mapped[Contract | None] = relationship()
    contract_item: Mapped[ContractItem | None] = relationship()
    assignees: Mapped[list[Staff]] = relationship(secondary=task_assignment)

    @property
    def assigned_staff_ids(self) -> set[UUID]:
        return {s.staff_id for s in self.assignees}


# ===== Cash book =====


class Transaction(Base, TimestampMixin):
    """Income/expense entry in the studio cash book."""

    __tablename__ = "transaction"

    transaction_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    type: Mapped[str] = mapped_column(String, nullable=False)
    main_category: Mapped[str] = mapped_column(String, nullable=False)
    category: Mapped[str] = mapped_column(String, nullable=False)
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    txn_date: Mapped[date] = mapped_column(Date, nullable=False)
    contract_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("contract.contract_id", ondelete="SET NULL"),
        nullable=True,
    )
    staff_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("staff.staff_id", ondelete="SET NULL"),
        nullable=True,
    )
    vendor: Mapped[str | None] = mapped_column(String, nullable=True)

    __table_args__ = (
        CheckConstraint("type IN ('income', 'expense')", name="transaction_type_check"),
        CheckConstraint("amount > 0", name="transaction_amount_check"),
    )
