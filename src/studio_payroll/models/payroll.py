"""Salary period, slip and item models."""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    BigInteger,
    CheckConstraint,
    Date,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from studio_payroll.models.base import Base, TimestampMixin, UpdatedAtMixin

if TYPE_CHECKING:
    from studio_payroll.models.studio import Staff


# ===== Periods =====


class SalaryPeriod(Base, TimestampMixin):
    """One calendar month of payroll."""

    __tablename__ = "salary_period"

    salary_period_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="open")

    __table_args__ = (
        UniqueConstraint("month", "year", name="salary_period_month_year_unique"),
        CheckConstraint("month BETWEEN 1 AND 12", name="salary_period_month_check"),
        CheckConstraint("status IN ('open', 'closed')", name="salary_period_status_check"),
        CheckConstraint("end_date >= start_date", name="salary_period_dates_check"),
    )

    slips: Mapped[list[SalarySlip]] = relationship(back_populates="salary_period")

    @property
    def label(self) -> str:
        return f"{self.month}/{self.year}"


# ===== Slips =====


class SalarySlip(Base, TimestampMixin, UpdatedAtMixin):
    """Per-staff, per-period salary slip.

    Totals are derived from items and rewritten after every ledger change.
    """

    __tablename__ = "salary_slip"

    salary_slip_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    staff_id: Mapped[UUID] = mapped_column(
        ForeignKey("staff.staff_id", ondelete="CASCADE"),
        nullable=False,
    )
    salary_period_id: Mapped[UUID] = mapped_column(
        ForeignKey("salary_period.salary_period_id", ondelete="CASCADE"),
        nullable=False,
    )
    total_earnings: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    total_deductions: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    net_pay: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint("staff_id", "salary_period_id", name="salary_slip_staff_period_unique"),
        CheckConstraint("total_earnings >= 0", name="salary_slip_earnings_check"),
        CheckConstraint("total_deductions >= 0", name="salary_slip_deductions_check"),
    )

    staff: Mapped[Staff] = relationship()
    salary_period: Mapped[SalaryPeriod] = relationship(back_populates="slips")
    items: Mapped[list[SalaryItem]] = relationship(
        back_populates="salary_slip",
        cascade="all, delete-orphan",
    )


# ===== Items =====


class SalaryItem(Base, TimestampMixin):
    """Signed monetary line on a salary slip."""

    __tablename__ = "salary_item"

    salary_item_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    salary_slip_id: Mapped[UUID] = mapped_column(
        ForeignKey("salary_slip.salary_slip_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    type: Mapped[str] = mapped_column(String, nullable=False)
    title: Mapped[str] = mapped_column(String, nullable=False)
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    source: Mapped[str] = mapped_column(String, nullable=False, default="manual")
    ref_id: Mapped[str | None] = mapped_column(String, nullable=True)
    meta_json: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "type IN ('HARD', 'COMMISSION', 'WORK', 'REWARD', 'ALLOWANCE', "
            "'PENALTY', 'ADVANCE', 'ADJUST', 'KPI')",
            name="salary_item_type_check",
        ),
        CheckConstraint(
            "source IN ('manual', 'task', 'contract', 'noi_quy', 'transaction', 'kpi', "
            "'allowance', 'allowance_copy', 'base_salary', 'standing_deduction')",
            name="salary_item_source_check",
        ),
    )

    salary_slip: Mapped[SalarySlip] = relationship(back_populates="items")

    @property
    def key(self) -> tuple[str, str | None]:
        return (self.source, self.ref_id)
