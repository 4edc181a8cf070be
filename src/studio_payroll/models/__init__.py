"""ORM models."""

from studio_payroll.models.base import Base, TimestampMixin, UpdatedAtMixin
from studio_payroll.models.payroll import SalaryItem, SalaryPeriod, SalarySlip
from studio_payroll.models.studio import (
    Contract,
    ContractItem,
    ContractStatus,
    Service,
    Staff,
    StaffDeduction,
    StaffStatus,
    Task,
    TaskStatus,
    Transaction,
    TransactionType,
    task_assignment,
)

__all__ = [
    "Base",
    "TimestampMixin",
    "UpdatedAtMixin",
    "SalaryItem",
    "SalaryPeriod",
    "SalarySlip",
    "Contract",
    "ContractItem",
    "ContractStatus",
    "Service",
    "Staff",
    "StaffDeduction",
    "StaffStatus",
    "Task",
    "TaskStatus",
    "Transaction",
    "TransactionType",
    "task_assignment",
]
