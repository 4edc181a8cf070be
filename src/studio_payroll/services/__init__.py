"""Payroll services."""

from studio_payroll.services.allowance_service import AllowanceService, CopyResult
from studio_payroll.services.errors import (
    ExternalFailureError,
    InvalidStateError,
    NotFoundError,
    PayrollError,
    PermissionDeniedError,
)
from studio_payroll.services.finalization_service import FinalizationService
from studio_payroll.services.ledger_service import LedgerService
from studio_payroll.services.period_service import PeriodService, month_bounds, previous_month
from studio_payroll.services.permissions import PermissionChecker, has_capability
from studio_payroll.services.repository import PayrollRepository
from studio_payroll.services.sync_service import PayrollSyncService, SyncResult

__all__ = [
    "AllowanceService",
    "CopyResult",
    "ExternalFailureError",
    "InvalidStateError",
    "NotFoundError",
    "PayrollError",
    "PermissionDeniedError",
    "FinalizationService",
    "LedgerService",
    "PeriodService",
    "month_bounds",
    "previous_month",
    "PermissionChecker",
    "has_capability",
    "PayrollRepository",
    "PayrollSyncService",
    "SyncResult",
]
