"""Payroll error taxonomy."""

from __future__ import annotations

from typing import Any


class PayrollError(Exception):
    """Base class for payroll domain errors."""

    code = "PAYROLL_ERROR"
    retryable = False


class NotFoundError(PayrollError):
    """Referenced period, slip, item or staff does not exist."""

    code = "NOT_FOUND"

    def __init__(self, entity: str, key: Any, reason: str | None = None):
        self.entity = entity
        self.key = key
        self.reason = reason
        msg = f"{entity} {key} not found"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class InvalidStateError(PayrollError):
    """Operation refused in the current state (e.g. nothing to pay out)."""

    code = "INVALID_STATE"


class ExternalFailureError(PayrollError):
    """A read or write against a collaborator failed; safe to retry."""

    code = "EXTERNAL_FAILURE"
    retryable = True

    def __init__(self, operation: str, cause: BaseException | None = None):
        self.operation = operation
        self.cause = cause
        msg = f"External call failed during {operation}"
        if cause is not None:
            msg += f": {cause}"
        super().__init__(msg)


class PermissionDeniedError(PayrollError):
    """Actor lacks the capability for the requested action."""

    code = "FORBIDDEN"

    def __init__(self, module: str, action: str, sub: str | None = None):
        self.module = module
        self.action = action
        self.sub = sub
        target = f"{module}.{sub}" if sub else module
        super().__init__(f"Permission denied: {action} on {target}")
