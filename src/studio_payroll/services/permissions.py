"""Capability checks evaluated at the API boundary."""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from studio_payroll.services.errors import PermissionDeniedError

if TYPE_CHECKING:
    from studio_payroll.config import Settings
    from studio_payroll.models import SalarySlip, Staff

PAYROLL_MODULE = "staff"
PAYROLL_SUB = "salary"


class PermissionChecker:
    """Resolves staff permissions of the form module -> sub-module -> flags.

    Flags are ``view``, ``add``, ``edit``, ``delete`` and ``own_only``.
    Administrators (by role or username) pass every check.
    """

    def __init__(self, admin_roles: Iterable[str] = ("Director",), admin_usernames: Iterable[str] = ("admin",)):
        self.admin_roles = frozenset(admin_roles)
        self.admin_usernames = frozenset(admin_usernames)

    @classmethod
    def from_settings(cls, settings: Settings) -> PermissionChecker:
        return cls(settings.admin_roles, settings.admin_usernames)

    def is_admin(self, actor: Staff) -> bool:
        return actor.role in self.admin_roles or (
            actor.username is not None and actor.username in self.admin_usernames
        )

    def _sub_permissions(self, actor: Staff, module: str, sub: str | None) -> list[dict[str, Any]]:
        module_perms = (actor.permissions or {}).get(module) or {}
        if not isinstance(module_perms, dict):
            return []
        if sub is not None:
            entry = module_perms.get(sub)
            return [entry] if isinstance(entry, dict) else []
        return [entry for entry in module_perms.values() if isinstance(entry, dict)]

    def has_capability(
        self,
        actor: Staff,
        module: str,
        action: str,
        sub: str | None = None,
    ) -> bool:
        """True if the actor may perform ``action`` on ``module`` (and ``sub``).

        Without ``sub`` any sub-module granting the action is enough.
        """
        if self.is_admin(actor):
            return True
        return any(bool(entry.get(action)) for entry in self._sub_permissions(actor, module, sub))

    def is_own_only(self, actor: Staff, module: str, sub: str | None = None) -> bool:
        if self.is_admin(actor):
            return False
        return any(bool(entry.get("own_only")) for entry in self._sub_permissions(actor, module, sub))

    def require(
        self,
        actor: Staff,
        action: str,
        module: str = PAYROLL_MODULE,
        sub: str | None = PAYROLL_SUB,
    ) -> None:
        if not self.has_capability(actor, module, action, sub):
            raise PermissionDeniedError(module, action, sub)

    def can_view_slip(self, actor: Staff, slip: SalarySlip) -> bool:
        """View access to a slip; own-only limits it to the actor's own slip."""
        if not self.has_capability(actor, PAYROLL_MODULE, "view", PAYROLL_SUB):
            return False
        if self.is_own_only(actor, PAYROLL_MODULE, PAYROLL_SUB):
            return slip.staff_id == actor.staff_id
        return True


def has_capability(
    actor: Staff,
    module: str,
    action: str,
    sub: str | None = None,
    checker: PermissionChecker | None = None,
) -> bool:
    """Module-level shortcut using the default administrator configuration."""
    return (checker or PermissionChecker()).has_capability(actor, module, action, sub)
