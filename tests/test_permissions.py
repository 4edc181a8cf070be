"""Tests for capability checks."""

from uuid import uuid4

import pytest

from studio_payroll.models import SalarySlip, Staff
from studio_payroll.services.errors import PermissionDeniedError
from studio_payroll.services.permissions import PermissionChecker, has_capability


def make_staff(role="Photographer", username=None, permissions=None) -> Staff:
    return Staff(
        staff_id=uuid4(),
        code="NV001",
        name="Lan",
        role=role,
        username=username,
        permissions=permissions or {},
    )


class TestPermissionChecker:
    """Module, sub-module and own-only resolution."""

    def test_admin_by_role_or_username(self):
        checker = PermissionChecker(admin_roles=("Director",), admin_usernames=("admin",))

        assert checker.has_capability(make_staff(role="Director"), "staff", "delete", "salary")
        assert checker.has_capability(make_staff(username="admin"), "finance", "edit")
        assert not checker.has_capability(make_staff(), "staff", "view", "salary")

    def test_sub_module_flags(self):
        actor = make_staff(permissions={"staff": {"salary": {"view": True, "add": True}}})
        checker = PermissionChecker()

        assert checker.has_capability(actor, "staff", "view", "salary")
        assert checker.has_capability(actor, "staff", "add", "salary")
        assert not checker.has_capability(actor, "staff", "delete", "salary")
        assert not checker.has_capability(actor, "staff", "view", "profile")

    def test_any_sub_module_when_sub_omitted(self):
        actor = make_staff(permissions={"staff": {"profile": {}, "salary": {"edit": True}}})

        assert has_capability(actor, "staff", "edit")
        assert not has_capability(actor, "staff", "delete")
        assert not has_capability(actor, "contracts", "edit")

    def test_require_raises(self):
        checker = PermissionChecker()
        with pytest.raises(PermissionDeniedError) as exc_info:
            checker.require(make_staff(), "edit")

        assert exc_info.value.module == "staff"
        assert exc_info.value.sub == "salary"
        assert exc_info.value.code == "FORBIDDEN"

    def test_can_view_slip_own_only(self):
        actor = make_staff(permissions={"staff": {"salary": {"view": True, "own_only": True}}})
        own = SalarySlip(staff_id=actor.staff_id, salary_period_id=uuid4())
        other = SalarySlip(staff_id=uuid4(), salary_period_id=uuid4())
        checker = PermissionChecker()

        assert checker.can_view_slip(actor, own)
        assert not checker.can_view_slip(actor, other)

    def test_can_view_slip_without_own_only(self):
        actor = make_staff(permissions={"staff": {"salary": {"view": True}}})
        slip = SalarySlip(staff_id=uuid4(), salary_period_id=uuid4())

        assert PermissionChecker().can_view_slip(actor, slip)
        assert not PermissionChecker().can_view_slip(make_staff(), slip)

    def test_admin_ignores_own_only(self):
        actor = make_staff(
            role="Director",
            permissions={"staff": {"salary": {"view": True, "own_only": True}}},
        )
        slip = SalarySlip(staff_id=uuid4(), salary_period_id=uuid4())

        assert PermissionChecker().can_view_slip(actor, slip)
