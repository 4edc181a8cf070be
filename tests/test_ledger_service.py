"""Tests for the salary item ledger."""

from uuid import uuid4

import pytest
import pytest_asyncio

from studio_payroll.calculators.types import ItemSource, SalaryItemType
from studio_payroll.database import Database
from studio_payroll.models import SalaryItem
from studio_payroll.services.errors import InvalidStateError, NotFoundError
from studio_payroll.services.ledger_service import LedgerService


@pytest_asyncio.fixture
async def slip_setup(database: Database, studio):
    """One staff member with an empty slip in January 2025."""
    staff = await studio.staff("Lan")
    period = await studio.period(1, 2025)
    async with database.session() as session:
        slip = await LedgerService(session).initialize_salary_slip(
            period.salary_period_id, staff.staff_id
        )
    return staff, period, slip


class TestInitializeSlip:
    """Get-or-create of slips."""

    async def test_idempotent(self, database: Database, slip_setup):
        staff, period, slip = slip_setup
        async with database.session() as session:
            again = await LedgerService(session).initialize_salary_slip(
                period.salary_period_id, staff.staff_id
            )

        assert again.salary_slip_id == slip.salary_slip_id
        assert (again.total_earnings, again.total_deductions, again.net_pay) == (0, 0, 0)

    async def test_unknown_staff_or_period(self, database: Database, slip_setup):
        staff, period, _ = slip_setup
        async with database.session() as session:
            ledger = LedgerService(session)
            with pytest.raises(NotFoundError):
                await ledger.initialize_salary_slip(period.salary_period_id, uuid4())
            with pytest.raises(NotFoundError):
                await ledger.initialize_salary_slip(uuid4(), staff.staff_id)


class TestSaveSalaryItem:
    """Inserting items keeps signs and totals consistent."""

    async def test_sign_normalized_and_totals_recomputed(self, database: Database, slip_setup):
        _, _, slip = slip_setup
        async with database.session() as session:
            ledger = LedgerService(session)
            reward = await ledger.save_salary_item(slip.salary_slip_id, "REWARD", "Best album", -700_000)
            penalty = await ledger.save_salary_item(
                slip.salary_slip_id, SalaryItemType.PENALTY, "Late", 100_000, source=ItemSource.NOI_QUY
            )
            advance = await ledger.save_salary_item(slip.salary_slip_id, "ADVANCE", "Mid-month", 200_000)
            adjust = await ledger.save_salary_item(slip.salary_slip_id, "ADJUST", "Fix", -50_000)
            current = await ledger.get_slip(slip.salary_slip_id)

        assert reward.amount == 700_000
        assert penalty.amount == -100_000
        assert penalty.source == "noi_quy"
        assert advance.amount == -200_000
        assert adjust.amount == -50_000
        assert current.total_earnings == 700_000
        assert current.total_deductions == 350_000
        assert current.net_pay == 350_000

    async def test_unknown_slip(self, database: Database):
        async with database.session() as session:
            with pytest.raises(NotFoundError):
                await LedgerService(session).save_salary_item(uuid4(), "REWARD", "x", 1)

    async def test_unknown_type_rejected(self, database: Database, slip_setup):
        _, _, slip = slip_setup
        async with database.session() as session:
            with pytest.raises(InvalidStateError):
                await LedgerService(session).save_salary_item(slip.salary_slip_id, "BONUS", "x", 1)


class TestKpiItems:
    """Manual and auto KPI entry."""

    async def test_manual_kpi(self, database: Database, slip_setup):
        _, _, slip = slip_setup
        async with database.session() as session:
            item = await LedgerService(session).add_manual_kpi(slip.salary_slip_id, "Best month", 500_000)

        assert item.type == "KPI"
        assert item.source == "kpi"
        assert item.title == "KPI: Best month"
        assert item.amount == 500_000
        assert item.meta_json == {"kind": "manual"}

    async def test_auto_kpi_starts_at_zero(self, database: Database, slip_setup):
        _, _, slip = slip_setup
        async with database.session() as session:
            item = await LedgerService(session).add_auto_kpi(
                slip.salary_slip_id, 50_000_000, 1_000_000, "FIXED"
            )

        assert item.amount == 0
        assert item.ref_id == "KPI_AUTO_50000000_1000000_FIXED"
        assert item.meta_json["kind"] == "auto_kpi"
        assert item.meta_json["target_revenue"] == 50_000_000
        assert "calculating" in item.title

    async def test_auto_kpi_requires_positive_values(self, database: Database, slip_setup):
        _, _, slip = slip_setup
        async with database.session() as session:
            ledger = LedgerService(session)
            with pytest.raises(InvalidStateError):
                await ledger.add_auto_kpi(slip.salary_slip_id, 0, 1_000_000)
            with pytest.raises(InvalidStateError):
                await ledger.add_auto_kpi(slip.salary_slip_id, 50_000_000, 0)

    async def test_ref_token_rule_validated(self, database: Database, slip_setup):
        """A KPI saved with a raw token is held to the same rule checks."""
        _, _, slip = slip_setup
        async with database.session() as session:
            ledger = LedgerService(session)
            with pytest.raises(InvalidStateError):
                await ledger.save_salary_item(
                    slip.salary_slip_id,
                    "KPI",
                    "Sales bonus",
                    0,
                    source="kpi",
                    ref_id="KPI_AUTO_0_5000000_FIXED",
                )
            item = await ledger.save_salary_item(
                slip.salary_slip_id,
                "KPI",
                "Sales bonus",
                0,
                source="kpi",
                ref_id="KPI_AUTO_50000000_1000000_PERCENT",
            )

        assert item.meta_json == {
            "kind": "auto_kpi",
            "target_revenue": 50_000_000,
            "reward_magnitude": 1_000_000,
            "reward_type": "PERCENT",
        }


class TestDeleteSalaryItem:
    async def test_delete_recomputes_totals(self, database: Database, slip_setup):
        _, _, slip = slip_setup
        async with database.session() as session:
            ledger = LedgerService(session)
            await ledger.add_allowance(slip.salary_slip_id, "Lunch", 500_000)
            penalty = await ledger.save_salary_item(slip.salary_slip_id, "PENALTY", "Late", 100_000)
            totals = await ledger.delete_salary_item(penalty.salary_item_id)
            items = await ledger.slip_items(slip.salary_slip_id)

        assert totals.total_earnings == 500_000
        assert totals.total_deductions == 0
        assert totals.net_pay == 500_000
        assert [i.title for i in items] == ["Lunch"]

    async def test_delete_unknown_item(self, database: Database):
        async with database.session() as session:
            with pytest.raises(NotFoundError):
                await LedgerService(session).delete_salary_item(uuid4())


class TestReads:
    async def test_period_items_and_slips(self, database: Database, studio, slip_setup):
        staff, period, slip = slip_setup
        other = await studio.staff("Hoa")
        async with database.session() as session:
            ledger = LedgerService(session)
            other_slip = await ledger.initialize_salary_slip(period.salary_period_id, other.staff_id)
            await ledger.add_allowance(slip.salary_slip_id, "Lunch", 500_000)
            await ledger.add_allowance(other_slip.salary_slip_id, "Fuel", 300_000)

        async with database.session() as session:
            ledger = LedgerService(session)
            rows = await ledger.period_items(period.salary_period_id)
            slips = await ledger.period_slips(period.salary_period_id)

        assert {(item.title, staff_id) for item, staff_id in rows} == {
            ("Lunch", staff.staff_id),
            ("Fuel", other.staff_id),
        }
        assert {s.staff.name for s in slips} == {"Lan", "Hoa"}

    async def test_validate_item_signs_on_stored_items(self, database: Database, slip_setup):
        _, _, slip = slip_setup
        async with database.session() as session:
            ledger = LedgerService(session)
            item = await ledger.add_allowance(slip.salary_slip_id, "Lunch", 500_000)
            assert LedgerService.validate_item_signs([item]) == []

        wrong = SalaryItem(type="ADVANCE", title="Bad advance", amount=100)
        assert len(LedgerService.validate_item_signs([item, wrong])) == 1
