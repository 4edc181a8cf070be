"""Tests for allowance carry-forward."""

import pytest

from studio_payroll.database import Database
from studio_payroll.services.allowance_service import AllowanceService
from studio_payroll.services.errors import NotFoundError
from studio_payroll.services.ledger_service import LedgerService


async def open_slip(database: Database, period, staff):
    async with database.session() as session:
        return await LedgerService(session).initialize_salary_slip(
            period.salary_period_id, staff.staff_id
        )


class TestCopyPreviousAllowances:
    """Carry-forward from the month before."""

    async def test_january_copies_from_december(self, database: Database, studio):
        lan = await studio.staff("Lan")
        hoa = await studio.staff("Hoa")
        december = await studio.period(12, 2024)
        january = await studio.period(1, 2025)

        lan_dec = await open_slip(database, december, lan)
        hoa_dec = await open_slip(database, december, hoa)
        async with database.session() as session:
            ledger = LedgerService(session)
            await ledger.add_allowance(lan_dec.salary_slip_id, "Lunch", 500_000)
            await ledger.save_salary_item(lan_dec.salary_slip_id, "REWARD", "Not an allowance", 1)
            await ledger.add_allowance(hoa_dec.salary_slip_id, "Fuel", 300_000)
        lan_jan = await open_slip(database, january, lan)

        async with database.session() as session:
            result = await AllowanceService(session).copy_previous_allowances(
                january.salary_period_id, 1, 2025
            )

        # Hoa has no January slip, so only Lan's allowance is copied
        assert result.success is True
        assert result.count == 1

        [copy] = await studio.items(lan_jan.salary_slip_id)
        assert copy.type == "ALLOWANCE"
        assert copy.title == "Lunch"
        assert copy.amount == 500_000
        assert copy.source == "allowance_copy"
        assert copy.ref_id is None

        slip = await studio.slip(january, lan)
        assert slip.total_earnings == 500_000
        assert slip.net_pay == 500_000
        assert await studio.slip(january, hoa) is None

    async def test_copying_twice_duplicates(self, database: Database, studio):
        lan = await studio.staff("Lan")
        march = await studio.period(3, 2025)
        april = await studio.period(4, 2025)
        lan_mar = await open_slip(database, march, lan)
        async with database.session() as session:
            await LedgerService(session).add_allowance(lan_mar.salary_slip_id, "Lunch", 500_000)
        lan_apr = await open_slip(database, april, lan)

        for _ in range(2):
            async with database.session() as session:
                result = await AllowanceService(session).copy_previous_allowances(
                    april.salary_period_id, 4, 2025
                )
            assert result.count == 1

        items = await studio.items(lan_apr.salary_slip_id)
        assert [i.title for i in items] == ["Lunch", "Lunch"]
        assert (await studio.slip(april, lan)).total_earnings == 1_000_000

    async def test_missing_previous_period(self, database: Database, studio):
        january = await studio.period(1, 2025)

        async with database.session() as session:
            with pytest.raises(NotFoundError) as exc_info:
                await AllowanceService(session).copy_previous_allowances(
                    january.salary_period_id, 1, 2025
                )

        assert exc_info.value.key == "12/2024"

    async def test_empty_previous_period(self, database: Database, studio):
        lan = await studio.staff("Lan")
        await studio.period(5, 2025)
        june = await studio.period(6, 2025)
        await open_slip(database, june, lan)

        async with database.session() as session:
            result = await AllowanceService(session).copy_previous_allowances(
                june.salary_period_id, 6, 2025
            )

        assert result.success is True
        assert result.count == 0
