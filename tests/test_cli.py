"""Tests for the operator CLI."""

import json

import pytest

from studio_payroll.cli import PayrollCli
from studio_payroll.config import Settings


@pytest.fixture
def cli(tmp_path) -> PayrollCli:
    db_path = tmp_path / "payroll.db"
    return PayrollCli(Settings(database_url=f"sqlite+aiosqlite:///{db_path}"))


def run(cli: PayrollCli, capsys, *args: str) -> tuple[int, dict]:
    code = cli.run(list(args))
    return code, json.loads(capsys.readouterr().out)


class TestPayrollCli:
    def test_no_command_prints_help(self, cli: PayrollCli, capsys):
        assert cli.run([]) == 1
        assert "studio-payroll" in capsys.readouterr().out

    def test_open_period(self, cli: PayrollCli, capsys):
        assert run(cli, capsys, "init-db") == (0, {"success": True, "error": None})

        code, first = run(cli, capsys, "open-period", "--month", "2", "--year", "2024")
        assert code == 0
        assert first["period"]["start_date"] == "2024-02-01"
        assert first["period"]["end_date"] == "2024-02-29"

        _, second = run(cli, capsys, "open-period", "--month", "2", "--year", "2024")
        assert second["period"]["salary_period_id"] == first["period"]["salary_period_id"]

    def test_invalid_month(self, cli: PayrollCli, capsys):
        run(cli, capsys, "init-db")

        code, envelope = run(cli, capsys, "open-period", "--month", "13", "--year", "2024")

        assert code == 1
        assert envelope["success"] is False
        assert envelope["code"] == "INVALID_STATE"

    def test_sync_unknown_period(self, cli: PayrollCli, capsys):
        run(cli, capsys, "init-db")

        code, envelope = run(
            cli, capsys, "sync", "--period-id", "00000000-0000-0000-0000-000000000001"
        )

        assert code == 1
        assert envelope["slips_updated"] == 0
        assert "not found" in envelope["error"]

    def test_copy_allowances_without_previous_period(self, cli: PayrollCli, capsys):
        run(cli, capsys, "init-db")
        _, opened = run(cli, capsys, "open-period", "--month", "1", "--year", "2025")

        code, envelope = run(
            cli, capsys, "copy-allowances", "--period-id", opened["period"]["salary_period_id"]
        )

        assert code == 1
        assert envelope["code"] == "NOT_FOUND"
        assert "12/2024" in envelope["error"]

    def test_unreachable_database(self, tmp_path, capsys):
        missing = tmp_path / "no-such-dir" / "payroll.db"
        cli = PayrollCli(Settings(database_url=f"sqlite+aiosqlite:///{missing}"))

        code, envelope = run(cli, capsys, "init-db")

        assert code == 1
        assert envelope["success"] is False
        assert envelope["code"] == "EXTERNAL_FAILURE"
        assert "init-db" in envelope["error"]
