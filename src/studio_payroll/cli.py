"""Payroll Command Line Interface.

Operator tools for running payroll without the HTTP API:
- Create tables
- Open a salary period
- Sync slips for a period (all staff or one)
- Copy last month's allowances
- Finalize a slip

Usage:
    studio-payroll init-db
    studio-payroll open-period --month 1 --year 2025
    studio-payroll sync --period-id X [--staff-id Y]
    studio-payroll copy-allowances --period-id X
    studio-payroll finalize --slip-id X

Every command prints a JSON envelope ``{"success": ..., "error": ...}``.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from collections.abc import Awaitable, Callable
from dataclasses import asdict
from typing import Any
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError

from studio_payroll.config import Settings
from studio_payroll.database import Database
from studio_payroll.services.allowance_service import AllowanceService
from studio_payroll.services.errors import ExternalFailureError, PayrollError
from studio_payroll.services.finalization_service import FinalizationService
from studio_payroll.services.period_service import PeriodService
from studio_payroll.services.sync_service import PayrollSyncService

logger = logging.getLogger(__name__)


def parse_uuid(s: str) -> UUID:
    """Parse UUID string."""
    return UUID(s)


class PayrollCli:
    """Payroll Command Line Interface."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings
        self.parser = self._build_parser()

    def _build_parser(self) -> argparse.ArgumentParser:
        """Build argument parser."""
        parser = argparse.ArgumentParser(
            prog="studio-payroll",
            description="Studio payroll operational tools",
        )
        subparsers = parser.add_subparsers(dest="command", help="Commands")

        subparsers.add_parser("init-db", help="Create all tables")

        open_period = subparsers.add_parser(
            "open-period",
            help="Open (or look up) the salary period for a month",
        )
        open_period.add_argument("--month", type=int, required=True, help="Month (1-12)")
        open_period.add_argument("--year", type=int, required=True, help="Year")

        sync = subparsers.add_parser(
            "sync",
            help="Recompute auto items and totals for a period",
        )
        sync.add_argument("--period-id", type=parse_uuid, required=True, help="Salary period ID")
        sync.add_argument(
            "--staff-id",
            type=parse_uuid,
            help="Only sync this staff member (default: every eligible staff member)",
        )

        copy = subparsers.add_parser(
            "copy-allowances",
            help="Copy the previous period's allowances into this period",
        )
        copy.add_argument("--period-id", type=parse_uuid, required=True, help="Salary period ID")

        finalize = subparsers.add_parser(
            "finalize",
            help="Record the net-pay disbursement for a slip",
        )
        finalize.add_argument("--slip-id", type=parse_uuid, required=True, help="Salary slip ID")

        return parser

    def run(self, args: list[str] | None = None) -> int:
        """Run the CLI with given arguments."""
        parsed = self.parser.parse_args(args)

        if not parsed.command:
            self.parser.print_help()
            return 1

        settings = self.settings or Settings.from_env()
        logging.basicConfig(level=settings.log_level)

        # Dispatch to command handler
        handlers: dict[str, Callable[[Database, argparse.Namespace], Awaitable[dict[str, Any]]]] = {
            "init-db": self._cmd_init_db,
            "open-period": self._cmd_open_period,
            "sync": self._cmd_sync,
            "copy-allowances": self._cmd_copy_allowances,
            "finalize": self._cmd_finalize,
        }

        handler = handlers.get(parsed.command)
        if handler is None:
            print(f"Unknown command: {parsed.command}", file=sys.stderr)
            return 1

        envelope = asyncio.run(self._execute(settings, handler, parsed))
        print(json.dumps(envelope, default=str, ensure_ascii=False, indent=2))
        return 0 if envelope.get("success") else 1

    async def _execute(
        self,
        settings: Settings,
        handler: Callable[[Database, argparse.Namespace], Awaitable[dict[str, Any]]],
        args: argparse.Namespace,
    ) -> dict[str, Any]:
        database = Database(settings)
        try:
            return await handler(database, args)
        except SQLAlchemyError as e:
            logger.warning("Storage failure during %s", args.command, exc_info=True)
            failure = ExternalFailureError(args.command, e)
            return {"success": False, "error": str(failure), "code": failure.code}
        except PayrollError as e:
            return {"success": False, "error": str(e), "code": e.code}
        finally:
            await database.dispose()

    async def _cmd_init_db(self, database: Database, args: argparse.Namespace) -> dict[str, Any]:
        await database.create_all()
        return {"success": True, "error": None}

    async def _cmd_open_period(self, database: Database, args: argparse.Namespace) -> dict[str, Any]:
        async with database.session() as session:
            period = await PeriodService(session).open_or_get_period(args.month, args.year)
        return {
            "success": True,
            "error": None,
            "period": {
                "salary_period_id": period.salary_period_id,
                "month": period.month,
                "year": period.year,
                "start_date": period.start_date,
                "end_date": period.end_date,
                "status": period.status,
            },
        }

    async def _cmd_sync(self, database: Database, args: argparse.Namespace) -> dict[str, Any]:
        sync = PayrollSyncService(database.session_factory, database.settings)
        result = await sync.sync_payroll(args.period_id, args.staff_id)
        return {
            "success": result.success,
            "error": result.error,
            "slips_updated": result.slips_updated,
            "failures": [asdict(f) for f in result.failures],
        }

    async def _cmd_copy_allowances(self, database: Database, args: argparse.Namespace) -> dict[str, Any]:
        async with database.session() as session:
            period = await PeriodService(session).get_period(args.period_id)
            result = await AllowanceService(session).copy_previous_allowances(
                period.salary_period_id, period.month, period.year
            )
        return {"success": result.success, "error": None, "count": result.count}

    async def _cmd_finalize(self, database: Database, args: argparse.Namespace) -> dict[str, Any]:
        async with database.session() as session:
            transaction = await FinalizationService(session, database.settings).finalize_slip(
                args.slip_id
            )
        return {
            "success": True,
            "error": None,
            "transaction": {
                "transaction_id": transaction.transaction_id,
                "amount": transaction.amount,
                "description": transaction.description,
                "txn_date": transaction.txn_date,
            },
        }


def main() -> int:
    """CLI entry point."""
    cli = PayrollCli()
    return cli.run()


if __name__ == "__main__":
    sys.exit(main())
