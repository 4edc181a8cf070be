"""Configuration management for the studio payroll engine."""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv


def _split_csv(value: str) -> tuple[str, ...]:
    return tuple(part.strip() for part in value.split(",") if part.strip())


@dataclass(frozen=True)
class Settings:
    """Application settings.

    Constructed explicitly and passed to the database, services and app
    factory. ``from_env`` is only called by the process entry points.
    """

    database_url: str = "sqlite+aiosqlite:///./studio_payroll.db"
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False
    log_level: str = "INFO"

    # Payroll behaviour
    include_base_salary: bool = True
    eligible_staff_statuses: tuple[str, ...] = ("Active",)
    admin_roles: tuple[str, ...] = ("Director",)
    admin_usernames: tuple[str, ...] = ("admin",)
    currency_symbol: str = "đ"

    # Disbursement transaction labels
    payout_main_category: str = "Staff salary"
    payout_category: str = "Salary payment"
    payout_vendor: str = "Bank transfer"

    @classmethod
    def from_env(cls) -> Settings:
        """Load settings from environment variables (and a .env file)."""
        load_dotenv()

        return cls(
            database_url=os.getenv(
                "DATABASE_URL",
                "sqlite+aiosqlite:///./studio_payroll.db",
            ),
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "8000")),
            debug=os.getenv("DEBUG", "false").lower() == "true",
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            include_base_salary=os.getenv("INCLUDE_BASE_SALARY", "true").lower() == "true",
            eligible_staff_statuses=_split_csv(
                os.getenv("ELIGIBLE_STAFF_STATUSES", "Active")
            ),
            admin_roles=_split_csv(os.getenv("ADMIN_ROLES", "Director")),
            admin_usernames=_split_csv(os.getenv("ADMIN_USERNAMES", "admin")),
            currency_symbol=os.getenv("CURRENCY_SYMBOL", "đ"),
            payout_main_category=os.getenv("PAYOUT_MAIN_CATEGORY", "Staff salary"),
            payout_category=os.getenv("PAYOUT_CATEGORY", "Salary payment"),
            payout_vendor=os.getenv("PAYOUT_VENDOR", "Bank transfer"),
        )
