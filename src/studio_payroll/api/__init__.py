"""HTTP API for the payroll engine."""

from studio_payroll.api.app import create_app

__all__ = ["create_app"]
