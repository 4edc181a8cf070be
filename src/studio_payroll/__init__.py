"""Studio payroll engine: periods, Magic Sync aggregation, carry-forward and disbursement."""

__version__ = "0.1.0"
