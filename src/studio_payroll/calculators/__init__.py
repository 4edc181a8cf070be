"""Payroll aggregation calculators."""

from studio_payroll.calculators.aggregators import (
    CommissionAggregator,
    FixedSalaryAggregator,
    TaskWageAggregator,
    collect_candidates,
)
from studio_payroll.calculators.kpi_rule import AutoKpiRule, KpiResolver, ManualKpi, RewardType
from studio_payroll.calculators.line_builder import ItemBuilder

__all__ = [
    "CommissionAggregator",
    "FixedSalaryAggregator",
    "TaskWageAggregator",
    "collect_candidates",
    "AutoKpiRule",
    "KpiResolver",
    "ManualKpi",
    "RewardType",
    "ItemBuilder",
]
