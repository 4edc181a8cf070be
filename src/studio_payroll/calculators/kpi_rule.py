"""KPI rule metadata and the revenue-threshold resolver.

A KPI item's metadata is a tagged union stored in ``salary_item.meta_json``:

- ``{"kind": "manual"}``: a fixed bonus typed in by an administrator
- ``{"kind": "auto_kpi", ...}``: a revenue-threshold bonus recomputed on every sync

The legacy ``KPI_AUTO_{target}_{reward}_{type}`` token is still written to
``ref_id`` so older readers can trace the rule.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, ClassVar, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from studio_payroll.calculators.line_builder import ItemBuilder


class RewardType(str, Enum):
    """How an auto-KPI reward magnitude is interpreted."""

    FIXED = "FIXED"
    PERCENT = "PERCENT"


class InvalidKpiRuleError(ValueError):
    """Raised when a KPI rule has a non-positive target or reward."""


class ManualKpi(BaseModel):
    """Static bonus; the resolver leaves it alone."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["manual"] = "manual"


class AutoKpiRule(BaseModel):
    """Revenue-threshold bonus rule."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["auto_kpi"] = "auto_kpi"
    target_revenue: int
    reward_magnitude: int
    reward_type: RewardType = RewardType.FIXED

    TOKEN_PREFIX: ClassVar[str] = "KPI_AUTO"

    def validate_for_creation(self) -> AutoKpiRule:
        """Check the creation-time invariant (target and reward positive)."""
        if self.target_revenue <= 0 or self.reward_magnitude <= 0:
            raise InvalidKpiRuleError(
                "KPI target revenue and reward must both be greater than zero "
                f"(target={self.target_revenue}, reward={self.reward_magnitude})"
            )
        return self

    def to_ref_token(self) -> str:
        return (
            f"{self.TOKEN_PREFIX}_{self.target_revenue}_"
            f"{self.reward_magnitude}_{self.reward_type.value}"
        )

    @classmethod
    def from_ref_token(cls, token: str | None) -> AutoKpiRule | None:
        """Parse a legacy ``KPI_AUTO_{target}_{reward}_{type}`` token."""
        if not token:
            return None
        match = _LEGACY_TOKEN.fullmatch(token.strip())
        if match is None:
            return None
        return cls(
            target_revenue=int(match.group("target")),
            reward_magnitude=int(match.group("reward")),
            reward_type=RewardType(match.group("type")),
        )


_LEGACY_TOKEN = re.compile(r"KPI_AUTO_(?P<target>\d+)_(?P<reward>\d+)_(?P<type>FIXED|PERCENT)")

KpiMeta = Annotated[Union[ManualKpi, AutoKpiRule], Field(discriminator="kind")]
_kpi_meta_adapter: TypeAdapter[ManualKpi | AutoKpiRule] = TypeAdapter(KpiMeta)


def parse_item_meta(
    meta_json: dict[str, Any] | None,
    ref_id: str | None = None,
) -> ManualKpi | AutoKpiRule:
    """Read an item's KPI metadata.

    Rows written before metadata existed only carry the legacy token in
    ``ref_id``; they are read as auto rules. Anything else is manual.
    """
    if meta_json:
        try:
            return _kpi_meta_adapter.validate_python(meta_json)
        except ValidationError:
            pass
    legacy = AutoKpiRule.from_ref_token(ref_id)
    if legacy is not None:
        return legacy
    return ManualKpi()


def dump_item_meta(meta: ManualKpi | AutoKpiRule) -> dict[str, Any]:
    return meta.model_dump(mode="json")


@dataclass(frozen=True)
class KpiResolution:
    """Outcome of resolving one auto-KPI rule against period revenue."""

    met: bool
    amount: int
    actual_revenue: int
    title: str


class KpiResolver:
    """Resolves auto-KPI rewards from the staff member's period revenue.

    - revenue < target: reward 0, title marks the target as not met
    - FIXED: reward = magnitude
    - PERCENT: reward = round_half_up(revenue * magnitude / 100)
    """

    def __init__(self, currency_symbol: str = "đ"):
        self.currency_symbol = currency_symbol

    def resolve(self, rule: AutoKpiRule, actual_revenue: int) -> KpiResolution:
        # A rule with a non-positive target or reward never pays
        valid = rule.target_revenue > 0 and rule.reward_magnitude > 0
        met = valid and actual_revenue >= rule.target_revenue
        if not met:
            amount = 0
        elif rule.reward_type == RewardType.FIXED:
            amount = rule.reward_magnitude
        else:
            amount = ItemBuilder.percent_of(actual_revenue, Decimal(rule.reward_magnitude))

        return KpiResolution(
            met=met,
            amount=amount,
            actual_revenue=actual_revenue,
            title=self.title_for(rule, actual_revenue, met),
        )

    def title_for(self, rule: AutoKpiRule, actual_revenue: int, met: bool) -> str:
        target = ItemBuilder.format_money(rule.target_revenue, self.currency_symbol)
        revenue = ItemBuilder.format_money(actual_revenue, self.currency_symbol)
        if rule.reward_type == RewardType.PERCENT:
            reward = f"{rule.reward_magnitude}% of revenue"
        else:
            reward = ItemBuilder.format_money(rule.reward_magnitude, self.currency_symbol)
        status = "met" if met else "not met"
        return f"Sales bonus > {target} ({reward}) [{status}: revenue {revenue}]"

    def pending_title(self, rule: AutoKpiRule) -> str:
        target = ItemBuilder.format_money(rule.target_revenue, self.currency_symbol)
        return f"Sales bonus > {target} [calculating...]"
