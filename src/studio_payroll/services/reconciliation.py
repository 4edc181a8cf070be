"""Reconciliation of auto-generated ledger items against desired candidates.

The sync pass computes the complete desired set of fact-derived items for one
slip, diffs it against what the ledger holds, and applies the difference in a
single flush. Manual, allowance, transaction and manual-KPI items are never in
scope; auto-KPI items are only ever updated in place.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from studio_payroll.calculators.kpi_rule import AutoKpiRule, KpiResolver, parse_item_meta
from studio_payroll.calculators.types import FACT_SOURCES, ItemCandidate, ItemSource, SalaryItemType
from studio_payroll.models import SalaryItem
from studio_payroll.services.errors import ExternalFailureError

logger = logging.getLogger(__name__)

_FACT_SOURCE_VALUES = frozenset(source.value for source in FACT_SOURCES)


@dataclass(frozen=True)
class ItemUpdate:
    """New title/amount (and optionally metadata) for an existing item."""

    item: SalaryItem
    title: str
    amount: int
    meta: dict | None = None


@dataclass
class ReconcilePlan:
    """Inserts, updates and deletes needed to reach the desired state."""

    inserts: list[ItemCandidate] = field(default_factory=list)
    updates: list[ItemUpdate] = field(default_factory=list)
    deletes: list[SalaryItem] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.inserts or self.updates or self.deletes)

    def summary(self) -> str:
        return f"+{len(self.inserts)} ~{len(self.updates)} -{len(self.deletes)}"


def is_fact_item(item: SalaryItem) -> bool:
    return item.source in _FACT_SOURCE_VALUES


def auto_kpi_rule(item: SalaryItem) -> AutoKpiRule | None:
    """The auto rule on a KPI item, or None for manual/other items."""
    if item.type != SalaryItemType.KPI.value or item.source != ItemSource.KPI.value:
        return None
    meta = parse_item_meta(item.meta_json, item.ref_id)
    return meta if isinstance(meta, AutoKpiRule) else None


def build_plan(
    existing_items: list[SalaryItem],
    candidates: list[ItemCandidate],
    actual_revenue: int,
    resolver: KpiResolver,
) -> ReconcilePlan:
    """Diff the ledger against the desired fact items and resolved KPIs.

    Fact items are matched on (source, ref_id). A duplicate existing row for
    the same key is deleted so the ledger converges to one row per key.
    """
    plan = ReconcilePlan()

    desired: dict[tuple[str, str], ItemCandidate] = {}
    for candidate in candidates:
        desired[candidate.key] = candidate

    matched: set[tuple[str, str]] = set()
    for item in existing_items:
        if is_fact_item(item):
            key = (item.source, item.ref_id or "")
            candidate = desired.get(key)
            if candidate is None or key in matched:
                plan.deletes.append(item)
                continue
            matched.add(key)
            if item.title != candidate.title or item.amount != candidate.amount:
                plan.updates.append(ItemUpdate(item, candidate.title, candidate.amount))
            continue

        rule = auto_kpi_rule(item)
        if rule is None:
            continue
        resolution = resolver.resolve(rule, actual_revenue)
        meta = rule.model_dump(mode="json")
        if (
            item.title != resolution.title
            or item.amount != resolution.amount
            or item.meta_json != meta
        ):
            plan.updates.append(ItemUpdate(item, resolution.title, resolution.amount, meta))

    plan.inserts.extend(c for key, c in desired.items() if key not in matched)
    return plan


async def apply_plan(session: AsyncSession, slip_id: UUID, plan: ReconcilePlan) -> None:
    """Write the plan in one flush."""
    if plan.is_empty:
        return
    for candidate in plan.inserts:
        session.add(
            SalaryItem(
                salary_slip_id=slip_id,
                type=candidate.item_type.value,
                title=candidate.title,
                amount=candidate.amount,
                source=candidate.source.value,
                ref_id=candidate.ref_id,
                meta_json=candidate.meta,
            )
        )
    for update in plan.updates:
        update.item.title = update.title
        update.item.amount = update.amount
        if update.meta is not None:
            update.item.meta_json = update.meta
    for item in plan.deletes:
        await session.delete(item)

    try:
        await session.flush()
    except SQLAlchemyError as e:
        raise ExternalFailureError(f"apply reconcile plan for slip {slip_id}", e) from e
    logger.debug("Applied reconcile plan %s to slip %s", plan.summary(), slip_id)
