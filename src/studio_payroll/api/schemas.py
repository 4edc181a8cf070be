"""Pydantic schemas for API request/response models.

Every response is an envelope carrying ``success`` and ``error``.
"""

from datetime import date, datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from studio_payroll.calculators.kpi_rule import RewardType
from studio_payroll.calculators.types import ItemSource, SalaryItemType


class Envelope(BaseModel):
    """Common response envelope."""

    success: bool = True
    error: str | None = None


class ErrorResponse(BaseModel):
    """Schema for error response."""

    success: bool = False
    error: str
    code: str | None = None
    context: dict[str, Any] | None = None


# ============================================================================
# Period schemas
# ============================================================================


class PeriodCreate(BaseModel):
    """Schema for opening a salary period."""

    month: int = Field(ge=1, le=12)
    year: int = Field(ge=1900, le=9999)


class PeriodResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    salary_period_id: UUID
    month: int
    year: int
    start_date: date
    end_date: date
    status: str


class PeriodEnvelope(Envelope):
    period: PeriodResponse


class PeriodListResponse(Envelope):
    items: list[PeriodResponse]
    total: int


# ============================================================================
# Sync / carry-forward schemas
# ============================================================================


class SyncRequest(BaseModel):
    """Sync one staff member when ``staff_id`` is set, otherwise everyone eligible."""

    staff_id: UUID | None = None


class SyncFailureResponse(BaseModel):
    staff_id: UUID
    error: str


class SyncResponse(Envelope):
    slips_updated: int
    failures: list[SyncFailureResponse] = Field(default_factory=list)


class CopyAllowancesResponse(Envelope):
    count: int


# ============================================================================
# Slip and item schemas
# ============================================================================


class SlipCreate(BaseModel):
    period_id: UUID
    staff_id: UUID


class SlipResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    salary_slip_id: UUID
    staff_id: UUID
    salary_period_id: UUID
    total_earnings: int
    total_deductions: int
    net_pay: int
    note: str | None = None
    staff_name: str | None = None


class SlipEnvelope(Envelope):
    slip: SlipResponse


class SlipListResponse(Envelope):
    items: list[SlipResponse]
    total: int


class SalaryItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    salary_item_id: UUID
    salary_slip_id: UUID
    type: str
    title: str
    amount: int
    source: str
    ref_id: str | None = None
    meta_json: dict[str, Any] | None = None
    created_at: datetime | None = None
    staff_id: UUID | None = None


class SlipDetailResponse(Envelope):
    slip: SlipResponse
    items: list[SalaryItemResponse]


class ItemListResponse(Envelope):
    items: list[SalaryItemResponse]
    total: int


class ItemCreate(BaseModel):
    """Schema for adding a ledger item; the sign is normalized by type."""

    type: SalaryItemType
    title: str = Field(min_length=1)
    amount: int
    source: ItemSource = ItemSource.MANUAL
    ref_id: str | None = None


class KpiCreate(BaseModel):
    """Manual KPI (title + amount) or auto KPI (target + reward)."""

    mode: Literal["manual", "auto"] = "manual"
    title: str | None = None
    amount: int | None = None
    target_revenue: int | None = None
    reward_magnitude: int | None = None
    reward_type: RewardType = RewardType.FIXED


class TotalsResponse(BaseModel):
    total_earnings: int
    total_deductions: int
    net_pay: int


class ItemEnvelope(Envelope):
    item: SalaryItemResponse


class DeleteItemResponse(Envelope):
    totals: TotalsResponse


# ============================================================================
# Finalization schemas
# ============================================================================


class TransactionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    transaction_id: UUID
    type: str
    main_category: str
    category: str
    amount: int
    description: str
    txn_date: date
    staff_id: UUID | None = None
    vendor: str | None = None


class FinalizeResponse(Envelope):
    transaction: TransactionResponse
