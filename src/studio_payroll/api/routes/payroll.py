"""Payroll API endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, status

from studio_payroll.api.dependencies import Actor, DatabaseDep, DbSession, Permissions, SettingsDep
from studio_payroll.api.schemas import (
    CopyAllowancesResponse,
    DeleteItemResponse,
    ErrorResponse,
    FinalizeResponse,
    ItemCreate,
    ItemEnvelope,
    ItemListResponse,
    KpiCreate,
    PeriodCreate,
    PeriodEnvelope,
    PeriodListResponse,
    PeriodResponse,
    SalaryItemResponse,
    SlipCreate,
    SlipDetailResponse,
    SlipEnvelope,
    SlipListResponse,
    SlipResponse,
    SyncFailureResponse,
    SyncRequest,
    SyncResponse,
    TotalsResponse,
    TransactionResponse,
)
from studio_payroll.models import SalaryItem, SalarySlip
from studio_payroll.services.allowance_service import AllowanceService
from studio_payroll.services.errors import InvalidStateError, PermissionDeniedError
from studio_payroll.services.finalization_service import FinalizationService
from studio_payroll.services.ledger_service import LedgerService
from studio_payroll.services.period_service import PeriodService
from studio_payroll.services.permissions import PAYROLL_MODULE, PAYROLL_SUB
from studio_payroll.services.sync_service import PayrollSyncService

router = APIRouter(prefix="/payroll", tags=["payroll"])

_errors = {
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}


def _slip_response(slip: SalarySlip, staff_name: str | None = None) -> SlipResponse:
    resp = SlipResponse.model_validate(slip)
    resp.staff_name = staff_name
    return resp


def _item_response(item: SalaryItem, staff_id: UUID | None = None) -> SalaryItemResponse:
    resp = SalaryItemResponse.model_validate(item)
    resp.staff_id = staff_id
    return resp


# ============================================================================
# Periods
# ============================================================================


@router.post(
    "/periods",
    response_model=PeriodEnvelope,
    status_code=status.HTTP_201_CREATED,
    responses=_errors,
)
async def open_period(
    db: DbSession,
    actor: Actor,
    permissions: Permissions,
    payload: PeriodCreate,
) -> PeriodEnvelope:
    """Open the period for a month, or return it if it already exists."""
    permissions.require(actor, "add")
    period = await PeriodService(db).open_or_get_period(payload.month, payload.year)
    await db.commit()
    return PeriodEnvelope(period=PeriodResponse.model_validate(period))


@router.get("/periods", response_model=PeriodListResponse, responses=_errors)
async def list_periods(db: DbSession, actor: Actor, permissions: Permissions) -> PeriodListResponse:
    permissions.require(actor, "view")
    periods = await PeriodService(db).list_periods()
    return PeriodListResponse(
        items=[PeriodResponse.model_validate(p) for p in periods],
        total=len(periods),
    )


@router.post("/periods/{period_id}/sync", response_model=SyncResponse, responses=_errors)
async def sync_period(
    database: DatabaseDep,
    settings: SettingsDep,
    actor: Actor,
    permissions: Permissions,
    period_id: Annotated[UUID, Path()],
    payload: SyncRequest | None = None,
) -> SyncResponse:
    """Run the payroll sync for one staff member or the whole period.

    Per-staff failures are reported in ``failures``; they do not fail the request.
    """
    permissions.require(actor, "edit")
    staff_id = payload.staff_id if payload else None
    result = await PayrollSyncService(database.session_factory, settings).sync_payroll(
        period_id, staff_id
    )
    return SyncResponse(
        success=result.success,
        error=result.error,
        slips_updated=result.slips_updated,
        failures=[SyncFailureResponse(staff_id=f.staff_id, error=f.error) for f in result.failures],
    )


@router.post(
    "/periods/{period_id}/copy-allowances",
    response_model=CopyAllowancesResponse,
    responses=_errors,
)
async def copy_allowances(
    db: DbSession,
    actor: Actor,
    permissions: Permissions,
    period_id: Annotated[UUID, Path()],
) -> CopyAllowancesResponse:
    """Copy last month's allowances into this period's existing slips."""
    permissions.require(actor, "add")
    period = await PeriodService(db).get_period(period_id)
    result = await AllowanceService(db).copy_previous_allowances(
        period.salary_period_id, period.month, period.year
    )
    await db.commit()
    return CopyAllowancesResponse(success=result.success, count=result.count)


@router.get("/periods/{period_id}/slips", response_model=SlipListResponse, responses=_errors)
async def list_period_slips(
    db: DbSession,
    actor: Actor,
    permissions: Permissions,
    period_id: Annotated[UUID, Path()],
) -> SlipListResponse:
    permissions.require(actor, "view")
    slips = await LedgerService(db).period_slips(period_id)
    visible = [s for s in slips if permissions.can_view_slip(actor, s)]
    items = [_slip_response(s, s.staff.name if s.staff else None) for s in visible]
    return SlipListResponse(items=items, total=len(items))


@router.get("/periods/{period_id}/items", response_model=ItemListResponse, responses=_errors)
async def list_period_items(
    db: DbSession,
    actor: Actor,
    permissions: Permissions,
    period_id: Annotated[UUID, Path()],
) -> ItemListResponse:
    permissions.require(actor, "view")
    rows = await LedgerService(db).period_items(period_id)
    if permissions.is_own_only(actor, PAYROLL_MODULE, PAYROLL_SUB):
        rows = [(item, staff_id) for item, staff_id in rows if staff_id == actor.staff_id]
    items = [_item_response(item, staff_id) for item, staff_id in rows]
    return ItemListResponse(items=items, total=len(items))


# ============================================================================
# Slips and items
# ============================================================================


@router.post(
    "/slips",
    response_model=SlipEnvelope,
    status_code=status.HTTP_201_CREATED,
    responses=_errors,
)
async def initialize_slip(
    db: DbSession,
    actor: Actor,
    permissions: Permissions,
    payload: SlipCreate,
) -> SlipEnvelope:
    permissions.require(actor, "add")
    slip = await LedgerService(db).initialize_salary_slip(payload.period_id, payload.staff_id)
    await db.commit()
    return SlipEnvelope(slip=_slip_response(slip))


@router.get("/slips/{slip_id}", response_model=SlipDetailResponse, responses=_errors)
async def get_slip(
    db: DbSession,
    actor: Actor,
    permissions: Permissions,
    slip_id: Annotated[UUID, Path()],
) -> SlipDetailResponse:
    """Get a slip with its items."""
    ledger = LedgerService(db)
    slip = await ledger.get_slip(slip_id)
    if not permissions.can_view_slip(actor, slip):
        raise PermissionDeniedError(PAYROLL_MODULE, "view", PAYROLL_SUB)
    items = await ledger.slip_items(slip_id)
    return SlipDetailResponse(
        slip=_slip_response(slip, slip.staff.name if slip.staff else None),
        items=[_item_response(item, slip.staff_id) for item in items],
    )


@router.post(
    "/slips/{slip_id}/items",
    response_model=ItemEnvelope,
    status_code=status.HTTP_201_CREATED,
    responses=_errors,
)
async def add_item(
    db: DbSession,
    settings: SettingsDep,
    actor: Actor,
    permissions: Permissions,
    slip_id: Annotated[UUID, Path()],
    payload: ItemCreate,
) -> ItemEnvelope:
    permissions.require(actor, "add")
    item = await LedgerService(db, settings.currency_symbol).save_salary_item(
        slip_id,
        payload.type,
        payload.title,
        payload.amount,
        source=payload.source,
        ref_id=payload.ref_id,
    )
    await db.commit()
    return ItemEnvelope(item=_item_response(item))


@router.post(
    "/slips/{slip_id}/kpi",
    response_model=ItemEnvelope,
    status_code=status.HTTP_201_CREATED,
    responses=_errors,
)
async def add_kpi(
    db: DbSession,
    settings: SettingsDep,
    actor: Actor,
    permissions: Permissions,
    slip_id: Annotated[UUID, Path()],
    payload: KpiCreate,
) -> ItemEnvelope:
    """Add a manual KPI bonus or an auto KPI rule resolved on the next sync."""
    permissions.require(actor, "add")
    ledger = LedgerService(db, settings.currency_symbol)
    if payload.mode == "manual":
        if not payload.title or payload.amount is None:
            raise InvalidStateError("Manual KPI requires a title and an amount")
        item = await ledger.add_manual_kpi(slip_id, payload.title, payload.amount)
    else:
        if payload.target_revenue is None or payload.reward_magnitude is None:
            raise InvalidStateError("Auto KPI requires a target revenue and a reward")
        item = await ledger.add_auto_kpi(
            slip_id,
            payload.target_revenue,
            payload.reward_magnitude,
            payload.reward_type,
        )
    await db.commit()
    return ItemEnvelope(item=_item_response(item))


@router.delete("/items/{item_id}", response_model=DeleteItemResponse, responses=_errors)
async def delete_item(
    db: DbSession,
    actor: Actor,
    permissions: Permissions,
    item_id: Annotated[UUID, Path()],
) -> DeleteItemResponse:
    permissions.require(actor, "delete")
    totals = await LedgerService(db).delete_salary_item(item_id)
    await db.commit()
    return DeleteItemResponse(
        totals=TotalsResponse(
            total_earnings=totals.total_earnings,
            total_deductions=totals.total_deductions,
            net_pay=totals.net_pay,
        )
    )


@router.post("/slips/{slip_id}/finalize", response_model=FinalizeResponse, responses=_errors)
async def finalize_slip(
    db: DbSession,
    settings: SettingsDep,
    actor: Actor,
    permissions: Permissions,
    slip_id: Annotated[UUID, Path()],
) -> FinalizeResponse:
    """Record the net-pay disbursement; net pay becomes zero."""
    permissions.require(actor, "edit")
    transaction = await FinalizationService(db, settings).finalize_slip(slip_id)
    await db.commit()
    return FinalizeResponse(transaction=TransactionResponse.model_validate(transaction))
