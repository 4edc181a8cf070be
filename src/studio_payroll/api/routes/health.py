"""Health check endpoints."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from studio_payroll import __version__
from studio_payroll.api.dependencies import DbSession
from studio_payroll.models import SalaryPeriod

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Service status plus the most recent salary period, if any."""

    status: str
    version: str
    timestamp: datetime
    database: str
    latest_period: str | None = None


async def _latest_period(db: DbSession) -> str | None:
    result = await db.execute(
        select(SalaryPeriod.month, SalaryPeriod.year)
        .order_by(SalaryPeriod.year.desc(), SalaryPeriod.month.desc())
        .limit(1)
    )
    row = result.first()
    return f"{row.month}/{row.year}" if row else None


@router.get("/health", response_model=HealthResponse)
async def health_check(db: DbSession) -> HealthResponse:
    """Report database reachability; never fails the request itself."""
    latest = None
    try:
        latest = await _latest_period(db)
        db_status = "healthy"
    except SQLAlchemyError:
        logger.warning("Payroll database unreachable", exc_info=True)
        db_status = "unhealthy"

    return HealthResponse(
        status="healthy" if db_status == "healthy" else "degraded",
        version=__version__,
        timestamp=datetime.now(timezone.utc),
        database=db_status,
        latest_period=latest,
    )


@router.get("/ready")
async def readiness_check(db: DbSession) -> JSONResponse:
    """Ready once the payroll tables can be queried."""
    try:
        await db.execute(select(func.count()).select_from(SalaryPeriod))
    except SQLAlchemyError:
        logger.warning("Payroll schema not ready", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not_ready"},
        )
    return JSONResponse(content={"status": "ready"})


@router.get("/live")
async def liveness_check() -> dict[str, str]:
    return {"status": "alive"}
