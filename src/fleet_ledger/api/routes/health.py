"""Health check endpoints."""

import logging
from datetime import datetime, timezone
from decimal import Decimal

from fastapi import APIRouter, status
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from fleet_ledger.api.dependencies import Config, DbSession
from fleet_ledger.config import get_settings

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    timestamp: datetime
    database: str


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
)
async def health_check(db: DbSession) -> HealthResponse:
    """Check API and database health."""
    db_status = "unhealthy"
    try:
        await db.execute(text("SELECT 1"))
        db_status = "healthy"
    except SQLAlchemyError:
        logger.warning("Database health check failed", exc_info=True)

    return HealthResponse(
        status="healthy" if db_status == "healthy" else "degraded",
        timestamp=datetime.now(timezone.utc),
        database=db_status,
    )


class ReadinessResponse(BaseModel):
    """Readiness plus the engine build and late fee policy in force."""

    status: str
    engine_version: str
    default_daily_late_fee: Decimal
    late_fee_cap: Decimal


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    status_code=status.HTTP_200_OK,
)
async def readiness_check(config: Config) -> ReadinessResponse:
    """Readiness check for container orchestration."""
    return ReadinessResponse(
        status="ready",
        engine_version=get_settings().engine_version,
        default_daily_late_fee=config.default_daily_late_fee,
        late_fee_cap=config.late_fee_cap,
    )


@router.get("/live", status_code=status.HTTP_200_OK)
async def liveness_check() -> dict[str, str]:
    """Liveness check for container orchestration."""
    return {"status": "alive"}
