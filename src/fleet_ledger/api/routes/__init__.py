"""API routes."""

from fleet_ledger.api.routes.agreements import router as agreements_router
from fleet_ledger.api.routes.fines import router as fines_router
from fleet_ledger.api.routes.health import router as health_router
from fleet_ledger.api.routes.late_fee import router as late_fee_router

__all__ = ["agreements_router", "fines_router", "health_router", "late_fee_router"]
