"""Late fee computation endpoint."""

from datetime import date
from decimal import Decimal
from typing import Annotated

from fastapi import APIRouter, Query

from fleet_ledger.api.dependencies import Config
from fleet_ledger.api.schemas import ErrorResponse, LateFeeResponse
from fleet_ledger.calculators.late_fee import compute_late_fee

router = APIRouter(prefix="/late-fee", tags=["late-fee"])


@router.get(
    "",
    response_model=LateFeeResponse,
    responses={422: {"model": ErrorResponse}},
)
async def get_late_fee(
    config: Config,
    payment_date: Annotated[date, Query()],
    daily_rate: Annotated[Decimal | None, Query()] = None,
    cap_amount: Annotated[Decimal | None, Query()] = None,
) -> LateFeeResponse:
    """Compute the late fee for a rent payment date."""
    rate = config.default_daily_late_fee if daily_rate is None else daily_rate
    cap = config.late_fee_cap if cap_amount is None else cap_amount
    fee = compute_late_fee(payment_date, rate, cap)
    return LateFeeResponse(
        payment_date=payment_date,
        daily_rate=rate,
        cap_amount=cap,
        days_late=fee.days_late,
        fee_amount=fee.fee_amount,
        is_late=fee.is_late,
    )
