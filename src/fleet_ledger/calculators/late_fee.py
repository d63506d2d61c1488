"""Late fee computation for monthly rent.

Rent falls due on the 1st of each month. A payment on the 1st is on time;
each day after the 1st accrues one day of fee, up to a cap covering one
rental period.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from fleet_ledger.config import DEFAULT_DAILY_LATE_FEE, DEFAULT_LATE_FEE_CAP
from fleet_ledger.errors import InvalidDateError, InvalidRateError, as_decimal

GRACE_DAY = 1


@dataclass(frozen=True)
class LateFee:
    """Result of a late fee computation."""

    days_late: int
    fee_amount: Decimal

    @property
    def is_late(self) -> bool:
        return self.days_late > 0


def compute_late_fee(
    payment_date: date,
    daily_rate: Decimal | int | str = DEFAULT_DAILY_LATE_FEE,
    cap_amount: Decimal | int | str = DEFAULT_LATE_FEE_CAP,
) -> LateFee:
    """Compute days late and the capped fee for a rent payment.

    Args:
        payment_date: Date the payment was made
        daily_rate: Fee charged per day after the grace day
        cap_amount: Maximum fee for the period

    Returns:
        LateFee with days_late and fee_amount

    Raises:
        InvalidDateError: If payment_date is not a date
        InvalidRateError: If daily_rate or cap_amount is negative or not numeric
    """
    if isinstance(payment_date, datetime):
        payment_date = payment_date.date()
    if not isinstance(payment_date, date):
        raise InvalidDateError("payment_date", payment_date)

    rate = as_decimal(daily_rate, "daily_rate")
    cap = as_decimal(cap_amount, "cap_amount")
    if rate < 0:
        raise InvalidRateError("daily_rate", daily_rate)
    if cap < 0:
        raise InvalidRateError("cap_amount", cap_amount)

    if payment_date.day <= GRACE_DAY:
        return LateFee(days_late=0, fee_amount=Decimal("0"))

    days_late = payment_date.day - GRACE_DAY
    return LateFee(days_late=days_late, fee_amount=min(days_late * rate, cap))


def due_date_for(payment_date: date) -> date:
    """The 1st of the month a payment belongs to."""
    return payment_date.replace(day=1)


def resolve_daily_rate(agreement_rate: Any, default: Decimal = DEFAULT_DAILY_LATE_FEE) -> Decimal:
    """Agreement's own daily rate, falling back to the default when unset or zero."""
    if agreement_rate is None:
        return default
    rate = as_decimal(agreement_rate, "daily_late_fee")
    return rate if rate > 0 else default
