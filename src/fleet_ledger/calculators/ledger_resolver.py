"""Payment ledger resolution.

Turns an incoming payment, plus the entry it is applied to (if any), into
the amounts and status to persist. Pure computation; the caller persists.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from fleet_ledger.domain.types import LedgerEntry, PaymentStatus
from fleet_ledger.errors import InvalidDateError, InvalidPaymentAmountError, as_decimal

ZERO = Decimal("0")


class LedgerAction(str, Enum):
    """What the caller must do with a LedgerUpdate."""

    CREATE = "create"
    UPDATE = "update"


@dataclass(frozen=True)
class IncomingPayment:
    """A payment event as entered by staff."""

    amount: Decimal
    payment_date: date
    method: str = "cash"


@dataclass(frozen=True)
class LedgerUpdate:
    """Resolved ledger state for one payment.

    For UPDATE, `entry_id` names the entry to patch and `amount` echoes
    the existing contractual amount.
    """

    action: LedgerAction
    amount: Decimal
    amount_paid: Decimal
    balance: Decimal
    status: PaymentStatus
    payment_date: date
    payment_method: str
    entry_id: UUID | None = None

    @property
    def is_settled(self) -> bool:
        return self.status == PaymentStatus.COMPLETED


def floor_balance(amount: Decimal, amount_paid: Decimal) -> Decimal:
    """Outstanding balance, never below zero."""
    return max(ZERO, amount - amount_paid)


def resolve_payment(
    existing: LedgerEntry | None,
    incoming: IncomingPayment,
    *,
    contractual_amount: Decimal | None = None,
    is_partial_payment: bool = False,
) -> LedgerUpdate:
    """Resolve a payment against an existing entry or plan a new one.

    Args:
        existing: Entry receiving an additional payment, or None
        incoming: The payment being recorded
        contractual_amount: Amount due for a new entry (agreement rent);
            falls back to the incoming amount when not known
        is_partial_payment: Caller marked the new payment as partial

    Returns:
        LedgerUpdate describing the entry to create or patch

    Raises:
        InvalidPaymentAmountError: If incoming.amount is not positive
        InvalidDateError: If incoming.payment_date is not a date
    """
    paid_now = as_decimal(incoming.amount, "amount")
    if paid_now <= 0:
        raise InvalidPaymentAmountError(incoming.amount)
    if not isinstance(incoming.payment_date, date):
        raise InvalidDateError("payment_date", incoming.payment_date)

    if existing is not None:
        total_paid = existing.amount_paid + paid_now
        new_balance = existing.amount - total_paid
        status = PaymentStatus.COMPLETED if new_balance <= 0 else PaymentStatus.PARTIALLY_PAID
        return LedgerUpdate(
            action=LedgerAction.UPDATE,
            entry_id=existing.id,
            amount=existing.amount,
            amount_paid=total_paid,
            balance=max(ZERO, new_balance),
            status=status,
            payment_date=incoming.payment_date,
            payment_method=incoming.method,
        )

    amount = paid_now if contractual_amount is None else as_decimal(
        contractual_amount, "contractual_amount"
    )
    balance = floor_balance(amount, paid_now)
    if balance <= 0:
        status = PaymentStatus.COMPLETED
    elif is_partial_payment:
        status = PaymentStatus.PARTIALLY_PAID
    else:
        status = PaymentStatus.COMPLETED

    return LedgerUpdate(
        action=LedgerAction.CREATE,
        amount=amount,
        amount_paid=paid_now,
        balance=balance,
        status=status,
        payment_date=incoming.payment_date,
        payment_method=incoming.method,
    )
