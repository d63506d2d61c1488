"""Tests for the payment ledger resolver."""

from dataclasses import replace
from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from hypothesis import given, settings, strategies as st

from fleet_ledger.calculators.ledger_resolver import (
    IncomingPayment,
    LedgerAction,
    resolve_payment,
)
from fleet_ledger.domain.types import PaymentStatus
from fleet_ledger.errors import InvalidDateError, InvalidPaymentAmountError
from tests.conftest import make_entry

PAY_DATE = date(2024, 3, 15)
money = st.decimals(min_value=Decimal("0.01"), max_value=Decimal("100000"), places=2)


def payment(amount: str) -> IncomingPayment:
    return IncomingPayment(amount=Decimal(amount), payment_date=PAY_DATE, method="card")


class TestExistingEntry:
    """Additional payments against an existing entry."""

    def test_payment_settles_entry(self):
        """400 paid + 600 incoming on 1000 completes the entry."""
        existing = replace(make_entry(uuid4(), amount="1000", amount_paid="400"), id=uuid4())

        update = resolve_payment(existing, payment("600"))

        assert update.action == LedgerAction.UPDATE
        assert update.entry_id == existing.id
        assert update.amount_paid == Decimal("1000")
        assert update.balance == Decimal("0")
        assert update.status == PaymentStatus.COMPLETED
        assert update.payment_method == "card"

    def test_payment_leaves_balance(self):
        """300 paid + 200 incoming on 1000 leaves 500 outstanding."""
        existing = make_entry(uuid4(), amount="1000", amount_paid="300")

        update = resolve_payment(existing, payment("200"))

        assert update.amount_paid == Decimal("500")
        assert update.balance == Decimal("500")
        assert update.status == PaymentStatus.PARTIALLY_PAID

    def test_overpayment_floors_balance_at_zero(self):
        existing = make_entry(uuid4(), amount="1000", amount_paid="900")

        update = resolve_payment(existing, payment("300"))

        assert update.amount_paid == Decimal("1200")
        assert update.balance == Decimal("0")
        assert update.status == PaymentStatus.COMPLETED


class TestNewEntry:
    """Planning a new entry."""

    def test_full_payment_of_contractual_amount(self):
        update = resolve_payment(None, payment("1000"), contractual_amount=Decimal("1000"))

        assert update.action == LedgerAction.CREATE
        assert update.amount == Decimal("1000")
        assert update.balance == Decimal("0")
        assert update.status == PaymentStatus.COMPLETED

    def test_partial_payment_flag(self):
        update = resolve_payment(
            None, payment("400"), contractual_amount=Decimal("1000"), is_partial_payment=True
        )

        assert update.amount_paid == Decimal("400")
        assert update.balance == Decimal("600")
        assert update.status == PaymentStatus.PARTIALLY_PAID

    def test_underpayment_without_flag_records_real_balance(self):
        """Not flagged partial: completed, but the balance stays truthful."""
        update = resolve_payment(None, payment("400"), contractual_amount=Decimal("1000"))

        assert update.status == PaymentStatus.COMPLETED
        assert update.balance == Decimal("600")

    def test_amount_defaults_to_incoming(self):
        update = resolve_payment(None, payment("750"))

        assert update.amount == Decimal("750")
        assert update.balance == Decimal("0")


class TestValidation:
    """Invalid inputs are rejected before computation."""

    @pytest.mark.parametrize("amount", ["0", "-5"])
    def test_non_positive_amount_rejected(self, amount):
        with pytest.raises(InvalidPaymentAmountError):
            resolve_payment(None, payment(amount))

    def test_non_date_rejected(self):
        with pytest.raises(InvalidDateError):
            resolve_payment(
                None, IncomingPayment(amount=Decimal("10"), payment_date="2024-03-15")  # type: ignore[arg-type]
            )


class TestResolverProperties:
    """Invariants over random amounts."""

    @given(amount=money, paid=money, incoming=money)
    @settings(max_examples=200)
    def test_existing_entry_invariants(self, amount, paid, incoming):
        existing = make_entry(uuid4(), amount=str(amount), amount_paid=str(paid))

        update = resolve_payment(existing, IncomingPayment(incoming, PAY_DATE))

        assert update.amount_paid == paid + incoming
        assert update.balance == max(Decimal("0"), amount - paid - incoming)
        assert update.balance >= 0
        assert (update.status == PaymentStatus.COMPLETED) == (update.balance == 0)

    @given(contractual=money, incoming=money, partial=st.booleans())
    @settings(max_examples=200)
    def test_new_entry_balance_never_negative(self, contractual, incoming, partial):
        update = resolve_payment(
            None,
            IncomingPayment(incoming, PAY_DATE),
            contractual_amount=contractual,
            is_partial_payment=partial,
        )

        assert update.balance == max(Decimal("0"), contractual - incoming)
        if update.status == PaymentStatus.PARTIALLY_PAID:
            assert partial and update.balance > 0
