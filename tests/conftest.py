"""Pytest fixtures for fleet ledger tests."""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from fleet_ledger.config import ReconciliationConfig
from fleet_ledger.domain.types import (
    AssignmentStatus,
    LedgerEntry,
    PaymentStatus,
    PaymentType,
    TrafficFine,
)
from fleet_ledger.persistence import InMemoryLedgerStore

# Fixed "today" for date-sensitive services
TODAY = date(2024, 8, 1)

T1 = datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)
T2 = datetime(2024, 6, 15, 9, 0, tzinfo=timezone.utc)
T3 = datetime(2024, 7, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def store() -> InMemoryLedgerStore:
    """Empty in-memory store."""
    return InMemoryLedgerStore()


@pytest.fixture
def config() -> ReconciliationConfig:
    """Engine config with no validation pause."""
    return ReconciliationConfig(validation_delay_seconds=0)


@pytest.fixture
def clock():
    """Clock pinned to TODAY."""
    return lambda: TODAY


def make_entry(
    lease_id,
    *,
    amount: str = "1000",
    amount_paid: str = "0",
    status: PaymentStatus = PaymentStatus.PENDING,
) -> LedgerEntry:
    """Unsaved rent entry with the balance derived from the amounts."""
    amount_d = Decimal(amount)
    paid_d = Decimal(amount_paid)
    return LedgerEntry(
        lease_id=lease_id,
        amount=amount_d,
        amount_paid=paid_d,
        balance=max(Decimal("0"), amount_d - paid_d),
        status=status,
        type=PaymentType.RENT,
        payment_method="cash",
    )


def make_fine(
    license_plate: str | None,
    violation_date: date,
    *,
    amount: str = "500",
    lease_id=None,
) -> TrafficFine:
    """Traffic fine, assigned when a lease id is given."""
    return TrafficFine(
        id=uuid4(),
        license_plate=license_plate,
        violation_date=violation_date,
        fine_amount=Decimal(amount),
        lease_id=lease_id,
        assignment_status=(
            AssignmentStatus.ASSIGNED if lease_id else AssignmentStatus.PENDING
        ),
    )
