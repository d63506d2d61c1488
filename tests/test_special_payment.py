"""Tests for the special payment orchestrator."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from fleet_ledger.calculators.ledger_resolver import LedgerAction
from fleet_ledger.domain.types import PaymentStatus, PaymentType
from fleet_ledger.errors import InvalidPaymentAmountError
from fleet_ledger.persistence import InMemoryLedgerStore
from fleet_ledger.services.special_payment import (
    SpecialPaymentOptions,
    SpecialPaymentOrchestrator,
)
from tests.conftest import make_entry

pytestmark = pytest.mark.asyncio


@pytest.fixture
def vehicle(store):
    return store.add_vehicle("ABC-123")


@pytest.fixture
def lease(store, vehicle):
    return store.add_lease(
        vehicle.id, date(2024, 1, 1), rent_amount=Decimal("1000"), agreement_number="AGR-0001"
    )


@pytest.fixture
def orchestrator(store, config):
    return SpecialPaymentOrchestrator(store, config)


class TestNewPayment:
    """Payments that create a new rent entry."""

    async def test_on_time_full_payment(self, store, lease, orchestrator):
        result = await orchestrator.record_special_payment(
            lease.id, Decimal("1000"), date(2024, 3, 1)
        )

        assert result.success
        assert result.action == LedgerAction.CREATE
        entry = store.entries[result.entry_id]
        assert entry.type == PaymentType.RENT
        assert entry.amount == Decimal("1000")
        assert entry.amount_paid == Decimal("1000")
        assert entry.balance == Decimal("0")
        assert entry.status == PaymentStatus.COMPLETED
        assert entry.days_overdue == 0
        assert entry.late_fine_amount == Decimal("0")
        assert entry.original_due_date == date(2024, 3, 1)
        assert entry.description == "Monthly rent payment for AGR-0001"

    async def test_late_payment_records_fee_on_rent_entry(self, store, lease, orchestrator):
        """Without the late fee flag the fee is audited but not charged."""
        result = await orchestrator.record_special_payment(
            lease.id, Decimal("1000"), date(2024, 3, 15)
        )

        assert result.success
        assert result.late_fee.days_late == 14
        assert result.late_fee.fee_amount == Decimal("1680")
        assert result.late_fee_entry_id is None
        entries = store.entries_for(lease.id)
        assert len(entries) == 1
        assert entries[0].days_overdue == 14
        assert entries[0].late_fine_amount == Decimal("1680")

    async def test_late_payment_with_fee_entry(self, store, lease, orchestrator):
        result = await orchestrator.record_special_payment(
            lease.id,
            Decimal("1000"),
            date(2024, 3, 15),
            SpecialPaymentOptions(include_late_payment_fee=True, payment_method="card"),
        )

        assert result.success
        assert result.late_fee_entry_id is not None
        fee_entry = store.entries[result.late_fee_entry_id]
        assert fee_entry.type == PaymentType.LATE_PAYMENT_FEE
        assert fee_entry.amount == Decimal("1680")
        assert fee_entry.amount_paid == Decimal("1680")
        assert fee_entry.balance == Decimal("0")
        assert fee_entry.status == PaymentStatus.COMPLETED
        assert fee_entry.payment_method == "card"
        assert fee_entry.description == "Late payment fee for March 2024 (14 days late)"
        assert len(store.entries_for(lease.id)) == 2

    async def test_fee_flag_on_time_creates_no_fee_entry(self, store, lease, orchestrator):
        result = await orchestrator.record_special_payment(
            lease.id,
            Decimal("1000"),
            date(2024, 3, 1),
            SpecialPaymentOptions(include_late_payment_fee=True),
        )

        assert result.success
        assert result.late_fee_entry_id is None
        assert len(store.entries_for(lease.id)) == 1

    async def test_agreement_rate_overrides_default(self, store, vehicle, orchestrator):
        lease = store.add_lease(vehicle.id, date(2024, 1, 1), daily_late_fee=Decimal("50"))

        result = await orchestrator.record_special_payment(
            lease.id, Decimal("1000"), date(2024, 3, 15)
        )

        assert result.late_fee.fee_amount == Decimal("700")

    async def test_missing_agreement_rate_uses_config_default(self, store, vehicle):
        lease = store.add_lease(vehicle.id, date(2024, 1, 1), daily_late_fee=None)
        orchestrator = SpecialPaymentOrchestrator(store)

        result = await orchestrator.record_special_payment(
            lease.id, Decimal("1000"), date(2024, 3, 3)
        )

        assert result.late_fee.fee_amount == Decimal("240")

    async def test_partial_payment(self, store, lease, orchestrator):
        result = await orchestrator.record_special_payment(
            lease.id,
            Decimal("400"),
            date(2024, 3, 1),
            SpecialPaymentOptions(is_partial_payment=True),
        )

        assert result.status == PaymentStatus.PARTIALLY_PAID
        assert result.balance == Decimal("600")
        entry = store.entries[result.entry_id]
        assert entry.amount == Decimal("1000")
        assert entry.amount_paid == Decimal("400")

    async def test_contractual_amount_override(self, store, lease, orchestrator):
        result = await orchestrator.record_special_payment(
            lease.id,
            Decimal("1200"),
            date(2024, 3, 1),
            SpecialPaymentOptions(contractual_amount=Decimal("1200")),
        )

        assert store.entries[result.entry_id].amount == Decimal("1200")

    async def test_agreement_object_skips_lookup(self, vehicle, lease, config):
        store = InMemoryLedgerStore(fail_on={"fetch_lease": {"*"}})
        orchestrator = SpecialPaymentOrchestrator(store, config)

        result = await orchestrator.record_special_payment(
            lease, Decimal("1000"), date(2024, 3, 1)
        )

        assert result.success
        assert len(store.entries_for(lease.id)) == 1


class TestAdditionalPayment:
    """Payments applied to an existing entry."""

    async def test_target_entry_is_settled(self, store, lease, orchestrator):
        existing = store.add_entry(
            make_entry(lease.id, amount="1000", amount_paid="400", status=PaymentStatus.PARTIALLY_PAID)
        )

        result = await orchestrator.record_special_payment(
            lease.id,
            Decimal("600"),
            date(2024, 3, 20),
            SpecialPaymentOptions(target_payment_id=existing.id, payment_method="transfer"),
        )

        assert result.success
        assert result.action == LedgerAction.UPDATE
        assert result.entry_id == existing.id
        entry = store.entries[existing.id]
        assert entry.amount_paid == Decimal("1000")
        assert entry.balance == Decimal("0")
        assert entry.status == PaymentStatus.COMPLETED
        assert entry.payment_date == date(2024, 3, 20)
        assert entry.payment_method == "transfer"
        assert len(store.entries_for(lease.id)) == 1

    async def test_pending_payment_id_used_as_hint(self, store, lease, orchestrator):
        existing = store.add_entry(make_entry(lease.id, amount="1000", amount_paid="300"))

        result = await orchestrator.record_special_payment(
            lease.id,
            Decimal("200"),
            date(2024, 3, 20),
            SpecialPaymentOptions(pending_payment_id=existing.id),
        )

        assert result.action == LedgerAction.UPDATE
        assert result.status == PaymentStatus.PARTIALLY_PAID
        assert store.entries[existing.id].balance == Decimal("500")

    async def test_missing_target_creates_new_entry(self, store, lease, orchestrator):
        result = await orchestrator.record_special_payment(
            lease.id,
            Decimal("1000"),
            date(2024, 3, 1),
            SpecialPaymentOptions(target_payment_id=uuid4()),
        )

        assert result.success
        assert result.action == LedgerAction.CREATE
        assert len(store.entries_for(lease.id)) == 1

    async def test_target_of_other_agreement_rejected(self, store, vehicle, lease, orchestrator):
        other = store.add_lease(vehicle.id, date(2023, 1, 1), date(2023, 12, 31))
        foreign = store.add_entry(make_entry(other.id, amount_paid="100"))

        result = await orchestrator.record_special_payment(
            lease.id,
            Decimal("100"),
            date(2024, 3, 1),
            SpecialPaymentOptions(target_payment_id=foreign.id),
        )

        assert not result.success
        assert result.error_code == "entry_agreement_mismatch"
        assert store.entries[foreign.id].amount_paid == Decimal("100")

    async def test_settled_target_rejected(self, store, lease, orchestrator):
        """A completed entry never takes more money."""
        settled = store.add_entry(
            make_entry(lease.id, amount_paid="1000", status=PaymentStatus.COMPLETED)
        )

        result = await orchestrator.record_special_payment(
            lease.id,
            Decimal("600"),
            date(2024, 3, 1),
            SpecialPaymentOptions(target_payment_id=settled.id),
        )

        assert not result.success
        assert result.error_code == "entry_not_open"
        assert store.entries[settled.id].amount_paid == Decimal("1000")
        assert store.writes == []

    async def test_cancelled_target_rejected(self, store, lease, orchestrator):
        cancelled = store.add_entry(make_entry(lease.id, status=PaymentStatus.CANCELLED))

        result = await orchestrator.record_special_payment(
            lease.id,
            Decimal("1000"),
            date(2024, 3, 1),
            SpecialPaymentOptions(pending_payment_id=cancelled.id),
        )

        assert not result.success
        assert result.error_code == "entry_not_open"
        assert store.entries[cancelled.id].status == PaymentStatus.CANCELLED
        assert store.entries_for(lease.id) == [cancelled]

    async def test_overdue_target_accepts_payment(self, store, lease, orchestrator):
        overdue = store.add_entry(make_entry(lease.id, status=PaymentStatus.OVERDUE))

        result = await orchestrator.record_special_payment(
            lease.id,
            Decimal("1000"),
            date(2024, 3, 1),
            SpecialPaymentOptions(target_payment_id=overdue.id),
        )

        assert result.success
        assert result.action == LedgerAction.UPDATE
        assert store.entries[overdue.id].status == PaymentStatus.COMPLETED


class TestFailures:
    """Validation and persistence failures."""

    @pytest.mark.parametrize(
        "amount", [Decimal("0"), Decimal("-10"), "abc", "NaN", Decimal("Infinity")]
    )
    async def test_invalid_amount_raises_before_io(self, store, lease, orchestrator, amount):
        with pytest.raises(InvalidPaymentAmountError):
            await orchestrator.record_special_payment(lease.id, amount, date(2024, 3, 1))
        assert store.writes == []

    async def test_unknown_agreement(self, orchestrator):
        result = await orchestrator.record_special_payment(
            uuid4(), Decimal("1000"), date(2024, 3, 1)
        )

        assert not result.success
        assert result.error_code == "agreement_not_found"

    async def test_rent_insert_failure(self, vehicle, config):
        store = InMemoryLedgerStore(fail_on={"insert_ledger_entry": {"rent"}})
        lease = store.add_lease(vehicle.id, date(2024, 1, 1))

        result = await SpecialPaymentOrchestrator(store, config).record_special_payment(
            lease.id, Decimal("1000"), date(2024, 3, 15)
        )

        assert not result.success
        assert result.error_code == "persistence_error"
        assert store.entries == {}

    async def test_fee_insert_failure_keeps_rent_entry(self, vehicle, config):
        store = InMemoryLedgerStore(fail_on={"insert_ledger_entry": {"LATE_PAYMENT_FEE"}})
        lease = store.add_lease(vehicle.id, date(2024, 1, 1))

        result = await SpecialPaymentOrchestrator(store, config).record_special_payment(
            lease.id,
            Decimal("1000"),
            date(2024, 3, 15),
            SpecialPaymentOptions(include_late_payment_fee=True),
        )

        assert not result.success
        assert result.error_code == "late_fee_persistence_error"
        assert result.entry_id in store.entries
        assert len(store.entries_for(lease.id)) == 1
