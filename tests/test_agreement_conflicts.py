"""Tests for agreement conflict resolution."""

from datetime import date

import pytest

from fleet_ledger.domain.types import AgreementStatus
from fleet_ledger.persistence import InMemoryLedgerStore
from fleet_ledger.services.agreement_conflicts import AgreementConflictResolver
from tests.conftest import T1, T2, T3

pytestmark = pytest.mark.asyncio


@pytest.fixture
def resolver(store):
    return AgreementConflictResolver(store)


class TestReconcileVehicleAgreements:
    """Keeping only the newest agreement per vehicle."""

    async def test_older_active_agreement_cancelled(self, store, resolver):
        vehicle = store.add_vehicle("V-1")
        older = store.add_lease(vehicle.id, date(2024, 1, 1), created_at=T1)
        newer = store.add_lease(vehicle.id, date(2024, 2, 1), created_at=T2)

        result = await resolver.reconcile_vehicle_agreements()

        assert result.success
        assert result.updated_count == 1
        assert result.vehicles_fixed == 1
        assert result.cancelled_ids == [older.id]
        assert store.leases[older.id].status == AgreementStatus.CANCELLED
        assert store.leases[newer.id].status == AgreementStatus.ACTIVE

    async def test_pending_payment_competes_with_active(self, store, resolver):
        vehicle = store.add_vehicle("V-2")
        active = store.add_lease(vehicle.id, date(2024, 1, 1), created_at=T1)
        pending = store.add_lease(
            vehicle.id, date(2024, 2, 1), status=AgreementStatus.PENDING_PAYMENT, created_at=T2
        )

        await resolver.reconcile_vehicle_agreements()

        assert store.leases[active.id].status == AgreementStatus.CANCELLED
        assert store.leases[pending.id].status == AgreementStatus.PENDING_PAYMENT

    async def test_other_statuses_ignored(self, store, resolver):
        vehicle = store.add_vehicle("V-3")
        store.add_lease(vehicle.id, date(2023, 1, 1), status=AgreementStatus.COMPLETED, created_at=T3)
        active = store.add_lease(vehicle.id, date(2024, 1, 1), created_at=T1)

        result = await resolver.reconcile_vehicle_agreements()

        assert result.updated_count == 0
        assert store.leases[active.id].status == AgreementStatus.ACTIVE

    async def test_equal_timestamps_keep_highest_id(self):
        """Insertion order does not decide the keeper when timestamps tie."""
        for reverse in (False, True):
            store = InMemoryLedgerStore()
            vehicle = store.add_vehicle("V-TIE")
            leases = [
                store.add_lease(vehicle.id, date(2024, 1, 1), created_at=T1) for _ in range(3)
            ]
            if reverse:
                store.leases = dict(reversed(list(store.leases.items())))
            keeper = max(leases, key=lambda lease: lease.id)

            result = await AgreementConflictResolver(store).reconcile_vehicle_agreements()

            assert result.updated_count == 2
            assert store.leases[keeper.id].status == AgreementStatus.ACTIVE
            assert keeper.id not in result.cancelled_ids

    async def test_three_agreements_keeps_newest(self, store, resolver):
        vehicle = store.add_vehicle("V-4")
        a = store.add_lease(vehicle.id, date(2024, 1, 1), created_at=T2)
        b = store.add_lease(vehicle.id, date(2024, 1, 1), created_at=T3)
        c = store.add_lease(vehicle.id, date(2024, 1, 1), created_at=T1)

        result = await resolver.reconcile_vehicle_agreements()

        assert result.updated_count == 2
        assert store.leases[b.id].status == AgreementStatus.ACTIVE
        assert store.leases[a.id].status == AgreementStatus.CANCELLED
        assert store.leases[c.id].status == AgreementStatus.CANCELLED

    async def test_second_run_performs_no_writes(self, store, resolver):
        for plate in ("V-5", "V-6"):
            vehicle = store.add_vehicle(plate)
            store.add_lease(vehicle.id, date(2024, 1, 1), created_at=T1)
            store.add_lease(vehicle.id, date(2024, 1, 1), created_at=T2)

        first = await resolver.reconcile_vehicle_agreements()
        writes_after_first = len(store.writes)
        second = await resolver.reconcile_vehicle_agreements()

        assert first.updated_count == 2
        assert second.updated_count == 0
        assert len(store.writes) == writes_after_first
        assert second.message == "No double-booked vehicles found"

    async def test_failure_recorded_and_run_continues(self):
        store = InMemoryLedgerStore()
        v1 = store.add_vehicle("V-7")
        v2 = store.add_vehicle("V-8")
        stuck = store.add_lease(v1.id, date(2024, 1, 1), created_at=T1)
        store.add_lease(v1.id, date(2024, 1, 1), created_at=T2)
        freed = store.add_lease(v2.id, date(2024, 1, 1), created_at=T1)
        store.add_lease(v2.id, date(2024, 1, 1), created_at=T2)
        store.fail_on = {"update_lease_status": {stuck.id}}

        result = await AgreementConflictResolver(store).reconcile_vehicle_agreements()

        assert not result.success
        assert result.updated_count == 1
        assert result.vehicles_fixed == 1
        assert result.errors[0]["agreement_id"] == str(stuck.id)
        assert store.leases[stuck.id].status == AgreementStatus.ACTIVE
        assert store.leases[freed.id].status == AgreementStatus.CANCELLED

    async def test_listing_failure(self):
        store = InMemoryLedgerStore(fail_on={"list_agreements_by_status": {"*"}})

        result = await AgreementConflictResolver(store).reconcile_vehicle_agreements()

        assert not result.success
        assert result.updated_count == 0


class TestBookingConflicts:
    """Per-vehicle conflict checks."""

    async def test_conflicts_exclude_current_agreement(self, store, resolver):
        vehicle = store.add_vehicle("V-9")
        oldest = store.add_lease(vehicle.id, date(2024, 1, 1), created_at=T1)
        middle = store.add_lease(vehicle.id, date(2024, 1, 1), created_at=T2)
        current = store.add_lease(vehicle.id, date(2024, 1, 1), created_at=T3)

        report = await resolver.check_vehicle_booking_conflicts(vehicle.id, current.id)

        assert report.has_conflicts
        assert [a.id for a in report.conflicts] == [middle.id, oldest.id]
        assert report.newest.id == middle.id
        assert report.oldest.id == oldest.id

    async def test_no_conflicts(self, store, resolver):
        vehicle = store.add_vehicle("V-10")
        only = store.add_lease(vehicle.id, date(2024, 1, 1))

        report = await resolver.check_vehicle_booking_conflicts(vehicle.id, only.id)

        assert not report.has_conflicts
        assert report.newest is None
        assert report.oldest is None

    async def test_resolve_keeps_chosen_agreement(self, store, resolver):
        vehicle = store.add_vehicle("V-11")
        keep = store.add_lease(vehicle.id, date(2024, 1, 1), created_at=T1)
        drop = store.add_lease(vehicle.id, date(2024, 1, 1), created_at=T2)

        result = await resolver.resolve_vehicle_booking_conflicts(vehicle.id, keep.id)

        assert result.updated_count == 1
        assert store.leases[keep.id].status == AgreementStatus.ACTIVE
        assert store.leases[drop.id].status == AgreementStatus.CANCELLED
