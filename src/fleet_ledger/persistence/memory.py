"""In-memory LedgerStore.

Keeps typed entities in dicts. Supports failure injection so batch
accounting can be exercised without a backend:

    store = InMemoryLedgerStore(fail_on={"update_lease_status": {lease_id}})
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace
from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import UUID, uuid4

from fleet_ledger.domain.types import (
    Agreement,
    AgreementStatus,
    AssignmentStatus,
    FineAssignment,
    LedgerEntry,
    LedgerPatch,
    PaymentStatus,
    TrafficFine,
    Vehicle,
)
from fleet_ledger.errors import NotFoundError, PersistenceError

ANY = "*"


class InMemoryLedgerStore:
    """Dict-backed store implementing the LedgerStore protocol."""

    def __init__(self, fail_on: dict[str, set[UUID | str]] | None = None) -> None:
        self.vehicles: dict[UUID, Vehicle] = {}
        self.leases: dict[UUID, Agreement] = {}
        self.entries: dict[UUID, LedgerEntry] = {}
        self.fines: dict[UUID, TrafficFine] = {}
        self.fail_on: dict[str, set[UUID | str]] = fail_on or {}
        self.writes: list[tuple[str, UUID]] = []

    # -------------------------------------------------------------------------
    # Seeding helpers
    # -------------------------------------------------------------------------

    def add_vehicle(self, license_plate: str, *, make: str | None = None, model: str | None = None) -> Vehicle:
        vehicle = Vehicle(id=uuid4(), license_plate=license_plate, make=make, model=model)
        self.vehicles[vehicle.id] = vehicle
        return vehicle

    def add_lease(
        self,
        vehicle_id: UUID,
        start_date: date,
        end_date: date | None = None,
        *,
        status: AgreementStatus = AgreementStatus.ACTIVE,
        customer_id: UUID | None = None,
        rent_amount: Decimal | None = Decimal("1000"),
        daily_late_fee: Decimal | None = Decimal("120"),
        agreement_number: str | None = None,
        created_at: datetime | None = None,
    ) -> Agreement:
        lease = Agreement(
            id=uuid4(),
            vehicle_id=vehicle_id,
            customer_id=customer_id or uuid4(),
            start_date=start_date,
            end_date=end_date,
            status=status,
            rent_amount=rent_amount,
            daily_late_fee=daily_late_fee,
            agreement_number=agreement_number or f"AGR-{len(self.leases) + 1:05d}",
            created_at=created_at or datetime.now(timezone.utc),
        )
        self.leases[lease.id] = lease
        return lease

    def add_entry(self, entry: LedgerEntry) -> LedgerEntry:
        if entry.id is None:
            entry = replace(entry, id=uuid4())
        self.entries[entry.id] = entry
        return entry

    def add_fine(self, fine: TrafficFine) -> TrafficFine:
        self.fines[fine.id] = fine
        return fine

    def _check(self, operation: str, key: UUID | None = None) -> None:
        targets = self.fail_on.get(operation)
        if targets and (ANY in targets or key in targets):
            raise PersistenceError(operation, f"injected failure for {key}")

    # -------------------------------------------------------------------------
    # Leases
    # -------------------------------------------------------------------------

    async def fetch_lease(self, lease_id: UUID) -> Agreement | None:
        self._check("fetch_lease", lease_id)
        return self.leases.get(lease_id)

    async def list_active_leases_for_vehicle(self, vehicle_id: UUID) -> list[Agreement]:
        self._check("list_active_leases_for_vehicle", vehicle_id)
        leases = [
            lease
            for lease in self.leases.values()
            if lease.vehicle_id == vehicle_id and lease.status == AgreementStatus.ACTIVE
        ]
        return sorted(leases, key=lambda lease: (lease.created_at, lease.id), reverse=True)

    async def list_agreements_by_status(
        self, statuses: Iterable[AgreementStatus]
    ) -> list[Agreement]:
        self._check("list_agreements_by_status")
        wanted = {AgreementStatus(s) for s in statuses}
        return [lease for lease in self.leases.values() if lease.status in wanted]

    async def update_lease_status(self, lease_id: UUID, status: AgreementStatus) -> None:
        self._check("update_lease_status", lease_id)
        lease = self.leases.get(lease_id)
        if lease is None:
            raise NotFoundError("lease", lease_id)
        self.leases[lease_id] = replace(lease, status=AgreementStatus(status))
        self.writes.append(("update_lease_status", lease_id))

    # -------------------------------------------------------------------------
    # Vehicles
    # -------------------------------------------------------------------------

    async def fetch_vehicle_id_by_plate(self, plate: str) -> UUID | None:
        self._check("fetch_vehicle_id_by_plate", plate)
        for vehicle in self.vehicles.values():
            if vehicle.license_plate == plate:
                return vehicle.id
        return None

    # -------------------------------------------------------------------------
    # Ledger entries
    # -------------------------------------------------------------------------

    async def fetch_ledger_entry(self, entry_id: UUID) -> LedgerEntry | None:
        self._check("fetch_ledger_entry", entry_id)
        return self.entries.get(entry_id)

    async def insert_ledger_entry(self, entry: LedgerEntry) -> UUID:
        self._check("insert_ledger_entry", entry.type.value)
        stored = replace(entry, id=uuid4())
        self.entries[stored.id] = stored
        self.writes.append(("insert_ledger_entry", stored.id))
        return stored.id

    async def update_ledger_entry(self, entry_id: UUID, patch: LedgerPatch) -> None:
        self._check("update_ledger_entry", entry_id)
        entry = self.entries.get(entry_id)
        if entry is None:
            raise NotFoundError("ledger entry", entry_id)
        self.entries[entry_id] = replace(
            entry,
            amount_paid=patch.amount_paid,
            balance=patch.balance,
            status=patch.status,
            payment_date=patch.payment_date,
            payment_method=patch.payment_method or entry.payment_method,
        )
        self.writes.append(("update_ledger_entry", entry_id))

    async def has_completed_payment(self, lease_id: UUID) -> bool:
        self._check("has_completed_payment", lease_id)
        return any(
            e.lease_id == lease_id and e.status == PaymentStatus.COMPLETED
            for e in self.entries.values()
        )

    def entries_for(self, lease_id: UUID) -> list[LedgerEntry]:
        return [e for e in self.entries.values() if e.lease_id == lease_id]

    # -------------------------------------------------------------------------
    # Traffic fines
    # -------------------------------------------------------------------------

    async def fetch_fine(self, fine_id: UUID) -> TrafficFine | None:
        self._check("fetch_fine", fine_id)
        return self.fines.get(fine_id)

    async def list_fines(self, *, assigned: bool | None = None) -> list[TrafficFine]:
        self._check("list_fines")
        fines = list(self.fines.values())
        if assigned is None:
            return fines
        return [f for f in fines if f.is_assigned == assigned]

    async def insert_fine(self, fine: TrafficFine) -> UUID:
        self._check("insert_fine", fine.id)
        self.fines[fine.id] = fine
        self.writes.append(("insert_fine", fine.id))
        return fine.id

    async def update_fine_assignment(self, fine_id: UUID, assignment: FineAssignment) -> None:
        self._check("update_fine_assignment", fine_id)
        fine = self.fines.get(fine_id)
        if fine is None:
            raise NotFoundError("traffic fine", fine_id)
        self.fines[fine_id] = replace(
            fine,
            lease_id=assignment.lease_id,
            assignment_status=AssignmentStatus(assignment.assignment_status),
        )
        self.writes.append(("update_fine_assignment", fine_id))
