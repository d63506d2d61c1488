"""Persistence port used by the reconciliation services.

Every service receives a LedgerStore explicitly, so reconciliation logic
runs the same against the database store and the in-memory store.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol
from uuid import UUID

from fleet_ledger.domain.types import (
    Agreement,
    AgreementStatus,
    FineAssignment,
    LedgerEntry,
    LedgerPatch,
    TrafficFine,
)


class LedgerStore(Protocol):
    """Protocol for the persistence collaborator.

    Implementations return typed entities (never raw rows) and raise
    PersistenceError for backend failures. Each write is its own unit of
    work; there is no transaction spanning calls.
    """

    async def fetch_lease(self, lease_id: UUID) -> Agreement | None:
        """Fetch one agreement, or None if absent."""
        ...

    async def list_active_leases_for_vehicle(self, vehicle_id: UUID) -> list[Agreement]:
        """Active agreements for a vehicle, newest created first."""
        ...

    async def list_agreements_by_status(
        self, statuses: Iterable[AgreementStatus]
    ) -> list[Agreement]:
        """All agreements whose status is in `statuses`."""
        ...

    async def update_lease_status(self, lease_id: UUID, status: AgreementStatus) -> None:
        """Set an agreement's status."""
        ...

    async def fetch_vehicle_id_by_plate(self, plate: str) -> UUID | None:
        """Exact license-plate lookup."""
        ...

    async def fetch_ledger_entry(self, entry_id: UUID) -> LedgerEntry | None:
        """Fetch one ledger entry, or None if absent."""
        ...

    async def insert_ledger_entry(self, entry: LedgerEntry) -> UUID:
        """Persist a new ledger entry and return its id."""
        ...

    async def update_ledger_entry(self, entry_id: UUID, patch: LedgerPatch) -> None:
        """Apply an additional-payment patch to an existing entry."""
        ...

    async def has_completed_payment(self, lease_id: UUID) -> bool:
        """Whether any completed ledger entry exists for the agreement."""
        ...

    async def fetch_fine(self, fine_id: UUID) -> TrafficFine | None:
        """Fetch one traffic fine, or None if absent."""
        ...

    async def list_fines(self, *, assigned: bool | None = None) -> list[TrafficFine]:
        """Traffic fines, optionally filtered by whether a lease is set."""
        ...

    async def insert_fine(self, fine: TrafficFine) -> UUID:
        """Persist a new traffic fine and return its id."""
        ...

    async def update_fine_assignment(self, fine_id: UUID, assignment: FineAssignment) -> None:
        """Set or clear a fine's lease assignment."""
        ...
