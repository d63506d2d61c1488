"""Agreement conflict resolution.

Enforces a single authoritative agreement per vehicle at read time: the
persistence layer has no unique constraint, so duplicates are found by
scanning and all but the newest are cancelled.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from fleet_ledger.domain.types import Agreement, AgreementStatus
from fleet_ledger.errors import FleetLedgerError
from fleet_ledger.persistence.base import LedgerStore

logger = logging.getLogger(__name__)

# Statuses that hold a vehicle.
CONFLICTING_STATUSES = (AgreementStatus.ACTIVE, AgreementStatus.PENDING_PAYMENT)


@dataclass
class ConflictResolutionResult:
    """Result of a conflict resolution run."""

    updated_count: int = 0
    vehicles_fixed: int = 0
    cancelled_ids: list[UUID] = field(default_factory=list)
    errors: list[dict[str, Any]] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """Whether every cancellation went through."""
        return len(self.errors) == 0

    @property
    def message(self) -> str:
        if self.updated_count == 0 and not self.errors:
            return "No double-booked vehicles found"
        return (
            f"Fixed {self.vehicles_fixed} double-booked vehicles, "
            f"cancelled {self.updated_count} agreements"
        )


@dataclass(frozen=True)
class BookingConflictReport:
    """Active agreements currently holding a vehicle, newest first."""

    vehicle_id: UUID
    conflicts: list[Agreement]

    @property
    def has_conflicts(self) -> bool:
        return len(self.conflicts) > 0

    @property
    def newest(self) -> Agreement | None:
        return self.conflicts[0] if self.conflicts else None

    @property
    def oldest(self) -> Agreement | None:
        return self.conflicts[-1] if self.conflicts else None


def newest_first(agreements: list[Agreement]) -> list[Agreement]:
    return sorted(agreements, key=lambda a: (a.created_at, a.id), reverse=True)


class AgreementConflictResolver:
    """Detects and cancels duplicate agreements on the same vehicle."""

    def __init__(self, store: LedgerStore):
        self.store = store

    async def reconcile_vehicle_agreements(self) -> ConflictResolutionResult:
        """Cancel every agreement that is not the newest on its vehicle.

        Only active and pending_payment agreements compete. A failed
        cancellation is recorded and the run moves on; running twice with
        no new agreements performs no writes the second time.

        Returns:
            ConflictResolutionResult with counts and per-agreement errors
        """
        result = ConflictResolutionResult()
        try:
            agreements = await self.store.list_agreements_by_status(CONFLICTING_STATUSES)
        except FleetLedgerError as e:
            logger.exception("Failed to list agreements for conflict check")
            result.errors.append({"agreement_id": None, "error": str(e)})
            return result

        by_vehicle: dict[UUID, list[Agreement]] = defaultdict(list)
        for agreement in agreements:
            by_vehicle[agreement.vehicle_id].append(agreement)

        for vehicle_id, group in by_vehicle.items():
            if len(group) < 2:
                continue

            keep, *stale = newest_first(group)
            logger.info(
                "Vehicle %s has %d agreements; keeping %s",
                vehicle_id,
                len(group),
                keep.agreement_number or keep.id,
            )
            cancelled = await self._cancel_all(stale, result)
            if cancelled:
                result.vehicles_fixed += 1

        logger.info(result.message)
        return result

    async def _cancel_all(
        self, agreements: list[Agreement], result: ConflictResolutionResult
    ) -> int:
        cancelled = 0
        for agreement in agreements:
            try:
                await self.store.update_lease_status(agreement.id, AgreementStatus.CANCELLED)
            except FleetLedgerError as e:
                logger.exception("Failed to cancel agreement %s", agreement.id)
                result.errors.append({"agreement_id": str(agreement.id), "error": str(e)})
                continue
            cancelled += 1
            result.updated_count += 1
            result.cancelled_ids.append(agreement.id)
        return cancelled

    async def check_vehicle_booking_conflicts(
        self, vehicle_id: UUID, exclude_agreement_id: UUID | None = None
    ) -> BookingConflictReport:
        """List active agreements on a vehicle, excluding the one being edited.

        Raises:
            PersistenceError: If the lookup fails
        """
        leases = await self.store.list_active_leases_for_vehicle(vehicle_id)
        conflicts = [lease for lease in leases if lease.id != exclude_agreement_id]
        return BookingConflictReport(vehicle_id=vehicle_id, conflicts=newest_first(conflicts))

    async def resolve_vehicle_booking_conflicts(
        self, vehicle_id: UUID, keep_agreement_id: UUID
    ) -> ConflictResolutionResult:
        """Cancel every active agreement on a vehicle except `keep_agreement_id`."""
        result = ConflictResolutionResult()
        try:
            report = await self.check_vehicle_booking_conflicts(vehicle_id, keep_agreement_id)
        except FleetLedgerError as e:
            logger.exception("Failed to check conflicts for vehicle %s", vehicle_id)
            result.errors.append({"agreement_id": None, "error": str(e)})
            return result

        if not report.has_conflicts:
            return result

        if await self._cancel_all(report.conflicts, result):
            result.vehicles_fixed = 1
        return result
