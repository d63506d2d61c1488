"""Traffic fine attribution.

A fine is attributed to the lease that was active for the fined vehicle on
the violation date. A fine must never be linked to a customer who was not
contractually responsible for the vehicle on that date, so every path that
writes `lease_id` goes through the interval matcher.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4

from fleet_ledger.calculators.intervals import Interval, find_containing_interval
from fleet_ledger.domain.types import (
    Agreement,
    AssignmentStatus,
    FineAssignment,
    TrafficFine,
)
from fleet_ledger.errors import (
    FleetLedgerError,
    FutureViolationDateError,
    InvalidDateError,
    InvalidRateError,
    MissingLicensePlateError,
    NotFoundError,
    as_decimal,
)
from fleet_ledger.persistence.base import LedgerStore
from fleet_ledger.services.batch import BatchResult, run_sequential

logger = logging.getLogger(__name__)


class AssignmentErrorKind(str, Enum):
    """Why a fine could not be assigned."""

    FINE_NOT_FOUND = "fine_not_found"
    MISSING_LICENSE_PLATE = "missing_license_plate"
    VEHICLE_NOT_FOUND = "vehicle_not_found"
    NO_ACTIVE_LEASE = "no_active_lease"
    NO_MATCHING_LEASE_PERIOD = "no_matching_lease_period"
    PERSISTENCE_ERROR = "persistence_error"


# Business outcomes the operator can act on, as opposed to faults.
EXPECTED_OUTCOMES = frozenset(
    {AssignmentErrorKind.NO_ACTIVE_LEASE, AssignmentErrorKind.NO_MATCHING_LEASE_PERIOD}
)


@dataclass(frozen=True)
class AssignmentResult:
    """Result of matching (and possibly persisting) one fine to a lease."""

    fine_id: UUID
    lease_id: UUID | None = None
    customer_id: UUID | None = None
    vehicle_id: UUID | None = None
    error: AssignmentErrorKind | None = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def is_expected_outcome(self) -> bool:
        """True when the failure is a gap between rentals, not a fault."""
        return self.error in EXPECTED_OUTCOMES

    @classmethod
    def failed(
        cls,
        fine_id: UUID,
        error: AssignmentErrorKind,
        message: str,
        vehicle_id: UUID | None = None,
    ) -> AssignmentResult:
        return cls(fine_id=fine_id, vehicle_id=vehicle_id, error=error, message=message)


@dataclass(frozen=True)
class FineCreateResult:
    """Result of create_fine: the stored fine and how assignment went."""

    success: bool
    message: str
    fine: TrafficFine | None = None
    assignment: AssignmentResult | None = None


class FineAssignmentService:
    """Matches traffic fines to leases and keeps assignments valid."""

    def __init__(self, store: LedgerStore, today: Callable[[], date] | None = None):
        self.store = store
        self._today = today or date.today

    async def match_lease(
        self, fine_id: UUID, license_plate: str | None, violation_date: date
    ) -> AssignmentResult:
        """Find the lease responsible for a vehicle on a date, without writing.

        Args:
            fine_id: Fine being matched (carried into the result)
            license_plate: Plate on the fine
            violation_date: Date of the violation

        Returns:
            AssignmentResult with lease_id/customer_id set, or an error kind
        """
        plate = (license_plate or "").strip()
        if not plate:
            return AssignmentResult.failed(
                fine_id,
                AssignmentErrorKind.MISSING_LICENSE_PLATE,
                str(MissingLicensePlateError(fine_id)),
            )

        try:
            vehicle_id = await self.store.fetch_vehicle_id_by_plate(plate)
        except FleetLedgerError as e:
            logger.exception("Vehicle lookup failed for plate %s", plate)
            return AssignmentResult.failed(fine_id, AssignmentErrorKind.PERSISTENCE_ERROR, str(e))
        if vehicle_id is None:
            return AssignmentResult.failed(
                fine_id,
                AssignmentErrorKind.VEHICLE_NOT_FOUND,
                f"No vehicle found with license plate {plate}",
            )

        try:
            leases = await self.store.list_active_leases_for_vehicle(vehicle_id)
        except FleetLedgerError as e:
            logger.exception("Lease lookup failed for vehicle %s", vehicle_id)
            return AssignmentResult.failed(
                fine_id, AssignmentErrorKind.PERSISTENCE_ERROR, str(e), vehicle_id
            )
        if not leases:
            return AssignmentResult.failed(
                fine_id,
                AssignmentErrorKind.NO_ACTIVE_LEASE,
                f"No active lease found for vehicle {plate}",
                vehicle_id,
            )

        by_id = {lease.id: lease for lease in leases}
        match = find_containing_interval(violation_date, _lease_intervals(leases))
        if match is None:
            return AssignmentResult.failed(
                fine_id,
                AssignmentErrorKind.NO_MATCHING_LEASE_PERIOD,
                f"Fine date {violation_date.isoformat()} is outside any lease period "
                f"for vehicle {plate}",
                vehicle_id,
            )

        lease = by_id[match.id]
        return AssignmentResult(
            fine_id=fine_id,
            lease_id=lease.id,
            customer_id=lease.customer_id,
            vehicle_id=vehicle_id,
            message=f"Matched lease {lease.agreement_number or lease.id}",
        )

    async def assign_fine_to_customer(self, fine_id: UUID) -> AssignmentResult:
        """Attribute a stored fine to the lease active on its violation date.

        Never raises for persistence failures or business no-match outcomes;
        the result's `error` tells the caller which one happened.
        """
        try:
            fine = await self.store.fetch_fine(fine_id)
        except FleetLedgerError as e:
            logger.exception("Failed to load fine %s", fine_id)
            return AssignmentResult.failed(fine_id, AssignmentErrorKind.PERSISTENCE_ERROR, str(e))
        if fine is None:
            return AssignmentResult.failed(
                fine_id, AssignmentErrorKind.FINE_NOT_FOUND, f"Fine {fine_id} not found"
            )

        result = await self.match_lease(fine.id, fine.license_plate, fine.violation_date)
        if not result.ok:
            if result.is_expected_outcome:
                logger.info("Fine %s not assigned: %s", fine_id, result.message)
            else:
                logger.warning("Fine %s not assigned: %s", fine_id, result.message)
            return result

        try:
            await self.store.update_fine_assignment(
                fine_id, FineAssignment(result.lease_id, AssignmentStatus.ASSIGNED)
            )
        except NotFoundError as e:
            return AssignmentResult.failed(fine_id, AssignmentErrorKind.FINE_NOT_FOUND, str(e))
        except FleetLedgerError as e:
            logger.exception("Failed to persist assignment for fine %s", fine_id)
            return AssignmentResult.failed(
                fine_id, AssignmentErrorKind.PERSISTENCE_ERROR, str(e), result.vehicle_id
            )

        logger.info("Assigned fine %s to lease %s", fine_id, result.lease_id)
        return result

    async def auto_assign_fines(
        self, fine_ids: Iterable[UUID] | None = None
    ) -> BatchResult[AssignmentResult]:
        """Assign the given fines, or every unassigned fine, one at a time.

        Failures are recorded per fine and the batch continues.
        """
        batch: BatchResult[AssignmentResult] = BatchResult()

        if fine_ids is None:
            try:
                fine_ids = [fine.id for fine in await self.store.list_fines(assigned=False)]
            except FleetLedgerError as e:
                logger.exception("Failed to list unassigned fines")
                batch.record_failure("*", AssignmentErrorKind.PERSISTENCE_ERROR.value, str(e))
                return batch

        async def assign(fine_id: UUID) -> None:
            result = await self.assign_fine_to_customer(fine_id)
            if result.ok:
                batch.record_success(result)
            else:
                batch.record_failure(fine_id, result.error.value, result.message)

        await run_sequential(list(fine_ids), assign)
        logger.info(
            "Auto-assign finished: %d assigned, %d failed", batch.succeeded, batch.failed
        )
        return batch

    async def cleanup_invalid_assignments(self) -> BatchResult[UUID]:
        """Unassign fines whose lease no longer covers the violation date.

        A fine counts as invalid when its lease is gone or the lease's
        [start, end] interval excludes the violation date. Only invalid
        fines are processed.
        """
        batch: BatchResult[UUID] = BatchResult()
        try:
            fines = await self.store.list_fines(assigned=True)
        except FleetLedgerError as e:
            logger.exception("Failed to list assigned fines")
            batch.record_failure("*", "persistence_error", str(e))
            return batch

        leases: dict[UUID, Agreement | None] = {}
        invalid: list[TrafficFine] = []
        for fine in fines:
            if fine.lease_id not in leases:
                try:
                    leases[fine.lease_id] = await self.store.fetch_lease(fine.lease_id)
                except FleetLedgerError as e:
                    logger.exception("Failed to load lease %s", fine.lease_id)
                    batch.record_failure(fine.id, "persistence_error", str(e))
                    continue
            lease = leases[fine.lease_id]
            if lease is None or not _lease_interval(lease).contains(fine.violation_date):
                invalid.append(fine)

        async def unassign(fine: TrafficFine) -> None:
            try:
                await self.store.update_fine_assignment(
                    fine.id, FineAssignment(None, AssignmentStatus.PENDING)
                )
            except FleetLedgerError as e:
                logger.exception("Failed to unassign fine %s", fine.id)
                batch.record_failure(fine.id, "persistence_error", str(e))
                return
            batch.record_success(fine.id)

        await run_sequential(invalid, unassign)
        if invalid:
            logger.info(
                "Cleanup finished: %d unassigned, %d failed", batch.succeeded, batch.failed
            )
        return batch

    async def create_fine(
        self,
        license_plate: str | None,
        violation_date: date,
        fine_amount: Decimal | int | str,
        *,
        violation_number: str | None = None,
        violation_charge: str | None = None,
        location: str | None = None,
    ) -> FineCreateResult:
        """Validate, auto-assign and store a new traffic fine.

        The fine is stored even when no lease matches; it is then left
        pending for a later auto-assign run.

        Raises:
            MissingLicensePlateError: If the plate is absent or blank
            InvalidDateError: If violation_date is not a date
            FutureViolationDateError: If violation_date is after today
            InvalidRateError: If fine_amount is negative or not numeric
        """
        plate = (license_plate or "").strip()
        if not plate:
            raise MissingLicensePlateError()
        if isinstance(violation_date, datetime):
            violation_date = violation_date.date()
        if not isinstance(violation_date, date):
            raise InvalidDateError("violation_date", violation_date)
        today = self._today()
        if violation_date > today:
            raise FutureViolationDateError(violation_date, today)
        amount = as_decimal(fine_amount, "fine_amount")
        if amount < 0:
            raise InvalidRateError("fine_amount", fine_amount)

        fine_id = uuid4()
        match = await self.match_lease(fine_id, plate, violation_date)
        fine = TrafficFine(
            id=fine_id,
            license_plate=plate,
            violation_date=violation_date,
            fine_amount=amount,
            assignment_status=(
                AssignmentStatus.ASSIGNED if match.ok else AssignmentStatus.PENDING
            ),
            vehicle_id=match.vehicle_id,
            lease_id=match.lease_id,
            violation_number=violation_number,
            violation_charge=violation_charge,
            location=location,
        )

        try:
            await self.store.insert_fine(fine)
        except FleetLedgerError as e:
            logger.exception("Failed to store fine for plate %s", plate)
            return FineCreateResult(success=False, message=f"Failed to create fine: {e}")

        if match.ok:
            message = f"Fine created and assigned to lease {match.lease_id}"
        else:
            message = f"Fine created but not assigned: {match.message}"
        logger.info("Created fine %s (%s)", fine_id, fine.assignment_status.value)
        return FineCreateResult(success=True, message=message, fine=fine, assignment=match)


def _lease_interval(lease: Agreement) -> Interval[UUID]:
    return Interval(lease.id, lease.start_date, lease.end_date)


def _lease_intervals(leases: Iterable[Agreement]) -> list[Interval[UUID]]:
    return [_lease_interval(lease) for lease in leases]
