"""Agreement lifecycle state machine and status maintenance."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date
from uuid import UUID

from fleet_ledger.domain.types import Agreement, AgreementStatus
from fleet_ledger.errors import FleetLedgerError, NotFoundError, ValidationError
from fleet_ledger.persistence.base import LedgerStore
from fleet_ledger.services.batch import BatchResult

logger = logging.getLogger(__name__)


class InvalidTransitionError(ValidationError):
    """Raised when an invalid status transition is attempted."""

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        msg = f"Invalid transition from '{from_status}' to '{to_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class AgreementStateMachine:
    """State machine for agreement status transitions.

    Allowed transitions:
    - draft → pending_payment, pending_deposit, active, cancelled
    - pending_payment → active, cancelled
    - pending_deposit → active, cancelled
    - active → completed, cancelled, terminated
    - completed, cancelled, terminated → archived
    """

    VALID_TRANSITIONS: dict[AgreementStatus, list[AgreementStatus]] = {
        AgreementStatus.DRAFT: [
            AgreementStatus.PENDING_PAYMENT,
            AgreementStatus.PENDING_DEPOSIT,
            AgreementStatus.ACTIVE,
            AgreementStatus.CANCELLED,
        ],
        AgreementStatus.PENDING_PAYMENT: [AgreementStatus.ACTIVE, AgreementStatus.CANCELLED],
        AgreementStatus.PENDING_DEPOSIT: [AgreementStatus.ACTIVE, AgreementStatus.CANCELLED],
        AgreementStatus.ACTIVE: [
            AgreementStatus.COMPLETED,
            AgreementStatus.CANCELLED,
            AgreementStatus.TERMINATED,
        ],
        AgreementStatus.COMPLETED: [AgreementStatus.ARCHIVED],
        AgreementStatus.CANCELLED: [AgreementStatus.ARCHIVED],
        AgreementStatus.TERMINATED: [AgreementStatus.ARCHIVED],
        AgreementStatus.ARCHIVED: [],  # Terminal state
    }

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(AgreementStatus(from_status), [])
        return AgreementStatus(to_status) in allowed

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """Validate a transition, raising InvalidTransitionError if invalid."""
        if not cls.can_transition(from_status, to_status):
            raise InvalidTransitionError(
                AgreementStatus(from_status).value, AgreementStatus(to_status).value
            )

    @classmethod
    def is_terminal(cls, status: str) -> bool:
        return not cls.VALID_TRANSITIONS.get(AgreementStatus(status))

    @classmethod
    def get_next_statuses(cls, current_status: str) -> list[AgreementStatus]:
        """Get list of valid next statuses from current status."""
        return cls.VALID_TRANSITIONS.get(AgreementStatus(current_status), [])


@dataclass(frozen=True)
class StatusChange:
    agreement_id: UUID
    from_status: AgreementStatus
    to_status: AgreementStatus


class AgreementStatusService:
    """Moves agreements along their lifecycle based on dates and payments."""

    def __init__(self, store: LedgerStore, today: Callable[[], date] | None = None):
        self.store = store
        self._today = today or date.today

    async def transition(self, agreement: Agreement, to_status: AgreementStatus) -> None:
        """Validate and persist one status change.

        Raises:
            InvalidTransitionError: If the lifecycle forbids the change
            PersistenceError: If the write fails
        """
        AgreementStateMachine.validate_transition(agreement.status, to_status)
        await self.store.update_lease_status(agreement.id, to_status)
        logger.info(
            "Agreement %s: %s -> %s", agreement.id, agreement.status.value, to_status.value
        )

    async def run_status_maintenance(self, today: date | None = None) -> BatchResult[StatusChange]:
        """Complete expired agreements and activate paid pending ones.

        - active agreements whose end date is before today become completed
        - pending_payment agreements whose start date has arrived and that
          have a completed payment become active

        Each agreement is handled on its own; failures are recorded and the
        run continues.
        """
        today = today or self._today()
        batch: BatchResult[StatusChange] = BatchResult()

        try:
            candidates = await self.store.list_agreements_by_status(
                (AgreementStatus.ACTIVE, AgreementStatus.PENDING_PAYMENT)
            )
        except FleetLedgerError as e:
            logger.exception("Failed to list agreements for status maintenance")
            batch.record_failure("*", "persistence_error", str(e))
            return batch

        for agreement in candidates:
            try:
                target = await self._target_status(agreement, today)
                if target is None:
                    continue
                await self.transition(agreement, target)
            except FleetLedgerError as e:
                logger.exception("Status maintenance failed for agreement %s", agreement.id)
                batch.record_failure(agreement.id, _error_code(e), str(e))
                continue
            batch.record_success(StatusChange(agreement.id, agreement.status, target))

        logger.info(
            "Status maintenance finished: %d changed, %d failed", batch.succeeded, batch.failed
        )
        return batch

    async def _target_status(self, agreement: Agreement, today: date) -> AgreementStatus | None:
        if agreement.status == AgreementStatus.ACTIVE:
            if agreement.end_date is not None and agreement.end_date < today:
                return AgreementStatus.COMPLETED
            return None
        if agreement.status == AgreementStatus.PENDING_PAYMENT and agreement.start_date <= today:
            if await self.store.has_completed_payment(agreement.id):
                return AgreementStatus.ACTIVE
        return None


def _error_code(error: FleetLedgerError) -> str:
    if isinstance(error, InvalidTransitionError):
        return "invalid_transition"
    if isinstance(error, ValidationError):
        return "validation_error"
    if isinstance(error, NotFoundError):
        return "not_found"
    return "persistence_error"
