"""Reconciliation orchestration services.

Each service receives its LedgerStore (and config where money is
involved) explicitly and returns structured results instead of raising
for persistence failures.
"""

from fleet_ledger.services.agreement_conflicts import (
    AgreementConflictResolver,
    BookingConflictReport,
    ConflictResolutionResult,
)
from fleet_ledger.services.agreement_status import (
    AgreementStateMachine,
    AgreementStatusService,
    InvalidTransitionError,
    StatusChange,
)
from fleet_ledger.services.batch import BatchResult, ItemFailure, run_sequential
from fleet_ledger.services.fine_assignment import (
    AssignmentErrorKind,
    AssignmentResult,
    FineAssignmentService,
    FineCreateResult,
)
from fleet_ledger.services.fine_validation import FineValidationService
from fleet_ledger.services.special_payment import (
    PaymentRecordResult,
    SpecialPaymentOptions,
    SpecialPaymentOrchestrator,
)

__all__ = [
    # Agreements
    "AgreementConflictResolver",
    "BookingConflictReport",
    "ConflictResolutionResult",
    "AgreementStateMachine",
    "AgreementStatusService",
    "InvalidTransitionError",
    "StatusChange",
    # Batches
    "BatchResult",
    "ItemFailure",
    "run_sequential",
    # Fines
    "AssignmentErrorKind",
    "AssignmentResult",
    "FineAssignmentService",
    "FineCreateResult",
    "FineValidationService",
    # Payments
    "PaymentRecordResult",
    "SpecialPaymentOptions",
    "SpecialPaymentOrchestrator",
]
