"""Typed domain entities."""

from fleet_ledger.domain.types import (
    Agreement,
    AgreementStatus,
    AssignmentStatus,
    FineAssignment,
    FinePaymentStatus,
    LedgerEntry,
    LedgerPatch,
    PaymentStatus,
    PaymentType,
    TrafficFine,
    Vehicle,
)

__all__ = [
    "Agreement",
    "AgreementStatus",
    "AssignmentStatus",
    "FineAssignment",
    "FinePaymentStatus",
    "LedgerEntry",
    "LedgerPatch",
    "PaymentStatus",
    "PaymentType",
    "TrafficFine",
    "Vehicle",
]
