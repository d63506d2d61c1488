"""Pure reconciliation calculators."""

from fleet_ledger.calculators.intervals import Interval, find_containing_interval
from fleet_ledger.calculators.late_fee import LateFee, compute_late_fee
from fleet_ledger.calculators.ledger_resolver import (
    IncomingPayment,
    LedgerAction,
    LedgerUpdate,
    resolve_payment,
)

__all__ = [
    "Interval",
    "find_containing_interval",
    "LateFee",
    "compute_late_fee",
    "IncomingPayment",
    "LedgerAction",
    "LedgerUpdate",
    "resolve_payment",
]
