"""Exception taxonomy for the reconciliation core.

Validation errors are raised before any computation or I/O. Not-found and
persistence errors are raised by stores; orchestration services catch them
and turn them into structured results.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any


class FleetLedgerError(Exception):
    """Base class for all fleet ledger errors."""


class ValidationError(FleetLedgerError):
    """Input rejected before any computation."""


class InvalidPaymentAmountError(ValidationError):
    """Raised when a payment amount is not strictly positive."""

    def __init__(self, amount: Any):
        self.amount = amount
        super().__init__(f"Payment amount must be positive, got {amount!r}")


class InvalidDateError(ValidationError):
    """Raised when a value that must be a calendar date is not one."""

    def __init__(self, field_name: str, value: Any):
        self.field_name = field_name
        self.value = value
        super().__init__(f"{field_name} must be a date, got {value!r}")


class InvalidRateError(ValidationError):
    """Raised when a fee rate or cap is negative or not numeric."""

    def __init__(self, field_name: str, value: Any):
        self.field_name = field_name
        self.value = value
        super().__init__(f"{field_name} must be a non-negative amount, got {value!r}")


class MissingLicensePlateError(ValidationError):
    """Raised when a fine carries no license plate."""

    def __init__(self, fine_id: Any | None = None):
        self.fine_id = fine_id
        msg = "License plate is required for traffic fines"
        if fine_id is not None:
            msg = f"Fine {fine_id} is missing license plate information"
        super().__init__(msg)


class FutureViolationDateError(ValidationError):
    """Raised when a violation date lies after today."""

    def __init__(self, violation_date: date, today: date):
        self.violation_date = violation_date
        self.today = today
        super().__init__(
            f"Violation date {violation_date.isoformat()} cannot be in the future "
            f"(today is {today.isoformat()})"
        )


class RecordShapeError(ValidationError):
    """Raised when a raw backend row cannot be converted to a typed entity."""

    def __init__(self, entity: str, reason: str):
        self.entity = entity
        self.reason = reason
        super().__init__(f"Invalid {entity} record: {reason}")


class NotFoundError(FleetLedgerError):
    """Raised when a referenced entity does not exist."""

    def __init__(self, entity: str, entity_id: Any):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class PersistenceError(FleetLedgerError):
    """Backend failure, carrying the underlying message."""

    def __init__(self, operation: str, message: str):
        self.operation = operation
        self.message = message
        super().__init__(f"{operation} failed: {message}")


def as_decimal(value: Any, field_name: str) -> Decimal:
    """Coerce a finite numeric value to Decimal, raising InvalidRateError otherwise."""
    if isinstance(value, bool):
        raise InvalidRateError(field_name, value)
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, (float, str)):
        try:
            result = Decimal(str(value))
        except ArithmeticError:
            raise InvalidRateError(field_name, value) from None
    else:
        raise InvalidRateError(field_name, value)
    if not result.is_finite():
        raise InvalidRateError(field_name, value)
    return result
