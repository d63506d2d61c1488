"""Typed entities for the reconciliation core.

Rows coming back from the backend are loosely shaped (optional fields,
ISO strings, floats). `from_row` converts them into these entities and
rejects anything that cannot be read, so the calculators and services
only ever see validated values.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from fleet_ledger.errors import RecordShapeError


class AgreementStatus(str, Enum):
    """Agreement (lease) status values."""

    DRAFT = "draft"
    PENDING_PAYMENT = "pending_payment"
    PENDING_DEPOSIT = "pending_deposit"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    TERMINATED = "terminated"
    ARCHIVED = "archived"


class PaymentStatus(str, Enum):
    """Ledger entry status values."""

    PENDING = "pending"
    PARTIALLY_PAID = "partially_paid"
    COMPLETED = "completed"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class PaymentType(str, Enum):
    """Ledger entry types."""

    RENT = "rent"
    DEPOSIT = "deposit"
    FEE = "fee"
    LATE_PAYMENT_FEE = "LATE_PAYMENT_FEE"


class FinePaymentStatus(str, Enum):
    """Traffic fine payment status values."""

    PENDING = "pending"
    PAID = "paid"
    DISPUTED = "disputed"


class AssignmentStatus(str, Enum):
    """Traffic fine assignment status values."""

    PENDING = "pending"
    ASSIGNED = "assigned"


# =============================================================================
# Coercion helpers
# =============================================================================


def _require(row: Mapping[str, Any], key: str, entity: str) -> Any:
    value = row.get(key)
    if value is None:
        raise RecordShapeError(entity, f"missing '{key}'")
    return value


def coerce_uuid(value: Any, entity: str, key: str) -> UUID:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        raise RecordShapeError(entity, f"'{key}' is not a valid id: {value!r}") from None


def coerce_optional_uuid(value: Any, entity: str, key: str) -> UUID | None:
    if value is None or value == "":
        return None
    return coerce_uuid(value, entity, key)


def coerce_date(value: Any, entity: str, key: str) -> date:
    """Accept a date, a datetime (its calendar date) or an ISO string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            if len(text) > 10:
                return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
            return date.fromisoformat(text)
        except ValueError:
            pass
    raise RecordShapeError(entity, f"'{key}' is not a valid date: {value!r}")


def coerce_optional_date(value: Any, entity: str, key: str) -> date | None:
    if value is None or value == "":
        return None
    return coerce_date(value, entity, key)


def coerce_datetime(value: Any, entity: str, key: str) -> datetime:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            raise RecordShapeError(entity, f"'{key}' is not a valid timestamp: {value!r}") from None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    raise RecordShapeError(entity, f"'{key}' is not a valid timestamp: {value!r}")


def coerce_decimal(value: Any, entity: str, key: str, default: Decimal | None = None) -> Decimal:
    if value is None:
        if default is None:
            raise RecordShapeError(entity, f"missing '{key}'")
        return default
    if isinstance(value, bool):
        raise RecordShapeError(entity, f"'{key}' is not numeric: {value!r}")
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value))
    except ArithmeticError:
        raise RecordShapeError(entity, f"'{key}' is not numeric: {value!r}") from None
    if not result.is_finite():
        raise RecordShapeError(entity, f"'{key}' is not finite: {value!r}")
    return result


def coerce_enum(enum_cls: type[Enum], value: Any, entity: str, key: str) -> Any:
    try:
        return enum_cls(value)
    except ValueError:
        raise RecordShapeError(entity, f"'{key}' has unknown value {value!r}") from None


# =============================================================================
# Entities
# =============================================================================


@dataclass(frozen=True)
class Vehicle:
    """Fleet vehicle. Read-only from the reconciliation core."""

    id: UUID
    license_plate: str
    make: str | None = None
    model: str | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> Vehicle:
        plate = str(_require(row, "license_plate", "vehicle")).strip()
        if not plate:
            raise RecordShapeError("vehicle", "empty 'license_plate'")
        return cls(
            id=coerce_uuid(_require(row, "id", "vehicle"), "vehicle", "id"),
            license_plate=plate,
            make=row.get("make"),
            model=row.get("model"),
        )


@dataclass(frozen=True)
class Agreement:
    """Rental contract (lease) for one vehicle over a date range.

    `end_date` of None means the lease is open-ended.
    """

    id: UUID
    vehicle_id: UUID
    customer_id: UUID
    start_date: date
    end_date: date | None
    status: AgreementStatus
    rent_amount: Decimal | None
    daily_late_fee: Decimal | None
    agreement_number: str | None
    created_at: datetime

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> Agreement:
        start = coerce_date(_require(row, "start_date", "agreement"), "agreement", "start_date")
        end = coerce_optional_date(row.get("end_date"), "agreement", "end_date")
        if end is not None and end < start:
            raise RecordShapeError("agreement", "'end_date' precedes 'start_date'")
        rent = row.get("rent_amount")
        late_fee = row.get("daily_late_fee")
        return cls(
            id=coerce_uuid(_require(row, "id", "agreement"), "agreement", "id"),
            vehicle_id=coerce_uuid(_require(row, "vehicle_id", "agreement"), "agreement", "vehicle_id"),
            customer_id=coerce_uuid(
                _require(row, "customer_id", "agreement"), "agreement", "customer_id"
            ),
            start_date=start,
            end_date=end,
            status=coerce_enum(
                AgreementStatus, row.get("status", "draft"), "agreement", "status"
            ),
            rent_amount=None if rent is None else coerce_decimal(rent, "agreement", "rent_amount"),
            daily_late_fee=(
                None
                if late_fee is None
                else coerce_decimal(late_fee, "agreement", "daily_late_fee")
            ),
            agreement_number=row.get("agreement_number"),
            created_at=coerce_datetime(
                _require(row, "created_at", "agreement"), "agreement", "created_at"
            ),
        )


@dataclass(frozen=True)
class LedgerEntry:
    """One financial transaction recorded against an agreement.

    `id` is None for an entry that has not been persisted yet.
    """

    lease_id: UUID
    amount: Decimal
    amount_paid: Decimal
    balance: Decimal
    status: PaymentStatus
    type: PaymentType
    payment_date: date | None = None
    days_overdue: int = 0
    late_fine_amount: Decimal = Decimal("0")
    original_due_date: date | None = None
    payment_method: str | None = None
    reference_number: str | None = None
    description: str | None = None
    id: UUID | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> LedgerEntry:
        amount = coerce_decimal(row.get("amount"), "ledger entry", "amount", Decimal("0"))
        amount_paid = coerce_decimal(
            row.get("amount_paid"), "ledger entry", "amount_paid", Decimal("0")
        )
        balance = coerce_decimal(
            row.get("balance"), "ledger entry", "balance", max(Decimal("0"), amount - amount_paid)
        )
        days = row.get("days_overdue") or 0
        try:
            days_overdue = int(days)
        except (TypeError, ValueError):
            raise RecordShapeError("ledger entry", f"'days_overdue' is not an integer: {days!r}") from None
        return cls(
            id=coerce_optional_uuid(row.get("id"), "ledger entry", "id"),
            lease_id=coerce_uuid(_require(row, "lease_id", "ledger entry"), "ledger entry", "lease_id"),
            amount=amount,
            amount_paid=amount_paid,
            balance=balance,
            status=coerce_enum(
                PaymentStatus, row.get("status", "pending"), "ledger entry", "status"
            ),
            type=coerce_enum(PaymentType, row.get("type", "rent"), "ledger entry", "type"),
            payment_date=coerce_optional_date(row.get("payment_date"), "ledger entry", "payment_date"),
            days_overdue=days_overdue,
            late_fine_amount=coerce_decimal(
                row.get("late_fine_amount"), "ledger entry", "late_fine_amount", Decimal("0")
            ),
            original_due_date=coerce_optional_date(
                row.get("original_due_date"), "ledger entry", "original_due_date"
            ),
            payment_method=row.get("payment_method"),
            reference_number=row.get("reference_number"),
            description=row.get("description"),
        )


@dataclass(frozen=True)
class TrafficFine:
    """Externally issued violation record, attributable to a lease."""

    id: UUID
    license_plate: str | None
    violation_date: date
    fine_amount: Decimal
    payment_status: FinePaymentStatus = FinePaymentStatus.PENDING
    assignment_status: AssignmentStatus = AssignmentStatus.PENDING
    vehicle_id: UUID | None = None
    lease_id: UUID | None = None
    violation_number: str | None = None
    violation_charge: str | None = None
    location: str | None = None

    @property
    def is_assigned(self) -> bool:
        return self.lease_id is not None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> TrafficFine:
        plate = row.get("license_plate")
        if plate is not None:
            plate = str(plate).strip() or None
        return cls(
            id=coerce_uuid(_require(row, "id", "traffic fine"), "traffic fine", "id"),
            license_plate=plate,
            violation_date=coerce_date(
                _require(row, "violation_date", "traffic fine"), "traffic fine", "violation_date"
            ),
            fine_amount=coerce_decimal(
                row.get("fine_amount"), "traffic fine", "fine_amount", Decimal("0")
            ),
            payment_status=coerce_enum(
                FinePaymentStatus,
                row.get("payment_status", "pending"),
                "traffic fine",
                "payment_status",
            ),
            assignment_status=coerce_enum(
                AssignmentStatus,
                row.get("assignment_status", "pending"),
                "traffic fine",
                "assignment_status",
            ),
            vehicle_id=coerce_optional_uuid(row.get("vehicle_id"), "traffic fine", "vehicle_id"),
            lease_id=coerce_optional_uuid(row.get("lease_id"), "traffic fine", "lease_id"),
            violation_number=row.get("violation_number"),
            violation_charge=row.get("violation_charge"),
            location=row.get("location") or row.get("fine_location"),
        )


@dataclass(frozen=True)
class FineAssignment:
    """Patch applied to a fine when it is (un)assigned."""

    lease_id: UUID | None
    assignment_status: AssignmentStatus


@dataclass
class LedgerPatch:
    """Fields updated on an existing ledger entry by an additional payment."""

    amount_paid: Decimal
    balance: Decimal
    status: PaymentStatus
    payment_date: date
    payment_method: str | None = None
