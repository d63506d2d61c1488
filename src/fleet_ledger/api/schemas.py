"""Pydantic schemas for API request/response models."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


# ============================================================================
# Common schemas
# ============================================================================


class ErrorResponse(BaseModel):
    """Schema for error response."""

    detail: str
    code: str | None = None
    context: dict[str, Any] | None = None


class ItemFailureResponse(BaseModel):
    """One failed item in a batch."""

    model_config = ConfigDict(from_attributes=True)

    item_id: str
    code: str
    message: str


class BatchResponse(BaseModel):
    """Aggregate outcome of a sequential batch."""

    processed: int
    succeeded: int
    failed: int
    success: bool
    failures: list[ItemFailureResponse] = Field(default_factory=list)


# ============================================================================
# Late fee schemas
# ============================================================================


class LateFeeResponse(BaseModel):
    """Schema for a late fee computation."""

    payment_date: date
    daily_rate: Decimal
    cap_amount: Decimal
    days_late: int
    fee_amount: Decimal
    is_late: bool


# ============================================================================
# Payment schemas
# ============================================================================


class PaymentCreate(BaseModel):
    """Schema for recording a payment against an agreement."""

    amount: Decimal = Field(gt=0)
    payment_date: date
    payment_method: str = "cash"
    reference_number: str | None = None
    notes: str | None = None
    include_late_payment_fee: bool = False
    is_partial_payment: bool = False
    target_payment_id: UUID | None = None
    contractual_amount: Decimal | None = Field(default=None, gt=0)


class PaymentRecordResponse(BaseModel):
    """Schema for a recorded payment."""

    success: bool
    message: str
    action: str | None = None
    entry_id: UUID | None = None
    late_fee_entry_id: UUID | None = None
    days_late: int = 0
    late_fee_amount: Decimal = Decimal("0")
    status: str | None = None
    balance: Decimal | None = None


# ============================================================================
# Agreement schemas
# ============================================================================


class AgreementSummary(BaseModel):
    """Schema for an agreement in conflict listings."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    agreement_number: str | None = None
    customer_id: UUID
    status: str
    start_date: date
    end_date: date | None = None
    created_at: datetime


class ConflictResolutionResponse(BaseModel):
    """Schema for an agreement reconciliation run."""

    success: bool
    message: str
    updated_count: int
    vehicles_fixed: int
    cancelled_ids: list[UUID]
    errors: list[dict[str, Any]]


class BookingConflictResponse(BaseModel):
    """Schema for active agreements holding a vehicle."""

    vehicle_id: UUID
    has_conflicts: bool
    conflicts: list[AgreementSummary]
    newest_id: UUID | None = None
    oldest_id: UUID | None = None


class StatusMaintenanceRequest(BaseModel):
    """Schema for a status maintenance run; `today` defaults to the server date."""

    today: date | None = None


class StatusChangeResponse(BaseModel):
    """One agreement moved by status maintenance."""

    model_config = ConfigDict(from_attributes=True)

    agreement_id: UUID
    from_status: str
    to_status: str


class StatusMaintenanceResponse(BatchResponse):
    """Schema for a status maintenance run."""

    changes: list[StatusChangeResponse] = Field(default_factory=list)


# ============================================================================
# Traffic fine schemas
# ============================================================================


class FineCreate(BaseModel):
    """Schema for creating a traffic fine."""

    license_plate: str | None = None
    violation_date: date
    fine_amount: Decimal = Field(ge=0)
    violation_number: str | None = None
    violation_charge: str | None = None
    location: str | None = None


class FineResponse(BaseModel):
    """Schema for a traffic fine."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    license_plate: str | None
    violation_date: date
    fine_amount: Decimal
    payment_status: str
    assignment_status: str
    vehicle_id: UUID | None = None
    lease_id: UUID | None = None
    violation_number: str | None = None
    violation_charge: str | None = None
    location: str | None = None


class AssignmentResponse(BaseModel):
    """Schema for a fine assignment attempt."""

    fine_id: UUID
    assigned: bool
    lease_id: UUID | None = None
    customer_id: UUID | None = None
    error: str | None = None
    is_expected_outcome: bool = False
    message: str


class FineCreateResponse(BaseModel):
    """Schema for a created fine and its assignment."""

    message: str
    fine: FineResponse
    assignment: AssignmentResponse | None = None


class AutoAssignRequest(BaseModel):
    """Fines to assign; all unassigned fines when omitted."""

    fine_ids: list[UUID] | None = None


class AutoAssignResponse(BatchResponse):
    """Schema for an auto-assign batch."""

    assignments: list[AssignmentResponse] = Field(default_factory=list)
