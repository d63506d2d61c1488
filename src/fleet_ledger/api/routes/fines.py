"""Traffic fine endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, HTTPException, Path, status

from fleet_ledger.api.dependencies import Clock, Store
from fleet_ledger.api.schemas import (
    AssignmentResponse,
    AutoAssignRequest,
    AutoAssignResponse,
    BatchResponse,
    ErrorResponse,
    FineCreate,
    FineCreateResponse,
    FineResponse,
    ItemFailureResponse,
)
from fleet_ledger.domain.types import TrafficFine
from fleet_ledger.services.fine_assignment import (
    AssignmentErrorKind,
    AssignmentResult,
    FineAssignmentService,
)

router = APIRouter(prefix="/fines", tags=["fines"])

_ASSIGNMENT_ERROR_STATUS = {
    AssignmentErrorKind.FINE_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    AssignmentErrorKind.VEHICLE_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    AssignmentErrorKind.MISSING_LICENSE_PLATE: status.HTTP_422_UNPROCESSABLE_ENTITY,
    AssignmentErrorKind.PERSISTENCE_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def _fine_response(fine: TrafficFine) -> FineResponse:
    return FineResponse(
        id=fine.id,
        license_plate=fine.license_plate,
        violation_date=fine.violation_date,
        fine_amount=fine.fine_amount,
        payment_status=fine.payment_status.value,
        assignment_status=fine.assignment_status.value,
        vehicle_id=fine.vehicle_id,
        lease_id=fine.lease_id,
        violation_number=fine.violation_number,
        violation_charge=fine.violation_charge,
        location=fine.location,
    )


def _assignment_response(result: AssignmentResult) -> AssignmentResponse:
    return AssignmentResponse(
        fine_id=result.fine_id,
        assigned=result.ok,
        lease_id=result.lease_id,
        customer_id=result.customer_id,
        error=result.error.value if result.error else None,
        is_expected_outcome=result.is_expected_outcome,
        message=result.message,
    )


@router.post(
    "",
    response_model=FineCreateResponse,
    status_code=status.HTTP_201_CREATED,
    responses={422: {"model": ErrorResponse}},
)
async def create_fine(store: Store, clock: Clock, payload: FineCreate) -> FineCreateResponse:
    """Create a fine and assign it to the lease active on the violation date."""
    service = FineAssignmentService(store, clock)
    result = await service.create_fine(
        payload.license_plate,
        payload.violation_date,
        payload.fine_amount,
        violation_number=payload.violation_number,
        violation_charge=payload.violation_charge,
        location=payload.location,
    )
    if not result.success:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=result.message,
        )
    return FineCreateResponse(
        message=result.message,
        fine=_fine_response(result.fine),
        assignment=_assignment_response(result.assignment) if result.assignment else None,
    )


@router.post(
    "/auto-assign",
    response_model=AutoAssignResponse,
)
async def auto_assign_fines(
    store: Store, payload: AutoAssignRequest | None = None
) -> AutoAssignResponse:
    """Assign the given fines, or every unassigned fine."""
    service = FineAssignmentService(store)
    batch = await service.auto_assign_fines(payload.fine_ids if payload else None)
    return AutoAssignResponse(
        processed=batch.processed,
        succeeded=batch.succeeded,
        failed=batch.failed,
        success=batch.success,
        failures=[ItemFailureResponse.model_validate(f) for f in batch.failures],
        assignments=[_assignment_response(r) for r in batch.results],
    )


@router.post(
    "/cleanup",
    response_model=BatchResponse,
)
async def cleanup_fines(store: Store) -> BatchResponse:
    """Unassign fines whose lease no longer covers the violation date."""
    batch = await FineAssignmentService(store).cleanup_invalid_assignments()
    return BatchResponse(
        processed=batch.processed,
        succeeded=batch.succeeded,
        failed=batch.failed,
        success=batch.success,
        failures=[ItemFailureResponse.model_validate(f) for f in batch.failures],
    )


@router.post(
    "/{fine_id}/assign",
    response_model=AssignmentResponse,
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def assign_fine(
    store: Store,
    fine_id: Annotated[UUID, Path()],
) -> AssignmentResponse:
    """Assign one fine to the customer responsible on its violation date.

    A date outside every lease period is a normal outcome and answers 200
    with `assigned: false`.
    """
    result = await FineAssignmentService(store).assign_fine_to_customer(fine_id)
    if not result.ok and not result.is_expected_outcome:
        raise HTTPException(
            status_code=_ASSIGNMENT_ERROR_STATUS[result.error],
            detail=result.message,
        )
    return _assignment_response(result)
