"""Agreement payment and reconciliation endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, HTTPException, Path, Query, status

from fleet_ledger.api.dependencies import Clock, Config, Store
from fleet_ledger.api.schemas import (
    AgreementSummary,
    BookingConflictResponse,
    ConflictResolutionResponse,
    ErrorResponse,
    ItemFailureResponse,
    PaymentCreate,
    PaymentRecordResponse,
    StatusChangeResponse,
    StatusMaintenanceRequest,
    StatusMaintenanceResponse,
)
from fleet_ledger.services.agreement_conflicts import AgreementConflictResolver
from fleet_ledger.services.agreement_status import AgreementStatusService
from fleet_ledger.services.special_payment import (
    SpecialPaymentOptions,
    SpecialPaymentOrchestrator,
)

router = APIRouter(tags=["agreements"])

# Payment failure codes that are the caller's fault
_PAYMENT_ERROR_STATUS = {
    "agreement_not_found": status.HTTP_404_NOT_FOUND,
    "entry_agreement_mismatch": status.HTTP_400_BAD_REQUEST,
    "entry_not_open": status.HTTP_409_CONFLICT,
}


# ============================================================================
# Payments
# ============================================================================


@router.post(
    "/agreements/{agreement_id}/payments",
    response_model=PaymentRecordResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
    },
)
async def record_payment(
    store: Store,
    config: Config,
    payload: PaymentCreate,
    agreement_id: Annotated[UUID, Path()],
    pending_payment_id: Annotated[UUID | None, Query()] = None,
) -> PaymentRecordResponse:
    """Record a rent payment, an additional partial payment, or a late fee."""
    orchestrator = SpecialPaymentOrchestrator(store, config)
    result = await orchestrator.record_special_payment(
        agreement_id,
        payload.amount,
        payload.payment_date,
        SpecialPaymentOptions(
            notes=payload.notes,
            payment_method=payload.payment_method,
            reference_number=payload.reference_number,
            include_late_payment_fee=payload.include_late_payment_fee,
            is_partial_payment=payload.is_partial_payment,
            target_payment_id=payload.target_payment_id,
            pending_payment_id=pending_payment_id,
            contractual_amount=payload.contractual_amount,
        ),
    )

    if not result.success:
        raise HTTPException(
            status_code=_PAYMENT_ERROR_STATUS.get(
                result.error_code, status.HTTP_500_INTERNAL_SERVER_ERROR
            ),
            detail=result.message,
        )

    return PaymentRecordResponse(
        success=result.success,
        message=result.message,
        action=result.action.value if result.action else None,
        entry_id=result.entry_id,
        late_fee_entry_id=result.late_fee_entry_id,
        days_late=result.late_fee.days_late if result.late_fee else 0,
        late_fee_amount=result.late_fee.fee_amount if result.late_fee else 0,
        status=result.status.value if result.status else None,
        balance=result.balance,
    )


# ============================================================================
# Reconciliation
# ============================================================================


@router.post(
    "/agreements/reconcile",
    response_model=ConflictResolutionResponse,
)
async def reconcile_agreements(store: Store) -> ConflictResolutionResponse:
    """Cancel all but the newest active/pending agreement on each vehicle."""
    result = await AgreementConflictResolver(store).reconcile_vehicle_agreements()
    return ConflictResolutionResponse(
        success=result.success,
        message=result.message,
        updated_count=result.updated_count,
        vehicles_fixed=result.vehicles_fixed,
        cancelled_ids=result.cancelled_ids,
        errors=result.errors,
    )


@router.post(
    "/agreements/status-maintenance",
    response_model=StatusMaintenanceResponse,
)
async def status_maintenance(
    store: Store,
    clock: Clock,
    payload: StatusMaintenanceRequest | None = None,
) -> StatusMaintenanceResponse:
    """Complete expired agreements and activate paid pending ones."""
    today = payload.today if payload and payload.today else clock()
    batch = await AgreementStatusService(store, clock).run_status_maintenance(today)
    return StatusMaintenanceResponse(
        processed=batch.processed,
        succeeded=batch.succeeded,
        failed=batch.failed,
        success=batch.success,
        failures=[ItemFailureResponse.model_validate(f) for f in batch.failures],
        changes=[
            StatusChangeResponse(
                agreement_id=c.agreement_id,
                from_status=c.from_status.value,
                to_status=c.to_status.value,
            )
            for c in batch.results
        ],
    )


@router.get(
    "/vehicles/{vehicle_id}/conflicts",
    response_model=BookingConflictResponse,
)
async def vehicle_conflicts(
    store: Store,
    vehicle_id: Annotated[UUID, Path()],
    exclude_agreement_id: Annotated[UUID | None, Query()] = None,
) -> BookingConflictResponse:
    """List active agreements holding a vehicle."""
    report = await AgreementConflictResolver(store).check_vehicle_booking_conflicts(
        vehicle_id, exclude_agreement_id
    )
    return BookingConflictResponse(
        vehicle_id=vehicle_id,
        has_conflicts=report.has_conflicts,
        conflicts=[
            AgreementSummary(
                id=a.id,
                agreement_number=a.agreement_number,
                customer_id=a.customer_id,
                status=a.status.value,
                start_date=a.start_date,
                end_date=a.end_date,
                created_at=a.created_at,
            )
            for a in report.conflicts
        ],
        newest_id=report.newest.id if report.newest else None,
        oldest_id=report.oldest.id if report.oldest else None,
    )
