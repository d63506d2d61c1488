"""Special payment orchestration.

Records a rent payment against an agreement:
1. Resolve the target ledger entry (explicit hint or pending id), if any
2. Resolve the agreement's daily late fee
3. Compute the late fee for the payment date
4. Patch the existing entry, or create a rent entry and, when requested,
   a separate LATE_PAYMENT_FEE entry
5. Report a structured result; persistence failures are never retried
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from fleet_ledger.calculators.late_fee import (
    LateFee,
    compute_late_fee,
    due_date_for,
    resolve_daily_rate,
)
from fleet_ledger.calculators.ledger_resolver import (
    IncomingPayment,
    LedgerAction,
    LedgerUpdate,
    resolve_payment,
)
from fleet_ledger.config import ReconciliationConfig
from fleet_ledger.domain.types import (
    Agreement,
    LedgerEntry,
    LedgerPatch,
    PaymentStatus,
    PaymentType,
)
from fleet_ledger.errors import (
    FleetLedgerError,
    InvalidDateError,
    InvalidPaymentAmountError,
    InvalidRateError,
    as_decimal,
)
from fleet_ledger.persistence.base import LedgerStore

logger = logging.getLogger(__name__)

# Entries that can still receive an additional payment
OPEN_STATUSES = (PaymentStatus.PENDING, PaymentStatus.PARTIALLY_PAID, PaymentStatus.OVERDUE)


@dataclass(frozen=True)
class SpecialPaymentOptions:
    """Caller options for recording a payment.

    `target_payment_id` is the explicit entry to apply an additional
    payment to; `pending_payment_id` is the weaker hint carried by the
    caller's context (for example a query parameter). The explicit one wins.
    """

    notes: str | None = None
    payment_method: str = "cash"
    reference_number: str | None = None
    include_late_payment_fee: bool = False
    is_partial_payment: bool = False
    target_payment_id: UUID | None = None
    pending_payment_id: UUID | None = None
    contractual_amount: Decimal | None = None


@dataclass(frozen=True)
class PaymentRecordResult:
    """Outcome of record_special_payment.

    On failure after the rent entry was written (late fee insert failed),
    `entry_id` is still set so the caller can see what was persisted.
    """

    success: bool
    message: str
    action: LedgerAction | None = None
    entry_id: UUID | None = None
    late_fee_entry_id: UUID | None = None
    late_fee: LateFee | None = None
    status: PaymentStatus | None = None
    balance: Decimal | None = None
    error_code: str | None = None

    def __bool__(self) -> bool:
        return self.success


class SpecialPaymentOrchestrator:
    """Records rent payments, partial payments and late fees.

    Duplicate prevention relies on the caller supplying the target entry
    id when re-submitting; this service does not deduplicate by date.
    """

    def __init__(self, store: LedgerStore, config: ReconciliationConfig | None = None):
        self.store = store
        self.config = config or ReconciliationConfig()

    async def record_special_payment(
        self,
        agreement: Agreement | UUID,
        amount: Decimal | int | str,
        payment_date: date,
        options: SpecialPaymentOptions | None = None,
    ) -> PaymentRecordResult:
        """Record a payment against an agreement.

        Args:
            agreement: The agreement, or its id (fetched from the store)
            amount: Amount paid now; must be positive
            payment_date: Date the payment was made
            options: Method, notes, partial flag, late fee flag, target entry

        Returns:
            PaymentRecordResult describing what was persisted

        Raises:
            InvalidPaymentAmountError: If amount is not positive
            InvalidDateError: If payment_date is not a date
        """
        options = options or SpecialPaymentOptions()
        try:
            paid_now = as_decimal(amount, "amount")
        except InvalidRateError:
            raise InvalidPaymentAmountError(amount) from None
        if paid_now <= 0:
            raise InvalidPaymentAmountError(amount)
        if isinstance(payment_date, datetime):
            payment_date = payment_date.date()
        if not isinstance(payment_date, date):
            raise InvalidDateError("payment_date", payment_date)

        agreement_id = agreement.id if isinstance(agreement, Agreement) else agreement

        # Step 1: existing entry receiving an additional payment
        existing: LedgerEntry | None = None
        payment_id = options.target_payment_id or options.pending_payment_id
        if payment_id is not None:
            try:
                existing = await self.store.fetch_ledger_entry(payment_id)
            except FleetLedgerError as e:
                logger.exception("Failed to fetch ledger entry %s", payment_id)
                return self._failure("persistence_error", f"Could not load payment {payment_id}: {e}")
            if existing is None:
                logger.warning(
                    "Ledger entry %s not found; recording a new payment for agreement %s",
                    payment_id,
                    agreement_id,
                )
            elif existing.lease_id != agreement_id:
                return self._failure(
                    "entry_agreement_mismatch",
                    f"Payment {payment_id} belongs to agreement {existing.lease_id}, "
                    f"not {agreement_id}",
                )
            elif existing.status not in OPEN_STATUSES:
                return self._failure(
                    "entry_not_open",
                    f"Payment {payment_id} is {existing.status.value} and cannot take "
                    "an additional payment",
                )

        # Step 2: agreement context for the late fee rate and rent amount
        if not isinstance(agreement, Agreement):
            try:
                loaded = await self.store.fetch_lease(agreement_id)
            except FleetLedgerError as e:
                logger.exception("Failed to fetch agreement %s", agreement_id)
                return self._failure("persistence_error", f"Could not load agreement: {e}")
            if loaded is None:
                return self._failure("agreement_not_found", f"Agreement {agreement_id} not found")
            agreement = loaded

        daily_rate = resolve_daily_rate(
            agreement.daily_late_fee, self.config.default_daily_late_fee
        )

        # Step 3: late fee for the payment date
        late_fee = compute_late_fee(payment_date, daily_rate, self.config.late_fee_cap)

        incoming = IncomingPayment(
            amount=paid_now, payment_date=payment_date, method=options.payment_method
        )

        # Step 4: patch existing or create new
        if existing is not None:
            return await self._apply_to_existing(existing, incoming, late_fee)
        return await self._create_new(agreement, incoming, late_fee, options)

    async def _apply_to_existing(
        self,
        existing: LedgerEntry,
        incoming: IncomingPayment,
        late_fee: LateFee,
    ) -> PaymentRecordResult:
        update = resolve_payment(existing, incoming)
        patch = LedgerPatch(
            amount_paid=update.amount_paid,
            balance=update.balance,
            status=update.status,
            payment_date=update.payment_date,
            payment_method=update.payment_method,
        )
        try:
            await self.store.update_ledger_entry(existing.id, patch)
        except FleetLedgerError as e:
            logger.exception("Failed to record additional payment on %s", existing.id)
            return self._failure("persistence_error", f"Failed to record additional payment: {e}")

        logger.info(
            "Additional payment on %s: paid=%s balance=%s status=%s",
            existing.id,
            update.amount_paid,
            update.balance,
            update.status.value,
        )
        return PaymentRecordResult(
            success=True,
            message=(
                "Payment completed"
                if update.is_settled
                else "Additional payment recorded"
            ),
            action=LedgerAction.UPDATE,
            entry_id=existing.id,
            late_fee=late_fee,
            status=update.status,
            balance=update.balance,
        )

    async def _create_new(
        self,
        agreement: Agreement,
        incoming: IncomingPayment,
        late_fee: LateFee,
        options: SpecialPaymentOptions,
    ) -> PaymentRecordResult:
        contractual = options.contractual_amount
        if contractual is None and agreement.rent_amount:
            contractual = agreement.rent_amount

        update = resolve_payment(
            None,
            incoming,
            contractual_amount=contractual,
            is_partial_payment=options.is_partial_payment,
        )
        rent_entry = self._rent_entry(agreement, update, late_fee, options)

        try:
            entry_id = await self.store.insert_ledger_entry(rent_entry)
        except FleetLedgerError as e:
            logger.exception("Failed to record payment for agreement %s", agreement.id)
            return self._failure("persistence_error", f"Failed to record payment: {e}")

        logger.info(
            "Recorded rent payment %s for agreement %s: paid=%s balance=%s days_late=%d",
            entry_id,
            agreement.id,
            update.amount_paid,
            update.balance,
            late_fee.days_late,
        )

        late_fee_entry_id: UUID | None = None
        if options.include_late_payment_fee and late_fee.fee_amount > 0:
            try:
                late_fee_entry_id = await self.store.insert_ledger_entry(
                    self._late_fee_entry(agreement, incoming, late_fee, options)
                )
            except FleetLedgerError as e:
                logger.exception("Failed to record late fee for agreement %s", agreement.id)
                return PaymentRecordResult(
                    success=False,
                    message=f"Payment recorded but late fee failed: {e}",
                    action=LedgerAction.CREATE,
                    entry_id=entry_id,
                    late_fee=late_fee,
                    status=update.status,
                    balance=update.balance,
                    error_code="late_fee_persistence_error",
                )

        return PaymentRecordResult(
            success=True,
            message=(
                "Partial payment recorded"
                if update.status == PaymentStatus.PARTIALLY_PAID
                else "Payment recorded"
            ),
            action=LedgerAction.CREATE,
            entry_id=entry_id,
            late_fee_entry_id=late_fee_entry_id,
            late_fee=late_fee,
            status=update.status,
            balance=update.balance,
        )

    def _rent_entry(
        self,
        agreement: Agreement,
        update: LedgerUpdate,
        late_fee: LateFee,
        options: SpecialPaymentOptions,
    ) -> LedgerEntry:
        description = options.notes or "Monthly rent payment"
        if not options.notes and agreement.agreement_number:
            description = f"Monthly rent payment for {agreement.agreement_number}"
        return LedgerEntry(
            lease_id=agreement.id,
            amount=update.amount,
            amount_paid=update.amount_paid,
            balance=update.balance,
            status=update.status,
            type=PaymentType.RENT,
            payment_date=update.payment_date,
            days_overdue=late_fee.days_late,
            late_fine_amount=late_fee.fee_amount,
            original_due_date=due_date_for(update.payment_date),
            payment_method=update.payment_method,
            reference_number=options.reference_number,
            description=description,
        )

    def _late_fee_entry(
        self,
        agreement: Agreement,
        incoming: IncomingPayment,
        late_fee: LateFee,
        options: SpecialPaymentOptions,
    ) -> LedgerEntry:
        period = incoming.payment_date.strftime("%B %Y")
        return LedgerEntry(
            lease_id=agreement.id,
            amount=late_fee.fee_amount,
            amount_paid=late_fee.fee_amount,
            balance=Decimal("0"),
            status=PaymentStatus.COMPLETED,
            type=PaymentType.LATE_PAYMENT_FEE,
            payment_date=incoming.payment_date,
            days_overdue=late_fee.days_late,
            late_fine_amount=late_fee.fee_amount,
            original_due_date=due_date_for(incoming.payment_date),
            payment_method=incoming.method,
            reference_number=options.reference_number,
            description=f"Late payment fee for {period} ({late_fee.days_late} days late)",
        )

    @staticmethod
    def _failure(code: str, message: str) -> PaymentRecordResult:
        return PaymentRecordResult(success=False, message=message, error_code=code)
