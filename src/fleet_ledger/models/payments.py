"""Ledger entry (payment) models."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fleet_ledger.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from fleet_ledger.models.leasing import Lease


class Payment(Base, TimestampMixin):
    """One financial transaction against a lease.

    Rent and late-fee penalties are separate rows so each stays auditable.
    """

    __tablename__ = "unified_payments"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    lease_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("leases.id", ondelete="CASCADE"),
        nullable=False,
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 4), nullable=False)
    amount_paid: Mapped[Decimal] = mapped_column(
        Numeric(14, 4), nullable=False, default=Decimal("0")
    )
    balance: Mapped[Decimal] = mapped_column(Numeric(14, 4), nullable=False, default=Decimal("0"))
    status: Mapped[str] = mapped_column(String, nullable=False, default="pending")
    type: Mapped[str] = mapped_column(String, nullable=False, default="rent")
    payment_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    days_overdue: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    late_fine_amount: Mapped[Decimal] = mapped_column(
        Numeric(14, 4), nullable=False, default=Decimal("0")
    )
    original_due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    payment_method: Mapped[str | None] = mapped_column(String, nullable=True)
    reference_number: Mapped[str | None] = mapped_column(String, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'partially_paid', 'completed', 'overdue', 'cancelled')",
            name="unified_payments_status_check",
        ),
        CheckConstraint(
            "type IN ('rent', 'deposit', 'fee', 'LATE_PAYMENT_FEE')",
            name="unified_payments_type_check",
        ),
        CheckConstraint("balance >= 0", name="unified_payments_balance_check"),
        Index("unified_payments_lease_idx", "lease_id"),
    )

    # Relationships
    lease: Mapped[Lease] = relationship()
