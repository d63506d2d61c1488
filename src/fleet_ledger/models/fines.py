"""Traffic fine models."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from fleet_ledger.models.base import Base, TimestampMixin


class TrafficFine(Base, TimestampMixin):
    """Violation record attributed to a lease through the vehicle's plate."""

    __tablename__ = "traffic_fines"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    violation_number: Mapped[str | None] = mapped_column(String, nullable=True)
    license_plate: Mapped[str | None] = mapped_column(String, nullable=True)
    violation_date: Mapped[date] = mapped_column(Date, nullable=False)
    fine_amount: Mapped[Decimal] = mapped_column(Numeric(14, 4), nullable=False)
    violation_charge: Mapped[str | None] = mapped_column(String, nullable=True)
    fine_location: Mapped[str | None] = mapped_column(String, nullable=True)
    payment_status: Mapped[str] = mapped_column(String, nullable=False, default="pending")
    assignment_status: Mapped[str] = mapped_column(String, nullable=False, default="pending")
    vehicle_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("vehicles.id", ondelete="SET NULL"),
        nullable=True,
    )
    lease_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("leases.id", ondelete="SET NULL"),
        nullable=True,
    )

    __table_args__ = (
        CheckConstraint(
            "payment_status IN ('pending', 'paid', 'disputed')",
            name="traffic_fines_payment_status_check",
        ),
        CheckConstraint(
            "assignment_status IN ('pending', 'assigned')",
            name="traffic_fines_assignment_status_check",
        ),
        CheckConstraint(
            "(lease_id IS NULL AND assignment_status = 'pending') "
            "OR (lease_id IS NOT NULL AND assignment_status = 'assigned')",
            name="traffic_fines_assignment_consistency_check",
        ),
        Index("traffic_fines_plate_idx", "license_plate"),
    )
