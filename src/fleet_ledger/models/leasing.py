"""Vehicle and lease (agreement) models."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, Date, DateTime, ForeignKey, Index, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fleet_ledger.models.base import Base, TimestampMixin, utcnow


class Vehicle(Base, TimestampMixin):
    """Fleet vehicle, looked up by license plate."""

    __tablename__ = "vehicles"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    license_plate: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    make: Mapped[str | None] = mapped_column(String, nullable=True)
    model: Mapped[str | None] = mapped_column(String, nullable=True)

    # Relationships
    leases: Mapped[list[Lease]] = relationship(back_populates="vehicle")


class Lease(Base, TimestampMixin):
    """Rental agreement for one vehicle and one customer."""

    __tablename__ = "leases"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    vehicle_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("vehicles.id", ondelete="RESTRICT"),
        nullable=False,
    )
    customer_id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), nullable=False)
    agreement_number: Mapped[str | None] = mapped_column(String, nullable=True)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    status: Mapped[str] = mapped_column(String, nullable=False, default="draft")
    rent_amount: Mapped[Decimal | None] = mapped_column(Numeric(14, 4), nullable=True)
    daily_late_fee: Mapped[Decimal | None] = mapped_column(
        Numeric(14, 4), nullable=True, default=Decimal("120")
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('draft', 'pending_payment', 'pending_deposit', 'active', "
            "'completed', 'cancelled', 'terminated', 'archived')",
            name="leases_status_check",
        ),
        CheckConstraint(
            "end_date IS NULL OR end_date >= start_date",
            name="leases_dates_check",
        ),
        Index("leases_vehicle_status_idx", "vehicle_id", "status"),
    )

    # Relationships
    vehicle: Mapped[Vehicle] = relationship(back_populates="leases")

