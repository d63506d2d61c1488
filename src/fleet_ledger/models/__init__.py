"""SQLAlchemy ORM models."""

from fleet_ledger.models.base import Base, TimestampMixin
from fleet_ledger.models.fines import TrafficFine
from fleet_ledger.models.leasing import Lease, Vehicle
from fleet_ledger.models.payments import Payment

__all__ = [
    "Base",
    "TimestampMixin",
    "Lease",
    "Payment",
    "TrafficFine",
    "Vehicle",
]
