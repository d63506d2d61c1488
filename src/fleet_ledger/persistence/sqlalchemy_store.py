"""LedgerStore backed by the SQLAlchemy async ORM.

Each write commits on its own, matching the request/response semantics of
the hosted backend: a failed write in a batch never undoes the writes
before it.

Updates are issued as bulk statements without touching the identity map,
so every read repopulates the objects it returns.
"""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import exists, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from fleet_ledger.domain.types import (
    Agreement,
    AgreementStatus,
    FineAssignment,
    LedgerEntry,
    LedgerPatch,
    PaymentStatus,
    TrafficFine,
)
from fleet_ledger.errors import NotFoundError, PersistenceError
from fleet_ledger.models import Lease, Payment, Vehicle
from fleet_ledger.models import TrafficFine as TrafficFineRow


class SqlAlchemyLedgerStore:
    """Async ORM implementation of the LedgerStore protocol."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _commit(self, operation: str) -> None:
        try:
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise PersistenceError(operation, str(e)) from e

    # -------------------------------------------------------------------------
    # Leases
    # -------------------------------------------------------------------------

    async def fetch_lease(self, lease_id: UUID) -> Agreement | None:
        try:
            row = await self.session.get(Lease, lease_id, populate_existing=True)
        except SQLAlchemyError as e:
            raise PersistenceError("fetch_lease", str(e)) from e
        return Agreement.from_row(row.to_dict()) if row else None

    async def list_active_leases_for_vehicle(self, vehicle_id: UUID) -> list[Agreement]:
        query = (
            select(Lease)
            .where(Lease.vehicle_id == vehicle_id, Lease.status == AgreementStatus.ACTIVE.value)
            .order_by(Lease.created_at.desc(), Lease.id.desc())
            .execution_options(populate_existing=True)
        )
        try:
            result = await self.session.execute(query)
        except SQLAlchemyError as e:
            raise PersistenceError("list_active_leases_for_vehicle", str(e)) from e
        return [Agreement.from_row(row.to_dict()) for row in result.scalars().all()]

    async def list_agreements_by_status(
        self, statuses: Iterable[AgreementStatus]
    ) -> list[Agreement]:
        values = [AgreementStatus(s).value for s in statuses]
        query = (
            select(Lease)
            .where(Lease.status.in_(values))
            .order_by(Lease.created_at.desc(), Lease.id.desc())
            .execution_options(populate_existing=True)
        )
        try:
            result = await self.session.execute(query)
        except SQLAlchemyError as e:
            raise PersistenceError("list_agreements_by_status", str(e)) from e
        return [Agreement.from_row(row.to_dict()) for row in result.scalars().all()]

    async def update_lease_status(self, lease_id: UUID, status: AgreementStatus) -> None:
        try:
            result = await self.session.execute(
                update(Lease)
                .where(Lease.id == lease_id)
                .values(status=AgreementStatus(status).value)
                .execution_options(synchronize_session=False)
            )
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise PersistenceError("update_lease_status", str(e)) from e
        if result.rowcount == 0:
            await self.session.rollback()
            raise NotFoundError("lease", lease_id)
        await self._commit("update_lease_status")

    # -------------------------------------------------------------------------
    # Vehicles
    # -------------------------------------------------------------------------

    async def fetch_vehicle_id_by_plate(self, plate: str) -> UUID | None:
        try:
            result = await self.session.execute(
                select(Vehicle.id).where(Vehicle.license_plate == plate)
            )
        except SQLAlchemyError as e:
            raise PersistenceError("fetch_vehicle_id_by_plate", str(e)) from e
        return result.scalar_one_or_none()

    # -------------------------------------------------------------------------
    # Ledger entries
    # -------------------------------------------------------------------------

    async def fetch_ledger_entry(self, entry_id: UUID) -> LedgerEntry | None:
        try:
            row = await self.session.get(Payment, entry_id, populate_existing=True)
        except SQLAlchemyError as e:
            raise PersistenceError("fetch_ledger_entry", str(e)) from e
        return LedgerEntry.from_row(row.to_dict()) if row else None

    async def insert_ledger_entry(self, entry: LedgerEntry) -> UUID:
        row = Payment(
            lease_id=entry.lease_id,
            amount=entry.amount,
            amount_paid=entry.amount_paid,
            balance=entry.balance,
            status=entry.status.value,
            type=entry.type.value,
            payment_date=entry.payment_date,
            days_overdue=entry.days_overdue,
            late_fine_amount=entry.late_fine_amount,
            original_due_date=entry.original_due_date,
            payment_method=entry.payment_method,
            reference_number=entry.reference_number,
            description=entry.description,
        )
        self.session.add(row)
        try:
            await self.session.flush()
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise PersistenceError("insert_ledger_entry", str(e)) from e
        entry_id = row.id
        await self._commit("insert_ledger_entry")
        return entry_id

    async def update_ledger_entry(self, entry_id: UUID, patch: LedgerPatch) -> None:
        values = {
            "amount_paid": patch.amount_paid,
            "balance": patch.balance,
            "status": patch.status.value,
            "payment_date": patch.payment_date,
        }
        if patch.payment_method:
            values["payment_method"] = patch.payment_method
        try:
            result = await self.session.execute(
                update(Payment)
                .where(Payment.id == entry_id)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise PersistenceError("update_ledger_entry", str(e)) from e
        if result.rowcount == 0:
            await self.session.rollback()
            raise NotFoundError("ledger entry", entry_id)
        await self._commit("update_ledger_entry")

    async def has_completed_payment(self, lease_id: UUID) -> bool:
        query = select(
            exists().where(
                Payment.lease_id == lease_id,
                Payment.status == PaymentStatus.COMPLETED.value,
            )
        )
        try:
            return bool(await self.session.scalar(query))
        except SQLAlchemyError as e:
            raise PersistenceError("has_completed_payment", str(e)) from e

    # -------------------------------------------------------------------------
    # Traffic fines
    # -------------------------------------------------------------------------

    async def fetch_fine(self, fine_id: UUID) -> TrafficFine | None:
        try:
            row = await self.session.get(TrafficFineRow, fine_id, populate_existing=True)
        except SQLAlchemyError as e:
            raise PersistenceError("fetch_fine", str(e)) from e
        return TrafficFine.from_row(row.to_dict()) if row else None

    async def list_fines(self, *, assigned: bool | None = None) -> list[TrafficFine]:
        query = (
            select(TrafficFineRow)
            .order_by(TrafficFineRow.violation_date)
            .execution_options(populate_existing=True)
        )
        if assigned is True:
            query = query.where(TrafficFineRow.lease_id.is_not(None))
        elif assigned is False:
            query = query.where(TrafficFineRow.lease_id.is_(None))
        try:
            result = await self.session.execute(query)
        except SQLAlchemyError as e:
            raise PersistenceError("list_fines", str(e)) from e
        return [TrafficFine.from_row(row.to_dict()) for row in result.scalars().all()]

    async def insert_fine(self, fine: TrafficFine) -> UUID:
        row = TrafficFineRow(
            id=fine.id,
            violation_number=fine.violation_number,
            license_plate=fine.license_plate,
            violation_date=fine.violation_date,
            fine_amount=fine.fine_amount,
            violation_charge=fine.violation_charge,
            fine_location=fine.location,
            payment_status=fine.payment_status.value,
            assignment_status=fine.assignment_status.value,
            vehicle_id=fine.vehicle_id,
            lease_id=fine.lease_id,
        )
        self.session.add(row)
        try:
            await self.session.flush()
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise PersistenceError("insert_fine", str(e)) from e
        await self._commit("insert_fine")
        return fine.id

    async def update_fine_assignment(self, fine_id: UUID, assignment: FineAssignment) -> None:
        try:
            result = await self.session.execute(
                update(TrafficFineRow)
                .where(TrafficFineRow.id == fine_id)
                .values(
                    lease_id=assignment.lease_id,
                    assignment_status=assignment.assignment_status.value,
                )
                .execution_options(synchronize_session=False)
            )
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise PersistenceError("update_fine_assignment", str(e)) from e
        if result.rowcount == 0:
            await self.session.rollback()
            raise NotFoundError("traffic fine", fine_id)
        await self._commit("update_fine_assignment")
