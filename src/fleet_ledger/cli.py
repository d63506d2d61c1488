"""Fleet ledger command line interface.

Provides operational tools for:
- Late fee lookups
- Agreement conflict reconciliation
- Agreement status maintenance
- Traffic fine auto-assignment and cleanup

Usage:
    python -m fleet_ledger.cli late-fee --payment-date 2024-03-15
    python -m fleet_ledger.cli reconcile-agreements
    python -m fleet_ledger.cli status-maintenance --today 2024-07-01
    python -m fleet_ledger.cli auto-assign-fines [--fine-id X ...]
    python -m fleet_ledger.cli cleanup-fines

Every command prints a JSON document on stdout.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from dataclasses import asdict, is_dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from fleet_ledger.calculators.late_fee import compute_late_fee
from fleet_ledger.config import get_settings
from fleet_ledger.database import dispose_db, get_session
from fleet_ledger.errors import FleetLedgerError
from fleet_ledger.logging_config import configure_logging
from fleet_ledger.persistence import LedgerStore, SqlAlchemyLedgerStore
from fleet_ledger.services.agreement_conflicts import AgreementConflictResolver
from fleet_ledger.services.agreement_status import AgreementStatusService
from fleet_ledger.services.fine_assignment import FineAssignmentService

StoreFactory = Callable[[], AbstractAsyncContextManager[LedgerStore]]


def parse_date(s: str) -> date:
    """Parse ISO date string."""
    return date.fromisoformat(s)


def parse_uuid(s: str) -> UUID:
    """Parse UUID string."""
    return UUID(s)


def to_json(value: Any) -> Any:
    """json.dumps default for the types results carry."""
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if is_dataclass(value) and not isinstance(value, type):
        return asdict(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


@asynccontextmanager
async def database_store() -> AsyncIterator[LedgerStore]:
    """Store over a session from the configured database."""
    try:
        async with get_session() as session:
            yield SqlAlchemyLedgerStore(session)
    finally:
        await dispose_db()


class FleetLedgerCli:
    """Fleet ledger command line interface."""

    def __init__(self, store_factory: StoreFactory | None = None) -> None:
        self.store_factory = store_factory or database_store
        self.parser = self._build_parser()

    def _build_parser(self) -> argparse.ArgumentParser:
        """Build argument parser."""
        parser = argparse.ArgumentParser(
            prog="python -m fleet_ledger.cli",
            description="Fleet ledger operational tools",
        )
        parser.add_argument(
            "--log-level",
            type=str,
            default=None,
            help="Logging level (default: $LOG_LEVEL)",
        )
        subparsers = parser.add_subparsers(dest="command", help="Commands")

        # late-fee command
        late_fee = subparsers.add_parser(
            "late-fee",
            help="Compute the late fee for a payment date",
        )
        late_fee.add_argument(
            "--payment-date",
            type=parse_date,
            required=True,
            help="Payment date (YYYY-MM-DD)",
        )
        late_fee.add_argument(
            "--daily-rate",
            type=Decimal,
            help="Fee per day late (default: $DEFAULT_DAILY_LATE_FEE)",
        )
        late_fee.add_argument(
            "--cap",
            type=Decimal,
            help="Maximum fee (default: $LATE_FEE_CAP)",
        )

        # reconcile-agreements command
        subparsers.add_parser(
            "reconcile-agreements",
            help="Cancel all but the newest agreement on double-booked vehicles",
        )

        # status-maintenance command
        maintenance = subparsers.add_parser(
            "status-maintenance",
            help="Complete expired agreements and activate paid pending ones",
        )
        maintenance.add_argument(
            "--today",
            type=parse_date,
            help="Run as of this date (default: today)",
        )

        # auto-assign-fines command
        assign = subparsers.add_parser(
            "auto-assign-fines",
            help="Assign traffic fines to the responsible lease",
        )
        assign.add_argument(
            "--fine-id",
            type=parse_uuid,
            action="append",
            dest="fine_ids",
            help="Fine to assign (repeatable; default: all unassigned fines)",
        )

        # cleanup-fines command
        subparsers.add_parser(
            "cleanup-fines",
            help="Unassign fines whose lease no longer covers the violation date",
        )

        return parser

    def run(self, args: list[str] | None = None) -> int:
        """Run the CLI with given arguments."""
        parsed = self.parser.parse_args(args)

        if not parsed.command:
            self.parser.print_help()
            return 1

        configure_logging(parsed.log_level or get_settings().log_level)

        # Dispatch to command handler
        handlers: dict[str, Callable[[argparse.Namespace], int]] = {
            "late-fee": self._cmd_late_fee,
            "reconcile-agreements": self._cmd_reconcile_agreements,
            "status-maintenance": self._cmd_status_maintenance,
            "auto-assign-fines": self._cmd_auto_assign_fines,
            "cleanup-fines": self._cmd_cleanup_fines,
        }

        handler = handlers.get(parsed.command)
        if handler:
            try:
                return handler(parsed)
            except FleetLedgerError as e:
                print(f"ERROR: {e}", file=sys.stderr)
                return 1

        print(f"Unknown command: {parsed.command}", file=sys.stderr)
        return 1

    def _emit(self, payload: dict[str, Any]) -> None:
        print(json.dumps(payload, default=to_json, indent=2))

    def _cmd_late_fee(self, args: argparse.Namespace) -> int:
        """Compute a late fee."""
        config = get_settings().reconciliation_config()
        rate = args.daily_rate if args.daily_rate is not None else config.default_daily_late_fee
        cap = args.cap if args.cap is not None else config.late_fee_cap
        fee = compute_late_fee(args.payment_date, rate, cap)
        self._emit(
            {
                "payment_date": args.payment_date,
                "daily_rate": rate,
                "cap_amount": cap,
                "days_late": fee.days_late,
                "fee_amount": fee.fee_amount,
            }
        )
        return 0

    def _cmd_reconcile_agreements(self, args: argparse.Namespace) -> int:
        """Reconcile double-booked vehicles."""

        async def work() -> dict[str, Any]:
            async with self.store_factory() as store:
                result = await AgreementConflictResolver(store).reconcile_vehicle_agreements()
            return {
                "success": result.success,
                "message": result.message,
                "updated_count": result.updated_count,
                "vehicles_fixed": result.vehicles_fixed,
                "cancelled_ids": result.cancelled_ids,
                "errors": result.errors,
            }

        payload = asyncio.run(work())
        self._emit(payload)
        return 0 if payload["success"] else 2

    def _cmd_status_maintenance(self, args: argparse.Namespace) -> int:
        """Run agreement status maintenance."""

        async def work() -> dict[str, Any]:
            async with self.store_factory() as store:
                batch = await AgreementStatusService(store).run_status_maintenance(args.today)
            payload = batch.to_dict()
            payload["changes"] = batch.results
            return payload

        payload = asyncio.run(work())
        self._emit(payload)
        return 0 if payload["failed"] == 0 else 2

    def _cmd_auto_assign_fines(self, args: argparse.Namespace) -> int:
        """Auto-assign traffic fines."""

        async def work() -> dict[str, Any]:
            async with self.store_factory() as store:
                batch = await FineAssignmentService(store).auto_assign_fines(args.fine_ids)
            payload = batch.to_dict()
            payload["assigned"] = [
                {"fine_id": r.fine_id, "lease_id": r.lease_id, "customer_id": r.customer_id}
                for r in batch.results
            ]
            return payload

        payload = asyncio.run(work())
        self._emit(payload)
        return 0 if payload["failed"] == 0 else 2

    def _cmd_cleanup_fines(self, args: argparse.Namespace) -> int:
        """Unassign invalid fine assignments."""

        async def work() -> dict[str, Any]:
            async with self.store_factory() as store:
                batch = await FineAssignmentService(store).cleanup_invalid_assignments()
            payload = batch.to_dict()
            payload["unassigned"] = batch.results
            return payload

        payload = asyncio.run(work())
        self._emit(payload)
        return 0 if payload["failed"] == 0 else 2


def main() -> int:
    """CLI entry point."""
    cli = FleetLedgerCli()
    return cli.run()


if __name__ == "__main__":
    sys.exit(main())
