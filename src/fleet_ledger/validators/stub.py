"""Stub fine validator for local development and testing.

Replace with an adapter for the traffic authority's API in production.
"""

from __future__ import annotations

import datetime
from collections.abc import Iterable

from fleet_ledger.errors import PersistenceError
from fleet_ledger.validators.base import FineValidationResult


class StubFineValidator:
    """Answers from a fixed set of plates known to carry fines."""

    validator_name = "stub"

    def __init__(
        self,
        plates_with_fines: Iterable[str] = (),
        failing_plates: Iterable[str] = (),
    ):
        """Initialize stub validator.

        Args:
            plates_with_fines: Plates reported as having a fine
            failing_plates: Plates for which the lookup raises
        """
        self.plates_with_fines = {p.strip().upper() for p in plates_with_fines}
        self.failing_plates = {p.strip().upper() for p in failing_plates}
        self.calls: list[str] = []

    async def validate(self, license_plate: str) -> FineValidationResult:
        """Validate one plate (stub implementation)."""
        self.calls.append(license_plate)
        key = license_plate.strip().upper()
        if key in self.failing_plates:
            raise PersistenceError("validate", f"validator unavailable for {license_plate}")
        has_fine = key in self.plates_with_fines
        return FineValidationResult(
            license_plate=license_plate,
            validation_date=datetime.date.today(),
            has_fine=has_fine,
            details="Outstanding violation on record" if has_fine else None,
        )
