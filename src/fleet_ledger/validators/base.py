"""Protocol and types for external traffic fine validators.

A validator asks an outside authority whether a license plate has
outstanding violations. Adapters implement TrafficFineValidator.
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class FineValidationResult:
    """Answer from a validator for one license plate."""

    license_plate: str
    validation_date: datetime.date
    has_fine: bool
    details: str | None = None


class TrafficFineValidator(Protocol):
    """Protocol for traffic fine validation adapters."""

    validator_name: str

    async def validate(self, license_plate: str) -> FineValidationResult:
        """Check a single plate.

        Args:
            license_plate: Trimmed, non-empty plate

        Returns:
            FineValidationResult for the plate.

        Raises:
            FleetLedgerError: If the authority cannot be reached
        """
        ...
