"""Batch traffic fine validation against an external validator."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from fleet_ledger.config import ReconciliationConfig
from fleet_ledger.errors import FleetLedgerError, ValidationError
from fleet_ledger.services.batch import BatchResult, run_sequential
from fleet_ledger.validators.base import FineValidationResult, TrafficFineValidator

logger = logging.getLogger(__name__)


class FineValidationService:
    """Validates license plates one at a time, pausing between calls.

    The pause respects the external authority's rate limits.
    """

    def __init__(
        self,
        validator: TrafficFineValidator,
        config: ReconciliationConfig | None = None,
    ):
        self.validator = validator
        self.config = config or ReconciliationConfig()

    async def validate_batch(
        self, license_plates: Iterable[str | None]
    ) -> BatchResult[FineValidationResult]:
        """Validate a batch of plates.

        Args:
            license_plates: Plates to check; blank entries are skipped

        Returns:
            BatchResult with one result per validated plate and a failure
            entry per plate whose lookup raised

        Raises:
            ValidationError: If no non-blank plate remains
        """
        plates = [p.strip() for p in license_plates if p and p.strip()]
        if not plates:
            raise ValidationError("No valid license plates provided")

        logger.info(
            "Validating %d plates with %s", len(plates), self.validator.validator_name
        )
        batch: BatchResult[FineValidationResult] = BatchResult()

        async def validate(plate: str) -> None:
            try:
                result = await self.validator.validate(plate)
            except FleetLedgerError as e:
                logger.warning("Validation failed for %s: %s", plate, e)
                batch.record_failure(plate, "validation_failed", str(e))
                return
            batch.record_success(result)

        await run_sequential(
            plates, validate, delay_seconds=self.config.validation_delay_seconds
        )
        return batch
