"""Tests for batch fine validation."""

from unittest.mock import AsyncMock, patch

import pytest

from fleet_ledger.config import ReconciliationConfig
from fleet_ledger.errors import ValidationError
from fleet_ledger.services.fine_validation import FineValidationService
from fleet_ledger.validators import StubFineValidator

pytestmark = pytest.mark.asyncio


class TestValidateBatch:
    """Sequential validation with aggregate accounting."""

    async def test_results_and_failures_aggregated(self, config):
        validator = StubFineValidator(plates_with_fines=["ABC-1"], failing_plates=["BAD-9"])
        service = FineValidationService(validator, config)

        batch = await service.validate_batch(["ABC-1", "XYZ-2", "BAD-9"])

        assert batch.processed == 3
        assert batch.succeeded == 2
        assert batch.failed == 1
        assert [r.has_fine for r in batch.results] == [True, False]
        assert batch.failures[0].item_id == "BAD-9"
        assert batch.failures[0].code == "validation_failed"

    async def test_blank_plates_skipped(self, config):
        validator = StubFineValidator()
        service = FineValidationService(validator, config)

        batch = await service.validate_batch(["", "  ", None, " ABC-1 "])

        assert batch.processed == 1
        assert validator.calls == ["ABC-1"]

    async def test_no_valid_plates_rejected(self, config):
        service = FineValidationService(StubFineValidator(), config)

        with pytest.raises(ValidationError):
            await service.validate_batch(["", "   "])

    async def test_pauses_between_calls(self):
        service = FineValidationService(
            StubFineValidator(), ReconciliationConfig(validation_delay_seconds=0.5)
        )

        with patch("fleet_ledger.services.batch.asyncio.sleep", new=AsyncMock()) as sleep:
            await service.validate_batch(["A-1", "B-2", "C-3"])

        assert sleep.await_count == 2
        sleep.assert_awaited_with(0.5)
