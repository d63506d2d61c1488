"""Traffic fine validator adapters."""

from fleet_ledger.validators.base import FineValidationResult, TrafficFineValidator
from fleet_ledger.validators.stub import StubFineValidator

__all__ = [
    "FineValidationResult",
    "TrafficFineValidator",
    "StubFineValidator",
]
