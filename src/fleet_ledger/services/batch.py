"""Sequential batch execution with aggregate result accounting."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

T = TypeVar("T")
R = TypeVar("R")


@dataclass
class ItemFailure:
    """One failed item in a batch."""

    item_id: str
    code: str
    message: str


@dataclass
class BatchResult(Generic[R]):
    """Aggregate outcome of a sequential batch."""

    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    results: list[R] = field(default_factory=list)
    failures: list[ItemFailure] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """Whether every processed item succeeded."""
        return self.failed == 0

    def record_success(self, result: R | None = None) -> None:
        self.processed += 1
        self.succeeded += 1
        if result is not None:
            self.results.append(result)

    def record_failure(self, item_id: Any, code: str, message: str) -> None:
        self.processed += 1
        self.failed += 1
        self.failures.append(ItemFailure(item_id=str(item_id), code=code, message=message))

    def to_dict(self) -> dict[str, Any]:
        return {
            "processed": self.processed,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "failures": [
                {"item_id": f.item_id, "code": f.code, "message": f.message}
                for f in self.failures
            ],
        }


async def run_sequential(
    items: Iterable[T],
    worker: Callable[[T], Awaitable[None]],
    *,
    delay_seconds: float = 0.0,
) -> None:
    """Run `worker` over items one at a time, pausing between items.

    The worker owns result accounting; exceptions it lets escape stop the
    batch, so workers catch their own per-item failures.
    """
    first = True
    for item in items:
        if not first and delay_seconds > 0:
            await asyncio.sleep(delay_seconds)
        first = False
        await worker(item)
