"""Temporal interval matching for lease periods."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime
from typing import Generic, TypeVar

from fleet_ledger.errors import InvalidDateError

K = TypeVar("K")


@dataclass(frozen=True)
class Interval(Generic[K]):
    """A closed date interval; `end=None` means still ongoing."""

    id: K
    start: date
    end: date | None = None

    def contains(self, on: date) -> bool:
        """Check if the interval contains a date (both bounds inclusive)."""
        if on < self.start:
            return False
        if self.end is not None and on > self.end:
            return False
        return True


def _as_date(value: date, field_name: str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if not isinstance(value, date):
        raise InvalidDateError(field_name, value)
    return value


def find_containing_interval(
    on: date,
    intervals: Iterable[Interval[K]],
) -> Interval[K] | None:
    """Find the first interval containing a date.

    Intervals are checked in the order given, so callers ordering by
    recency (newest first) get the most current lease on overlaps.

    Returns None when the date falls in a gap; that is a normal outcome.
    """
    on = _as_date(on, "date")
    for interval in intervals:
        if interval.contains(on):
            return interval
    return None
