"""Tests for the temporal interval matcher."""

from datetime import date

import pytest

from fleet_ledger.calculators.intervals import Interval, find_containing_interval
from fleet_ledger.errors import InvalidDateError


class TestIntervalContains:
    """Test inclusive bounds and open-ended intervals."""

    def test_closed_interval_bounds_are_inclusive(self):
        interval = Interval("L1", date(2024, 1, 1), date(2024, 6, 30))

        assert interval.contains(date(2024, 1, 1))
        assert interval.contains(date(2024, 6, 30))
        assert not interval.contains(date(2023, 12, 31))
        assert not interval.contains(date(2024, 7, 1))

    def test_open_ended_interval_contains_any_later_date(self):
        interval = Interval("L2", date(2024, 7, 1))

        assert interval.contains(date(2024, 7, 1))
        assert interval.contains(date(2031, 1, 1))
        assert not interval.contains(date(2024, 6, 30))


class TestFindContainingInterval:
    """Test first-match selection."""

    def test_returns_matching_interval(self):
        intervals = [
            Interval("L2", date(2024, 7, 1)),
            Interval("L1", date(2024, 1, 1), date(2024, 6, 30)),
        ]

        assert find_containing_interval(date(2024, 7, 15), intervals).id == "L2"
        assert find_containing_interval(date(2024, 3, 10), intervals).id == "L1"

    def test_first_in_caller_order_wins_on_overlap(self):
        intervals = [
            Interval("newest", date(2024, 3, 1), date(2024, 9, 30)),
            Interval("older", date(2024, 1, 1), date(2024, 12, 31)),
        ]

        assert find_containing_interval(date(2024, 5, 5), intervals).id == "newest"

    def test_gap_returns_none(self):
        intervals = [
            Interval("L1", date(2024, 1, 1), date(2024, 3, 31)),
            Interval("L2", date(2024, 5, 1), date(2024, 8, 31)),
        ]

        assert find_containing_interval(date(2024, 4, 15), intervals) is None

    def test_empty_list_returns_none(self):
        assert find_containing_interval(date(2024, 4, 15), []) is None

    def test_non_date_rejected(self):
        with pytest.raises(InvalidDateError):
            find_containing_interval("2024-04-15", [])  # type: ignore[arg-type]
