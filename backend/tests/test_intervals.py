"""Tests for day-gap calculation between transactions."""

import pytest
from datetime import date, datetime

from cadence.schemas.transaction import TransactionInput
from cadence.services.intervals import (
    calculate_intervals,
    interval_variance,
    mean_interval,
    sort_by_date,
)


class TestCalculateIntervals:
    """Test interval computation."""

    def test_whole_day_difference(self, make_txn):
        """Two transactions should yield one whole-day gap."""
        intervals = calculate_intervals([
            make_txn("NETFLIX", -19.99, date(2024, 1, 1)),
            make_txn("NETFLIX", -19.99, date(2024, 2, 1)),
        ])
        assert intervals == [31]

    def test_sorts_before_measuring(self, make_txn):
        """Input order should not matter."""
        intervals = calculate_intervals([
            make_txn("GYM", -30, date(2024, 3, 1)),
            make_txn("GYM", -30, date(2024, 1, 1)),
            make_txn("GYM", -30, date(2024, 2, 1)),
        ])
        assert intervals == [31, 29]

    def test_ignores_time_of_day(self):
        """Timestamps on different hours of the same days give the same gap."""
        early = TransactionInput(description="SPOTIFY", amount="-9.99", date="2024-01-01T23:59:00")
        late = TransactionInput(description="SPOTIFY", amount="-9.99", date=datetime(2024, 1, 8, 0, 1))
        assert calculate_intervals([early, late]) == [7]

    def test_same_day_is_zero(self, make_txn):
        """Same-day duplicates are valid and give a zero gap."""
        intervals = calculate_intervals([
            make_txn("UBER", -12, date(2024, 1, 5)),
            make_txn("UBER", -18, date(2024, 1, 5)),
        ])
        assert intervals == [0]

    @pytest.mark.parametrize("count", [0, 1])
    def test_too_few_transactions(self, make_txn, count):
        """Fewer than two transactions give no intervals."""
        transactions = [make_txn("X", -1, date(2024, 1, 1))] * count
        assert calculate_intervals(transactions) == []

    def test_length_is_n_minus_one(self, make_txn):
        transactions = [make_txn("X", -1, date(2024, 1, d)) for d in (1, 3, 9, 20, 21)]
        assert len(calculate_intervals(transactions)) == 4


class TestSortByDate:

    def test_stable_for_same_day(self, make_txn):
        """Same-day transactions keep their input order."""
        first = make_txn("A", -1, date(2024, 1, 2))
        second = make_txn("B", -2, date(2024, 1, 2))
        earlier = make_txn("C", -3, date(2024, 1, 1))
        assert sort_by_date([first, second, earlier]) == [earlier, first, second]


class TestStatistics:

    def test_mean(self):
        assert mean_interval([30, 31, 29]) == 30

    def test_mean_of_nothing(self):
        assert mean_interval([]) == 0.0

    def test_variance(self):
        """Population variance around the mean."""
        assert interval_variance([6, 8]) == 1.0

    def test_variance_single_interval(self):
        assert interval_variance([30]) == 0.0
