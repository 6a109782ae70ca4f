"""Day gaps between consecutive transactions of one merchant."""

from datetime import date, datetime
from typing import List, Sequence, TypeVar, Union

from cadence.schemas.transaction import TransactionInput

T = TypeVar("T", bound=TransactionInput)


def _as_date(value: Union[date, datetime]) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def sort_by_date(transactions: Sequence[T]) -> List[T]:
    """Chronological order. sorted() is stable, so same-day rows keep input order."""
    return sorted(transactions, key=lambda t: _as_date(t.date))


def calculate_intervals(transactions: Sequence[TransactionInput]) -> List[int]:
    """
    Whole-day gaps between chronologically sorted transactions.

    Returns len(transactions) - 1 values (nothing for 0 or 1 transactions).
    Same-day pairs give 0; no gap is ever rejected here.
    """
    dates = [_as_date(t.date) for t in sort_by_date(transactions)]
    return [(later - earlier).days for earlier, later in zip(dates, dates[1:])]


def mean_interval(intervals: Sequence[int]) -> float:
    if not intervals:
        return 0.0
    return sum(intervals) / len(intervals)


def interval_variance(intervals: Sequence[int]) -> float:
    """Population variance around the mean. Zero for fewer than two intervals."""
    if len(intervals) < 2:
        return 0.0
    mean = mean_interval(intervals)
    return sum((i - mean) ** 2 for i in intervals) / len(intervals)
