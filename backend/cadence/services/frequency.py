"""
Frequency classifier.

Maps the intervals of one merchant to a cadence and a confidence that both
come from the same statistics: the mean picks the band, the spread around
the mean sets the confidence.
"""

from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Tuple

from cadence.models.pattern import Frequency
from cadence.services.intervals import interval_variance, mean_interval

# Inclusive day ranges for the mean interval. Bands must not overlap.
FREQUENCY_BANDS: Dict[Frequency, Tuple[float, float]] = {
    Frequency.weekly: (6, 9),
    Frequency.biweekly: (12, 16),
    Frequency.monthly: (27, 32),
    Frequency.quarterly: (85, 95),
    Frequency.yearly: (350, 380),
}

DEFAULT_TOLERANCE = 0.2


@dataclass(frozen=True)
class FrequencyResult:
    frequency: Frequency
    # None means the intervals cannot measure regularity (a single interval)
    confidence: Optional[float]
    mean_interval: float
    variance: float
    interval_count: int


def match_band(mean: float) -> Frequency:
    for frequency, (low, high) in FREQUENCY_BANDS.items():
        if low <= mean <= high:
            return frequency
    return Frequency.irregular


def variance_confidence(variance: float, mean: float, tolerance: float = DEFAULT_TOLERANCE) -> float:
    """
    1 - variance / allowed_variance, clamped to [0, 1] and rounded to 2 places.

    allowed_variance is (mean * tolerance) ** 2. A non-positive mean leaves no
    room for any variance and scores 0.
    """
    allowed = (mean * tolerance) ** 2
    if allowed <= 0:
        return 0.0
    confidence = 1 - variance / allowed
    return round(max(0.0, min(1.0, confidence)), 2)


def classify(intervals: Sequence[int], tolerance: float = DEFAULT_TOLERANCE) -> FrequencyResult:
    if not intervals:
        return FrequencyResult(
            frequency=Frequency.irregular,
            confidence=0.0,
            mean_interval=0.0,
            variance=0.0,
            interval_count=0,
        )

    mean = mean_interval(intervals)
    variance = interval_variance(intervals)
    frequency = match_band(mean)

    if len(intervals) < 2:
        confidence = None
    else:
        confidence = variance_confidence(variance, mean, tolerance)

    return FrequencyResult(
        frequency=frequency,
        confidence=confidence,
        mean_interval=mean,
        variance=variance,
        interval_count=len(intervals),
    )
