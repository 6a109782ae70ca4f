"""
Pattern analyzer.

Turns one merchant group into at most one pattern: intervals, cadence and
confidence, representative amount, predicted next date, and the oracle's
qualitative type and description.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from cadence.ai.oracle import ClassificationOracle
from cadence.config import settings
from cadence.exceptions import OracleError
from cadence.models.pattern import Frequency, PatternType
from cadence.schemas.transaction import TransactionInput
from cadence.services.frequency import classify
from cadence.services.intervals import calculate_intervals
from cadence.services.merchant_grouper import MerchantGroup

logger = logging.getLogger(__name__)

MIN_TRANSACTIONS = 2
CENTS = Decimal("0.01")


@dataclass
class PatternAnalysis:
    merchant_name: str
    merchant_id: Optional[str]
    type: PatternType
    amount: Decimal
    frequency: Frequency
    confidence: float
    next_expected_date: Optional[date]
    description: Optional[str]
    transaction_count: int
    average_interval: float
    interval_variance: float
    fixed_amount: bool
    last_occurrence: date
    oracle_type: PatternType
    oracle_confidence: float
    analyzed_at: datetime = field(default_factory=datetime.utcnow)

    def metadata(self) -> Dict[str, Any]:
        return {
            "transaction_count": self.transaction_count,
            "average_interval": self.average_interval,
            "interval_variance": self.interval_variance,
            "fixed_amount": self.fixed_amount,
            "oracle_type": self.oracle_type.value,
            "oracle_confidence": self.oracle_confidence,
            "analysis_date": self.analyzed_at.isoformat(),
        }


@dataclass
class AnalysisBatch:
    patterns: List[PatternAnalysis] = field(default_factory=list)
    insufficient: List[str] = field(default_factory=list)  # groups with fewer than 2 transactions
    failed: List[str] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return len(self.patterns) + len(self.failed)


def representative_amount(transactions: Sequence[TransactionInput]) -> Tuple[Decimal, bool]:
    """
    The amount a pattern stands for, and whether every charge was identical.

    Identical absolute amounts give that amount exactly; otherwise the mean
    of absolute amounts, rounded to cents.
    """
    amounts = [abs(t.amount) for t in transactions]
    if len(set(amounts)) == 1:
        return amounts[0].quantize(CENTS, rounding=ROUND_HALF_UP), True
    mean = sum(amounts, Decimal("0")) / len(amounts)
    return mean.quantize(CENTS, rounding=ROUND_HALF_UP), False


def predict_next_date(transactions: Sequence[TransactionInput], average_interval: float) -> date:
    """Latest date plus the mean interval, never less than one day ahead."""
    latest = max(t.date for t in transactions)
    return latest + timedelta(days=max(1, round(average_interval)))


def expected_type(fixed_amount: bool, frequency: Frequency) -> PatternType:
    """What the local statistics alone suggest, used to cross-check the oracle."""
    if frequency == Frequency.irregular:
        return PatternType.periodic
    return PatternType.subscription if fixed_amount else PatternType.recurring


class PatternAnalyzer:

    def __init__(
        self,
        oracle: ClassificationOracle,
        tolerance: Optional[float] = None,
        single_interval_confidence: Optional[str] = None,
        concurrency: Optional[int] = None,
    ):
        self.oracle = oracle
        self.tolerance = settings.frequency_tolerance if tolerance is None else tolerance
        self.single_interval_confidence = single_interval_confidence or settings.single_interval_confidence
        self.concurrency = max(1, concurrency or settings.analysis_concurrency)

    async def analyze(self, group: MerchantGroup) -> Optional[PatternAnalysis]:
        """
        Analyze one merchant group.

        Returns None for groups with fewer than two transactions and for
        groups whose oracle call fails or comes back malformed.
        """
        transactions = group.transactions
        if len(transactions) < MIN_TRANSACTIONS:
            return None

        intervals = calculate_intervals(transactions)
        cadence = classify(intervals, self.tolerance)
        amount, fixed_amount = representative_amount(transactions)
        next_date = predict_next_date(transactions, cadence.mean_interval)

        try:
            oracle_result = await self.oracle.classify_pattern(transactions, fixed_amount=fixed_amount)
        except OracleError as e:
            logger.error(f"Pattern classification failed for merchant {group.merchant_name}: {e}")
            return None

        local_type = expected_type(fixed_amount, cadence.frequency)
        if oracle_result.type != local_type:
            logger.info(
                f"Oracle type {oracle_result.type.value} differs from local signal "
                f"{local_type.value} for merchant {group.merchant_name}; keeping oracle type"
            )

        confidence = cadence.confidence
        if confidence is None:
            if self.single_interval_confidence == "oracle":
                confidence = oracle_result.confidence
            else:
                confidence = 0.0

        return PatternAnalysis(
            merchant_name=group.merchant_name,
            merchant_id=group.merchant_id,
            type=oracle_result.type,
            amount=amount,
            frequency=cadence.frequency,
            confidence=round(max(0.0, min(1.0, confidence)), 2),
            next_expected_date=next_date,
            description=oracle_result.description,
            transaction_count=len(transactions),
            average_interval=round(cadence.mean_interval, 2),
            interval_variance=round(cadence.variance, 2),
            fixed_amount=fixed_amount,
            last_occurrence=max(t.date for t in transactions),
            oracle_type=oracle_result.type,
            oracle_confidence=oracle_result.confidence,
        )

    async def analyze_groups(self, groups: Iterable[MerchantGroup]) -> AnalysisBatch:
        """Analyze independent groups concurrently; one group's failure never affects another."""
        batch = AnalysisBatch()
        semaphore = asyncio.Semaphore(self.concurrency)

        async def run(group: MerchantGroup) -> Tuple[MerchantGroup, Optional[PatternAnalysis]]:
            async with semaphore:
                try:
                    return group, await self.analyze(group)
                except Exception:
                    logger.exception(f"Pattern analysis crashed for merchant {group.merchant_name}")
                    return group, None

        eligible = []
        for group in groups:
            if len(group.transactions) < MIN_TRANSACTIONS:
                batch.insufficient.append(group.key)
            else:
                eligible.append(group)

        for group, analysis in await asyncio.gather(*(run(g) for g in eligible)):
            if analysis is None:
                batch.failed.append(group.key)
            else:
                batch.patterns.append(analysis)

        logger.info(
            f"Analyzed {len(eligible)} merchant groups: {len(batch.patterns)} patterns, "
            f"{len(batch.failed)} failed, {len(batch.insufficient)} with too few transactions"
        )
        return batch
