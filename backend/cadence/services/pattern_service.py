"""
Pattern detection orchestration and the pattern store.

detect_patterns runs the whole engine on a batch: validate rows, group by
merchant, analyze each group, then store every pattern in its own
transaction. The merchant's cached pattern list is invalidated only after
the write has committed.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from cadence.ai.oracle import ClassificationOracle
from cadence.cache import Cache, CacheKeys, CacheTTL
from cadence.config import settings
from cadence.events import EventBus, Topics
from cadence.exceptions import AnalysisError, PersistenceError
from cadence.models.merchant import Merchant
from cadence.models.pattern import Pattern
from cadence.schemas.pattern import AnalyzedPattern, PatternResponse
from cadence.schemas.transaction import RowError, TransactionInput
from cadence.services.merchant_grouper import MerchantGrouper
from cadence.services.pattern_analyzer import AnalysisBatch, PatternAnalysis, PatternAnalyzer
from cadence.services.transaction_service import validate_transactions

logger = logging.getLogger(__name__)


@dataclass
class DetectionOutcome:
    patterns: List[PatternResponse] = field(default_factory=list)
    analyzed_groups: int = 0
    skipped_groups: int = 0
    rejected: List[RowError] = field(default_factory=list)


def to_response(pattern: Pattern, merchant_name: Optional[str] = None) -> PatternResponse:
    return PatternResponse(
        id=pattern.id,
        type=pattern.type,
        merchant_id=pattern.merchant_id,
        merchant_name=merchant_name,
        amount=pattern.amount,
        frequency=pattern.frequency,
        confidence=pattern.confidence,
        next_expected_date=pattern.next_expected_date,
        description=pattern.description,
        created_at=pattern.created_at,
        updated_at=pattern.updated_at,
    )


def to_analyzed(analysis: PatternAnalysis) -> AnalyzedPattern:
    return AnalyzedPattern(
        type=analysis.type,
        merchant=analysis.merchant_name,
        amount=analysis.amount,
        frequency=analysis.frequency,
        confidence=analysis.confidence,
        next_expected=analysis.next_expected_date,
        description=analysis.description,
        transaction_count=analysis.transaction_count,
        average_interval=analysis.average_interval,
    )


class PatternService:

    def __init__(
        self,
        db: Session,
        cache: Cache,
        events: EventBus,
        oracle: ClassificationOracle,
        analyzer: Optional[PatternAnalyzer] = None,
    ):
        self.db = db
        self.cache = cache
        self.events = events
        self.oracle = oracle
        self.analyzer = analyzer or PatternAnalyzer(oracle)

    async def _run_engine(
        self,
        rows: Sequence[Any],
        persist: bool,
        create_missing_merchants: bool,
    ) -> Tuple[AnalysisBatch, List[RowError]]:
        transactions, rejected = validate_transactions(rows)
        if not transactions:
            raise AnalysisError("No valid transactions in batch")

        grouper = MerchantGrouper(
            self.db,
            self.cache,
            self.oracle,
            events=self.events,
            persist=persist,
            create_missing=create_missing_merchants,
            concurrency=settings.analysis_concurrency,
        )
        groups = await grouper.group(transactions)
        if not groups:
            raise AnalysisError("No transaction could be attributed to a merchant")

        batch = await self.analyzer.analyze_groups(groups.values())
        if batch.failed and not batch.patterns:
            raise AnalysisError(f"Pattern analysis failed for all {len(batch.failed)} merchant groups")

        return batch, rejected

    async def detect_patterns(
        self,
        rows: Sequence[Any],
        create_missing_merchants: bool = True,
    ) -> DetectionOutcome:
        """Detect and store patterns. Returns partial results when some groups fail."""
        batch, rejected = await self._run_engine(rows, True, create_missing_merchants)

        outcome = DetectionOutcome(
            analyzed_groups=batch.attempted,
            skipped_groups=len(batch.insufficient) + len(batch.failed),
            rejected=rejected,
        )
        for analysis in batch.patterns:
            pattern = await self.create_pattern(analysis)
            outcome.patterns.append(to_response(pattern, analysis.merchant_name))

        await self.events.publish(Topics.ANALYSIS_COMPLETED, {
            "pattern_count": len(outcome.patterns),
            "failed_groups": len(batch.failed),
            "rejected_rows": len(rejected),
        })
        return outcome

    async def analyze_patterns(self, rows: Sequence[Any]) -> Tuple[List[AnalyzedPattern], List[RowError]]:
        """Run the engine without touching the store. Groups are keyed by merchant name."""
        batch, rejected = await self._run_engine(rows, False, False)
        return [to_analyzed(a) for a in batch.patterns], rejected

    async def create_pattern(self, analysis: PatternAnalysis) -> Pattern:
        """Insert one pattern row, then invalidate caches, then announce it."""
        pattern = Pattern(
            type=analysis.type,
            merchant_id=analysis.merchant_id,
            amount=analysis.amount,
            frequency=analysis.frequency,
            confidence=analysis.confidence,
            next_expected_date=analysis.next_expected_date,
            description=analysis.description,
            last_occurrence=analysis.last_occurrence,
            analysis_metadata=analysis.metadata(),
        )
        try:
            self.db.add(pattern)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to store pattern for merchant {analysis.merchant_id}: {e}")
            raise PersistenceError(f"Failed to store pattern for merchant {analysis.merchant_id}") from e
        self.db.refresh(pattern)

        await self.invalidate_pattern_cache(pattern.merchant_id)
        await self.events.publish(Topics.PATTERN_DETECTED, {
            "pattern_id": pattern.id,
            "merchant_id": pattern.merchant_id,
            "type": pattern.type.value,
            "frequency": pattern.frequency.value,
            "confidence": pattern.confidence,
        })
        return pattern

    async def invalidate_pattern_cache(self, merchant_id: str) -> None:
        await self.cache.delete(CacheKeys.patterns_by_merchant(merchant_id))
        await self.cache.delete(CacheKeys.PATTERNS_ALL)

    async def find_patterns_by_merchant(self, merchant_id: str) -> List[PatternResponse]:
        cache_key = CacheKeys.patterns_by_merchant(merchant_id)
        cached = await self.cache.get(cache_key)
        if cached is not None:
            logger.debug(f"Cache hit for merchant patterns: {merchant_id}")
            return [PatternResponse.model_validate(p) for p in cached]

        patterns = self.db.query(Pattern).filter(
            Pattern.merchant_id == merchant_id
        ).order_by(Pattern.confidence.desc()).all()

        response = [to_response(p) for p in patterns]
        await self.cache.set(cache_key, [p.model_dump(mode="json") for p in response], CacheTTL.LONG)
        return response

    async def get_all_patterns(self) -> List[PatternResponse]:
        cached = await self.cache.get(CacheKeys.PATTERNS_ALL)
        if cached is not None:
            logger.debug("Cache hit for all patterns")
            return [PatternResponse.model_validate(p) for p in cached]

        rows = self.db.query(Pattern, Merchant.normalized_name).join(
            Merchant, Pattern.merchant_id == Merchant.id
        ).order_by(Pattern.confidence.desc(), Pattern.created_at.desc()).all()

        response = [to_response(p, name) for p, name in rows]
        await self.cache.set(CacheKeys.PATTERNS_ALL, [p.model_dump(mode="json") for p in response], CacheTTL.LONG)
        return response
