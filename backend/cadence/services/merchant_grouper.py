"""
Partition a batch of raw transactions into per-merchant groups.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from sqlalchemy.orm import Session

from cadence.ai.oracle import ClassificationOracle, MerchantClassification
from cadence.cache import Cache
from cadence.events import EventBus
from cadence.exceptions import OracleError
from cadence.schemas.transaction import TransactionInput
from cadence.services.intervals import sort_by_date
from cadence.services.merchant_service import normalize_merchant, resolve_merchant

logger = logging.getLogger(__name__)


@dataclass
class MerchantGroup:
    """Transactions attributed to one canonical merchant, oldest first."""
    merchant_name: str
    merchant_id: Optional[str] = None
    category: Optional[str] = None
    transactions: List[TransactionInput] = field(default_factory=list)

    @property
    def key(self) -> str:
        return self.merchant_id or self.merchant_name


class MerchantGrouper:
    """
    Resolves each transaction to a merchant (override rules first, then the
    oracle) and groups transactions sharing the same canonical name.

    With persist=True the group is keyed by the merchant record id; a
    description whose merchant has no record is dropped unless
    create_missing is set. Descriptions that cannot be resolved are dropped
    with a warning and never abort the batch.
    """

    def __init__(
        self,
        db: Session,
        cache: Cache,
        oracle: ClassificationOracle,
        events: Optional[EventBus] = None,
        persist: bool = True,
        create_missing: bool = False,
        concurrency: int = 4,
    ):
        self.db = db
        self.cache = cache
        self.oracle = oracle
        self.events = events
        self.persist = persist
        self.create_missing = create_missing
        self.concurrency = max(1, concurrency)
        self.dropped: List[TransactionInput] = []

    async def _classify_all(self, descriptions: Sequence[str]) -> Dict[str, Optional[MerchantClassification]]:
        semaphore = asyncio.Semaphore(self.concurrency)

        async def classify(description: str) -> Optional[MerchantClassification]:
            async with semaphore:
                try:
                    return await normalize_merchant(self.db, self.cache, self.oracle, description)
                except OracleError as e:
                    logger.warning(f"Failed to resolve merchant for {description!r}: {e}")
                    return None

        results = await asyncio.gather(*(classify(d) for d in descriptions))
        return dict(zip(descriptions, results))

    async def group(self, transactions: Sequence[TransactionInput]) -> Dict[str, MerchantGroup]:
        self.dropped = []
        # Identical descriptions resolve identically, so each is classified once.
        descriptions = list(dict.fromkeys(t.description for t in transactions))
        classifications = await self._classify_all(descriptions)

        groups: Dict[str, MerchantGroup] = {}
        for transaction in transactions:
            classification = classifications.get(transaction.description)
            if classification is None:
                self.dropped.append(transaction)
                continue

            merchant_id = None
            if self.persist:
                merchant = await resolve_merchant(
                    self.db,
                    self.cache,
                    self.events,
                    classification,
                    original_name=transaction.description,
                    create_missing=self.create_missing,
                )
                if merchant is None:
                    logger.warning(
                        f"No merchant record for {classification.normalized_name!r}, "
                        f"dropping transaction: {transaction.description}"
                    )
                    self.dropped.append(transaction)
                    continue
                merchant_id = merchant.id

            key = merchant_id or classification.normalized_name
            group = groups.get(key)
            if group is None:
                group = MerchantGroup(
                    merchant_name=classification.normalized_name,
                    merchant_id=merchant_id,
                    category=classification.category,
                )
                groups[key] = group
            group.transactions.append(transaction)

        for group in groups.values():
            group.transactions = sort_by_date(group.transactions)

        if self.dropped:
            logger.warning(f"Dropped {len(self.dropped)} of {len(transactions)} transactions during merchant grouping")
        return groups
