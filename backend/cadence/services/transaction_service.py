"""Service for transaction intake, validation, analysis and listing."""

import logging
import math
from datetime import date, datetime
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence, Tuple

from pydantic import ValidationError
from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from cadence.ai.oracle import ClassificationOracle
from cadence.cache import Cache, CacheKeys, CacheTTL
from cadence.events import EventBus, Topics
from cadence.exceptions import AnalysisError, NotFoundError, OracleError, TransactionValidationError
from cadence.models.merchant import Merchant
from cadence.models.transaction import Transaction
from cadence.schemas.analysis import CombinedAnalysisResponse, NormalizedTransaction
from cadence.schemas.merchant import NormalizeResponse
from cadence.schemas.transaction import (
    MerchantSummary,
    RowError,
    TransactionCreate,
    TransactionInput,
    TransactionListResponse,
    TransactionResponse,
)
from cadence.services.merchant_service import (
    invalidate_merchant_search,
    normalize_merchant,
    resolve_merchant,
    to_normalize_response,
)

if TYPE_CHECKING:
    from cadence.services.pattern_service import PatternService

logger = logging.getLogger(__name__)

SORT_COLUMNS = {
    "date": Transaction.date,
    "amount": Transaction.amount,
    "category": Transaction.category,
    "merchant": Merchant.normalized_name,
}


def parse_transaction(row: Any, index: int) -> TransactionInput:
    """Validate one raw row, raising TransactionValidationError on bad data."""
    try:
        return TransactionInput.model_validate(row)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'row'}: {err['msg']}" for err in e.errors()
        )
        raise TransactionValidationError(problems, index=index) from e


def validate_transactions(rows: Sequence[Any]) -> Tuple[List[TransactionInput], List[RowError]]:
    """Split raw rows into valid transactions and per-row errors."""
    valid: List[TransactionInput] = []
    errors: List[RowError] = []
    for index, row in enumerate(rows):
        try:
            valid.append(parse_transaction(row, index))
        except TransactionValidationError as e:
            logger.warning(f"Rejected transaction row {index}: {e}")
            errors.append(RowError(index=index, error=str(e)))
    return valid, errors


def to_response(transaction: Transaction) -> TransactionResponse:
    merchant = transaction.merchant
    return TransactionResponse(
        id=transaction.id,
        description=transaction.description,
        amount=transaction.amount,
        date=transaction.date,
        merchant=MerchantSummary(
            id=merchant.id,
            name=merchant.normalized_name,
            category=merchant.category,
        ) if merchant else None,
        category=transaction.category,
        sub_category=transaction.sub_category,
        confidence=transaction.confidence,
        is_subscription=transaction.is_subscription,
        flags=list(transaction.flags or []),
        created_at=transaction.created_at,
        updated_at=transaction.updated_at,
    )


async def create_transaction(
    db: Session,
    cache: Cache,
    events: EventBus,
    oracle: ClassificationOracle,
    data: TransactionCreate,
) -> TransactionResponse:
    """Normalize the merchant, store the transaction and announce it."""
    classification = await normalize_merchant(db, cache, oracle, data.description)
    merchant = await resolve_merchant(db, cache, events, classification, original_name=data.description)

    transaction = Transaction(
        description=data.description,
        amount=data.amount,
        date=data.date,
        merchant_id=merchant.id,
        category=classification.category,
        sub_category=classification.sub_category,
        confidence=classification.confidence,
        is_subscription=any(f.lower() in ("subscription", "recurring") for f in classification.flags),
        flags=list(classification.flags),
        is_analyzed=True,
        analyzed_at=datetime.utcnow(),
    )
    db.add(transaction)
    db.commit()
    db.refresh(transaction)

    # transaction_count changed for this merchant.
    await cache.delete(CacheKeys.merchant(merchant.id))
    await invalidate_merchant_search(cache)
    await events.publish(Topics.TRANSACTION_CREATED, {"transaction_id": transaction.id})
    return to_response(transaction)


async def analyze_transactions(
    db: Session,
    cache: Cache,
    oracle: ClassificationOracle,
    pattern_service: "PatternService",
    rows: Sequence[Any],
) -> CombinedAnalysisResponse:
    """
    Normalize the merchant of every row and detect patterns across the batch.

    Nothing is stored. Rows that fail validation or merchant resolution are
    listed in `rejected`; the remaining rows still get both results.
    """
    valid: List[Tuple[int, TransactionInput]] = []
    rejected: List[RowError] = []
    for index, row in enumerate(rows):
        try:
            valid.append((index, parse_transaction(row, index)))
        except TransactionValidationError as e:
            logger.warning(f"Rejected transaction row {index}: {e}")
            rejected.append(RowError(index=index, error=str(e)))

    if not valid:
        raise AnalysisError("No valid transactions in batch")

    normalized_by_description: Dict[str, Optional[NormalizeResponse]] = {}
    normalized: List[NormalizedTransaction] = []
    for index, transaction in valid:
        description = transaction.description
        if description not in normalized_by_description:
            try:
                classification = await normalize_merchant(db, cache, oracle, description)
                normalized_by_description[description] = to_normalize_response(classification)
            except OracleError as e:
                logger.warning(f"Failed to normalize merchant for {description!r}: {e}")
                normalized_by_description[description] = None

        result = normalized_by_description[description]
        if result is None:
            rejected.append(RowError(index=index, error=f"Merchant could not be resolved: {description}"))
            continue
        normalized.append(NormalizedTransaction(index=index, original=description, normalized=result))

    try:
        patterns, _ = await pattern_service.analyze_patterns([t for _, t in valid])
    except AnalysisError as e:
        logger.warning(f"No patterns detected: {e}")
        patterns = []

    return CombinedAnalysisResponse(
        normalized_transactions=normalized,
        detected_patterns=patterns,
        rejected=sorted(rejected, key=lambda r: r.index),
    )


async def get_transaction(db: Session, cache: Cache, transaction_id: str) -> TransactionResponse:
    cached = await cache.get(CacheKeys.transaction(transaction_id))
    if cached is not None:
        return TransactionResponse.model_validate(cached)

    transaction = db.query(Transaction).options(joinedload(Transaction.merchant)).filter(
        Transaction.id == transaction_id
    ).first()
    if not transaction:
        raise NotFoundError(f"Transaction {transaction_id} not found")

    response = to_response(transaction)
    await cache.set(CacheKeys.transaction(transaction_id), response.model_dump(mode="json"), CacheTTL.MEDIUM)
    return response


def list_transactions(
    db: Session,
    merchant_id: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    category: Optional[str] = None,
    search: Optional[str] = None,
    sort_by: str = "date",
    order: str = "desc",
    page: int = 1,
    limit: int = 10,
) -> TransactionListResponse:
    query = db.query(Transaction).outerjoin(Merchant, Transaction.merchant_id == Merchant.id)

    if merchant_id:
        query = query.filter(Transaction.merchant_id == merchant_id)
    if start_date:
        query = query.filter(Transaction.date >= start_date)
    if end_date:
        query = query.filter(Transaction.date <= end_date)
    if category:
        query = query.filter(Transaction.category == category)
    if search:
        query = query.filter(or_(
            Transaction.description.ilike(f"%{search}%"),
            Merchant.normalized_name.ilike(f"%{search}%"),
        ))

    total = query.count()

    column = SORT_COLUMNS.get(sort_by, Transaction.date)
    query = query.order_by(column.asc() if order.lower() == "asc" else column.desc())

    items = query.offset(max(0, (page - 1) * limit)).limit(limit).all()

    return TransactionListResponse(
        items=[to_response(t) for t in items],
        total=total,
        page=page,
        limit=limit,
        total_pages=math.ceil(total / limit) if limit else 0,
    )
