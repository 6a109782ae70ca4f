"""Service for merchant normalization and management."""

import json
import logging
import math
from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from cadence.ai.oracle import ClassificationOracle, MerchantClassification
from cadence.cache import Cache, CacheKeys, CacheTTL
from cadence.events import EventBus, Topics
from cadence.exceptions import ConflictError, NotFoundError
from cadence.models.merchant import Merchant
from cadence.models.transaction import Transaction
from cadence.schemas.merchant import (
    MerchantCreate,
    MerchantUpdate,
    MerchantResponse,
    MerchantListResponse,
    NormalizeResponse,
)
from cadence.services.merchant_rule_service import apply_rules

logger = logging.getLogger(__name__)

MERCHANT_SEARCH_PREFIX = "merchants:search:"


async def normalize_merchant(
    db: Session,
    cache: Cache,
    oracle: ClassificationOracle,
    description: str,
) -> MerchantClassification:
    """
    Resolve a raw description to a canonical merchant.

    Override rules win over the oracle; the oracle is only asked when no
    rule matches and no cached answer exists. OracleError propagates.
    """
    rule = await apply_rules(db, cache, description)
    if rule is not None:
        return MerchantClassification(
            normalized_name=rule.normalized_name,
            category=rule.category,
            sub_category=rule.sub_category,
            confidence=rule.confidence,
            flags=[],
            source="rule",
        )

    cache_key = CacheKeys.normalization(description)
    cached = await cache.get(cache_key)
    if cached is not None:
        logger.debug(f"Cache hit for normalization: {description}")
        return MerchantClassification.model_validate(cached)

    classification = await oracle.classify_merchant(description)
    await cache.set(cache_key, classification.model_dump(), CacheTTL.MEDIUM)
    return classification


def to_normalize_response(classification: MerchantClassification) -> NormalizeResponse:
    return NormalizeResponse(
        merchant=classification.normalized_name,
        category=classification.category,
        sub_category=classification.sub_category or "",
        confidence=classification.confidence,
        is_subscription=any(f.lower() == "subscription" for f in classification.flags),
        flags=[f.lower().replace(" ", "_") for f in classification.flags],
        source=classification.source,
    )


def find_by_normalized_name(db: Session, normalized_name: str) -> Optional[Merchant]:
    return db.query(Merchant).filter(Merchant.normalized_name == normalized_name).first()


async def resolve_merchant(
    db: Session,
    cache: Cache,
    events: Optional[EventBus],
    classification: MerchantClassification,
    original_name: str,
    create_missing: bool = True,
) -> Optional[Merchant]:
    """Find the merchant record for a classification, creating it if allowed."""
    merchant = find_by_normalized_name(db, classification.normalized_name)
    if merchant or not create_missing:
        return merchant

    merchant = Merchant(
        original_name=original_name,
        normalized_name=classification.normalized_name,
        category=classification.category,
        sub_category=classification.sub_category,
        confidence=classification.confidence,
        flags=list(classification.flags),
        is_active=True,
    )
    db.add(merchant)
    db.commit()
    db.refresh(merchant)
    logger.debug(f"New merchant created: {merchant.id} - {merchant.normalized_name}")
    await invalidate_merchant_search(cache)

    if events is not None:
        await events.publish(Topics.MERCHANT_CREATED, {
            "merchant_id": merchant.id,
            "normalized_name": merchant.normalized_name,
            "category": merchant.category,
        })
    return merchant


def transaction_count(db: Session, merchant_id: str) -> int:
    return db.query(func.count(Transaction.id)).filter(
        Transaction.merchant_id == merchant_id
    ).scalar() or 0


def to_response(db: Session, merchant: Merchant) -> MerchantResponse:
    return MerchantResponse(
        id=merchant.id,
        original_name=merchant.original_name,
        normalized_name=merchant.normalized_name,
        category=merchant.category,
        sub_category=merchant.sub_category,
        confidence=merchant.confidence,
        is_active=merchant.is_active,
        flags=list(merchant.flags or []),
        transaction_count=transaction_count(db, merchant.id),
        created_at=merchant.created_at,
        updated_at=merchant.updated_at,
    )


async def invalidate_merchant_search(cache: Cache) -> None:
    await cache.delete_prefix(MERCHANT_SEARCH_PREFIX)


async def _invalidate_merchant(db: Session, cache: Cache, merchant: Merchant) -> None:
    await cache.delete(CacheKeys.merchant(merchant.id))
    await cache.delete(CacheKeys.normalization(merchant.original_name))
    await invalidate_merchant_search(cache)
    # Cached transactions embed the merchant summary.
    transaction_ids = db.query(Transaction.id).filter(Transaction.merchant_id == merchant.id).all()
    for (transaction_id,) in transaction_ids:
        await cache.delete(CacheKeys.transaction(transaction_id))


async def create_merchant(
    db: Session,
    cache: Cache,
    events: EventBus,
    data: MerchantCreate,
) -> MerchantResponse:
    existing = db.query(Merchant).filter(or_(
        Merchant.original_name == data.original_name,
        Merchant.normalized_name == data.normalized_name,
    )).first()
    if existing:
        raise ConflictError("Merchant already exists")

    merchant = Merchant(
        original_name=data.original_name,
        normalized_name=data.normalized_name,
        category=data.category,
        sub_category=data.sub_category,
        confidence=data.confidence,
        flags=list(data.flags),
        is_active=True,
    )
    db.add(merchant)
    db.commit()
    db.refresh(merchant)

    response = to_response(db, merchant)
    await cache.set(CacheKeys.merchant(merchant.id), response.model_dump(mode="json"), CacheTTL.LONG)
    await invalidate_merchant_search(cache)
    await events.publish(Topics.MERCHANT_CREATED, {
        "merchant_id": merchant.id,
        "normalized_name": merchant.normalized_name,
        "category": merchant.category,
    })
    return response


async def get_merchant(db: Session, cache: Cache, merchant_id: str) -> MerchantResponse:
    cached = await cache.get(CacheKeys.merchant(merchant_id))
    if cached is not None:
        logger.debug(f"Cache hit for merchant: {merchant_id}")
        return MerchantResponse.model_validate(cached)

    merchant = db.query(Merchant).filter(Merchant.id == merchant_id).first()
    if not merchant:
        raise NotFoundError(f"Merchant {merchant_id} not found")

    response = to_response(db, merchant)
    await cache.set(CacheKeys.merchant(merchant_id), response.model_dump(mode="json"), CacheTTL.LONG)
    return response


async def update_merchant(
    db: Session,
    cache: Cache,
    events: EventBus,
    merchant_id: str,
    update: MerchantUpdate,
) -> MerchantResponse:
    merchant = db.query(Merchant).filter(Merchant.id == merchant_id).first()
    if not merchant:
        raise NotFoundError(f"Merchant {merchant_id} not found")

    previous_original = merchant.original_name
    for field, value in update.model_dump(exclude_unset=True).items():
        setattr(merchant, field, value)

    db.commit()
    db.refresh(merchant)

    await _invalidate_merchant(db, cache, merchant)
    await cache.delete(CacheKeys.normalization(previous_original))
    await events.publish(Topics.MERCHANT_UPDATED, {
        "merchant_id": merchant.id,
        "normalized_name": merchant.normalized_name,
        "category": merchant.category,
    })
    return to_response(db, merchant)


async def deactivate_merchant(
    db: Session,
    cache: Cache,
    events: EventBus,
    merchant_id: str,
) -> None:
    merchant = db.query(Merchant).filter(Merchant.id == merchant_id).first()
    if not merchant:
        raise NotFoundError(f"Merchant {merchant_id} not found")

    merchant.is_active = False
    db.commit()

    await _invalidate_merchant(db, cache, merchant)
    await events.publish(Topics.MERCHANT_DEACTIVATED, {
        "merchant_id": merchant.id,
        "normalized_name": merchant.normalized_name,
    })
    logger.info(f"Merchant deactivated: {merchant_id}")


async def search_merchants(
    db: Session,
    cache: Cache,
    category: Optional[str] = None,
    is_active: Optional[bool] = None,
    query: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
) -> MerchantListResponse:
    params = json.dumps({
        "category": category, "is_active": is_active, "query": query,
        "page": page, "limit": limit,
    }, sort_keys=True)
    cache_key = CacheKeys.merchant_search(params)
    cached = await cache.get(cache_key)
    if cached is not None:
        logger.debug("Cache hit for merchant search")
        return MerchantListResponse.model_validate(cached)

    q = db.query(Merchant)
    if category:
        q = q.filter(or_(
            Merchant.category.ilike(f"%{category}%"),
            Merchant.sub_category.ilike(f"%{category}%"),
        ))
    if is_active is not None:
        q = q.filter(Merchant.is_active == is_active)
    if query:
        q = q.filter(or_(
            Merchant.original_name.ilike(f"%{query}%"),
            Merchant.normalized_name.ilike(f"%{query}%"),
        ))

    total = q.count()
    merchants = q.order_by(
        Merchant.confidence.desc(), Merchant.created_at.desc()
    ).offset((page - 1) * limit).limit(limit).all()

    response = MerchantListResponse(
        items=[to_response(db, m) for m in merchants],
        total=total,
        page=page,
        limit=limit,
        total_pages=math.ceil(total / limit) if limit else 0,
    )
    await cache.set(cache_key, response.model_dump(mode="json"), CacheTTL.SHORT)
    logger.debug(f"Found {total} merchants matching search criteria. Page {page}/{response.total_pages}")
    return response
