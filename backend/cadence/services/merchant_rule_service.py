"""Service for merchant override rules."""

import logging
import re
from typing import List, Optional, Sequence

from sqlalchemy.orm import Session

from cadence.cache import Cache, CacheKeys, CacheTTL
from cadence.exceptions import NotFoundError, RuleEvaluationError
from cadence.models.merchant_rule import MerchantRule
from cadence.schemas.merchant_rule import MerchantRuleCreate, OverrideRule

logger = logging.getLogger(__name__)

RULES_PREFIX = "merchant:rules:"


def compile_rule(pattern: str, rule_id: Optional[str] = None) -> "re.Pattern[str]":
    """Compile a rule pattern case-insensitively, raising RuleEvaluationError if it is invalid."""
    try:
        return re.compile(pattern, re.IGNORECASE)
    except re.error as e:
        raise RuleEvaluationError(f"Invalid pattern {pattern!r}: {e}", rule_id=rule_id) from e


def match_rule(description: str, rules: Sequence[OverrideRule]) -> Optional[OverrideRule]:
    """
    First rule whose pattern matches anywhere in the description.

    Rules must already be in priority order. A rule that fails to compile is
    skipped with a warning and the scan continues.
    """
    for rule in rules:
        try:
            compiled = compile_rule(rule.pattern, rule.id)
        except RuleEvaluationError as e:
            logger.warning(f"Skipping rule {e.rule_id}: {e}")
            continue
        if compiled.search(description):
            return rule
    return None


async def invalidate_rule_cache(cache: Cache) -> None:
    await cache.delete_prefix(RULES_PREFIX)


async def create_rule(db: Session, cache: Cache, data: MerchantRuleCreate) -> MerchantRule:
    """Create a rule. Patterns are checked before anything is written."""
    compile_rule(data.pattern)

    rule = MerchantRule(
        pattern=data.pattern,
        normalized_name=data.normalized_name,
        category=data.category,
        sub_category=data.sub_category,
        confidence=data.confidence,
        priority=data.priority,
        merchant_id=data.merchant_id,
        is_active=True,
    )
    db.add(rule)
    db.commit()
    db.refresh(rule)

    await invalidate_rule_cache(cache)
    return rule


async def delete_rule(db: Session, cache: Cache, rule_id: str) -> None:
    rule = db.query(MerchantRule).filter(MerchantRule.id == rule_id).first()
    if not rule:
        raise NotFoundError(f"Merchant rule {rule_id} not found")

    db.delete(rule)
    db.commit()

    await invalidate_rule_cache(cache)


def list_rules(db: Session, include_inactive: bool = False) -> List[MerchantRule]:
    query = db.query(MerchantRule)
    if not include_inactive:
        query = query.filter(MerchantRule.is_active == True)
    return query.order_by(MerchantRule.priority.desc(), MerchantRule.created_at).all()


async def get_active_rules(db: Session, cache: Cache) -> List[OverrideRule]:
    """Active rules, highest priority first."""
    cached = await cache.get(CacheKeys.RULES_ALL)
    if cached is not None:
        logger.debug("Cache hit for merchant rules")
        return [OverrideRule.model_validate(r) for r in cached]

    rules = [
        OverrideRule(
            id=r.id,
            pattern=r.pattern,
            normalized_name=r.normalized_name,
            category=r.category,
            sub_category=r.sub_category,
            confidence=r.confidence,
            priority=r.priority,
        )
        for r in list_rules(db)
    ]
    await cache.set(CacheKeys.RULES_ALL, [r.model_dump() for r in rules], CacheTTL.MEDIUM)
    return rules


async def apply_rules(db: Session, cache: Cache, description: str) -> Optional[OverrideRule]:
    """Match a description against the active rules. Only hits are cached."""
    cache_key = CacheKeys.rule_match(description)
    cached = await cache.get(cache_key)
    if cached is not None:
        return OverrideRule.model_validate(cached)

    rule = match_rule(description, await get_active_rules(db, cache))
    if rule is not None:
        await cache.set(cache_key, rule.model_dump(), CacheTTL.MEDIUM)
    return rule
