"""Tests for override rule matching and caching."""

import pytest
import uuid
from unittest.mock import AsyncMock

from cadence.cache import CacheKeys
from cadence.exceptions import RuleEvaluationError
from cadence.models.merchant_rule import MerchantRule
from cadence.schemas.merchant_rule import MerchantRuleCreate, OverrideRule
from cadence.services.merchant_rule_service import (
    apply_rules,
    create_rule,
    get_active_rules,
    match_rule,
)
from cadence.services.merchant_service import normalize_merchant


def rule(pattern, name, priority=0):
    return OverrideRule(
        id=str(uuid.uuid4()),
        pattern=pattern,
        normalized_name=name,
        category="Entertainment",
        confidence=1.0,
        priority=priority,
    )


class TestMatchRule:

    def test_case_insensitive(self):
        assert match_rule("netflix digital", [rule("^NETFLIX", "Netflix")]).normalized_name == "Netflix"

    def test_first_match_wins(self):
        rules = [rule("SPOTIFY", "Spotify Family", 5), rule("SPOT", "Spot Hero", 1)]
        assert match_rule("PAYPAL *SPOTIFY", rules).normalized_name == "Spotify Family"

    def test_invalid_regex_is_skipped(self):
        """A broken rule should not stop the scan."""
        rules = [rule("([unclosed", "Broken", 9), rule("HULU", "Hulu", 1)]
        assert match_rule("HULU 877", rules).normalized_name == "Hulu"

    def test_no_match(self):
        assert match_rule("SHELL OIL", [rule("^NETFLIX", "Netflix")]) is None


class TestRuleService:

    @pytest.mark.asyncio
    async def test_create_rejects_invalid_regex(self, db_session, cache):
        with pytest.raises(RuleEvaluationError):
            await create_rule(db_session, cache, MerchantRuleCreate(
                pattern="(*bad", normalized_name="Bad", category="Other",
            ))
        assert db_session.query(MerchantRule).count() == 0

    @pytest.mark.asyncio
    async def test_active_rules_ordered_by_priority(self, db_session, cache):
        for priority in (1, 7, 3):
            db_session.add(MerchantRule(
                pattern=f"P{priority}", normalized_name=f"M{priority}",
                category="Other", confidence=1.0, priority=priority,
            ))
        db_session.add(MerchantRule(
            pattern="OFF", normalized_name="Off", category="Other",
            confidence=1.0, priority=99, is_active=False,
        ))
        db_session.commit()

        rules = await get_active_rules(db_session, cache)
        assert [r.priority for r in rules] == [7, 3, 1]

    @pytest.mark.asyncio
    async def test_create_invalidates_cached_rules(self, db_session, cache, netflix_rule):
        assert len(await get_active_rules(db_session, cache)) == 1
        assert await cache.get(CacheKeys.RULES_ALL) is not None

        await create_rule(db_session, cache, MerchantRuleCreate(
            pattern="HULU", normalized_name="Hulu", category="Entertainment", priority=1,
        ))

        assert await cache.get(CacheKeys.RULES_ALL) is None
        assert len(await get_active_rules(db_session, cache)) == 2

    @pytest.mark.asyncio
    async def test_match_is_cached(self, db_session, cache, netflix_rule):
        await apply_rules(db_session, cache, "NETFLIX DIGITAL")
        cached = await cache.get(CacheKeys.rule_match("NETFLIX DIGITAL"))
        assert cached["normalized_name"] == "Netflix"

    @pytest.mark.asyncio
    async def test_rule_match_skips_oracle(self, db_session, cache, oracle, netflix_rule):
        """A matching rule means the oracle is never asked."""
        result = await normalize_merchant(db_session, cache, oracle, "NETFLIX DIGITAL")
        assert result.normalized_name == "Netflix"
        assert result.source == "rule"
        assert oracle.classify_merchant.await_count == 0

    @pytest.mark.asyncio
    async def test_falls_back_to_oracle(self, db_session, cache, oracle, netflix_rule):
        result = await normalize_merchant(db_session, cache, oracle, "SPOTIFY USA")
        assert result.normalized_name == "Spotify"
        assert result.source == "oracle"
        assert oracle.classify_merchant.await_count == 1

    @pytest.mark.asyncio
    async def test_oracle_answer_is_cached(self, db_session, cache, oracle):
        await normalize_merchant(db_session, cache, oracle, "SPOTIFY USA")
        await normalize_merchant(db_session, cache, oracle, "SPOTIFY USA")
        assert oracle.classify_merchant.await_count == 1
