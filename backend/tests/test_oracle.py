"""Tests for oracle response parsing and error typing."""

import json
import litellm
import pytest
from datetime import date
from types import SimpleNamespace
from unittest.mock import AsyncMock

from cadence.ai.client import AIClient
from cadence.ai.oracle import (
    ClassificationOracle,
    ParseError,
    ParseOk,
    parse_merchant_classification,
    parse_pattern_classification,
)
from cadence.exceptions import OracleError
from cadence.models.pattern import PatternType


class TestParseMerchantClassification:

    def test_full_response(self):
        result = parse_merchant_classification({
            "merchant": "Amazon",
            "category": "Shopping",
            "sub_category": "Online Retail",
            "confidence": 0.93,
            "flags": ["marketplace", 3],
        })
        assert isinstance(result, ParseOk)
        assert result.value.normalized_name == "Amazon"
        assert result.value.sub_category == "Online Retail"
        assert result.value.flags == ["marketplace"]
        assert result.value.source == "oracle"

    def test_confidence_defaults_when_missing(self):
        result = parse_merchant_classification({"merchant": "Amazon", "category": "Shopping"})
        assert isinstance(result, ParseOk)
        assert result.value.confidence == 0.8
        assert result.value.flags == []

    def test_confidence_is_clamped(self):
        result = parse_merchant_classification({"merchant": "A", "category": "B", "confidence": 7})
        assert result.value.confidence == 1.0

    @pytest.mark.parametrize("data", [
        None,
        [],
        "Amazon",
        {"category": "Shopping"},
        {"merchant": "  ", "category": "Shopping"},
        {"merchant": "Amazon"},
        {"merchant": "Amazon", "category": "Shopping", "confidence": "high"},
    ])
    def test_rejects_malformed(self, data):
        assert isinstance(parse_merchant_classification(data), ParseError)


class TestParsePatternClassification:

    def test_upper_case_type(self):
        result = parse_pattern_classification({
            "type": "SUBSCRIPTION",
            "description": "Monthly streaming plan",
            "confidence": 0.9,
        })
        assert isinstance(result, ParseOk)
        assert result.value.type == PatternType.subscription

    @pytest.mark.parametrize("data,reason", [
        ({"description": "x", "confidence": 0.5}, "missing type"),
        ({"type": "WEEKLY", "description": "x", "confidence": 0.5}, "unknown pattern type"),
        ({"type": "RECURRING", "confidence": 0.5}, "missing description"),
        ({"type": "RECURRING", "description": "x"}, "confidence"),
        ({"type": "RECURRING", "description": "x", "confidence": True}, "confidence"),
    ])
    def test_rejects_malformed(self, data, reason):
        result = parse_pattern_classification(data)
        assert isinstance(result, ParseError)
        assert reason in result.reason


def make_oracle(response=None, error=None):
    client = AsyncMock()
    if error is not None:
        client.complete_json.side_effect = error
    else:
        client.complete_json.return_value = response
    return ClassificationOracle(client=client), client


class TestClassificationOracle:

    @pytest.mark.asyncio
    async def test_classify_merchant(self):
        oracle, client = make_oracle({"merchant": "Netflix", "category": "Entertainment", "confidence": 0.9})
        result = await oracle.classify_merchant("NETFLIX.COM 866-579")
        assert result.normalized_name == "Netflix"
        user_prompt = client.complete_json.call_args.kwargs["user_prompt"]
        assert "NETFLIX.COM 866-579" in user_prompt

    @pytest.mark.asyncio
    async def test_transport_failure_is_typed(self):
        oracle, _ = make_oracle(error=ConnectionError("connection refused"))
        with pytest.raises(OracleError) as exc_info:
            await oracle.classify_merchant("NETFLIX")
        assert "connection refused" in exc_info.value.reason

    @pytest.mark.asyncio
    async def test_unparseable_json_is_typed(self):
        oracle, _ = make_oracle(error=json.JSONDecodeError("Expecting value", "nope", 0))
        with pytest.raises(OracleError):
            await oracle.classify_pattern([])

    @pytest.mark.asyncio
    async def test_malformed_pattern_is_typed(self, make_txn):
        oracle, _ = make_oracle({"type": "SUBSCRIPTION"})
        with pytest.raises(OracleError) as exc_info:
            await oracle.classify_pattern([make_txn("NETFLIX", -19.99, date(2024, 1, 1))])
        assert exc_info.value.reason == "missing description"

    @pytest.mark.asyncio
    async def test_pattern_prompt_carries_amount_signal(self, make_txn):
        oracle, client = make_oracle({"type": "RECURRING", "description": "Power bill", "confidence": 0.7})
        transactions = [
            make_txn("CITY POWER", -80.10, date(2024, 1, 3)),
            make_txn("CITY POWER", -95.40, date(2024, 2, 3)),
        ]
        result = await oracle.classify_pattern(transactions, fixed_amount=False)
        assert result.type == PatternType.recurring
        user_prompt = client.complete_json.call_args.kwargs["user_prompt"]
        assert "CITY POWER: $-80.1 on 2024-01-03" in user_prompt
        assert "variable" in user_prompt


class TestAIClient:

    @staticmethod
    def fake_completion(content):
        message = SimpleNamespace(content=content)
        return AsyncMock(return_value=SimpleNamespace(choices=[SimpleNamespace(message=message)]))

    @pytest.mark.asyncio
    async def test_fenced_json(self, monkeypatch):
        completion = self.fake_completion('```json\n{"merchant": "Netflix"}\n```')
        monkeypatch.setattr(litellm, "acompletion", completion)

        result = await AIClient().complete_json("system", "user")

        assert result == {"merchant": "Netflix"}
        kwargs = completion.call_args.kwargs
        assert kwargs["response_format"] == {"type": "json_object"}
        assert kwargs["messages"][1] == {"role": "user", "content": "user"}

    @pytest.mark.asyncio
    async def test_invalid_json_raises(self, monkeypatch):
        monkeypatch.setattr(litellm, "acompletion", self.fake_completion("not json"))
        with pytest.raises(json.JSONDecodeError):
            await AIClient().complete_json("system", "user")
