"""
Classification oracle adapter.

The LLM answers with loosely typed JSON. Everything that leaves this module
has been validated into MerchantClassification or PatternClassification;
anything else becomes an OracleError.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Generic, List, Optional, Sequence, TypeVar, Union

from pydantic import BaseModel, Field

from cadence.ai.client import AIClient, get_ai_client
from cadence.ai.prompts import (
    MERCHANT_CLASSIFICATION_SYSTEM, MERCHANT_CLASSIFICATION_USER,
    PATTERN_CLASSIFICATION_SYSTEM, PATTERN_CLASSIFICATION_USER,
)
from cadence.exceptions import OracleError
from cadence.models.pattern import PatternType
from cadence.schemas.transaction import TransactionInput

logger = logging.getLogger(__name__)

T = TypeVar("T")


class MerchantClassification(BaseModel):
    normalized_name: str
    category: str
    sub_category: Optional[str] = None
    confidence: float = Field(ge=0.0, le=1.0)
    flags: List[str] = []
    source: str = "oracle"  # "rule" when an override rule matched


class PatternClassification(BaseModel):
    type: PatternType
    description: str
    confidence: float = Field(ge=0.0, le=1.0)


@dataclass(frozen=True)
class ParseOk(Generic[T]):
    value: T


@dataclass(frozen=True)
class ParseError:
    reason: str


ParseResult = Union[ParseOk[T], ParseError]


def _clamp_confidence(raw: Any) -> Optional[float]:
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        return None
    return max(0.0, min(1.0, float(raw)))


def _non_empty_str(raw: Any) -> Optional[str]:
    if isinstance(raw, str) and raw.strip():
        return raw.strip()
    return None


def parse_merchant_classification(data: Any) -> ParseResult[MerchantClassification]:
    """Validate a raw merchant answer. Confidence defaults to 0.8 when omitted."""
    if not isinstance(data, dict):
        return ParseError("response is not a JSON object")

    name = _non_empty_str(data.get("merchant") or data.get("normalized_name"))
    if name is None:
        return ParseError("missing merchant name")

    category = _non_empty_str(data.get("category"))
    if category is None:
        return ParseError("missing category")

    if "confidence" in data and data["confidence"] is not None:
        confidence = _clamp_confidence(data["confidence"])
        if confidence is None:
            return ParseError("confidence is not a number")
    else:
        confidence = 0.8

    raw_flags = data.get("flags")
    flags = [str(f) for f in raw_flags if isinstance(f, str)] if isinstance(raw_flags, list) else []

    return ParseOk(MerchantClassification(
        normalized_name=name,
        category=category,
        sub_category=_non_empty_str(data.get("sub_category") or data.get("subCategory")),
        confidence=confidence,
        flags=flags,
    ))


def parse_pattern_classification(data: Any) -> ParseResult[PatternClassification]:
    """Validate a raw pattern answer. Type, description and confidence are all required."""
    if not isinstance(data, dict):
        return ParseError("response is not a JSON object")

    raw_type = _non_empty_str(data.get("type"))
    if raw_type is None:
        return ParseError("missing type")
    try:
        pattern_type = PatternType(raw_type.lower())
    except ValueError:
        return ParseError(f"unknown pattern type: {raw_type}")

    description = _non_empty_str(data.get("description"))
    if description is None:
        return ParseError("missing description")

    confidence = _clamp_confidence(data.get("confidence"))
    if confidence is None:
        return ParseError("confidence is missing or not a number")

    return ParseOk(PatternClassification(
        type=pattern_type,
        description=description,
        confidence=confidence,
    ))


def format_transactions(transactions: Sequence[TransactionInput]) -> str:
    return "\n".join(
        f"- {t.description}: ${t.amount} on {t.date.isoformat()}"
        for t in transactions
    )


class ClassificationOracle:
    """Black-box classifier for merchants and merchant transaction histories."""

    def __init__(self, client: Optional[AIClient] = None):
        self._client = client

    @property
    def client(self) -> AIClient:
        if self._client is None:
            self._client = get_ai_client()
        return self._client

    async def _ask(self, system_prompt: str, user_prompt: str) -> Dict[str, Any]:
        try:
            return await self.client.complete_json(
                system_prompt=system_prompt,
                user_prompt=user_prompt,
            )
        except Exception as e:
            raise OracleError(f"Oracle request failed: {e}", reason=str(e)) from e

    async def classify_merchant(self, description: str) -> MerchantClassification:
        data = await self._ask(
            MERCHANT_CLASSIFICATION_SYSTEM,
            MERCHANT_CLASSIFICATION_USER.format(description=description),
        )
        result = parse_merchant_classification(data)
        if isinstance(result, ParseError):
            logger.warning(f"Unparseable merchant classification for {description!r}: {result.reason}")
            raise OracleError(f"Invalid merchant classification: {result.reason}", reason=result.reason)
        return result.value

    async def classify_pattern(
        self,
        transactions: Sequence[TransactionInput],
        fixed_amount: Optional[bool] = None,
    ) -> PatternClassification:
        if fixed_amount is None:
            amount_signal = "not summarized"
        else:
            amount_signal = "identical across all transactions" if fixed_amount else "variable"

        data = await self._ask(
            PATTERN_CLASSIFICATION_SYSTEM,
            PATTERN_CLASSIFICATION_USER.format(
                transactions_text=format_transactions(transactions),
                amount_signal=amount_signal,
            ),
        )
        result = parse_pattern_classification(data)
        if isinstance(result, ParseError):
            logger.warning(
                f"Unparseable pattern classification for {len(transactions)} transactions: {result.reason}"
            )
            raise OracleError(f"Invalid pattern classification: {result.reason}", reason=result.reason)
        return result.value


_oracle: Optional[ClassificationOracle] = None

def get_oracle() -> ClassificationOracle:
    global _oracle
    if _oracle is None:
        _oracle = ClassificationOracle()
    return _oracle
