"""
Pydantic schemas package.
"""

from cadence.schemas.transaction import (
    TransactionInput,
    TransactionCreate,
    TransactionResponse,
    TransactionListResponse,
    MerchantSummary,
    RowError,
)
from cadence.schemas.merchant import (
    MerchantCreate,
    MerchantUpdate,
    MerchantResponse,
    MerchantListResponse,
    NormalizeRequest,
    NormalizeResponse,
)
from cadence.schemas.merchant_rule import MerchantRuleCreate, MerchantRuleResponse, OverrideRule
from cadence.schemas.pattern import (
    PatternResponse,
    DetectPatternsRequest,
    DetectPatternsResponse,
    AnalyzedPattern,
    AnalyzePatternsResponse,
)
from cadence.schemas.analysis import NormalizedTransaction, CombinedAnalysisResponse

__all__ = [
    "TransactionInput",
    "TransactionCreate",
    "TransactionResponse",
    "TransactionListResponse",
    "MerchantSummary",
    "RowError",
    "MerchantCreate",
    "MerchantUpdate",
    "MerchantResponse",
    "MerchantListResponse",
    "NormalizeRequest",
    "NormalizeResponse",
    "MerchantRuleCreate",
    "MerchantRuleResponse",
    "OverrideRule",
    "PatternResponse",
    "DetectPatternsRequest",
    "DetectPatternsResponse",
    "AnalyzedPattern",
    "AnalyzePatternsResponse",
    "NormalizedTransaction",
    "CombinedAnalysisResponse",
]
