"""Pydantic schemas for combined transaction analysis."""

from pydantic import BaseModel
from typing import List

from cadence.schemas.merchant import NormalizeResponse
from cadence.schemas.pattern import AnalyzedPattern
from cadence.schemas.transaction import RowError


class NormalizedTransaction(BaseModel):
    index: int
    original: str
    normalized: NormalizeResponse


class CombinedAnalysisResponse(BaseModel):
    """Merchant normalization per row plus the patterns across the batch."""
    normalized_transactions: List[NormalizedTransaction]
    detected_patterns: List[AnalyzedPattern]
    rejected: List[RowError] = []
