"""Pydantic schemas for detected patterns."""

from pydantic import BaseModel, Field
from typing import Optional, List, Any
from datetime import date, datetime
from decimal import Decimal

from cadence.models.pattern import Frequency, PatternType
from cadence.schemas.transaction import RowError


class PatternResponse(BaseModel):
    id: str
    type: PatternType
    merchant_id: str
    merchant_name: Optional[str] = None
    amount: Decimal
    frequency: Frequency
    confidence: float
    next_expected_date: Optional[date] = None
    description: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class DetectPatternsRequest(BaseModel):
    """Raw rows are validated one by one so a bad row never rejects the batch."""
    transactions: List[Any] = Field(min_length=1)


class DetectPatternsResponse(BaseModel):
    patterns: List[PatternResponse]
    analyzed_groups: int
    skipped_groups: int
    rejected: List[RowError] = []


class AnalyzedPattern(BaseModel):
    """A pattern computed without being stored."""
    type: PatternType
    merchant: str
    amount: Decimal
    frequency: Frequency
    confidence: float
    next_expected: Optional[date] = None
    description: Optional[str] = None
    transaction_count: int
    average_interval: float


class AnalyzePatternsResponse(BaseModel):
    patterns: List[AnalyzedPattern]
    rejected: List[RowError] = []
