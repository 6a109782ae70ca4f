"""Pydantic schemas for transactions."""

from pydantic import BaseModel, ConfigDict, field_validator
from typing import Optional, List
from datetime import date, datetime
from decimal import Decimal


class TransactionInput(BaseModel):
    """A raw transaction submitted for analysis. Immutable once validated."""

    model_config = ConfigDict(frozen=True)

    description: str
    amount: Decimal
    date: date

    @field_validator("description")
    @classmethod
    def description_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("description must not be empty")
        return v

    @field_validator("date", mode="before")
    @classmethod
    def drop_time_of_day(cls, v):
        # Only the calendar day matters for interval math.
        if isinstance(v, datetime):
            return v.date()
        if isinstance(v, str) and len(v) > 10 and v[10] in ("T", " "):
            return datetime.fromisoformat(v.replace("Z", "+00:00")).date()
        return v


class TransactionCreate(TransactionInput):
    pass


class MerchantSummary(BaseModel):
    id: str
    name: str
    category: str


class TransactionResponse(BaseModel):
    id: str
    description: str
    amount: Decimal
    date: date
    merchant: Optional[MerchantSummary] = None
    category: Optional[str] = None
    sub_category: Optional[str] = None
    confidence: Optional[float] = None
    is_subscription: bool
    flags: List[str] = []
    created_at: datetime
    updated_at: datetime


class TransactionListResponse(BaseModel):
    items: List[TransactionResponse]
    total: int
    page: int
    limit: int
    total_pages: int


class RowError(BaseModel):
    """A rejected input row."""
    index: int
    error: str
