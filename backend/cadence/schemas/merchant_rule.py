"""Pydantic schemas for merchant override rules."""

from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class MerchantRuleCreate(BaseModel):
    pattern: str = Field(min_length=1)
    normalized_name: str
    category: str
    sub_category: Optional[str] = None
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)
    priority: int = 0
    merchant_id: Optional[str] = None


class MerchantRuleResponse(MerchantRuleCreate):
    id: str
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class OverrideRule(BaseModel):
    """The part of a rule the matcher needs, as held in the cache."""
    id: str
    pattern: str
    normalized_name: str
    category: str
    sub_category: Optional[str] = None
    confidence: float
    priority: int
