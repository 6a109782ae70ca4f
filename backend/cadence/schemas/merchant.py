"""Pydantic schemas for merchants."""

from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime


class MerchantBase(BaseModel):
    original_name: str
    normalized_name: str
    category: str
    sub_category: Optional[str] = None
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)


class MerchantCreate(MerchantBase):
    flags: List[str] = []


class MerchantUpdate(BaseModel):
    original_name: Optional[str] = None
    normalized_name: Optional[str] = None
    category: Optional[str] = None
    sub_category: Optional[str] = None
    confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    flags: Optional[List[str]] = None


class MerchantResponse(MerchantBase):
    id: str
    is_active: bool
    flags: List[str] = []
    transaction_count: int = 0
    created_at: datetime
    updated_at: datetime


class MerchantListResponse(BaseModel):
    items: List[MerchantResponse]
    total: int
    page: int
    limit: int
    total_pages: int


class NormalizeRequest(BaseModel):
    description: str = Field(min_length=1)


class NormalizeResponse(BaseModel):
    merchant: str
    category: str
    sub_category: str = ""
    confidence: float
    is_subscription: bool
    flags: List[str] = []
    source: str  # "rule" or "oracle"
