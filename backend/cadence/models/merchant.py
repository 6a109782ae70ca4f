"""
Merchant database model.
"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, Boolean, DateTime, Float, JSON
from sqlalchemy.orm import relationship
from cadence.database import Base


class Merchant(Base):
    """Canonical merchant that raw transaction descriptions resolve to."""

    __tablename__ = "merchants"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    original_name = Column(String(255), nullable=False)
    normalized_name = Column(String(255), nullable=False, unique=True, index=True)
    category = Column(String(100), nullable=False)
    sub_category = Column(String(100), nullable=True)
    confidence = Column(Float, nullable=False, default=0.0)
    flags = Column(JSON, nullable=False, default=list)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    transactions = relationship("Transaction", back_populates="merchant")
    patterns = relationship("Pattern", back_populates="merchant")
    rules = relationship("MerchantRule", back_populates="merchant")
