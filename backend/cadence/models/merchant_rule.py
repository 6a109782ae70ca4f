"""
Merchant override rule database model.
"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, Boolean, DateTime, Float, Integer, ForeignKey
from sqlalchemy.orm import relationship
from cadence.database import Base


class MerchantRule(Base):
    """Regex override that maps matching descriptions to a fixed merchant name."""

    __tablename__ = "merchant_rules"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    merchant_id = Column(String(36), ForeignKey("merchants.id"), nullable=True)
    pattern = Column(String(255), nullable=False)
    normalized_name = Column(String(255), nullable=False)
    category = Column(String(100), nullable=False)
    sub_category = Column(String(100), nullable=True)
    confidence = Column(Float, nullable=False, default=1.0)
    priority = Column(Integer, nullable=False, default=0, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    merchant = relationship("Merchant", back_populates="rules")
