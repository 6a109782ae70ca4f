"""
Transaction database model.
"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, Boolean, DateTime, Date, Numeric, Text, Float, JSON, ForeignKey, Index
from sqlalchemy.orm import relationship
from cadence.database import Base


class Transaction(Base):
    """Transaction model."""

    __tablename__ = "transactions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    description = Column(Text, nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)  # Negative = expense, positive = income
    date = Column(Date, nullable=False, index=True)
    merchant_id = Column(String(36), ForeignKey("merchants.id"), nullable=True)
    category = Column(String(100), nullable=True)
    sub_category = Column(String(100), nullable=True)
    confidence = Column(Float, nullable=True)
    is_subscription = Column(Boolean, default=False, nullable=False)
    flags = Column(JSON, nullable=False, default=list)
    is_analyzed = Column(Boolean, default=False, nullable=False)
    analyzed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    merchant = relationship("Merchant", back_populates="transactions")

    # Indexes for common queries
    __table_args__ = (
        Index("idx_transaction_date_merchant", "date", "merchant_id"),
        Index("idx_transaction_category", "category"),
    )
