"""
Detected pattern database model.
"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Date, Numeric, Float, Text, Enum, JSON, ForeignKey
from sqlalchemy.orm import relationship
import enum
from cadence.database import Base


class Frequency(str, enum.Enum):
    """Recurrence cadence enumeration."""
    weekly = "weekly"
    biweekly = "biweekly"
    monthly = "monthly"
    quarterly = "quarterly"
    yearly = "yearly"
    irregular = "irregular"


class PatternType(str, enum.Enum):
    """Kind of recurring charge."""
    subscription = "subscription"  # Fixed amount
    recurring = "recurring"  # Variable amount
    periodic = "periodic"


class Pattern(Base):
    """
    A detected recurring charge for one merchant.

    Rows are append-only: every detection run inserts new rows, even when an
    earlier run already found the same cadence for the merchant.
    """

    __tablename__ = "patterns"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    type = Column(Enum(PatternType), nullable=False)
    merchant_id = Column(String(36), ForeignKey("merchants.id"), nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    frequency = Column(Enum(Frequency), nullable=False)
    confidence = Column(Float, nullable=False)
    next_expected_date = Column(Date, nullable=True)
    description = Column(Text, nullable=True)
    last_occurrence = Column(Date, nullable=True)
    analysis_metadata = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    merchant = relationship("Merchant", back_populates="patterns")
