"""
Cache entry database model backing the database cache.
"""

from datetime import datetime
from sqlalchemy import Column, String, DateTime, JSON
from cadence.database import Base


class CacheEntry(Base):
    """A cached JSON value with an absolute expiry."""

    __tablename__ = "cache_entries"

    key = Column(String(512), primary_key=True)
    value = Column(JSON, nullable=True)
    expires_at = Column(DateTime, nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
