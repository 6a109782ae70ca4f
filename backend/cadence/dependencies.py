"""
FastAPI dependencies.
"""

from typing import Generator

from fastapi import Depends
from sqlalchemy.orm import Session

from cadence.ai.oracle import ClassificationOracle, get_oracle
from cadence.cache import Cache, get_cache
from cadence.database import SessionLocal
from cadence.events import EventBus, get_event_bus
from cadence.services.pattern_service import PatternService


def get_db() -> Generator[Session, None, None]:
    """
    Dependency for getting database sessions.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_pattern_service(
    db: Session = Depends(get_db),
    cache: Cache = Depends(get_cache),
    events: EventBus = Depends(get_event_bus),
    oracle: ClassificationOracle = Depends(get_oracle),
) -> PatternService:
    return PatternService(db, cache, events, oracle)
