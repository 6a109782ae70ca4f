"""Shared test fixtures."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("OPENAI_API_KEY", "test-key")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient
from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock
import uuid

from cadence.ai.oracle import ClassificationOracle, MerchantClassification, PatternClassification, get_oracle
from cadence.cache import MemoryCache, get_cache
from cadence.database import Base
from cadence.dependencies import get_db
from cadence.events import EventBus, get_event_bus
from cadence.exceptions import OracleError
from cadence.main import app
from cadence.models.merchant import Merchant
from cadence.models.merchant_rule import MerchantRule
from cadence.models.pattern import Pattern, PatternType, Frequency
from cadence.schemas.transaction import TransactionInput


@pytest.fixture
def make_txn():
    """Build a validated input transaction."""
    def make(description, amount, day):
        return TransactionInput(description=description, amount=Decimal(str(amount)), date=day)
    return make


@pytest.fixture(scope="function")
def engine():
    # Use StaticPool to ensure all connections use the same in-memory database
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session(session_factory):
    """Create a fresh database for each test using in-memory SQLite."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def cache():
    return MemoryCache()


@pytest.fixture
def events():
    bus = EventBus()
    bus.keep_history = True
    return bus


@pytest.fixture
def oracle():
    """
    Fake classification oracle.

    Merchants are named after the first word of the description; every
    merchant history is reported as a subscription.
    """
    fake = AsyncMock(spec=ClassificationOracle)

    async def classify_merchant(description):
        return MerchantClassification(
            normalized_name=description.split()[0].title(),
            category="Entertainment",
            sub_category="Streaming Service",
            confidence=0.9,
            flags=["subscription"],
        )

    fake.classify_merchant.side_effect = classify_merchant
    fake.classify_pattern.return_value = PatternClassification(
        type=PatternType.subscription,
        description="Fixed monthly charge",
        confidence=0.85,
    )
    return fake


@pytest.fixture
def failing_oracle(oracle):
    """Oracle that cannot classify anything."""
    oracle.classify_merchant.side_effect = OracleError("oracle unreachable")
    oracle.classify_pattern.side_effect = OracleError("oracle unreachable")
    return oracle


@pytest.fixture(scope="function")
def client(db_session, cache, events, oracle):
    """Create a test client with database, cache, bus and oracle overrides."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_cache] = lambda: cache
    app.dependency_overrides[get_event_bus] = lambda: events
    app.dependency_overrides[get_oracle] = lambda: oracle
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def sample_merchant(db_session):
    """Create a sample merchant."""
    merchant = Merchant(
        id=str(uuid.uuid4()),
        original_name="NETFLIX.COM",
        normalized_name="Netflix",
        category="Entertainment",
        sub_category="Streaming Service",
        confidence=0.95,
        flags=["subscription"],
        is_active=True,
    )
    db_session.add(merchant)
    db_session.commit()
    db_session.refresh(merchant)
    return merchant


@pytest.fixture
def netflix_rule(db_session, sample_merchant):
    """Create an override rule for Netflix descriptions."""
    rule = MerchantRule(
        id=str(uuid.uuid4()),
        merchant_id=sample_merchant.id,
        pattern="^NETFLIX",
        normalized_name="Netflix",
        category="Entertainment",
        sub_category="Streaming Service",
        confidence=1.0,
        priority=10,
        is_active=True,
    )
    db_session.add(rule)
    db_session.commit()
    db_session.refresh(rule)
    return rule


@pytest.fixture
def sample_pattern(db_session, sample_merchant):
    """Create a stored pattern."""
    pattern = Pattern(
        id=str(uuid.uuid4()),
        type=PatternType.subscription,
        merchant_id=sample_merchant.id,
        amount=Decimal("15.99"),
        frequency=Frequency.monthly,
        confidence=0.9,
        next_expected_date=date(2024, 2, 1),
        description="Netflix monthly plan",
        last_occurrence=date(2024, 1, 1),
    )
    db_session.add(pattern)
    db_session.commit()
    db_session.refresh(pattern)
    return pattern
