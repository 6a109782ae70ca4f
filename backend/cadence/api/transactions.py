"""API endpoints for transactions."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional
from datetime import date

from cadence.ai.oracle import ClassificationOracle, get_oracle
from cadence.cache import Cache, get_cache
from cadence.dependencies import get_db, get_pattern_service
from cadence.events import EventBus, get_event_bus
from cadence.schemas.analysis import CombinedAnalysisResponse
from cadence.schemas.pattern import DetectPatternsRequest
from cadence.schemas.transaction import (
    TransactionCreate,
    TransactionResponse,
    TransactionListResponse,
)
from cadence.services import transaction_service
from cadence.services.pattern_service import PatternService

router = APIRouter(prefix="/transactions", tags=["transactions"])


@router.post("", response_model=TransactionResponse, status_code=201)
async def create_transaction(
    data: TransactionCreate,
    db: Session = Depends(get_db),
    cache: Cache = Depends(get_cache),
    events: EventBus = Depends(get_event_bus),
    oracle: ClassificationOracle = Depends(get_oracle),
):
    """Store a transaction after normalizing its merchant."""
    return await transaction_service.create_transaction(db, cache, events, oracle, data)


@router.post("/analyze", response_model=CombinedAnalysisResponse)
async def analyze_transactions(
    request: DetectPatternsRequest,
    db: Session = Depends(get_db),
    cache: Cache = Depends(get_cache),
    oracle: ClassificationOracle = Depends(get_oracle),
    pattern_service: PatternService = Depends(get_pattern_service),
):
    """Normalize merchants and preview patterns for a batch without storing anything."""
    return await transaction_service.analyze_transactions(
        db, cache, oracle, pattern_service, request.transactions
    )


@router.get("", response_model=TransactionListResponse)
def list_transactions(
    merchant_id: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    category: Optional[str] = None,
    search: Optional[str] = None,
    sort_by: str = Query("date", pattern="^(date|amount|category|merchant)$"),
    order: str = Query("desc", pattern="^(asc|desc)$"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    """List transactions with filters."""
    return transaction_service.list_transactions(
        db,
        merchant_id=merchant_id,
        start_date=start_date,
        end_date=end_date,
        category=category,
        search=search,
        sort_by=sort_by,
        order=order,
        page=page,
        limit=limit,
    )


@router.get("/{transaction_id}", response_model=TransactionResponse)
async def get_transaction(
    transaction_id: str,
    db: Session = Depends(get_db),
    cache: Cache = Depends(get_cache),
):
    """Get a single transaction."""
    return await transaction_service.get_transaction(db, cache, transaction_id)
