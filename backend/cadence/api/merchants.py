"""API endpoints for merchants."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional

from cadence.ai.oracle import ClassificationOracle, get_oracle
from cadence.cache import Cache, get_cache
from cadence.dependencies import get_db
from cadence.events import EventBus, get_event_bus
from cadence.schemas.merchant import (
    MerchantCreate,
    MerchantUpdate,
    MerchantResponse,
    MerchantListResponse,
    NormalizeRequest,
    NormalizeResponse,
)
from cadence.services import merchant_service

router = APIRouter(prefix="/merchants", tags=["merchants"])


@router.post("", response_model=MerchantResponse, status_code=201)
async def create_merchant(
    data: MerchantCreate,
    db: Session = Depends(get_db),
    cache: Cache = Depends(get_cache),
    events: EventBus = Depends(get_event_bus),
):
    """Create a merchant."""
    return await merchant_service.create_merchant(db, cache, events, data)


@router.get("", response_model=MerchantListResponse)
async def search_merchants(
    category: Optional[str] = None,
    is_active: Optional[bool] = None,
    query: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    cache: Cache = Depends(get_cache),
):
    """Search merchants by category, name and status."""
    return await merchant_service.search_merchants(
        db, cache,
        category=category,
        is_active=is_active,
        query=query,
        page=page,
        limit=limit,
    )


@router.post("/normalize", response_model=NormalizeResponse)
async def normalize_merchant(
    request: NormalizeRequest,
    db: Session = Depends(get_db),
    cache: Cache = Depends(get_cache),
    oracle: ClassificationOracle = Depends(get_oracle),
):
    """Resolve a raw description to a canonical merchant."""
    classification = await merchant_service.normalize_merchant(db, cache, oracle, request.description)
    return merchant_service.to_normalize_response(classification)


@router.get("/{merchant_id}", response_model=MerchantResponse)
async def get_merchant(
    merchant_id: str,
    db: Session = Depends(get_db),
    cache: Cache = Depends(get_cache),
):
    """Get a single merchant."""
    return await merchant_service.get_merchant(db, cache, merchant_id)


@router.put("/{merchant_id}", response_model=MerchantResponse)
async def update_merchant(
    merchant_id: str,
    update: MerchantUpdate,
    db: Session = Depends(get_db),
    cache: Cache = Depends(get_cache),
    events: EventBus = Depends(get_event_bus),
):
    """Update a merchant."""
    return await merchant_service.update_merchant(db, cache, events, merchant_id, update)


@router.delete("/{merchant_id}")
async def deactivate_merchant(
    merchant_id: str,
    db: Session = Depends(get_db),
    cache: Cache = Depends(get_cache),
    events: EventBus = Depends(get_event_bus),
):
    """Deactivate a merchant (its transactions and patterns are kept)."""
    await merchant_service.deactivate_merchant(db, cache, events, merchant_id)
    return {"deactivated": True}
