"""API endpoints for pattern detection."""

from fastapi import APIRouter, Depends, HTTPException
from typing import List

from cadence.dependencies import get_pattern_service
from cadence.schemas.pattern import (
    PatternResponse,
    DetectPatternsRequest,
    DetectPatternsResponse,
    AnalyzePatternsResponse,
)
from cadence.services.pattern_service import PatternService

router = APIRouter(prefix="/patterns", tags=["patterns"])


@router.post("/detect", response_model=DetectPatternsResponse)
async def detect_patterns(
    request: DetectPatternsRequest,
    create_missing_merchants: bool = True,
    service: PatternService = Depends(get_pattern_service),
):
    """
    Detect recurring patterns in a batch of transactions and store them.
    Merchant groups that fail are left out of the result.
    """
    outcome = await service.detect_patterns(
        request.transactions,
        create_missing_merchants=create_missing_merchants,
    )
    return DetectPatternsResponse(
        patterns=outcome.patterns,
        analyzed_groups=outcome.analyzed_groups,
        skipped_groups=outcome.skipped_groups,
        rejected=outcome.rejected,
    )


@router.post("/analyze", response_model=AnalyzePatternsResponse)
async def analyze_patterns(
    request: DetectPatternsRequest,
    service: PatternService = Depends(get_pattern_service),
):
    """Preview detected patterns without storing anything."""
    patterns, rejected = await service.analyze_patterns(request.transactions)
    return AnalyzePatternsResponse(patterns=patterns, rejected=rejected)


@router.get("", response_model=List[PatternResponse])
async def get_all_patterns(service: PatternService = Depends(get_pattern_service)):
    """Get all stored patterns, most confident first."""
    return await service.get_all_patterns()


@router.get("/merchant/{merchant_id}", response_model=List[PatternResponse])
async def get_patterns_by_merchant(
    merchant_id: str,
    service: PatternService = Depends(get_pattern_service),
):
    """Get stored patterns of one merchant."""
    patterns = await service.find_patterns_by_merchant(merchant_id)
    if not patterns:
        raise HTTPException(status_code=404, detail="No patterns found for this merchant")
    return patterns
