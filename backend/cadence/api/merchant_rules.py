"""API endpoints for merchant override rules."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List

from cadence.cache import Cache, get_cache
from cadence.dependencies import get_db
from cadence.schemas.merchant_rule import MerchantRuleCreate, MerchantRuleResponse
from cadence.services import merchant_rule_service

router = APIRouter(prefix="/merchant-rules", tags=["merchant-rules"])


@router.post("", response_model=MerchantRuleResponse, status_code=201)
async def create_rule(
    data: MerchantRuleCreate,
    db: Session = Depends(get_db),
    cache: Cache = Depends(get_cache),
):
    """Create an override rule. Invalid regular expressions are rejected."""
    return await merchant_rule_service.create_rule(db, cache, data)


@router.get("", response_model=List[MerchantRuleResponse])
def list_rules(
    include_inactive: bool = Query(False),
    db: Session = Depends(get_db),
):
    """List rules in the order they are evaluated."""
    return merchant_rule_service.list_rules(db, include_inactive)


@router.delete("/{rule_id}")
async def delete_rule(
    rule_id: str,
    db: Session = Depends(get_db),
    cache: Cache = Depends(get_cache),
):
    """Delete a rule."""
    await merchant_rule_service.delete_rule(db, cache, rule_id)
    return {"deleted": True}
