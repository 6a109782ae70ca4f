"""
Main API router.
"""

from fastapi import APIRouter
from cadence.api import admin, merchant_rules, merchants, patterns, transactions

api_router = APIRouter()

api_router.include_router(patterns.router)
api_router.include_router(merchants.router)
api_router.include_router(merchant_rules.router)
api_router.include_router(transactions.router)
api_router.include_router(admin.router)
