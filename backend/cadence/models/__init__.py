"""
Database models package.
"""

from cadence.models.merchant import Merchant
from cadence.models.merchant_rule import MerchantRule
from cadence.models.transaction import Transaction
from cadence.models.pattern import Pattern, PatternType, Frequency
from cadence.models.cache_entry import CacheEntry

__all__ = [
    "Merchant",
    "MerchantRule",
    "Transaction",
    "Pattern",
    "PatternType",
    "Frequency",
    "CacheEntry",
]
