"""AI prompts."""

from cadence.ai.prompts.merchant_classification import (
    MERCHANT_CLASSIFICATION_SYSTEM,
    MERCHANT_CLASSIFICATION_USER,
)
from cadence.ai.prompts.pattern_classification import (
    PATTERN_CLASSIFICATION_SYSTEM,
    PATTERN_CLASSIFICATION_USER,
)

__all__ = [
    "MERCHANT_CLASSIFICATION_SYSTEM",
    "MERCHANT_CLASSIFICATION_USER",
    "PATTERN_CLASSIFICATION_SYSTEM",
    "PATTERN_CLASSIFICATION_USER",
]
