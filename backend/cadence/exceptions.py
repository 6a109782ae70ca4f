"""
Error taxonomy for the pattern engine and its collaborators.

Per-item errors (a bad row, a bad rule, one oracle failure) are caught by
the service that owns the batch and logged. Only AnalysisError and
PersistenceError are meant to reach the caller of a batch.
"""

from typing import Optional


class CadenceError(Exception):
    """Base class for all application errors."""


class TransactionValidationError(CadenceError):
    """A single input transaction could not be parsed."""

    def __init__(self, message: str, index: Optional[int] = None):
        super().__init__(message)
        self.index = index


class OracleError(CadenceError):
    """The classification oracle was unreachable or answered with garbage."""

    def __init__(self, message: str, reason: Optional[str] = None):
        super().__init__(message)
        self.reason = reason or message


class RuleEvaluationError(CadenceError):
    """An override rule carries a pattern that does not compile."""

    def __init__(self, message: str, rule_id: Optional[str] = None):
        super().__init__(message)
        self.rule_id = rule_id


class PersistenceError(CadenceError):
    """A write to the store failed."""


class NotFoundError(CadenceError):
    """A requested merchant, rule, pattern or transaction does not exist."""


class ConflictError(CadenceError):
    """A record with the same identity already exists."""


class AnalysisError(CadenceError):
    """No merchant group of a batch could be processed."""
