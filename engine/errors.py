"""
🚫 DECISION ENGINE ERRORS
=========================
Structured errors for the calling layer to translate.

Insufficient data is never an error: the engine degrades to documented
fallbacks (no reasons -> "unknown", no response patterns -> default day).
"""

from typing import Optional


class DecisionEngineError(Exception):
    """Base class for every error the engine raises."""

    code = "decision_engine_error"

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field

    def to_dict(self) -> dict:
        return {"code": self.code, "field": self.field, "message": self.message}


class InvalidInputError(DecisionEngineError):
    """Missing or malformed signal fields. No partial result is produced."""

    code = "invalid_input"


class ConfigurationError(DecisionEngineError):
    """Settings that cannot produce sane decisions (raised at construction)."""

    code = "configuration_error"
