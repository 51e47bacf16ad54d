"""
Custom Exception Hierarchy

Provides specific exception types for the decision engine's error taxonomy
with structured error information.
"""
from typing import Optional, Dict, Any, List


class RenalGuardError(Exception):
    """Base exception for all decision engine errors."""

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details
        }


class InvalidInputError(RenalGuardError):
    """Out-of-domain numeric input. Fatal to that patient's classification."""

    def __init__(
        self,
        message: str,
        field: str = "unknown",
        value: Any = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            code="INVALID_INPUT",
            details={"field": field, "value": value, **(details or {})}
        )
        self.field = field
        self.value = value


class InsufficientDataError(RenalGuardError):
    """A required value is absent from the snapshot."""

    def __init__(
        self,
        message: str,
        missing_fields: Optional[List[str]] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        missing = list(missing_fields or [])
        super().__init__(
            message=message,
            code="INSUFFICIENT_DATA",
            details={"missing_fields": missing, **(details or {})}
        )
        self.missing_fields = missing
