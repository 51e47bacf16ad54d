"""
Utilities Package - Logging and Exception Handling
"""
from .logging import get_logger, log_context, setup_logging, StructuredFormatter
from .exceptions import (
    RenalGuardError,
    InvalidInputError,
    InsufficientDataError,
)

__all__ = [
    "get_logger",
    "log_context",
    "setup_logging",
    "StructuredFormatter",
    "RenalGuardError",
    "InvalidInputError",
    "InsufficientDataError",
]
