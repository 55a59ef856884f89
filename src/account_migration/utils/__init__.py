"""Utility functions and exceptions."""

from .exceptions import (
    DecodeError,
    MigrationError,
    OptionsValidationError,
    RecordValidationError,
    ServiceError,
    TerminalError,
    TransientNetworkError,
    ValidationError,
)

__all__ = [
    "MigrationError",
    "ValidationError",
    "OptionsValidationError",
    "RecordValidationError",
    "DecodeError",
    "ServiceError",
    "TransientNetworkError",
    "TerminalError",
]
