"""Validation of options and account documents."""

from .validator import (
    resolve_format,
    validate_export_options,
    validate_hash_options,
    validate_import_options,
    validate_record,
)

__all__ = [
    "resolve_format",
    "validate_export_options",
    "validate_hash_options",
    "validate_import_options",
    "validate_record",
]
