"""Custom exceptions for the account migration tool.

Exception Hierarchy:
-------------------
MigrationError (base)
├── ValidationError
│   ├── OptionsValidationError   # Bad export/import options, missing hash parameters
│   └── RecordValidationError    # Unknown fields or providers in a user document
├── DecodeError                  # Malformed base64 in a row field
├── ServiceError                 # Request failed (non-2xx, connection error)
│   └── TransientNetworkError    # Request timed out, safe to retry
└── TerminalError                # Export retry budget exhausted

Usage Guidelines:
----------------
1. Validation errors are raised before any request is sent and are never retried.
2. DecodeError and RecordValidationError are per-record: the reader records them
   against a line and moves on unless running in strict mode.
3. TransientNetworkError is the only error the exporter retries.
4. ServiceError during import is recorded against the batch; the run continues.
"""


class MigrationError(Exception):
    """Base exception for all migration errors."""

    pass


class ValidationError(MigrationError):
    """Raised when options or records fail validation."""

    def __init__(
        self,
        message: str,
        line_number: int | None = None,
        original_error: Exception | None = None,
    ) -> None:
        """
        Initialize ValidationError.

        Args:
            message: Error message.
            line_number: Optional line (or entry) number of the offending record.
            original_error: Optional original exception that caused this error.
        """
        super().__init__(message)
        self.line_number = line_number
        self.original_error = original_error

    def __str__(self) -> str:
        if self.line_number:
            return f"Line {self.line_number}: {self.args[0]}"
        return str(self.args[0]) if self.args else "Validation error"


class OptionsValidationError(ValidationError):
    """Raised when export or import options are invalid."""

    def __init__(self, message: str, missing: list[str] | None = None) -> None:
        """
        Initialize OptionsValidationError.

        Args:
            message: Error message.
            missing: Names of required parameters that were not supplied.
        """
        super().__init__(message)
        self.missing = missing or []


class RecordValidationError(ValidationError):
    """Raised when a user document does not match the accepted shape."""

    def __init__(
        self,
        message: str,
        unknown_fields: list[str] | None = None,
        unknown_providers: list[str] | None = None,
        line_number: int | None = None,
        original_error: Exception | None = None,
    ) -> None:
        """
        Initialize RecordValidationError.

        Args:
            message: Error message.
            unknown_fields: Field paths that are not in the allowlist.
            unknown_providers: Provider ids outside the supported set.
            line_number: Optional entry number of the offending record.
            original_error: Optional original exception that caused this error.
        """
        super().__init__(message, line_number=line_number, original_error=original_error)
        self.unknown_fields = unknown_fields or []
        self.unknown_providers = unknown_providers or []


class DecodeError(MigrationError):
    """Raised when a row field cannot be decoded (e.g. invalid base64)."""

    def __init__(self, message: str, field: str, line_number: int | None = None) -> None:
        """
        Initialize DecodeError.

        Args:
            message: Error message.
            field: Name of the field that failed to decode.
            line_number: Optional line number of the row.
        """
        super().__init__(message)
        self.field = field
        self.line_number = line_number

    def __str__(self) -> str:
        if self.line_number:
            return f"Line {self.line_number}: {self.args[0]}"
        return str(self.args[0])


class ServiceError(MigrationError):
    """Raised when a request to the identity service fails."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        """
        Initialize ServiceError.

        Args:
            message: Error message.
            status_code: Optional HTTP status code.
        """
        super().__init__(message)
        self.status_code = status_code


class TransientNetworkError(ServiceError):
    """Raised when a request times out."""

    pass


class TerminalError(MigrationError):
    """Raised when an export page keeps timing out after every retry."""

    def __init__(
        self,
        message: str,
        records_processed: int,
        attempts: int,
        original_error: Exception | None = None,
    ) -> None:
        """
        Initialize TerminalError.

        Args:
            message: Error message.
            records_processed: Accounts written before the export stopped.
            attempts: Number of attempts made for the failing page.
            original_error: The last transient error.
        """
        super().__init__(message)
        self.records_processed = records_processed
        self.attempts = attempts
        self.original_error = original_error
