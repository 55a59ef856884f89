"""Account file reader.

Overview:
--------
Streams accounts out of a row (``.csv``) or document (``.json``) file, decoding
and validating each entry before anything is sent to the service.

Errors:
------
Per-entry problems (``DecodeError`` for malformed rows, ``RecordValidationError``
for documents with unknown fields or providers) are tagged with their line or
entry number and collected in ``errors``; the entry is skipped. In strict mode
the first one is raised instead.

An account carrying a password hash is rejected unless a hash algorithm was
given: the service cannot store the hash without knowing how it was computed.

Lifecycle:
---------
Rows are decoded one at a time straight from the csv reader. Batches are
built lazily, so at most one batch of accounts is held in memory.
"""

import csv
import json
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import structlog

from ..models.options import DataFormat, ImportOptions
from ..models.user import UserRecord
from ..utils.exceptions import (
    DecodeError,
    MigrationError,
    RecordValidationError,
    ValidationError,
)
from .codec import decode_document, decode_row

logger = structlog.get_logger(__name__)


class AccountFileReader:
    """
    Read and validate accounts from an account file.

    Features:
    - Row files are read incrementally with the csv module
    - Blank lines are skipped
    - Every entry is decoded through the codec
    - Invalid entries are collected with their line number
    """

    def __init__(self, path: Path, options: ImportOptions) -> None:
        """
        Initialize reader.

        Args:
            path: Account file to read
            options: Validated import options; ``options.format`` must be set
        """
        if options.format is None:
            raise ValueError("Import options must carry a file format")
        self.path = path
        self.options = options
        self.records_read = 0
        self.errors: list[MigrationError] = []

    def iter_records(self, strict: bool = False) -> Iterator[UserRecord]:
        """
        Yield every valid account in file order.

        Args:
            strict: If True, raise on the first invalid entry. If False, collect it.

        Yields:
            Decoded accounts

        Raises:
            FileNotFoundError: If the file doesn't exist
            ValidationError: On a malformed document file, or on the first invalid
                entry in strict mode
            DecodeError: On the first malformed row in strict mode
        """
        if not self.path.exists():
            raise FileNotFoundError(f"Account file not found: {self.path}")

        self.records_read = 0
        self.errors = []
        logger.info("Reading account file", path=str(self.path), format=self.options.format.value)

        for line_number, entry in self._iter_entries():
            try:
                record = self._decode(entry)
                self._check_password(record)
            except (DecodeError, RecordValidationError) as e:
                e.line_number = line_number
                if strict:
                    logger.error("Invalid account entry", line=line_number, error=str(e))
                    raise
                logger.warning("Skipping invalid account entry", line=line_number, error=str(e))
                self.errors.append(e)
                continue

            self.records_read += 1
            yield record

        logger.info(
            "Account file read",
            path=str(self.path),
            records=self.records_read,
            errors=len(self.errors),
        )

    def iter_batches(self, batch_size: int, strict: bool = False) -> Iterator[list[dict[str, Any]]]:
        """
        Yield accounts in upload form, grouped into batches.

        Args:
            batch_size: Maximum accounts per batch
            strict: Passed through to iter_records

        Yields:
            Lists of at most batch_size accounts in uploadAccount form
        """
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")

        batch: list[dict[str, Any]] = []
        for record in self.iter_records(strict=strict):
            batch.append(record.to_wire())
            if len(batch) >= batch_size:
                yield batch
                batch = []
        if batch:
            yield batch

    def validate(self, strict: bool = False) -> int:
        """
        Read the whole file without keeping the accounts.

        Returns:
            Number of valid accounts
        """
        for _ in self.iter_records(strict=strict):
            pass
        return self.records_read

    def get_error_summary(self) -> str:
        if not self.errors:
            return "No errors"
        lines = [f"Found {len(self.errors)} invalid account(s):"]
        lines.extend(f"  - {error}" for error in self.errors)
        return "\n".join(lines)

    def _iter_entries(self) -> Iterator[tuple[int, Any]]:
        if self.options.format is DataFormat.CSV:
            yield from self._iter_rows()
        else:
            yield from self._iter_documents()

    def _iter_rows(self) -> Iterator[tuple[int, list[str]]]:
        with open(self.path, encoding="utf-8-sig", newline="") as f:
            reader = csv.reader(f)
            for row in reader:
                if not row or all(not cell.strip() for cell in row):
                    continue
                yield reader.line_num, row

    def _iter_documents(self) -> Iterator[tuple[int, Any]]:
        try:
            with open(self.path, encoding="utf-8-sig") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValidationError(
                f"Invalid JSON in account file {self.path}: {e}", original_error=e
            ) from e

        users = data.get("users") if isinstance(data, dict) else data
        if not isinstance(users, list):
            raise ValidationError(
                f"Account file {self.path} must contain a 'users' array"
            )
        yield from enumerate(users, start=1)

    def _decode(self, entry: Any) -> UserRecord:
        if self.options.format is DataFormat.CSV:
            return decode_row(entry)
        return decode_document(entry)

    def _check_password(self, record: UserRecord) -> None:
        if record.has_password and not self.options.accepts_passwords:
            raise RecordValidationError(
                f"Account {record.local_id} has a password hash but no hash algorithm "
                "was specified"
            )
