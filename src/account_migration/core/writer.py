"""Writers appending encoded accounts to an output stream.

Writers never buffer: each account is encoded and written as soon as it is
handed over, so an export holds at most one page in memory.
"""

import json
import os
from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import TextIO

from ..models.options import DataFormat
from ..models.user import UserRecord
from .codec import ROW_DELIMITER, encode_document, encode_row


class AccountWriter(ABC):
    """Base class for account file writers."""

    def __init__(self, stream: TextIO) -> None:
        self.stream = stream
        self.records_written = 0

    @abstractmethod
    def write(self, record: UserRecord) -> None:
        pass

    def write_all(self, records: Iterable[UserRecord]) -> int:
        """Write a sequence of accounts in order, returning how many were written."""
        count = 0
        for record in records:
            self.write(record)
            count += 1
        return count

    def write_header(self) -> None:
        """Write whatever opens the file. Nothing by default."""

    def write_footer(self) -> None:
        """Write whatever closes the file. Nothing by default."""


class RowWriter(AccountWriter):
    """Writes one comma-separated row per account."""

    def write(self, record: UserRecord) -> None:
        self.stream.write(ROW_DELIMITER.join(encode_row(record)) + os.linesep)
        self.records_written += 1


class DocumentWriter(AccountWriter):
    """
    Writes accounts as JSON objects separated by a comma and a line break.

    ``write()`` only produces the array body. ``write_header()`` and
    ``write_footer()`` add the ``{"users": [`` ... ``]}`` framing and are left
    to the caller.

    Attributes:
        is_first_written: Whether an account has been written yet, i.e.
            whether the next one needs a separator
    """

    HEADER = '{"users": [' + os.linesep
    FOOTER = os.linesep + "]}" + os.linesep

    def __init__(self, stream: TextIO) -> None:
        super().__init__(stream)
        self.is_first_written = False

    def write(self, record: UserRecord) -> None:
        if self.is_first_written:
            self.stream.write("," + os.linesep)
        document = encode_document(record).model_dump(exclude_none=True)
        self.stream.write(json.dumps(document, indent=2, ensure_ascii=False))
        self.is_first_written = True
        self.records_written += 1

    def write_header(self) -> None:
        self.stream.write(self.HEADER)

    def write_footer(self) -> None:
        self.stream.write(self.FOOTER)


def create_writer(data_format: DataFormat, stream: TextIO) -> AccountWriter:
    """
    Create the writer for a file format.

    Args:
        data_format: Target file format
        stream: Open text stream to append to

    Returns:
        RowWriter for CSV, DocumentWriter for JSON
    """
    if data_format is DataFormat.CSV:
        return RowWriter(stream)
    return DocumentWriter(stream)
