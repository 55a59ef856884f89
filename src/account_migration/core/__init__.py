"""Core migration logic: codec, file reading and writing, export and import drivers."""

from .codec import (
    decode_document,
    decode_row,
    encode_document,
    encode_row,
    to_standard_base64,
    to_web_safe_base64,
)
from .exporter import AccountExporter, ExportResult, ExportState, strip_foreign_hash
from .importer import AccountImporter, ImportFailure, ImportResult
from .provider_info import pack_providers, unpack_providers
from .reader import AccountFileReader
from .writer import AccountWriter, DocumentWriter, RowWriter, create_writer

__all__ = [
    "AccountExporter",
    "AccountFileReader",
    "AccountImporter",
    "AccountWriter",
    "DocumentWriter",
    "ExportResult",
    "ExportState",
    "ImportFailure",
    "ImportResult",
    "RowWriter",
    "create_writer",
    "decode_document",
    "decode_row",
    "encode_document",
    "encode_row",
    "pack_providers",
    "strip_foreign_hash",
    "to_standard_base64",
    "to_web_safe_base64",
    "unpack_providers",
]
