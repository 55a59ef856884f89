"""
Validation of export/import options and account documents.

Everything here runs before the first request is sent, so a bad flag or a
malformed account file never reaches the service.
"""

from collections.abc import Mapping
from pathlib import Path
from typing import Any

import structlog

from ..constants import (
    DIGEST_ALGORITHMS,
    DIGEST_ROUNDS_RANGE,
    EXTENSION_FORMATS,
    HASH_INPUT_ORDERS,
    HMAC_ALGORITHMS,
    PBKDF_ALGORITHMS,
    PBKDF_ROUNDS_RANGE,
    SCRYPT_MEM_COST_RANGE,
    SCRYPT_ROUNDS_RANGE,
    SUPPORTED_FORMATS,
    SUPPORTED_HASH_ALGORITHMS,
)
from ..core.codec import decode_document
from ..models.options import DataFormat, ExportOptions, HashOptions, ImportOptions
from ..models.user import UserRecord
from ..utils.exceptions import OptionsValidationError

logger = structlog.get_logger(__name__)


def resolve_format(file_name: str | Path, format_override: str | None = None) -> DataFormat:
    """
    Work out the file format from the file extension and the format flag.

    Args:
        file_name: Account file path
        format_override: Explicit format ("csv" or "json"), case-insensitive

    Returns:
        Resolved format

    Raises:
        OptionsValidationError: If the flag is unsupported, disagrees with the
            extension, or neither names a supported format
    """
    extension_format = EXTENSION_FORMATS.get(Path(str(file_name)).suffix.lower())

    if format_override:
        requested = format_override.lower()
        if requested not in SUPPORTED_FORMATS:
            raise OptionsValidationError("Unsupported data file format, should be csv or json")
        if extension_format and extension_format != requested:
            raise OptionsValidationError(
                f"Data file format '{requested}' conflicts with file extension of {file_name}"
            )
        return DataFormat(requested)

    if extension_format:
        return DataFormat(extension_format)

    raise OptionsValidationError(
        "Please specify data file format in file name, or use `format` parameter"
    )


def validate_export_options(
    options: Mapping[str, Any], file_name: str | Path | None
) -> ExportOptions:
    """
    Validate options for an export run.

    Args:
        options: Raw options; only ``format`` is read
        file_name: Destination file

    Returns:
        Normalized export options

    Raises:
        OptionsValidationError: If the file name is missing or the format can't be resolved
    """
    if not file_name:
        raise OptionsValidationError("Must specify data file")
    return ExportOptions(format=resolve_format(file_name, options.get("format")))


def validate_import_options(
    options: Mapping[str, Any], file_name: str | Path | None = None
) -> ImportOptions:
    """
    Validate options for an import run.

    Recognized keys: format, hash_algo, hash_key, salt_separator, rounds,
    mem_cost, parallelization, block_size, dk_len, hash_input_order.

    Args:
        options: Raw options
        file_name: Source file; when given, its format is resolved too

    Returns:
        Normalized import options

    Raises:
        OptionsValidationError: On an unsupported algorithm, missing or out of
            range hash parameters, an unknown hash input order, or an
            unresolvable file format
    """
    data_format = resolve_format(file_name, options.get("format")) if file_name else None
    hash_options = validate_hash_options(options)

    hash_input_order = options.get("hash_input_order")
    if hash_input_order:
        order = HASH_INPUT_ORDERS.get(str(hash_input_order).upper())
        if order is None:
            raise OptionsValidationError("Unknown password hash order flag")
        if hash_options is not None:
            hash_options.password_hash_order = order

    return ImportOptions(format=data_format, hash=hash_options)


def validate_hash_options(options: Mapping[str, Any]) -> HashOptions | None:
    """
    Check the hash algorithm and the parameters it requires.

    Args:
        options: Raw options

    Returns:
        Hash options, or None when no algorithm was given

    Raises:
        OptionsValidationError: Listing every missing parameter, or naming the
            first out of range one
    """
    raw_algorithm = options.get("hash_algo")
    if not raw_algorithm:
        logger.warning("No hash algorithm specified. Password users cannot be imported.")
        return None

    algorithm = str(raw_algorithm).upper()
    if algorithm not in SUPPORTED_HASH_ALGORITHMS:
        raise OptionsValidationError(f"Unsupported hash algorithm {raw_algorithm}")

    if algorithm in HMAC_ALGORITHMS:
        _require(algorithm, options, "hash_key")
        return HashOptions(algorithm=algorithm, signer_key=options["hash_key"])

    if algorithm in DIGEST_ALGORITHMS:
        _require(algorithm, options, "rounds")
        rounds = _int_in_range(algorithm, options, "rounds", DIGEST_ROUNDS_RANGE[algorithm])
        return HashOptions(algorithm=algorithm, rounds=rounds)

    if algorithm in PBKDF_ALGORITHMS:
        _require(algorithm, options, "rounds")
        rounds = _int_in_range(algorithm, options, "rounds", PBKDF_ROUNDS_RANGE)
        return HashOptions(algorithm=algorithm, rounds=rounds)

    if algorithm == "SCRYPT":
        _require(algorithm, options, "hash_key", "rounds", "mem_cost")
        return HashOptions(
            algorithm=algorithm,
            signer_key=options["hash_key"],
            salt_separator=options.get("salt_separator") or "",
            rounds=_int_in_range(algorithm, options, "rounds", SCRYPT_ROUNDS_RANGE),
            memory_cost=_int_in_range(algorithm, options, "mem_cost", SCRYPT_MEM_COST_RANGE),
        )

    if algorithm == "STANDARD_SCRYPT":
        _require(algorithm, options, "mem_cost", "parallelization", "block_size", "dk_len")
        return HashOptions(
            algorithm=algorithm,
            cpu_mem_cost=_positive_int(algorithm, options, "mem_cost"),
            parallelization=_positive_int(algorithm, options, "parallelization"),
            block_size=_positive_int(algorithm, options, "block_size"),
            dk_len=_positive_int(algorithm, options, "dk_len"),
        )

    # BCRYPT needs no parameters
    return HashOptions(algorithm=algorithm)


def validate_record(document: Any) -> UserRecord:
    """
    Validate one account document.

    Args:
        document: One entry of a JSON account file

    Returns:
        Decoded account

    Raises:
        RecordValidationError: Naming unknown fields and providers
    """
    return decode_document(document)


def _is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _require(algorithm: str, options: Mapping[str, Any], *names: str) -> None:
    missing = [name for name in names if _is_missing(options.get(name))]
    if missing:
        raise OptionsValidationError(
            f"Missing required parameter(s) for hash algorithm {algorithm}: {', '.join(missing)}",
            missing=missing,
        )


def _parse_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _int_in_range(
    algorithm: str, options: Mapping[str, Any], name: str, bounds: tuple[int, int]
) -> int:
    low, high = bounds
    value = _parse_int(options.get(name))
    if value is None or not low <= value <= high:
        raise OptionsValidationError(
            f"Must provide valid {name}({low}..{high}) for hash algorithm {algorithm}"
        )
    return value


def _positive_int(algorithm: str, options: Mapping[str, Any], name: str) -> int:
    value = _parse_int(options.get(name))
    if value is None or value <= 0:
        raise OptionsValidationError(
            f"Must provide a positive {name} for hash algorithm {algorithm}"
        )
    return value
