"""Conversion between user accounts and their file representations.

Row format (``.csv``)
--------------------
27 positional fields per account:

    0  localId           7-10   google.com    (rawId, email, displayName, photoUrl)
    1  email             11-14  facebook.com
    2  emailVerified     15-18  twitter.com
    3  passwordHash      19-22  github.com
    4  salt              23     createdAt
    5  displayName       24     lastLoginAt
    6  photoUrl          25     phoneNumber
                         26     disabled

Unset fields are empty strings. A field containing a comma is wrapped in
double quotes; embedded quotes are not escaped. Every field is text, so
integer timestamps read back as their decimal strings.

Document format (``.json``)
--------------------------
One ``UserDocument`` per account. Export drops provider links whose provider
has no row slot; import rejects them. Export must always succeed on what the
service returns, while caller-supplied files are checked before anything is
sent.

Password hashes and salts travel in URL-safe base64 on the wire and in
standard base64 in files. Conversion is a character substitution on the text;
the bytes are never decoded.
"""

from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from ..constants import (
    KNOWN_PROVIDER_IDS,
    ROW_CREATED_AT,
    ROW_DISABLED,
    ROW_DISPLAY_NAME,
    ROW_EMAIL,
    ROW_EMAIL_VERIFIED,
    ROW_LAST_LOGIN_AT,
    ROW_LOCAL_ID,
    ROW_PASSWORD_HASH,
    ROW_PHONE_NUMBER,
    ROW_PHOTO_URL,
    ROW_SALT,
    ROW_WIDTH,
)
from ..models.user import UserRecord
from ..models.wire import ProviderUserInfoDocument, UserDocument, is_standard_base64
from ..utils.exceptions import DecodeError, RecordValidationError
from .provider_info import pack_providers, unpack_providers

ROW_DELIMITER = ","


def to_standard_base64(value: str) -> str:
    """Swap URL-safe base64 characters for their standard-alphabet counterparts."""
    return value.replace("_", "/").replace("-", "+")


def to_web_safe_base64(value: str) -> str:
    """Swap standard base64 characters for their URL-safe counterparts."""
    return value.replace("/", "_").replace("+", "-")


def quote_field(value: str) -> str:
    """Wrap a field in double quotes if it contains the row delimiter."""
    if ROW_DELIMITER in value:
        return f'"{value}"'
    return value


def _format_bool(value: bool) -> str:
    return "true" if value else "false"


def _format_scalar(value: str | int | None) -> str:
    return "" if value is None else str(value)


def _parse_bool(value: str) -> bool:
    return value.strip().lower() == "true"


# -----------------------------------------------------------------------------
# Row format
# -----------------------------------------------------------------------------


def encode_row(record: UserRecord) -> list[str]:
    """
    Encode an account as a row of 27 fields.

    Args:
        record: Account to encode

    Returns:
        Row fields, quoted where needed, ready to be joined with commas
    """
    fields = [""] * ROW_WIDTH
    fields[ROW_LOCAL_ID] = record.local_id
    fields[ROW_EMAIL] = record.email or ""
    fields[ROW_EMAIL_VERIFIED] = _format_bool(record.email_verified)
    fields[ROW_PASSWORD_HASH] = to_standard_base64(record.password_hash or "")
    fields[ROW_SALT] = to_standard_base64(record.salt or "")
    fields[ROW_DISPLAY_NAME] = record.display_name or ""
    fields[ROW_PHOTO_URL] = record.photo_url or ""
    pack_providers(record.provider_user_info, fields)
    fields[ROW_CREATED_AT] = _format_scalar(record.created_at)
    fields[ROW_LAST_LOGIN_AT] = _format_scalar(record.last_login_at)
    fields[ROW_PHONE_NUMBER] = record.phone_number or ""
    fields[ROW_DISABLED] = _format_bool(record.disabled)
    return [quote_field(field) for field in fields]


def decode_row(fields: Sequence[str | None]) -> UserRecord:
    """
    Decode a parsed row back into an account.

    Short rows are padded with empty fields and fields past the row width are
    ignored. ``None`` is treated as an empty field. Rows carry no types, so
    ``createdAt`` and ``lastLoginAt`` always come back as text, even for an
    account encoded with integer timestamps.

    Args:
        fields: Row fields with quoting already removed

    Returns:
        Decoded account, with hash and salt in URL-safe base64

    Raises:
        DecodeError: If the row has no account id, or the password hash or salt
            is not valid standard base64
    """
    row = [field or "" for field in list(fields)[:ROW_WIDTH]]
    row.extend([""] * (ROW_WIDTH - len(row)))

    if not row[ROW_LOCAL_ID]:
        raise DecodeError("Account id (localId) is required.", field="localId")

    password_hash = row[ROW_PASSWORD_HASH]
    if password_hash and not is_standard_base64(password_hash):
        raise DecodeError("Password hash should be base64 encoded.", field="passwordHash")

    salt = row[ROW_SALT]
    if salt and not is_standard_base64(salt):
        raise DecodeError("Password salt should be base64 encoded.", field="salt")

    return UserRecord(
        local_id=row[ROW_LOCAL_ID],
        email=row[ROW_EMAIL] or None,
        email_verified=_parse_bool(row[ROW_EMAIL_VERIFIED]),
        password_hash=to_web_safe_base64(password_hash) if password_hash else None,
        salt=to_web_safe_base64(salt) if salt else None,
        display_name=row[ROW_DISPLAY_NAME] or None,
        photo_url=row[ROW_PHOTO_URL] or None,
        created_at=row[ROW_CREATED_AT] or None,
        last_login_at=row[ROW_LAST_LOGIN_AT] or None,
        phone_number=row[ROW_PHONE_NUMBER] or None,
        disabled=_parse_bool(row[ROW_DISABLED]),
        provider_user_info=unpack_providers(row),
    )


# -----------------------------------------------------------------------------
# Document format
# -----------------------------------------------------------------------------


def encode_document(record: UserRecord) -> UserDocument:
    """
    Encode an account as an allowlisted document.

    ``lastLoginAt`` is written as ``lastSignedInAt``. Provider links without a
    known provider id are dropped; an account whose links are all dropped
    keeps an empty ``providerUserInfo``. Values come from the service and are
    not re-validated.

    Args:
        record: Account to encode

    Returns:
        Document ready for ``model_dump(exclude_none=True)``
    """
    provider_user_info = [
        ProviderUserInfoDocument.model_construct(
            providerId=link.provider_id,
            rawId=link.raw_id,
            email=link.email,
            displayName=link.display_name,
            photoUrl=link.photo_url,
        )
        for link in record.provider_user_info
        if link.provider_id in KNOWN_PROVIDER_IDS
    ]

    return UserDocument.model_construct(
        localId=record.local_id,
        email=record.email,
        emailVerified=record.email_verified,
        passwordHash=to_standard_base64(record.password_hash) if record.password_hash else None,
        salt=to_standard_base64(record.salt) if record.salt else None,
        displayName=record.display_name,
        photoUrl=record.photo_url,
        lastSignedInAt=record.last_login_at,
        createdAt=record.created_at,
        phoneNumber=record.phone_number,
        disabled=record.disabled,
        providerUserInfo=provider_user_info if record.provider_user_info else None,
    )


def decode_document(value: Any) -> UserRecord:
    """
    Validate a caller-supplied document and decode it into an account.

    Args:
        value: One entry of a JSON account file

    Returns:
        Decoded account carrying only the fields present in the document

    Raises:
        RecordValidationError: On unknown fields, unknown providers, invalid
            base64 or wrongly typed values
    """
    if not isinstance(value, Mapping):
        raise RecordValidationError(
            f"Account entry must be a JSON object, got {type(value).__name__}"
        )

    try:
        document = UserDocument.model_validate(dict(value))
    except PydanticValidationError as e:
        raise _record_error(e) from e

    data = _drop_none(document.model_dump(exclude_unset=True))
    if "lastSignedInAt" in data:
        data["lastLoginAt"] = data.pop("lastSignedInAt")
    for key in ("passwordHash", "salt"):
        if key in data:
            data[key] = to_web_safe_base64(data[key])
    if "providerUserInfo" in data:
        data["providerUserInfo"] = [_drop_none(link) for link in data["providerUserInfo"]]

    return UserRecord.model_validate(data)


def _drop_none(data: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in data.items() if v is not None}


def _record_error(error: PydanticValidationError) -> RecordValidationError:
    """
    Turn pydantic errors into a RecordValidationError naming the offending keys.

    Args:
        error: Validation error raised by UserDocument

    Returns:
        RecordValidationError with unknown fields and providers listed
    """
    unknown_fields: list[str] = []
    unknown_providers: list[str] = []
    problems: list[str] = []

    for err in error.errors():
        path = ".".join(str(part) for part in err["loc"])
        if err["type"] == "extra_forbidden":
            unknown_fields.append(path)
        elif err["type"] == "literal_error" and err["loc"][-1] == "providerId":
            unknown_providers.append(str(err["input"]))
        elif err["type"] == "value_error":
            problems.append(f"{path}: {err['ctx']['error']}")
        else:
            problems.append(f"{path}: {err['msg']}")

    parts = []
    if unknown_fields:
        parts.append(f"Unexpected field(s) [{', '.join(unknown_fields)}]")
    if unknown_providers:
        parts.append(f"Unsupported provider(s) [{', '.join(unknown_providers)}]")
    parts.extend(problems)

    return RecordValidationError(
        "; ".join(parts),
        unknown_fields=unknown_fields,
        unknown_providers=unknown_providers,
        original_error=error,
    )
