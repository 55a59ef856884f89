"""Pydantic models for identity service requests, responses and account files.

One model per wire shape:

- ``UserDocument`` / ``ProviderUserInfoDocument``: a record in a JSON account
  file. ``extra="forbid"`` makes the field list an allowlist; anything else is
  rejected by validation.
- ``DownloadAccountRequest`` / ``DownloadAccountResponse``: one export page.
- ``UploadAccountRequest`` / ``UploadAccountResponse``: one import batch.
- ``ErrorResponse``: the service's error envelope for non-2xx responses.

Attribute names follow the service's camelCase so ``model_dump()`` output can be
sent or written as-is.
"""

import base64
import binascii
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .user import UserRecord

KnownProviderId = Literal["google.com", "facebook.com", "twitter.com", "github.com"]


def is_standard_base64(value: str) -> bool:
    """Check whether a string decodes as standard-alphabet base64.

    Trailing padding may be left off; it is restored before decoding.
    """
    if not value.endswith("="):
        value += "=" * (-len(value) % 4)
    try:
        base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError):
        return False
    return True


class ProviderUserInfoDocument(BaseModel):
    """Allowlisted fields of a provider link in an account file."""

    model_config = ConfigDict(extra="forbid")

    providerId: KnownProviderId
    rawId: str | None = None
    email: str | None = None
    displayName: str | None = None
    photoUrl: str | None = None


class UserDocument(BaseModel):
    """
    Allowlisted fields of an account in a JSON account file.

    Field order is the key order written on export.
    """

    model_config = ConfigDict(extra="forbid")

    localId: str
    email: str | None = None
    emailVerified: bool | None = None
    passwordHash: str | None = None
    salt: str | None = None
    displayName: str | None = None
    photoUrl: str | None = None
    lastSignedInAt: str | int | None = None
    createdAt: str | int | None = None
    phoneNumber: str | None = None
    disabled: bool | None = None
    customAttributes: str | None = None
    providerUserInfo: list[ProviderUserInfoDocument] | None = None

    @field_validator("passwordHash")
    @classmethod
    def validate_password_hash(cls, v: str | None) -> str | None:
        if v and not is_standard_base64(v):
            raise ValueError("Password hash should be base64 encoded.")
        return v

    @field_validator("salt")
    @classmethod
    def validate_salt(cls, v: str | None) -> str | None:
        if v and not is_standard_base64(v):
            raise ValueError("Password salt should be base64 encoded.")
        return v


class DownloadAccountRequest(BaseModel):
    """Body of a downloadAccount request."""

    targetProjectId: str
    maxResults: int = Field(..., gt=0)
    nextPageToken: str | None = None


class DownloadAccountResponse(BaseModel):
    """One page of downloaded accounts."""

    model_config = ConfigDict(extra="allow")

    users: list[UserRecord] = Field(default_factory=list)
    nextPageToken: str | None = None


class UploadAccountRequest(BaseModel):
    """Body of an uploadAccount request. Unset hash parameters are omitted."""

    targetProjectId: str
    hashAlgorithm: str | None = None
    signerKey: str | None = None
    saltSeparator: str | None = None
    rounds: int | None = None
    memoryCost: int | None = None
    cpuMemCost: int | None = None
    parallelization: int | None = None
    blockSize: int | None = None
    dkLen: int | None = None
    passwordHashOrder: str | None = None
    users: list[dict[str, Any]]


class UploadAccountError(BaseModel):
    """A per-account failure reported inside a successful uploadAccount response."""

    model_config = ConfigDict(extra="allow")

    index: int = 0
    message: str = ""


class UploadAccountResponse(BaseModel):
    """Body of an uploadAccount response."""

    model_config = ConfigDict(extra="allow")

    error: list[UploadAccountError] = Field(default_factory=list)


class ErrorDetail(BaseModel):
    """Inner error object of the service's error envelope."""

    model_config = ConfigDict(extra="allow")

    code: int | None = None
    message: str = Field(..., description="Human-readable error message")
    status: str | None = None


class ErrorResponse(BaseModel):
    """Error envelope returned with non-2xx responses."""

    model_config = ConfigDict(extra="allow")

    error: ErrorDetail

    def get_full_message(self) -> str:
        """Build a complete error message including status if available."""
        message = self.error.message
        if self.error.status:
            message += f" ({self.error.status})"
        return message
