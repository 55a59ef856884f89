"""Canonical user account models.

``UserRecord`` mirrors the account shape returned by the downloadAccount
endpoint. Attributes are snake_case with the service's camelCase names as
aliases, so downloaded JSON validates directly and ``to_wire()`` produces the
uploadAccount representation.

Unknown keys in downloaded accounts are ignored: export must succeed on
whatever the service returns. Strict checking of caller-supplied documents
lives in ``models.wire.UserDocument``.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ProviderLink(BaseModel):
    """A federated identity bound to an account."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    provider_id: str = Field(..., alias="providerId")
    raw_id: str | None = Field(None, alias="rawId")
    email: str | None = None
    display_name: str | None = Field(None, alias="displayName")
    photo_url: str | None = Field(None, alias="photoUrl")


class UserRecord(BaseModel):
    """
    One user account.

    Attributes:
        local_id: Account id, unique within the project
        password_hash: Password hash in URL-safe base64, as on the wire
        salt: Password salt in URL-safe base64, as on the wire
        created_at: Creation timestamp, passed through untouched
        last_login_at: Last sign-in timestamp, passed through untouched
        version: Hash scheme discriminator reported by the service (0 = project default)
        custom_attributes: Custom claims JSON string, passed through untouched
        provider_user_info: Linked federated identities
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    local_id: str = Field(..., alias="localId")
    email: str | None = None
    email_verified: bool = Field(False, alias="emailVerified")
    password_hash: str | None = Field(None, alias="passwordHash")
    salt: str | None = None
    display_name: str | None = Field(None, alias="displayName")
    photo_url: str | None = Field(None, alias="photoUrl")
    created_at: str | int | None = Field(None, alias="createdAt")
    last_login_at: str | int | None = Field(None, alias="lastLoginAt")
    phone_number: str | None = Field(None, alias="phoneNumber")
    disabled: bool = False
    version: int | None = None
    custom_attributes: str | None = Field(None, alias="customAttributes")
    provider_user_info: list[ProviderLink] = Field(
        default_factory=list, alias="providerUserInfo"
    )

    @property
    def has_password(self) -> bool:
        return bool(self.password_hash)

    def to_wire(self) -> dict[str, Any]:
        """
        Serialize for an uploadAccount request.

        Only fields that were explicitly set are sent, so a record decoded from
        a sparse document goes out exactly as sparse.

        Returns:
            Dictionary keyed by the service's field names
        """
        return self.model_dump(
            by_alias=True,
            exclude_unset=True,
            exclude_none=True,
            exclude={"version"},
        )
