"""Pydantic models for the Password Safe API.

The broker speaks PascalCase JSON. Models expose snake_case attributes and
validate from (and serialize to) the broker field names via aliases. All
models are immutable so they can be shared across threads.
"""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class ConflictOption(StrEnum):
    """What the broker does when the account already has an active request."""

    REUSE = "reuse"
    FAIL = "fail"


class Session(BaseModel):
    """Identity returned by a successful sign-in.

    Cookie state attributing later calls to this identity lives in the
    HTTP client, not here.

    Attributes:
        user_id: Password Safe user id
        user_name: Login name
        email_address: Email address of the user
        name: Display name
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    user_id: int = Field(..., alias="UserId")
    user_name: str = Field("", alias="UserName")
    email_address: str = Field("", alias="EmailAddress")
    name: str = Field("", alias="Name")


class ManagedAccountRef(BaseModel):
    """System and account ids of a managed account."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    system_id: int = Field(..., alias="SystemId")
    account_id: int = Field(..., alias="AccountId")


class CredentialRequest(BaseModel):
    """Body of a release request.

    Attributes:
        system_id: Managed system id
        account_id: Managed account id
        duration_minutes: Lease duration, the broker expires the request afterwards
        reason: Audit reason recorded with the request
        conflict_option: Behaviour when an active request already exists
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    system_id: int = Field(..., alias="SystemID")
    account_id: int = Field(..., alias="AccountID")
    duration_minutes: int = Field(..., alias="DurationMinutes")
    reason: str = Field(..., alias="Reason")
    conflict_option: ConflictOption = Field(
        ConflictOption.REUSE, alias="ConflictOption"
    )

    def to_payload(self) -> dict[str, int | str]:
        return self.model_dump(by_alias=True, mode="json")


class CredentialLease(BaseModel):
    """A credential and the request it was released under."""

    model_config = ConfigDict(frozen=True)

    request_id: str
    secret: str = Field(..., repr=False)


class SecretsSafeSecret(BaseModel):
    """Secrets Safe secret as returned by the secrets lookup."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(..., alias="Id")
    title: str = Field("", alias="Title")
    password: str = Field("", alias="Password", repr=False)
    secret_type: str = Field("", alias="SecretType")

    @property
    def is_file(self) -> bool:
        return self.secret_type.upper() == "FILE"
