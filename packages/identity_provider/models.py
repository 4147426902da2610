"""Data models for identity provider resources."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class IdentityProviderError(Exception):
    """Error returned by the identity provider, with its HTTP status."""

    def __init__(self, status: int, message: str) -> None:
        self.status = status
        self.message = message
        super().__init__(message)


class UserRepresentation(BaseModel):
    """
    User as exchanged with operators and the provider.

    Every field is optional: on update, only supplied fields change.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    username: Optional[str] = None
    email: Optional[str] = None
    enabled: Optional[bool] = None
    email_verified: Optional[bool] = Field(None, alias="emailVerified")
    first_name: Optional[str] = Field(None, alias="firstName")
    last_name: Optional[str] = Field(None, alias="lastName")
    phone_number: Optional[str] = Field(None, alias="phoneNumber")
    phone_number_verified: Optional[bool] = Field(None, alias="phoneNumberVerified")
    label: Optional[str] = None
    gender: Optional[str] = None
    birth_date: Optional[str] = Field(None, alias="birthDate")
    locale: Optional[str] = None
    created_timestamp: Optional[int] = Field(None, alias="createdTimestamp")

    def merged_with(self, update: "UserRepresentation") -> "UserRepresentation":
        """Copy of this user with the fields set in ``update`` applied."""
        changes = update.model_dump(exclude_unset=True, exclude={"id", "created_timestamp"})
        return self.model_copy(update=changes)


class CredentialRepresentation(BaseModel):
    """A credential (password, OTP device...) registered for a user."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    type: str
    user_label: Optional[str] = Field(None, alias="userLabel")
    created_date: Optional[int] = Field(None, alias="createdDate")


class PasswordRepresentation(BaseModel):
    """Body of a password reset: the new temporary password."""

    value: str = Field(..., min_length=1)
