"""Account API request/response schemas.

Pydantic models for the registration, login, session, and password
endpoints. Request bodies use camelCase on the wire, reject unknown fields,
and trim surrounding whitespace from every string before validation.

Only registration validates the email format. Endpoints that merely look an
account up accept any short string, so a malformed address fails the same
way an unknown one does.
"""

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

from aidhub.models.user_account import UserAccount

# Upper bound on any password-like input; complexity is checked separately.
_MAX_PASSWORD_INPUT = 128
_MAX_EMAIL_INPUT = 255
_MAX_TOKEN_INPUT = 256


class RequestModel(BaseModel):
    """Base for JSON request bodies."""

    model_config = ConfigDict(
        extra="forbid",
        str_strip_whitespace=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class RegisterRequest(RequestModel):
    """Request body for POST /register."""

    email: EmailStr
    name: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=_MAX_PASSWORD_INPUT)


class ConfirmRegistrationRequest(RequestModel):
    """Request body for POST /register/confirm."""

    email: str = Field(min_length=1, max_length=_MAX_EMAIL_INPUT)
    token: str = Field(min_length=1, max_length=_MAX_TOKEN_INPUT)


class LoginRequest(RequestModel):
    """Request body for POST /login."""

    email: str = Field(min_length=1, max_length=_MAX_EMAIL_INPUT)
    password: str = Field(min_length=1, max_length=_MAX_PASSWORD_INPUT)


class ChangePasswordRequest(RequestModel):
    """Request body for POST /me/password."""

    current_password: str = Field(min_length=1, max_length=_MAX_PASSWORD_INPUT)
    new_password: str = Field(min_length=1, max_length=_MAX_PASSWORD_INPUT)


class PasswordTokenRequest(RequestModel):
    """Request body for POST /password/token."""

    email: str = Field(min_length=1, max_length=_MAX_EMAIL_INPUT)


class NewPasswordRequest(RequestModel):
    """Request body for POST /password/new."""

    email: str = Field(min_length=1, max_length=_MAX_EMAIL_INPUT)
    new_password: str = Field(min_length=1, max_length=_MAX_PASSWORD_INPUT)
    token: str = Field(min_length=1, max_length=_MAX_TOKEN_INPUT)


class MeResponse(BaseModel):
    """Response body for GET /me.

    Serialized with camelCase keys: {"id", "email", "name", "isAdmin"}.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    id: int
    email: str
    name: str
    is_admin: bool

    @classmethod
    def from_account(cls, account: UserAccount) -> "MeResponse":
        """Build the public view of an account. Never includes the hash."""
        return cls(
            id=account.id,
            email=account.email,
            name=account.name,
            is_admin=account.is_admin,
        )
