"""Request/response schemas for auth and profile endpoints."""

import uuid

from pydantic import ConfigDict, EmailStr, Field, field_validator

from app.core.security import USERNAME_MAX_LEN
from app.schemas.common import CamelModel

NAME_MAX_LEN = 256
REQUEST_PASSWORD_MAX_LEN = 256
REGISTER_PASSWORD_MAX_LEN = 50


def _strip_required(value: str, message: str) -> str:
    stripped = value.strip()
    if not stripped:
        raise ValueError(message)
    return stripped


class LoginRequest(CamelModel):
    """Credentials for login."""

    user_name: str = Field(..., max_length=USERNAME_MAX_LEN, description="User name")
    password: str = Field(..., max_length=REQUEST_PASSWORD_MAX_LEN, description="Password")

    @field_validator("user_name")
    @classmethod
    def user_name_required(cls, v: str) -> str:
        return _strip_required(v, "the username is required")

    @field_validator("password")
    @classmethod
    def password_required(cls, v: str) -> str:
        if not v:
            raise ValueError("the password is required")
        return v


class RefreshTokenRequest(CamelModel):
    """Expired (or still valid) access token plus the refresh token issued with it."""

    access_token: str = Field(..., min_length=1, description="Access token")
    refresh_token: str = Field(..., min_length=1, description="Refresh token")


class RegisterRequest(CamelModel):
    """New account details."""

    first_name: str = Field(..., max_length=NAME_MAX_LEN)
    last_name: str | None = Field(default=None, max_length=NAME_MAX_LEN)
    email: EmailStr = Field(..., description="Email address")
    user_name: str = Field(..., max_length=USERNAME_MAX_LEN)
    password: str = Field(..., max_length=REGISTER_PASSWORD_MAX_LEN)

    @field_validator("first_name")
    @classmethod
    def first_name_required(cls, v: str) -> str:
        return _strip_required(v, "The first name is required")

    @field_validator("last_name")
    @classmethod
    def last_name_optional(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return v.strip() or None

    @field_validator("email", mode="before")
    @classmethod
    def email_required(cls, v: object) -> object:
        if not isinstance(v, str):
            return v
        email = _strip_required(v, "the email address is required")
        if len(email) > NAME_MAX_LEN:
            raise ValueError(f"the email address must be at most {NAME_MAX_LEN} characters")
        return email

    @field_validator("user_name")
    @classmethod
    def user_name_required(cls, v: str) -> str:
        return _strip_required(v, "the username is required")

    @field_validator("password")
    @classmethod
    def password_required(cls, v: str) -> str:
        if not v:
            raise ValueError("the password is required")
        return v


class AuthResponse(CamelModel):
    """Tokens returned by login and refresh."""

    access_token: str = Field(..., description="JWT access token")
    refresh_token: str | None = Field(default=None, description="Opaque refresh token")


class ConfirmEmailRequest(CamelModel):
    token: str = Field(..., min_length=1, description="Token from the verification email")


class ChangePasswordRequest(CamelModel):
    current_password: str = Field(..., min_length=1, max_length=REQUEST_PASSWORD_MAX_LEN)
    new_password: str = Field(..., min_length=1, max_length=REGISTER_PASSWORD_MAX_LEN)


class UserResponse(CamelModel):
    """Profile of the authenticated user (no credentials)."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    first_name: str
    last_name: str | None = None
    email: str
    user_name: str
