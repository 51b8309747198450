"""Request/response schemas for auth endpoints."""

import re
from datetime import datetime
from typing import Any

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from gatehouse.core.security import (
    EMAIL_MAX_LEN,
    LOGIN_IDENTIFIER_MAX_LEN,
    LOGIN_IDENTIFIER_MIN_LEN,
    LOGIN_PASSWORD_MIN_LEN,
    NAME_MAX_LEN,
    NAME_PATTERN,
    PASSWORD_MAX_LEN,
    PASSWORD_MIN_LEN,
    PASSWORD_SPECIAL_CHARS,
    PHONE_PATTERN,
    USERNAME_MAX_LEN,
    USERNAME_MIN_LEN,
    USERNAME_PATTERN,
    is_complex_password,
)


class LoginRequest(BaseModel):
    """Credentials for login."""

    username_or_email: str = Field(
        ...,
        min_length=LOGIN_IDENTIFIER_MIN_LEN,
        max_length=LOGIN_IDENTIFIER_MAX_LEN,
        description="Username or email",
    )
    password: str = Field(
        ..., min_length=LOGIN_PASSWORD_MIN_LEN, max_length=PASSWORD_MAX_LEN, description="Password"
    )


class RegisterRequest(BaseModel):
    """New account profile. The password is hashed before storage."""

    username: str = Field(
        ...,
        min_length=USERNAME_MIN_LEN,
        max_length=USERNAME_MAX_LEN,
        pattern=USERNAME_PATTERN,
        description="Letters, digits, dots, hyphens and underscores",
    )
    email: EmailStr = Field(..., description="Email address")
    password: str = Field(..., min_length=PASSWORD_MIN_LEN, max_length=PASSWORD_MAX_LEN)
    confirm_password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LEN)
    first_name: str = Field(..., min_length=1, max_length=NAME_MAX_LEN, pattern=NAME_PATTERN)
    last_name: str = Field(..., min_length=1, max_length=NAME_MAX_LEN, pattern=NAME_PATTERN)
    phone_number: str | None = Field(default=None, description="Optional phone number")

    @field_validator("password")
    @classmethod
    def validate_password_complexity(cls, v: str) -> str:
        if not is_complex_password(v):
            raise ValueError(
                "Password must contain at least one lowercase letter, one uppercase letter, "
                f"one digit, and one special character ({PASSWORD_SPECIAL_CHARS})."
            )
        return v

    @field_validator("email")
    @classmethod
    def validate_email_length(cls, v: str) -> str:
        if len(v) > EMAIL_MAX_LEN:
            raise ValueError(f"Email must not exceed {EMAIL_MAX_LEN} characters.")
        return v

    @field_validator("phone_number")
    @classmethod
    def validate_phone_number(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        if not re.match(PHONE_PATTERN, v.strip()):
            raise ValueError("Phone number format is not valid.")
        return v.strip()

    @model_validator(mode="after")
    def validate_passwords_match(self) -> "RegisterRequest":
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match.")
        return self


class RefreshTokenRequest(BaseModel):
    """Refresh token to exchange for a new token pair."""

    refresh_token: str = Field(..., min_length=1, max_length=512, description="Refresh token")


class RevokeTokenRequest(BaseModel):
    """Refresh token to revoke."""

    refresh_token: str = Field(..., min_length=1, max_length=512, description="Refresh token")


class UserProfile(BaseModel):
    """Public account projection (no password hash or lockout state)."""

    id: str
    username: str
    email: str
    first_name: str
    last_name: str
    phone_number: str | None = None
    is_email_confirmed: bool
    is_active: bool
    last_login_at: datetime | None = None
    roles: list[str] = Field(default_factory=list)
    permissions: list[str] = Field(default_factory=list)

    class Config:
        from_attributes = True


class AuthResponse(BaseModel):
    """Token pair returned by login, register and refresh."""

    access_token: str = Field(..., description="JWT access token")
    refresh_token: str = Field(
        default="", description="Opaque refresh token; empty after registration"
    )
    token_type: str = Field(default="bearer", description="Token type")
    expires_at: datetime | None = Field(default=None, description="Access token expiry (UTC)")
    user: UserProfile


class CurrentUser(BaseModel):
    """Authenticated caller, read from verified access token claims."""

    id: str
    username: str
    email: str
    is_active: bool
    is_email_confirmed: bool
    roles: list[str] = Field(default_factory=list)
    permissions: list[str] = Field(default_factory=list)

    @classmethod
    def from_claims(cls, payload: dict[str, Any]) -> "CurrentUser":
        return cls(
            id=str(payload["sub"]),
            username=payload.get("username", ""),
            email=payload.get("email", ""),
            is_active=bool(payload.get("is_active", False)),
            is_email_confirmed=bool(payload.get("is_email_confirmed", False)),
            roles=list(payload.get("role") or []),
            permissions=list(payload.get("permission") or []),
        )


class MessageResponse(BaseModel):
    """Plain acknowledgement."""

    message: str


class TokenValidationResponse(BaseModel):
    """Result of checking an access token."""

    valid: bool
