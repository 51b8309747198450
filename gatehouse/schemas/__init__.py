"""Pydantic request/response schemas."""

from gatehouse.schemas.auth import (
    AuthResponse,
    CurrentUser,
    LoginRequest,
    MessageResponse,
    RefreshTokenRequest,
    RegisterRequest,
    RevokeTokenRequest,
    TokenValidationResponse,
    UserProfile,
)
from gatehouse.schemas.health import HealthResponse

__all__ = [
    "AuthResponse",
    "CurrentUser",
    "HealthResponse",
    "LoginRequest",
    "MessageResponse",
    "RefreshTokenRequest",
    "RegisterRequest",
    "RevokeTokenRequest",
    "TokenValidationResponse",
    "UserProfile",
]
