"""Pydantic request/response schemas."""

from app.schemas.auth import (
    AuthResponse,
    ChangePasswordRequest,
    ConfirmEmailRequest,
    LoginRequest,
    RefreshTokenRequest,
    RegisterRequest,
    UserResponse,
)
from app.schemas.common import CamelModel, ProblemDetails
from app.schemas.health import HealthResponse

__all__ = [
    "AuthResponse",
    "CamelModel",
    "ChangePasswordRequest",
    "ConfirmEmailRequest",
    "HealthResponse",
    "LoginRequest",
    "ProblemDetails",
    "RefreshTokenRequest",
    "RegisterRequest",
    "UserResponse",
]
