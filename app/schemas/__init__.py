"""Pydantic request/response schemas."""

from app.schemas.auth import (
    AccessTokenResponse,
    CurrentUser,
    EmailRequest,
    LoginRequest,
    LoginResponse,
    MeResponse,
    MessageResponse,
    RegisterRequest,
    RegisterResponse,
    ResetPasswordRequest,
    TokenRequest,
    TwoFactorSetupResponse,
    UserSummary,
)
from app.schemas.health import HealthResponse

__all__ = [
    "AccessTokenResponse",
    "CurrentUser",
    "EmailRequest",
    "HealthResponse",
    "LoginRequest",
    "LoginResponse",
    "MeResponse",
    "MessageResponse",
    "RegisterRequest",
    "RegisterResponse",
    "ResetPasswordRequest",
    "TokenRequest",
    "TwoFactorSetupResponse",
    "UserSummary",
]
