"""Request/response schemas for auth endpoints (camelCase on the wire)."""

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Accepts and emits camelCase JSON while keeping snake_case attributes."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RegisterRequest(CamelModel):
    """Account credentials plus optional role profile fields."""

    email: str = Field(..., min_length=3, max_length=254, description="Email address")
    password: str = Field(..., min_length=1, max_length=128, description="Password")
    role: str = Field(..., description="patient or doctor")
    first_name: str | None = Field(default=None, max_length=255)
    last_name: str | None = Field(default=None, max_length=255)
    phone: str | None = Field(default=None, max_length=32)
    province: str | None = Field(default=None, max_length=64)
    # Doctor-only profile fields
    specialty: str | None = Field(default=None, max_length=255)
    hpcsa_number: str | None = Field(default=None, max_length=64)
    city: str | None = Field(default=None, max_length=255)
    zip_code: str | None = Field(default=None, max_length=16)
    practice_address: str | None = None
    qualifications: str | None = None
    experience: str | None = None
    # doctors.consultation_fee is NUMERIC(10, 2)
    consultation_fee: Decimal | None = Field(
        default=None, ge=0, le=Decimal("99999999.99"), decimal_places=2
    )

    def profile_fields(self) -> dict[str, Any]:
        return self.model_dump(exclude={"email", "password", "role"}, exclude_none=True)


class LoginRequest(CamelModel):
    email: str = Field(..., min_length=1, max_length=254)
    password: str = Field(..., min_length=1, max_length=128)
    two_factor_token: str | None = Field(default=None, max_length=16)


class TokenRequest(CamelModel):
    """Body carrying a single token (email verification, 2FA code)."""

    token: str = Field(..., min_length=1, max_length=256)


class EmailRequest(CamelModel):
    email: str = Field(..., min_length=1, max_length=254)


class ResetPasswordRequest(CamelModel):
    token: str = Field(..., min_length=1, max_length=256)
    password: str = Field(..., min_length=1, max_length=128)


class MessageResponse(CamelModel):
    message: str


class RegisteredUser(CamelModel):
    id: str
    email: str
    role: str
    is_email_verified: bool


class RegisterResponse(CamelModel):
    message: str
    user: RegisteredUser


class UserSummary(CamelModel):
    id: str
    email: str
    role: str
    is_email_verified: bool
    is_two_factor_enabled: bool


class LoginResponse(CamelModel):
    """Refresh token travels separately in the HTTP-only refreshToken cookie."""

    user: UserSummary
    access_token: str
    expires_at: datetime


class AccessTokenResponse(CamelModel):
    access_token: str
    expires_at: datetime


class MeUser(UserSummary):
    created_at: datetime | None = None


class MeResponse(CamelModel):
    user: MeUser


class TwoFactorSetupResponse(CamelModel):
    secret: str
    qr_code: str = Field(..., description="PNG data URL of the provisioning QR code")
    otpauth_url: str


class CurrentUser(CamelModel):
    """Authenticated user for dependency injection."""

    id: str
    email: str
    role: str
    is_email_verified: bool
    is_two_factor_enabled: bool
