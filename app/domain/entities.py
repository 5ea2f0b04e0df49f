"""Storage-agnostic records for users, refresh-token sessions and role profiles."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

ROLE_PATIENT = "patient"
ROLE_DOCTOR = "doctor"
ROLE_ADMIN = "admin"

ROLES = (ROLE_PATIENT, ROLE_DOCTOR, ROLE_ADMIN)
# Admins are created by operators (app.scripts.create_user), never by self-registration.
REGISTRABLE_ROLES = (ROLE_PATIENT, ROLE_DOCTOR)


@dataclass
class UserRecord:
    """
    Identity record owned by the credential store.

    Verification and reset tokens hold SHA-256 digests, never the emailed value.
    """

    id: str
    email: str
    password_hash: str
    role: str = ROLE_PATIENT
    is_email_verified: bool = False
    email_verification_token: str | None = None
    email_verification_expires: datetime | None = None
    password_reset_token: str | None = None
    password_reset_expires: datetime | None = None
    two_factor_secret: str | None = None
    is_two_factor_enabled: bool = False
    login_attempts: int = 0
    locked_until: datetime | None = None
    last_login: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def is_locked(self, now: datetime) -> bool:
        return self.locked_until is not None and self.locked_until > now


@dataclass
class SessionRecord:
    """One issued refresh token, identified by its hash."""

    id: str
    user_id: str
    token_hash: str
    expires_at: datetime
    user_agent: str | None = None
    ip_address: str | None = None
    is_revoked: bool = False
    created_at: datetime | None = None

    def is_active(self, now: datetime) -> bool:
        return not self.is_revoked and self.expires_at > now


@dataclass
class ProfileRecord:
    """Role-specific profile created alongside a patient or doctor account."""

    id: str
    user_id: str
    role: str
    fields: dict[str, Any] = field(default_factory=dict)
