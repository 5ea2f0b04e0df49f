"""
Repository contracts for the auth core.

Implementations live in app.repositories (SQLAlchemy for PostgreSQL, in-memory
for tests). Every method is atomic at the row level; callers never assume
cross-row transactions.
"""

from datetime import datetime
from typing import Any, Protocol

from app.domain.entities import ProfileRecord, SessionRecord, UserRecord


class UserRepository(Protocol):
    """Credential store: sole owner of user records."""

    def get_by_id(self, user_id: str) -> UserRecord | None: ...

    def get_by_email(self, email: str) -> UserRecord | None:
        """Lookup by already-normalized (lower-cased) email."""
        ...

    def get_by_email_verification_token(self, token_hash: str) -> UserRecord | None: ...

    def get_by_password_reset_token(self, token_hash: str) -> UserRecord | None: ...

    def add(self, user: UserRecord) -> UserRecord:
        """Insert a new user; returns the stored record with timestamps set.

        Raises DuplicateEmailError when the email is already taken.
        """
        ...

    def delete(self, user_id: str) -> None:
        """Remove a user row; a no-op for unknown ids."""
        ...

    def increment_login_attempts(self, user_id: str) -> int:
        """Atomically add one failed attempt; returns the new count."""
        ...

    def lock_account(self, user_id: str, until: datetime) -> None: ...

    def clear_lockout(self, user_id: str) -> None:
        """Reset the attempt counter and lock without touching last_login."""
        ...

    def record_successful_login(self, user_id: str, at: datetime) -> None:
        """Reset counter and lock, set last_login."""
        ...

    def set_email_verification(self, user_id: str, token_hash: str, expires: datetime) -> None: ...

    def mark_email_verified(self, user_id: str) -> None:
        """Set the verified flag and clear the verification token fields."""
        ...

    def set_password_reset(self, user_id: str, token_hash: str, expires: datetime) -> None: ...

    def reset_password(self, user_id: str, password_hash: str) -> None:
        """Store the new hash, clear reset token fields, counter and lock."""
        ...

    def set_two_factor_secret(self, user_id: str, secret: str) -> None: ...

    def enable_two_factor(self, user_id: str) -> None: ...

    def disable_two_factor(self, user_id: str) -> None:
        """Clear the flag and the secret."""
        ...


class SessionRepository(Protocol):
    """Refresh-token sessions; weakly reference users by id."""

    def add(self, session: SessionRecord) -> SessionRecord: ...

    def get_by_token_hash(self, token_hash: str) -> SessionRecord | None: ...

    def revoke_by_token_hash(self, token_hash: str) -> None: ...

    def revoke_all_for_user(self, user_id: str) -> int: ...

    def delete_expired(self, now: datetime) -> int: ...


class ProfileRepository(Protocol):
    """Role profile rows created at registration."""

    def create_patient_profile(self, user_id: str, fields: dict[str, Any]) -> ProfileRecord: ...

    def create_doctor_profile(self, user_id: str, fields: dict[str, Any]) -> ProfileRecord: ...
