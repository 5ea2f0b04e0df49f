"""
Thread-safe in-memory repositories for tests and local experiments.

Records are copied on the way in and out so callers see the same
snapshot semantics as with the database-backed repositories.
"""

import uuid
from dataclasses import replace
from datetime import UTC, datetime
from threading import Lock
from typing import Any

from app.core.errors import DuplicateEmailError
from app.domain.entities import (
    ROLE_DOCTOR,
    ROLE_PATIENT,
    ProfileRecord,
    SessionRecord,
    UserRecord,
)


def _now() -> datetime:
    return datetime.now(UTC)


class InMemoryUserRepository:
    def __init__(self) -> None:
        self._lock = Lock()
        self._users: dict[str, UserRecord] = {}

    def _find(self, predicate: Any) -> UserRecord | None:
        with self._lock:
            for user in self._users.values():
                if predicate(user):
                    return replace(user)
        return None

    def _update(self, user_id: str, **values: Any) -> None:
        with self._lock:
            user = self._users.get(user_id)
            if user is None:
                return
            for name, value in values.items():
                setattr(user, name, value)
            user.updated_at = _now()

    def get_by_id(self, user_id: str) -> UserRecord | None:
        with self._lock:
            user = self._users.get(user_id)
            return replace(user) if user is not None else None

    def get_by_email(self, email: str) -> UserRecord | None:
        return self._find(lambda u: u.email == email)

    def get_by_email_verification_token(self, token_hash: str) -> UserRecord | None:
        return self._find(lambda u: u.email_verification_token == token_hash)

    def get_by_password_reset_token(self, token_hash: str) -> UserRecord | None:
        return self._find(lambda u: u.password_reset_token == token_hash)

    def add(self, user: UserRecord) -> UserRecord:
        with self._lock:
            if any(u.email == user.email for u in self._users.values()):
                raise DuplicateEmailError()
            now = _now()
            stored = replace(user, created_at=user.created_at or now, updated_at=now)
            self._users[stored.id] = stored
            return replace(stored)

    def delete(self, user_id: str) -> None:
        with self._lock:
            self._users.pop(user_id, None)

    def increment_login_attempts(self, user_id: str) -> int:
        with self._lock:
            user = self._users.get(user_id)
            if user is None:
                return 0
            user.login_attempts += 1
            user.updated_at = _now()
            return user.login_attempts

    def lock_account(self, user_id: str, until: datetime) -> None:
        self._update(user_id, locked_until=until)

    def clear_lockout(self, user_id: str) -> None:
        self._update(user_id, login_attempts=0, locked_until=None)

    def record_successful_login(self, user_id: str, at: datetime) -> None:
        self._update(user_id, login_attempts=0, locked_until=None, last_login=at)

    def set_email_verification(self, user_id: str, token_hash: str, expires: datetime) -> None:
        self._update(
            user_id,
            email_verification_token=token_hash,
            email_verification_expires=expires,
        )

    def mark_email_verified(self, user_id: str) -> None:
        self._update(
            user_id,
            is_email_verified=True,
            email_verification_token=None,
            email_verification_expires=None,
        )

    def set_password_reset(self, user_id: str, token_hash: str, expires: datetime) -> None:
        self._update(user_id, password_reset_token=token_hash, password_reset_expires=expires)

    def reset_password(self, user_id: str, password_hash: str) -> None:
        self._update(
            user_id,
            password_hash=password_hash,
            password_reset_token=None,
            password_reset_expires=None,
            login_attempts=0,
            locked_until=None,
        )

    def set_two_factor_secret(self, user_id: str, secret: str) -> None:
        self._update(user_id, two_factor_secret=secret)

    def enable_two_factor(self, user_id: str) -> None:
        self._update(user_id, is_two_factor_enabled=True)

    def disable_two_factor(self, user_id: str) -> None:
        self._update(user_id, is_two_factor_enabled=False, two_factor_secret=None)


class InMemorySessionRepository:
    def __init__(self) -> None:
        self._lock = Lock()
        self._sessions: dict[str, SessionRecord] = {}

    def add(self, session: SessionRecord) -> SessionRecord:
        with self._lock:
            stored = replace(session, created_at=session.created_at or _now())
            self._sessions[stored.id] = stored
            return replace(stored)

    def get_by_token_hash(self, token_hash: str) -> SessionRecord | None:
        with self._lock:
            for session in self._sessions.values():
                if session.token_hash == token_hash:
                    return replace(session)
        return None

    def revoke_by_token_hash(self, token_hash: str) -> None:
        with self._lock:
            for session in self._sessions.values():
                if session.token_hash == token_hash:
                    session.is_revoked = True

    def revoke_all_for_user(self, user_id: str) -> int:
        count = 0
        with self._lock:
            for session in self._sessions.values():
                if session.user_id == user_id and not session.is_revoked:
                    session.is_revoked = True
                    count += 1
        return count

    def delete_expired(self, now: datetime) -> int:
        with self._lock:
            expired = [sid for sid, s in self._sessions.items() if s.expires_at < now]
            for sid in expired:
                del self._sessions[sid]
        return len(expired)

    def list_for_user(self, user_id: str) -> list[SessionRecord]:
        with self._lock:
            return [replace(s) for s in self._sessions.values() if s.user_id == user_id]


class InMemoryProfileRepository:
    def __init__(self) -> None:
        self._lock = Lock()
        self.profiles: list[ProfileRecord] = []

    def _create(self, user_id: str, role: str, fields: dict[str, Any]) -> ProfileRecord:
        profile = ProfileRecord(
            id=str(uuid.uuid4()),
            user_id=user_id,
            role=role,
            fields={k: v for k, v in fields.items() if v is not None},
        )
        with self._lock:
            self.profiles.append(profile)
        return profile

    def create_patient_profile(self, user_id: str, fields: dict[str, Any]) -> ProfileRecord:
        return self._create(user_id, ROLE_PATIENT, fields)

    def create_doctor_profile(self, user_id: str, fields: dict[str, Any]) -> ProfileRecord:
        return self._create(user_id, ROLE_DOCTOR, {**fields, "verification_status": "pending"})
