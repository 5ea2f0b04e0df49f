"""PostgreSQL-backed repositories (SQLAlchemy ORM, one commit per operation)."""

from datetime import datetime
from typing import Any

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import DuplicateEmailError
from app.domain.entities import (
    ROLE_DOCTOR,
    ROLE_PATIENT,
    ProfileRecord,
    SessionRecord,
    UserRecord,
)
from app.models import Doctor, Patient, User, UserSession

PATIENT_FIELDS = frozenset({"first_name", "last_name", "phone", "province"})
DOCTOR_FIELDS = frozenset(
    {
        "first_name",
        "last_name",
        "specialty",
        "hpcsa_number",
        "phone",
        "province",
        "city",
        "zip_code",
        "practice_address",
        "qualifications",
        "experience",
        "consultation_fee",
    }
)


def _user_to_record(row: User) -> UserRecord:
    return UserRecord(
        id=str(row.id),
        email=row.email,
        password_hash=row.password_hash,
        role=row.role,
        is_email_verified=bool(row.is_email_verified),
        email_verification_token=row.email_verification_token,
        email_verification_expires=row.email_verification_expires,
        password_reset_token=row.password_reset_token,
        password_reset_expires=row.password_reset_expires,
        two_factor_secret=row.two_factor_secret,
        is_two_factor_enabled=bool(row.is_two_factor_enabled),
        login_attempts=row.login_attempts or 0,
        locked_until=row.locked_until,
        last_login=row.last_login,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _session_to_record(row: UserSession) -> SessionRecord:
    return SessionRecord(
        id=str(row.id),
        user_id=str(row.user_id),
        token_hash=row.token_hash,
        expires_at=row.expires_at,
        user_agent=row.user_agent,
        ip_address=row.ip_address,
        is_revoked=bool(row.is_revoked),
        created_at=row.created_at,
    )


class SqlAlchemyUserRepository:
    """Credential store over the users table."""

    def __init__(self, db: Session) -> None:
        self._db = db

    def _first(self, *criteria: Any) -> UserRecord | None:
        row = self._db.query(User).filter(*criteria).first()
        return _user_to_record(row) if row is not None else None

    def _update(self, user_id: str, values: dict[Any, Any]) -> None:
        self._db.query(User).filter(User.id == user_id).update(
            values, synchronize_session=False
        )
        self._db.commit()

    def get_by_id(self, user_id: str) -> UserRecord | None:
        return self._first(User.id == user_id)

    def get_by_email(self, email: str) -> UserRecord | None:
        return self._first(User.email == email)

    def get_by_email_verification_token(self, token_hash: str) -> UserRecord | None:
        return self._first(User.email_verification_token == token_hash)

    def get_by_password_reset_token(self, token_hash: str) -> UserRecord | None:
        return self._first(User.password_reset_token == token_hash)

    def add(self, user: UserRecord) -> UserRecord:
        row = User(
            id=user.id,
            email=user.email,
            password_hash=user.password_hash,
            role=user.role,
            is_email_verified=user.is_email_verified,
            email_verification_token=user.email_verification_token,
            email_verification_expires=user.email_verification_expires,
            two_factor_secret=user.two_factor_secret,
            is_two_factor_enabled=user.is_two_factor_enabled,
            login_attempts=user.login_attempts,
        )
        self._db.add(row)
        try:
            self._db.commit()
        except IntegrityError as e:
            self._db.rollback()
            # Concurrent registration won the unique index on users.email.
            if "email" in str(e.orig):
                raise DuplicateEmailError() from e
            raise
        self._db.refresh(row)
        return _user_to_record(row)

    def delete(self, user_id: str) -> None:
        self._db.query(User).filter(User.id == user_id).delete(synchronize_session=False)
        self._db.commit()

    def increment_login_attempts(self, user_id: str) -> int:
        stmt = (
            update(User)
            .where(User.id == user_id)
            .values(login_attempts=User.login_attempts + 1)
            .returning(User.login_attempts)
        )
        attempts = self._db.execute(stmt).scalar_one_or_none()
        self._db.commit()
        return attempts or 0

    def lock_account(self, user_id: str, until: datetime) -> None:
        self._update(user_id, {User.locked_until: until})

    def clear_lockout(self, user_id: str) -> None:
        self._update(user_id, {User.login_attempts: 0, User.locked_until: None})

    def record_successful_login(self, user_id: str, at: datetime) -> None:
        self._update(
            user_id,
            {User.login_attempts: 0, User.locked_until: None, User.last_login: at},
        )

    def set_email_verification(self, user_id: str, token_hash: str, expires: datetime) -> None:
        self._update(
            user_id,
            {
                User.email_verification_token: token_hash,
                User.email_verification_expires: expires,
            },
        )

    def mark_email_verified(self, user_id: str) -> None:
        self._update(
            user_id,
            {
                User.is_email_verified: True,
                User.email_verification_token: None,
                User.email_verification_expires: None,
            },
        )

    def set_password_reset(self, user_id: str, token_hash: str, expires: datetime) -> None:
        self._update(
            user_id,
            {User.password_reset_token: token_hash, User.password_reset_expires: expires},
        )

    def reset_password(self, user_id: str, password_hash: str) -> None:
        self._update(
            user_id,
            {
                User.password_hash: password_hash,
                User.password_reset_token: None,
                User.password_reset_expires: None,
                User.login_attempts: 0,
                User.locked_until: None,
            },
        )

    def set_two_factor_secret(self, user_id: str, secret: str) -> None:
        self._update(user_id, {User.two_factor_secret: secret})

    def enable_two_factor(self, user_id: str) -> None:
        self._update(user_id, {User.is_two_factor_enabled: True})

    def disable_two_factor(self, user_id: str) -> None:
        self._update(
            user_id,
            {User.is_two_factor_enabled: False, User.two_factor_secret: None},
        )


class SqlAlchemySessionRepository:
    """Refresh-token sessions over the user_sessions table."""

    def __init__(self, db: Session) -> None:
        self._db = db

    def add(self, session: SessionRecord) -> SessionRecord:
        row = UserSession(
            id=session.id,
            user_id=session.user_id,
            token_hash=session.token_hash,
            user_agent=session.user_agent,
            ip_address=session.ip_address,
            expires_at=session.expires_at,
            is_revoked=session.is_revoked,
        )
        self._db.add(row)
        self._db.commit()
        self._db.refresh(row)
        return _session_to_record(row)

    def get_by_token_hash(self, token_hash: str) -> SessionRecord | None:
        row = self._db.query(UserSession).filter(UserSession.token_hash == token_hash).first()
        return _session_to_record(row) if row is not None else None

    def revoke_by_token_hash(self, token_hash: str) -> None:
        self._db.query(UserSession).filter(UserSession.token_hash == token_hash).update(
            {UserSession.is_revoked: True}, synchronize_session=False
        )
        self._db.commit()

    def revoke_all_for_user(self, user_id: str) -> int:
        count = (
            self._db.query(UserSession)
            .filter(UserSession.user_id == user_id, UserSession.is_revoked.is_(False))
            .update({UserSession.is_revoked: True}, synchronize_session=False)
        )
        self._db.commit()
        return count

    def delete_expired(self, now: datetime) -> int:
        count = (
            self._db.query(UserSession)
            .filter(UserSession.expires_at < now)
            .delete(synchronize_session=False)
        )
        self._db.commit()
        return count


class SqlAlchemyProfileRepository:
    """Patient and doctor profile rows."""

    def __init__(self, db: Session) -> None:
        self._db = db

    def _insert(self, row: Patient | Doctor) -> None:
        self._db.add(row)
        try:
            self._db.commit()
        except SQLAlchemyError:
            self._db.rollback()
            raise
        self._db.refresh(row)

    def create_patient_profile(self, user_id: str, fields: dict[str, Any]) -> ProfileRecord:
        values = {k: v for k, v in fields.items() if k in PATIENT_FIELDS and v is not None}
        row = Patient(user_id=user_id, **values)
        self._insert(row)
        return ProfileRecord(id=str(row.id), user_id=user_id, role=ROLE_PATIENT, fields=values)

    def create_doctor_profile(self, user_id: str, fields: dict[str, Any]) -> ProfileRecord:
        values = {k: v for k, v in fields.items() if k in DOCTOR_FIELDS and v is not None}
        row = Doctor(user_id=user_id, verification_status="pending", **values)
        self._insert(row)
        return ProfileRecord(id=str(row.id), user_id=user_id, role=ROLE_DOCTOR, fields=values)
