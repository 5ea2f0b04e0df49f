"""
Auth workflows: register, login with lockout, Google sign-in, email
verification, password reset and TOTP enrollment, composed from the
repositories, the security primitives and the session manager.
"""

import logging
import math
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any

from email_validator import EmailNotValidError, validate_email

from app.core.errors import (
    AccountLockedError,
    DuplicateEmailError,
    EmailNotVerifiedError,
    InvalidCredentialsError,
    InvalidInputError,
    InvalidOrExpiredTokenError,
    InvalidTwoFactorCodeError,
    TwoFactorAlreadyEnabledError,
    TwoFactorRequiredError,
    UserNotFoundError,
)
from app.core.security import (
    dummy_password_hash,
    generate_opaque_token,
    hash_password,
    hash_token,
    password_policy_violations,
    verify_password,
)
from app.domain.entities import REGISTRABLE_ROLES, ROLE_DOCTOR, ROLE_PATIENT, UserRecord
from app.domain.repositories import ProfileRepository, UserRepository
from app.services import two_factor
from app.services.email import EmailDeliveryError, EmailSender
from app.services.sessions import SessionManager, SessionTokens, utcnow

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)

Scheduler = Callable[..., Any]


@dataclass(frozen=True)
class LoginResult:
    user: UserRecord
    tokens: SessionTokens


@dataclass(frozen=True)
class TwoFactorEnrollment:
    secret: str
    otpauth_url: str
    qr_code: str


def canonical_email(email: str) -> str:
    """
    Stored form of an email address: email-validator's normalization
    (NFC, IDNA domain) lower-cased. Raises EmailNotValidError.
    """
    return validate_email(email.strip(), check_deliverability=False).normalized.lower()


def normalize_email(email: str) -> str:
    """
    Lookup form of an email address. Matches canonical_email for every valid
    address; invalid input is trimmed and lower-cased so it simply finds no user.
    """
    try:
        return canonical_email(email)
    except EmailNotValidError:
        return email.strip().lower()


def _run_inline(func: Callable[..., Any], *args: Any) -> None:
    func(*args)


def _deliver(send: Callable[[str, str], None], email: str, token: str) -> None:
    """Background task body: email is best-effort, failures are logged only."""
    try:
        send(email, token)
    except EmailDeliveryError as e:
        logger.warning("Email delivery failed: %s", e.message)


class AuthService:
    """
    Orchestrates the account lifecycle.

    schedule(func, *args) runs email delivery off the critical path; the HTTP
    layer passes BackgroundTasks.add_task, the default runs inline.
    """

    def __init__(
        self,
        users: UserRepository,
        sessions: SessionManager,
        profiles: ProfileRepository,
        email: EmailSender,
        settings: "Settings",
        schedule: Scheduler | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._users = users
        self._sessions = sessions
        self._profiles = profiles
        self._email = email
        self._settings = settings
        self._schedule = schedule or _run_inline
        self._clock = clock

    def _dispatch(self, send: Callable[[str, str], None], email: str, token: str) -> None:
        self._schedule(_deliver, send, email, token)

    def _require_user(self, user_id: str) -> UserRecord:
        user = self._users.get_by_id(user_id)
        if user is None:
            raise UserNotFoundError()
        return user

    def _issue_email_verification(self, user: UserRecord) -> None:
        token = generate_opaque_token()
        expires = self._clock() + timedelta(hours=self._settings.EMAIL_VERIFICATION_EXPIRE_HOURS)
        self._users.set_email_verification(user.id, hash_token(token), expires)
        self._dispatch(self._email.send_email_verification, user.email, token)

    def _check_password_policy(self, password: str) -> None:
        problems = password_policy_violations(password)
        if problems:
            raise InvalidInputError("; ".join(problems))

    def register(
        self,
        email: str,
        password: str,
        role: str,
        profile_fields: dict[str, Any] | None = None,
    ) -> UserRecord:
        """Create an unverified account plus its role profile and send the verification link."""
        try:
            normalized = canonical_email(email)
        except EmailNotValidError as e:
            raise InvalidInputError(f"Valid email is required: {e}") from e
        self._check_password_policy(password)
        if role not in REGISTRABLE_ROLES:
            raise InvalidInputError("Role must be patient or doctor")
        if self._users.get_by_email(normalized) is not None:
            raise DuplicateEmailError()

        user = self._create_account(normalized, hash_password(password), role, profile_fields or {})
        self._issue_email_verification(user)
        logger.info("Registered user_id=%s role=%s", user.id, role)
        return self._users.get_by_id(user.id) or user

    def _create_account(
        self,
        email: str,
        password_hash: str,
        role: str,
        profile_fields: dict[str, Any],
        verified: bool = False,
    ) -> UserRecord:
        """
        Insert the user and its role profile. If the profile cannot be written
        the user row is deleted again, so a failed registration can be retried.
        """
        user = self._users.add(
            UserRecord(
                id=str(uuid.uuid4()),
                email=email,
                password_hash=password_hash,
                role=role,
                is_email_verified=verified,
            )
        )
        try:
            if role == ROLE_DOCTOR:
                self._profiles.create_doctor_profile(user.id, profile_fields)
            else:
                self._profiles.create_patient_profile(user.id, profile_fields)
        except Exception:
            logger.exception("Profile creation failed, removing user_id=%s", user.id)
            self._users.delete(user.id)
            raise
        return user

    def login(
        self,
        email: str,
        password: str,
        two_factor_token: str | None = None,
        user_agent: str | None = None,
        ip_address: str | None = None,
    ) -> LoginResult:
        now = self._clock()
        user = self._users.get_by_email(normalize_email(email))

        if user is not None and user.locked_until is not None:
            if user.is_locked(now):
                remaining = (user.locked_until - now).total_seconds()
                raise AccountLockedError(retry_after=max(1, math.ceil(remaining)))
            # Lock window elapsed: the account starts over with a clean counter.
            self._users.clear_lockout(user.id)

        if user is None:
            # Same bcrypt work as a wrong password, so response time does not reveal existence.
            verify_password(password, dummy_password_hash())
            raise InvalidCredentialsError()

        if not verify_password(password, user.password_hash):
            attempts = self._users.increment_login_attempts(user.id)
            if attempts >= self._settings.MAX_LOGIN_ATTEMPTS:
                until = now + timedelta(minutes=self._settings.LOCKOUT_MINUTES)
                self._users.lock_account(user.id, until)
                logger.warning(
                    "Account locked: user_id=%s attempts=%s until=%s",
                    user.id,
                    attempts,
                    until.isoformat(),
                )
            raise InvalidCredentialsError()

        self._users.record_successful_login(user.id, now)

        if not user.is_email_verified:
            raise EmailNotVerifiedError()

        if user.is_two_factor_enabled:
            if not two_factor_token:
                raise TwoFactorRequiredError()
            if not user.two_factor_secret or not two_factor.verify_code(
                user.two_factor_secret,
                two_factor_token,
                valid_window=self._settings.TOTP_VALID_WINDOW,
                at=now,
            ):
                raise InvalidTwoFactorCodeError()

        tokens = self._sessions.create_session(user.id, user_agent, ip_address)
        return LoginResult(user=self._users.get_by_id(user.id) or user, tokens=tokens)

    def login_with_google(
        self,
        email: str,
        first_name: str,
        last_name: str,
        user_agent: str | None = None,
        ip_address: str | None = None,
    ) -> LoginResult:
        """
        Sign in with an email Google has verified. Unknown emails get a new
        verified patient account with an unusable random password; existing
        accounts are marked verified. Accounts with 2FA must use password login.
        """
        now = self._clock()
        normalized = normalize_email(email)
        user = self._users.get_by_email(normalized)
        if user is None:
            user = self._create_account(
                normalized,
                hash_password(generate_opaque_token()),
                ROLE_PATIENT,
                {"first_name": first_name, "last_name": last_name},
                verified=True,
            )
            logger.info("Registered user_id=%s role=%s via Google", user.id, user.role)
        else:
            if user.is_locked(now):
                remaining = (user.locked_until - now).total_seconds()
                raise AccountLockedError(retry_after=max(1, math.ceil(remaining)))
            if user.is_two_factor_enabled:
                raise TwoFactorRequiredError(
                    "Two-factor authentication is enabled; sign in with your password and code"
                )
            if not user.is_email_verified:
                self._users.mark_email_verified(user.id)

        self._users.record_successful_login(user.id, now)
        tokens = self._sessions.create_session(user.id, user_agent, ip_address)
        return LoginResult(user=self._users.get_by_id(user.id) or user, tokens=tokens)

    def verify_email(self, token: str) -> UserRecord:
        user = self._users.get_by_email_verification_token(hash_token(token))
        if (
            user is None
            or user.email_verification_expires is None
            or user.email_verification_expires <= self._clock()
        ):
            raise InvalidOrExpiredTokenError()
        self._users.mark_email_verified(user.id)
        return self._users.get_by_id(user.id) or user

    def resend_verification(self, email: str) -> None:
        """Send a fresh link to an unverified account; silent for unknown or verified emails."""
        user = self._users.get_by_email(normalize_email(email))
        if user is None or user.is_email_verified:
            return
        self._issue_email_verification(user)

    def forgot_password(self, email: str) -> None:
        """Always returns normally so callers cannot tell which emails exist."""
        user = self._users.get_by_email(normalize_email(email))
        if user is None:
            return
        token = generate_opaque_token()
        expires = self._clock() + timedelta(hours=self._settings.PASSWORD_RESET_EXPIRE_HOURS)
        self._users.set_password_reset(user.id, hash_token(token), expires)
        self._dispatch(self._email.send_password_reset, user.email, token)

    def reset_password(self, token: str, new_password: str) -> None:
        """Set a new password and revoke every session, so stolen refresh tokens die with it."""
        self._check_password_policy(new_password)
        user = self._users.get_by_password_reset_token(hash_token(token))
        if (
            user is None
            or user.password_reset_expires is None
            or user.password_reset_expires <= self._clock()
        ):
            raise InvalidOrExpiredTokenError()
        self._users.reset_password(user.id, hash_password(new_password))
        self._sessions.revoke_all_sessions(user.id)
        logger.info("Password reset for user_id=%s", user.id)

    def generate_two_factor_secret(self, user_id: str) -> TwoFactorEnrollment:
        """
        First enrollment phase. The secret is stored right away but stays
        inactive until enable_two_factor confirms a code from it.
        """
        user = self._require_user(user_id)
        if user.is_two_factor_enabled:
            raise TwoFactorAlreadyEnabledError()
        secret = two_factor.generate_secret()
        self._users.set_two_factor_secret(user.id, secret)
        uri = two_factor.provisioning_uri(secret, user.email, self._settings.TOTP_ISSUER)
        return TwoFactorEnrollment(
            secret=secret,
            otpauth_url=uri,
            qr_code=two_factor.qr_code_data_url(uri),
        )

    def _code_matches(self, user: UserRecord, code: str) -> bool:
        if not user.two_factor_secret:
            return False
        return two_factor.verify_code(
            user.two_factor_secret,
            code,
            valid_window=self._settings.TOTP_VALID_WINDOW,
            at=self._clock(),
        )

    def enable_two_factor(self, user_id: str, code: str) -> None:
        user = self._require_user(user_id)
        if not self._code_matches(user, code):
            raise InvalidTwoFactorCodeError("Invalid 2FA token", status_code=400)
        self._users.enable_two_factor(user.id)
        logger.info("Two-factor authentication enabled for user_id=%s", user.id)

    def disable_two_factor(self, user_id: str, code: str) -> None:
        """Needs a current code: a stolen session alone cannot turn 2FA off."""
        user = self._require_user(user_id)
        if not user.is_two_factor_enabled or not self._code_matches(user, code):
            raise InvalidTwoFactorCodeError("Invalid 2FA token", status_code=400)
        self._users.disable_two_factor(user.id)
        logger.info("Two-factor authentication disabled for user_id=%s", user.id)

    def get_user(self, user_id: str) -> UserRecord:
        return self._require_user(user_id)
