"""Typed failures raised by the auth core and rendered by the API exception handler."""


class AuthError(Exception):
    """Base class: carries an HTTP status, a machine-readable code and a message."""

    status_code = 400
    code = "AUTH_ERROR"
    default_message = "Authentication error"

    def __init__(self, message: str | None = None, status_code: int | None = None) -> None:
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class InvalidInputError(AuthError):
    """Malformed input (bad email, weak password, unknown role)."""

    status_code = 400
    code = "VALIDATION_ERROR"
    default_message = "Invalid input"


class DuplicateEmailError(AuthError):
    status_code = 409
    code = "DUPLICATE_EMAIL"
    default_message = "User with this email already exists"


class InvalidCredentialsError(AuthError):
    """Wrong email or wrong password; the two are deliberately indistinguishable."""

    status_code = 401
    code = "INVALID_CREDENTIALS"
    default_message = "Invalid credentials"


class AccountLockedError(AuthError):
    """Raised while the lockout window is active."""

    status_code = 423
    code = "ACCOUNT_LOCKED"
    default_message = "Account is temporarily locked due to too many failed login attempts"

    def __init__(self, retry_after: int, message: str | None = None) -> None:
        self.retry_after = retry_after
        super().__init__(message)


class EmailNotVerifiedError(AuthError):
    status_code = 403
    code = "EMAIL_NOT_VERIFIED"
    default_message = "Email verification required"


class TwoFactorRequiredError(AuthError):
    status_code = 403
    code = "2FA_REQUIRED"
    default_message = "Two-factor authentication required"


class InvalidTwoFactorCodeError(AuthError):
    status_code = 401
    code = "INVALID_2FA_CODE"
    default_message = "Invalid two-factor authentication code"


class TwoFactorAlreadyEnabledError(AuthError):
    status_code = 409
    code = "2FA_ALREADY_ENABLED"
    default_message = "Two-factor authentication is already enabled; disable it first"


class InvalidOrExpiredTokenError(AuthError):
    """Verification or reset token unknown, consumed or expired (never says which)."""

    status_code = 400
    code = "INVALID_OR_EXPIRED_TOKEN"
    default_message = "Invalid or expired token"


class InvalidSessionError(AuthError):
    status_code = 401
    code = "INVALID_SESSION"
    default_message = "Invalid or expired session"


class UserNotFoundError(AuthError):
    status_code = 404
    code = "USER_NOT_FOUND"
    default_message = "User not found"


class RateLimitExceededError(AuthError):
    status_code = 429
    code = "RATE_LIMITED"
    default_message = "Too many requests, please try again later"

    def __init__(self, retry_after: int, message: str | None = None) -> None:
        self.retry_after = retry_after
        super().__init__(message)


class OAuthNotConfiguredError(AuthError):
    status_code = 400
    code = "OAUTH_NOT_CONFIGURED"
    default_message = "Google OAuth not configured"


class InvalidOAuthStateError(AuthError):
    """Callback without code or state, or with a state this browser was not issued."""

    status_code = 400
    code = "INVALID_OAUTH_STATE"
    default_message = "Invalid state"


class OAuthFailedError(AuthError):
    """Google refused the exchange (400) or could not be reached (502)."""

    status_code = 400
    code = "OAUTH_FAILED"
    default_message = "Google sign-in failed"
