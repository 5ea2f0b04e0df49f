"""Auth endpoints: register, login, Google sign-in, refresh, logout, email verification, password reset, 2FA."""

import logging
import secrets
from typing import Annotated
from urllib.parse import urlencode

from fastapi import APIRouter, Cookie, Depends, Request, Response, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import RedirectResponse

from app.api.deps import get_auth_service, get_current_user, get_session_manager, require_verified_email
from app.core.config import get_settings
from app.core.errors import (
    InvalidOAuthStateError,
    InvalidSessionError,
    OAuthFailedError,
    OAuthNotConfiguredError,
)
from app.core.rate_limit import auth_rate_limit, password_reset_rate_limit
from app.domain.entities import UserRecord
from app.schemas.auth import (
    AccessTokenResponse,
    CurrentUser,
    EmailRequest,
    LoginRequest,
    LoginResponse,
    MeResponse,
    MeUser,
    MessageResponse,
    RegisteredUser,
    RegisterRequest,
    RegisterResponse,
    ResetPasswordRequest,
    TokenRequest,
    TwoFactorSetupResponse,
    UserSummary,
)
from app.services import google_oauth
from app.services.auth import AuthService
from app.services.sessions import SessionManager, SessionTokens

logger = logging.getLogger(__name__)

router = APIRouter()

REFRESH_COOKIE = "refreshToken"
OAUTH_STATE_COOKIE = "oauthState"
OAUTH_STATE_MAX_AGE = 600

AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]


def _summary(user: UserRecord) -> UserSummary:
    return UserSummary(
        id=user.id,
        email=user.email,
        role=user.role,
        is_email_verified=user.is_email_verified,
        is_two_factor_enabled=user.is_two_factor_enabled,
    )


def _set_refresh_cookie(response: Response, tokens: SessionTokens) -> None:
    settings = get_settings()
    response.set_cookie(
        key=REFRESH_COOKIE,
        value=tokens.refresh_token,
        max_age=settings.REFRESH_TOKEN_EXPIRE_HOURS * 3600,
        httponly=True,
        secure=settings.secure_cookies,
        samesite="strict",
    )


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(auth_rate_limit)],
)
def register(body: RegisterRequest, auth: AuthServiceDep) -> RegisterResponse:
    """Create a patient or doctor account; a verification link is emailed."""
    user = auth.register(body.email, body.password, body.role, body.profile_fields())
    return RegisterResponse(
        message="Registration successful. Please check your email to verify your account.",
        user=RegisteredUser(
            id=user.id,
            email=user.email,
            role=user.role,
            is_email_verified=user.is_email_verified,
        ),
    )


@router.post("/login", response_model=LoginResponse, dependencies=[Depends(auth_rate_limit)])
def login(
    body: LoginRequest,
    request: Request,
    response: Response,
    auth: AuthServiceDep,
) -> LoginResponse:
    """
    Authenticate with email, password and (when enabled) a TOTP code.
    The refresh token is set as an HTTP-only cookie; use the access token as
    Authorization: Bearer <accessToken>.
    """
    result = auth.login(
        body.email,
        body.password,
        two_factor_token=body.two_factor_token,
        user_agent=request.headers.get("user-agent"),
        ip_address=request.client.host if request.client else None,
    )
    _set_refresh_cookie(response, result.tokens)
    return LoginResponse(
        user=_summary(result.user),
        access_token=result.tokens.access_token,
        expires_at=result.tokens.expires_at,
    )


def _oauth_state_cookie_path() -> str:
    return f"{get_settings().API_PREFIX}/auth/google"


@router.get("/google", response_class=RedirectResponse, status_code=status.HTTP_302_FOUND)
def google_login() -> RedirectResponse:
    """
    Start Google sign-in: redirect to Google's consent screen. The state sent
    to Google is also kept in a short-lived HTTP-only cookie for the callback.
    """
    settings = get_settings()
    state = google_oauth.generate_state()
    try:
        url = google_oauth.authorization_url(settings, state)
    except google_oauth.GoogleOAuthNotConfiguredError as e:
        raise OAuthNotConfiguredError() from e
    response = RedirectResponse(url, status_code=status.HTTP_302_FOUND)
    # Lax, not strict: the callback is a top-level navigation coming from Google.
    response.set_cookie(
        key=OAUTH_STATE_COOKIE,
        value=state,
        max_age=OAUTH_STATE_MAX_AGE,
        path=_oauth_state_cookie_path(),
        httponly=True,
        secure=settings.secure_cookies,
        samesite="lax",
    )
    return response


@router.get("/google/callback", response_class=RedirectResponse, status_code=status.HTTP_302_FOUND)
async def google_callback(
    request: Request,
    auth: AuthServiceDep,
    code: str | None = None,
    state: str | None = None,
    expected_state: Annotated[str | None, Cookie(alias=OAUTH_STATE_COOKIE)] = None,
) -> RedirectResponse:
    """
    Finish Google sign-in and redirect to the frontend with the access token
    in the URL fragment; the refresh token is set as a cookie as for /login.
    """
    settings = get_settings()
    if not settings.google_oauth_enabled:
        raise OAuthNotConfiguredError()
    if (
        not code
        or not state
        or not expected_state
        or not secrets.compare_digest(state.encode(), expected_state.encode())
    ):
        raise InvalidOAuthStateError()

    try:
        profile = await google_oauth.fetch_google_profile(settings, code)
    except google_oauth.GoogleOAuthError as e:
        logger.warning("Google sign-in failed: %s", e.message)
        status_code = 502 if (e.status_code or 0) >= 500 else 400
        raise OAuthFailedError(e.message, status_code=status_code) from e

    result = await run_in_threadpool(
        auth.login_with_google,
        profile.email,
        profile.given_name,
        profile.family_name,
        request.headers.get("user-agent"),
        request.client.host if request.client else None,
    )
    fragment = urlencode({"accessToken": result.tokens.access_token, "role": result.user.role})
    response = RedirectResponse(
        f"{settings.FRONTEND_URL}/login-new#{fragment}",
        status_code=status.HTTP_302_FOUND,
    )
    _set_refresh_cookie(response, result.tokens)
    response.delete_cookie(
        OAUTH_STATE_COOKIE,
        path=_oauth_state_cookie_path(),
        httponly=True,
        secure=settings.secure_cookies,
        samesite="lax",
    )
    return response


@router.post("/refresh", response_model=AccessTokenResponse)
def refresh(
    sessions: Annotated[SessionManager, Depends(get_session_manager)],
    refresh_token: Annotated[str | None, Cookie(alias=REFRESH_COOKIE)] = None,
) -> AccessTokenResponse:
    """Mint a new access token from the refreshToken cookie."""
    if not refresh_token:
        raise InvalidSessionError()
    tokens = sessions.refresh_access_token(refresh_token)
    return AccessTokenResponse(access_token=tokens.access_token, expires_at=tokens.expires_at)


@router.post("/logout", response_model=MessageResponse)
def logout(
    response: Response,
    _user: Annotated[CurrentUser, Depends(get_current_user)],
    sessions: Annotated[SessionManager, Depends(get_session_manager)],
    refresh_token: Annotated[str | None, Cookie(alias=REFRESH_COOKIE)] = None,
) -> MessageResponse:
    if refresh_token:
        sessions.revoke_session(refresh_token)
    settings = get_settings()
    response.delete_cookie(
        REFRESH_COOKIE,
        httponly=True,
        secure=settings.secure_cookies,
        samesite="strict",
    )
    return MessageResponse(message="Logout successful")


@router.post("/verify-email", response_model=MessageResponse)
def verify_email(body: TokenRequest, auth: AuthServiceDep) -> MessageResponse:
    auth.verify_email(body.token)
    return MessageResponse(message="Email verified successfully")


@router.post(
    "/resend-verification",
    response_model=MessageResponse,
    dependencies=[Depends(auth_rate_limit)],
)
def resend_verification(body: EmailRequest, auth: AuthServiceDep) -> MessageResponse:
    auth.resend_verification(body.email)
    return MessageResponse(
        message="If an unverified account with that email exists, a verification email has been sent."
    )


@router.post(
    "/forgot-password",
    response_model=MessageResponse,
    dependencies=[Depends(password_reset_rate_limit)],
)
def forgot_password(body: EmailRequest, auth: AuthServiceDep) -> MessageResponse:
    auth.forgot_password(body.email)
    return MessageResponse(
        message="If an account with that email exists, a password reset link has been sent."
    )


@router.post(
    "/reset-password",
    response_model=MessageResponse,
    dependencies=[Depends(auth_rate_limit)],
)
def reset_password(body: ResetPasswordRequest, auth: AuthServiceDep) -> MessageResponse:
    auth.reset_password(body.token, body.password)
    return MessageResponse(message="Password reset successful")


@router.get("/me", response_model=MeResponse)
def me(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    auth: AuthServiceDep,
) -> MeResponse:
    """Return the caller's own record (no password hash, secrets or tokens)."""
    user = auth.get_user(current_user.id)
    return MeResponse(
        user=MeUser(
            id=user.id,
            email=user.email,
            role=user.role,
            is_email_verified=user.is_email_verified,
            is_two_factor_enabled=user.is_two_factor_enabled,
            created_at=user.created_at,
        )
    )


@router.post("/2fa/generate", response_model=TwoFactorSetupResponse)
def generate_two_factor(
    current_user: Annotated[CurrentUser, Depends(require_verified_email)],
    auth: AuthServiceDep,
) -> TwoFactorSetupResponse:
    """Start enrollment: returns the secret and a QR code to scan. Not active until /2fa/enable."""
    enrollment = auth.generate_two_factor_secret(current_user.id)
    return TwoFactorSetupResponse(
        secret=enrollment.secret,
        qr_code=enrollment.qr_code,
        otpauth_url=enrollment.otpauth_url,
    )


@router.post("/2fa/enable", response_model=MessageResponse)
def enable_two_factor(
    body: TokenRequest,
    current_user: Annotated[CurrentUser, Depends(require_verified_email)],
    auth: AuthServiceDep,
) -> MessageResponse:
    auth.enable_two_factor(current_user.id, body.token)
    return MessageResponse(message="Two-factor authentication enabled successfully")


@router.post("/2fa/disable", response_model=MessageResponse)
def disable_two_factor(
    body: TokenRequest,
    current_user: Annotated[CurrentUser, Depends(require_verified_email)],
    auth: AuthServiceDep,
) -> MessageResponse:
    auth.disable_two_factor(current_user.id, body.token)
    return MessageResponse(message="Two-factor authentication disabled successfully")
