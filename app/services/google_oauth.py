"""
Google sign-in over the OAuth 2.0 authorization-code flow: the consent URL,
the code-for-token exchange and the OpenID Connect userinfo lookup.
"""

import logging
import secrets
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any
from urllib.parse import urlencode

import httpx

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"
GOOGLE_SCOPES = "openid email profile"


class GoogleOAuthNotConfiguredError(Exception):
    """Raised when GOOGLE_CLIENT_ID or GOOGLE_CLIENT_SECRET is missing."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class GoogleOAuthError(Exception):
    """Raised when Google rejects the exchange or returns an unusable profile."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


@dataclass(frozen=True)
class GoogleProfile:
    email: str
    given_name: str
    family_name: str


def generate_state() -> str:
    return secrets.token_hex(16)


def _credentials(settings: "Settings") -> tuple[str, str]:
    if not settings.google_oauth_enabled:
        raise GoogleOAuthNotConfiguredError("GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET must be set.")
    return settings.GOOGLE_CLIENT_ID, settings.GOOGLE_CLIENT_SECRET.get_secret_value()


def authorization_url(settings: "Settings", state: str) -> str:
    """Google consent screen URL; state comes back unchanged on the callback."""
    client_id, _ = _credentials(settings)
    params = {
        "client_id": client_id,
        "redirect_uri": settings.google_redirect_uri,
        "response_type": "code",
        "scope": GOOGLE_SCOPES,
        "state": state,
        "access_type": "offline",
        "include_granted_scopes": "true",
    }
    return f"{GOOGLE_AUTH_URL}?{urlencode(params)}"


def _json(resp: Any, what: str) -> dict[str, Any]:
    try:
        data = resp.json()
    except ValueError as e:
        raise GoogleOAuthError(f"Google {what} response was not JSON.", resp.status_code) from e
    if not isinstance(data, dict):
        raise GoogleOAuthError(f"Google {what} response was not an object.", resp.status_code)
    return data


async def _exchange_code(
    client: httpx.AsyncClient,
    settings: "Settings",
    code: str,
    timeout: float,
) -> str:
    """Trade the authorization code for an access token."""
    client_id, client_secret = _credentials(settings)
    resp = await client.post(
        GOOGLE_TOKEN_URL,
        data={
            "code": code,
            "client_id": client_id,
            "client_secret": client_secret,
            "redirect_uri": settings.google_redirect_uri,
            "grant_type": "authorization_code",
        },
        timeout=timeout,
    )
    if resp.status_code >= 400:
        raise GoogleOAuthError(f"Google token exchange failed ({resp.status_code}).", resp.status_code)
    access_token = _json(resp, "token").get("access_token")
    if not access_token:
        raise GoogleOAuthError("Google token exchange returned no access token.")
    return access_token


async def _fetch_userinfo(client: httpx.AsyncClient, access_token: str, timeout: float) -> GoogleProfile:
    resp = await client.get(
        GOOGLE_USERINFO_URL,
        headers={"Authorization": f"Bearer {access_token}"},
        timeout=timeout,
    )
    if resp.status_code >= 400:
        raise GoogleOAuthError(f"Failed to fetch Google user info ({resp.status_code}).", resp.status_code)
    data = _json(resp, "userinfo")
    email = (data.get("email") or "").strip()
    if not email:
        raise GoogleOAuthError("Google account has no email address.")
    if data.get("email_verified") is False:
        raise GoogleOAuthError("Google account email is not verified.")
    return GoogleProfile(
        email=email,
        given_name=(data.get("given_name") or "User")[:255],
        family_name=(data.get("family_name") or "Google")[:255],
    )


async def fetch_google_profile(settings: "Settings", code: str) -> GoogleProfile:
    """
    Complete the callback: exchange the code, then read the user's profile.
    Raises GoogleOAuthError; transport failures carry status_code 502.
    """
    timeout = settings.GOOGLE_REQUEST_TIMEOUT_SEC
    try:
        async with httpx.AsyncClient() as client:
            access_token = await _exchange_code(client, settings, code, timeout)
            return await _fetch_userinfo(client, access_token, timeout)
    except httpx.HTTPError as e:
        logger.warning("Google OAuth request failed: %s", e)
        raise GoogleOAuthError("Could not reach Google.", 502) from e
