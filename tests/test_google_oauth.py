"""Google OAuth client: consent URL, code exchange and userinfo over a mocked httpx.AsyncClient."""

import asyncio
import inspect
import unittest
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch
from urllib.parse import parse_qs, urlparse

import httpx

from app.core.config import Settings
from app.services import google_oauth
from app.services.google_oauth import (
    GoogleOAuthError,
    GoogleOAuthNotConfiguredError,
    authorization_url,
    fetch_google_profile,
)


def _settings(**overrides: Any) -> Settings:
    values: dict[str, Any] = {
        "GOOGLE_CLIENT_ID": "client-id",
        "GOOGLE_CLIENT_SECRET": "client-secret",
        "GOOGLE_REDIRECT_URI": None,
        "FRONTEND_URL": "https://ironledgermedmap.com",
    }
    values.update(overrides)
    return Settings(**values)


def _response(status_code: int, body: Any) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = body
    return resp


def _async(behaviour: Any) -> AsyncMock:
    """An async coroutine function is used as the side effect, anything else as the result."""
    if inspect.iscoroutinefunction(behaviour):
        return AsyncMock(side_effect=behaviour)
    return AsyncMock(return_value=behaviour)


def _mock_client(mock_client_class: MagicMock, post: Any, get: Any) -> MagicMock:
    mock_instance = MagicMock()
    mock_instance.post = _async(post)
    mock_instance.get = _async(get)
    mock_client_class.return_value.__aenter__ = AsyncMock(return_value=mock_instance)
    mock_client_class.return_value.__aexit__ = AsyncMock(return_value=None)
    return mock_instance


USERINFO = {
    "email": "Thandi@Gmail.com",
    "email_verified": True,
    "given_name": "Thandi",
    "family_name": "Nkosi",
}


class TestAuthorizationUrl(unittest.TestCase):
    def test_carries_client_state_and_scopes(self) -> None:
        url = authorization_url(_settings(), "abc123")
        parsed = urlparse(url)
        self.assertEqual(f"{parsed.scheme}://{parsed.netloc}{parsed.path}", google_oauth.GOOGLE_AUTH_URL)
        query = {k: v[0] for k, v in parse_qs(parsed.query).items()}
        self.assertEqual(
            query,
            {
                "client_id": "client-id",
                "redirect_uri": "https://ironledgermedmap.com/api/auth/google/callback",
                "response_type": "code",
                "scope": "openid email profile",
                "state": "abc123",
                "access_type": "offline",
                "include_granted_scopes": "true",
            },
        )

    def test_requires_configuration(self) -> None:
        with self.assertRaises(GoogleOAuthNotConfiguredError):
            authorization_url(_settings(GOOGLE_CLIENT_SECRET=None), "abc123")

    def test_state_is_random_hex(self) -> None:
        a, b = google_oauth.generate_state(), google_oauth.generate_state()
        self.assertEqual(len(a), 32)
        int(a, 16)
        self.assertNotEqual(a, b)


class TestFetchGoogleProfile(unittest.TestCase):
    @patch("app.services.google_oauth.httpx.AsyncClient")
    def test_exchanges_code_then_reads_userinfo(self, mock_client_class: MagicMock) -> None:
        captured: dict[str, Any] = {}

        async def fake_post(url: str, **kwargs: Any) -> MagicMock:
            captured["token_url"] = url
            captured["form"] = kwargs.get("data")
            return _response(200, {"access_token": "ya29.token"})

        async def fake_get(url: str, **kwargs: Any) -> MagicMock:
            captured["userinfo_url"] = url
            captured["headers"] = kwargs.get("headers")
            return _response(200, USERINFO)

        _mock_client(mock_client_class, fake_post, fake_get)
        profile = asyncio.run(fetch_google_profile(_settings(), "auth-code"))

        self.assertEqual(profile.email, "Thandi@Gmail.com")
        self.assertEqual((profile.given_name, profile.family_name), ("Thandi", "Nkosi"))
        self.assertEqual(captured["token_url"], google_oauth.GOOGLE_TOKEN_URL)
        self.assertEqual(
            captured["form"],
            {
                "code": "auth-code",
                "client_id": "client-id",
                "client_secret": "client-secret",
                "redirect_uri": "https://ironledgermedmap.com/api/auth/google/callback",
                "grant_type": "authorization_code",
            },
        )
        self.assertEqual(captured["userinfo_url"], google_oauth.GOOGLE_USERINFO_URL)
        self.assertEqual(captured["headers"], {"Authorization": "Bearer ya29.token"})

    @patch("app.services.google_oauth.httpx.AsyncClient")
    def test_missing_names_get_defaults(self, mock_client_class: MagicMock) -> None:
        _mock_client(
            mock_client_class,
            _response(200, {"access_token": "t"}),
            _response(200, {"email": "x@gmail.com"}),
        )
        profile = asyncio.run(fetch_google_profile(_settings(), "auth-code"))
        self.assertEqual((profile.given_name, profile.family_name), ("User", "Google"))

    @patch("app.services.google_oauth.httpx.AsyncClient")
    def test_rejected_code(self, mock_client_class: MagicMock) -> None:
        client = _mock_client(
            mock_client_class,
            _response(400, {"error": "invalid_grant"}),
            _response(200, USERINFO),
        )
        with self.assertRaises(GoogleOAuthError) as ctx:
            asyncio.run(fetch_google_profile(_settings(), "stale-code"))
        self.assertEqual(ctx.exception.status_code, 400)
        client.get.assert_not_called()

    @patch("app.services.google_oauth.httpx.AsyncClient")
    def test_token_response_without_access_token(self, mock_client_class: MagicMock) -> None:
        _mock_client(mock_client_class, _response(200, {}), _response(200, USERINFO))
        with self.assertRaises(GoogleOAuthError) as ctx:
            asyncio.run(fetch_google_profile(_settings(), "auth-code"))
        self.assertIn("no access token", ctx.exception.message)

    @patch("app.services.google_oauth.httpx.AsyncClient")
    def test_userinfo_without_email_or_unverified(self, mock_client_class: MagicMock) -> None:
        for body in ({"given_name": "Thandi"}, {**USERINFO, "email_verified": False}):
            with self.subTest(body=body):
                _mock_client(mock_client_class, _response(200, {"access_token": "t"}), _response(200, body))
                with self.assertRaises(GoogleOAuthError):
                    asyncio.run(fetch_google_profile(_settings(), "auth-code"))

    @patch("app.services.google_oauth.httpx.AsyncClient")
    def test_unreachable_google_is_502(self, mock_client_class: MagicMock) -> None:
        async def fake_post(url: str, **kwargs: Any) -> MagicMock:
            raise httpx.ConnectError("connection refused")

        _mock_client(mock_client_class, fake_post, _response(200, USERINFO))
        with self.assertLogs("app.services.google_oauth", level="WARNING"):
            with self.assertRaises(GoogleOAuthError) as ctx:
                asyncio.run(fetch_google_profile(_settings(), "auth-code"))
        self.assertEqual(ctx.exception.status_code, 502)


if __name__ == "__main__":
    unittest.main()
