"""Settings validation: production guards and derived values."""

import unittest

from pydantic import ValidationError

from app.core.config import DEFAULT_JWT_SECRET, Settings


class TestSettings(unittest.TestCase):
    def test_prod_refuses_default_jwt_secret(self) -> None:
        with self.assertRaises(ValidationError):
            Settings(APP_ENV="prod", JWT_SECRET=DEFAULT_JWT_SECRET)

    def test_prod_with_real_secret_uses_secure_cookies(self) -> None:
        s = Settings(APP_ENV="prod", JWT_SECRET="a-long-random-secret-value")
        self.assertTrue(s.secure_cookies)
        self.assertFalse(Settings(APP_ENV="dev").secure_cookies)

    def test_explicit_bcrypt_rounds_win(self) -> None:
        self.assertEqual(Settings(BCRYPT_ROUNDS=7).bcrypt_rounds, 7)
        with self.assertRaises(ValidationError):
            Settings(BCRYPT_ROUNDS=3)

    def test_database_url_must_be_postgres(self) -> None:
        with self.assertRaises(ValidationError):
            Settings(DATABASE_URL="sqlite:///medmap.db")
        self.assertEqual(
            Settings(DATABASE_URL=" postgresql://u:p@db:5432/medmap ").DATABASE_URL,
            "postgresql://u:p@db:5432/medmap",
        )

    def test_frontend_url_is_normalised(self) -> None:
        self.assertEqual(
            Settings(FRONTEND_URL="https://ironledgermedmap.com/").FRONTEND_URL,
            "https://ironledgermedmap.com",
        )
        with self.assertRaises(ValidationError):
            Settings(FRONTEND_URL="ftp://ironledgermedmap.com")

    def test_lockout_policy_bounds(self) -> None:
        with self.assertRaises(ValidationError):
            Settings(MAX_LOGIN_ATTEMPTS=0)
        with self.assertRaises(ValidationError):
            Settings(LOCKOUT_MINUTES=0)

    def test_google_oauth_needs_id_and_secret(self) -> None:
        self.assertFalse(Settings(GOOGLE_CLIENT_ID=None, GOOGLE_CLIENT_SECRET=None).google_oauth_enabled)
        self.assertFalse(Settings(GOOGLE_CLIENT_ID="client-id", GOOGLE_CLIENT_SECRET="").google_oauth_enabled)
        self.assertTrue(Settings(GOOGLE_CLIENT_ID="client-id", GOOGLE_CLIENT_SECRET="s3cret").google_oauth_enabled)

    def test_google_redirect_uri_defaults_to_api_callback(self) -> None:
        s = Settings(FRONTEND_URL="https://ironledgermedmap.com/", GOOGLE_REDIRECT_URI=None)
        self.assertEqual(s.google_redirect_uri, "https://ironledgermedmap.com/api/auth/google/callback")
        explicit = Settings(GOOGLE_REDIRECT_URI=" https://auth.example.com/cb ")
        self.assertEqual(explicit.google_redirect_uri, "https://auth.example.com/cb")
        with self.assertRaises(ValidationError):
            Settings(GOOGLE_REDIRECT_URI="javascript:alert(1)")


if __name__ == "__main__":
    unittest.main()
