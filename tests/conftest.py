"""Test environment: fast bcrypt, no rate limiting, emails logged instead of sent."""

import os

os.environ.setdefault("APP_ENV", "dev")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("EMAIL_ENABLED", "false")
