"""Password hashing, opaque tokens and JWT access tokens."""

import hashlib
import re
import secrets
from datetime import UTC, datetime, timedelta
from functools import lru_cache
from typing import Any

import bcrypt
import jwt

from app.core.config import settings

PASSWORD_MIN_LEN = 8
PASSWORD_MAX_LEN = 128
PASSWORD_SYMBOLS = "@$!%*?&"

# 32 bytes = 256 bits of entropy for refresh, verification and reset tokens.
OPAQUE_TOKEN_BYTES = 32

_SYMBOL_RE = re.compile(f"[{re.escape(PASSWORD_SYMBOLS)}]")


def hash_password(plain_password: str, rounds: int | None = None) -> str:
    """Hash a plain-text password for storage. Do not store plain passwords."""
    # bcrypt has a 72-byte limit; truncate to avoid errors (validation already limits length).
    pw_bytes = plain_password.encode("utf-8")[:72]
    cost = rounds if rounds is not None else settings.bcrypt_rounds
    return bcrypt.hashpw(pw_bytes, bcrypt.gensalt(rounds=cost)).decode("utf-8")


def verify_password(plain_password: str, hashed: str) -> bool:
    """Verify a plain password against a stored hash."""
    pw_bytes = plain_password.encode("utf-8")[:72]
    try:
        return bcrypt.checkpw(pw_bytes, hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


@lru_cache(maxsize=1)
def dummy_password_hash() -> str:
    """Hash checked for unknown emails so they cost the same as a wrong password."""
    return hash_password(secrets.token_hex(16))


def password_policy_violations(password: str) -> list[str]:
    """Return human-readable policy failures; empty when the password is acceptable."""
    problems: list[str] = []
    if len(password) < PASSWORD_MIN_LEN:
        problems.append(f"Password must be at least {PASSWORD_MIN_LEN} characters")
    if len(password) > PASSWORD_MAX_LEN:
        problems.append(f"Password must be at most {PASSWORD_MAX_LEN} characters")
    if not re.search(r"[a-z]", password):
        problems.append("Password must contain a lowercase letter")
    if not re.search(r"[A-Z]", password):
        problems.append("Password must contain an uppercase letter")
    if not re.search(r"\d", password):
        problems.append("Password must contain a number")
    if not _SYMBOL_RE.search(password):
        problems.append(f"Password must contain one of {PASSWORD_SYMBOLS}")
    return problems


def generate_opaque_token() -> str:
    """Cryptographically secure random token, hex encoded."""
    return secrets.token_hex(OPAQUE_TOKEN_BYTES)


def hash_token(token: str) -> str:
    """SHA-256 digest used to persist opaque tokens without storing them."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def create_access_token(user_id: str) -> str:
    """Create a JWT access token with sub (user id), iat and exp."""
    now = datetime.now(UTC)
    expire = now + timedelta(hours=settings.ACCESS_TOKEN_EXPIRE_HOURS)
    payload: dict[str, Any] = {
        "sub": str(user_id),
        "exp": expire,
        "iat": now,
    }
    secret = settings.JWT_SECRET.get_secret_value()
    return jwt.encode(
        payload,
        secret,
        algorithm=settings.JWT_ALGORITHM,
    )


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Decode and validate JWT; return payload (sub, exp, iat).
    Raises jwt.PyJWTError on invalid or expired token.
    """
    secret = settings.JWT_SECRET.get_secret_value()
    return jwt.decode(
        token,
        secret,
        algorithms=[settings.JWT_ALGORITHM],
        options={"require": ["sub", "exp"]},
    )


def verify_access_token(token: str) -> str | None:
    """Return the user id carried by a valid access token, or None."""
    try:
        payload = decode_access_token(token)
    except jwt.PyJWTError:
        return None
    sub = payload.get("sub")
    if not isinstance(sub, str) or not sub:
        return None
    return sub
