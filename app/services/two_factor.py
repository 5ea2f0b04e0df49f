"""RFC 6238 TOTP helpers for authenticator-app two-factor authentication."""

import base64
import io
from datetime import datetime

import pyotp
import qrcode

# 32 base32 characters = 160 bits, the RFC 4226 recommended secret size.
SECRET_LENGTH = 32


def generate_secret() -> str:
    return pyotp.random_base32(length=SECRET_LENGTH)


def provisioning_uri(secret: str, email: str, issuer: str) -> str:
    """otpauth:// URI understood by Google Authenticator, Authy and friends."""
    return pyotp.TOTP(secret).provisioning_uri(name=email, issuer_name=issuer)


def qr_code_data_url(uri: str) -> str:
    """Render the provisioning URI as a PNG data URL for <img src=...>."""
    image = qrcode.make(uri)
    buffer = io.BytesIO()
    image.save(buffer)
    encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
    return f"data:image/png;base64,{encoded}"


def verify_code(
    secret: str,
    code: str,
    valid_window: int,
    at: datetime | None = None,
) -> bool:
    """
    Check a 6-digit code with 30-second steps.

    valid_window=2 accepts codes up to two steps (about 60 seconds) either side
    of the server clock.
    """
    code = code.strip().replace(" ", "")
    if not code.isdigit():
        return False
    return pyotp.TOTP(secret).verify(code, for_time=at, valid_window=valid_window)
