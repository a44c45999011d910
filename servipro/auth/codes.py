"""
Random credential generation.

Both generators draw from the OS CSPRNG via `secrets`.
"""

import hmac
import re
import secrets
from typing import Optional

CODE_MIN = 100000
CODE_MAX = 999999
REFRESH_TOKEN_BYTES = 40

PHONE_PATTERN = re.compile(r"^\+[1-9]\d{9,14}$")


def generate_verification_code() -> str:
    """Uniform 6-digit code in 100000-999999."""
    return str(CODE_MIN + secrets.randbelow(CODE_MAX - CODE_MIN + 1))


def generate_refresh_token() -> str:
    """Opaque refresh token: 40 random bytes, hex encoded (80 chars)."""
    return secrets.token_hex(REFRESH_TOKEN_BYTES)


def codes_match(expected: str, received: str) -> bool:
    """Constant-time string comparison."""
    return hmac.compare_digest(expected.encode("utf-8"), received.encode("utf-8"))


def normalize_phone(phone: Optional[str]) -> Optional[str]:
    """
    Normalize an E.164 phone number.

    Strips surrounding and inner whitespace and lower-cases it, so the same
    number always maps to the same stored key.

    Returns:
        Normalized phone, or None if it is not a valid E.164 number

    Examples:
        normalize_phone(" +34600111222 ") -> "+34600111222"
        normalize_phone("+34 600 111 222") -> "+34600111222"
        normalize_phone("600111222") -> None
    """
    if not phone:
        return None

    cleaned = "".join(phone.split()).lower()
    if not PHONE_PATTERN.match(cleaned):
        return None
    return cleaned
