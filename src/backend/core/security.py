"""Security utilities for organizer tokens and one-time codes.

Organizer sessions are issued by an external service; this module only
validates their JWTs. One-time codes are drawn from a CSPRNG because the
code is the sole factor proving control of a contact channel.
"""

import secrets
import string
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

from core.config import settings

# Token issuer and audience for validation
TOKEN_ISSUER = "civicvote-sessions"
TOKEN_AUDIENCE = "civicvote-api"

ORGANIZER_ROLE = "organizer"


def create_access_token(
    data: dict[str, Any],
    expires_delta: timedelta | None = None,
) -> str:
    """
    Create a JWT access token with standard claims.

    Organizer tokens are issued by the external session service; the API
    never calls this. It mints tokens in the same claim layout for tests
    and local tooling.
    """
    to_encode = data.copy()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=30))
    to_encode.update(
        {
            "exp": expire,
            "iat": now,
            "type": "access",
            "iss": TOKEN_ISSUER,
            "aud": TOKEN_AUDIENCE,
            "jti": secrets.token_urlsafe(16),
        }
    )
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str, expected_type: str | None = None) -> dict[str, Any] | None:
    """
    Decode and validate a JWT token.

    Args:
        token: The JWT token to decode
        expected_type: If provided, validates the token type matches

    Returns:
        The decoded payload or None if invalid
    """
    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM],
            issuer=TOKEN_ISSUER,
            audience=TOKEN_AUDIENCE,
        )
        if expected_type and payload.get("type") != expected_type:
            return None
        return payload
    except JWTError:
        return None


def generate_numeric_code(length: int = 6) -> str:
    """Generate a uniformly random numeric code (leading zeros allowed)."""
    return "".join(secrets.choice(string.digits) for _ in range(length))


def mask_value(value: str | None, visible: int = 3) -> str:
    """Mask an identifier or contact for log output."""
    if not value:
        return ""
    return value[:visible] + "***"
