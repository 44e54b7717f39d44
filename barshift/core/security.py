"""Bearer token handling for staff authentication."""

from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID

from jose import JWTError, jwt

from barshift.config import settings

TOKEN_TYPE = "access"


def create_access_token(
    subject: UUID | str,
    expires_delta: timedelta | None = None,
    **claims: Any,
) -> str:
    """
    Mint an access token for a staff member.

    Tokens are normally issued by the identity provider; this helper mints
    compatible ones for scripts and tests.

    Args:
        subject: Staff member id placed in the ``sub`` claim
        expires_delta: Lifetime, defaults to the configured expiry
        **claims: Extra claims such as ``email``

    Returns:
        Encoded JWT
    """
    issued_at = datetime.now(UTC)
    lifetime = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    payload = {
        **claims,
        "sub": str(subject),
        "iat": issued_at,
        "exp": issued_at + lifetime,
        "type": TOKEN_TYPE,
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict[str, Any] | None:
    """
    Verify a bearer token and return its claims.

    Returns:
        Claims, or None if the signature, expiry or token type is wrong
    """
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None
    if payload.get("type") != TOKEN_TYPE:
        return None
    return payload
