"""
Bearer token issuing and decoding (HS256 via PyJWT).
"""

from datetime import UTC, datetime, timedelta

import jwt

from app.config import settings
from app.models.domain.user_domain import User

SECRET_MIN_LENGTH = 16  # catch obvious misconfiguration


class AuthConfigurationError(RuntimeError):
    """Raised when token signing prerequisites are not satisfied."""


def _secret() -> str:
    secret = settings.JWT_SECRET
    if not secret:
        raise AuthConfigurationError("JWT_SECRET is not configured")
    if len(secret) < SECRET_MIN_LENGTH:
        raise AuthConfigurationError("JWT_SECRET is too short; please rotate it")
    return secret


def ensure_signing_secret() -> None:
    """Fail fast when tokens could not be issued, before any user is written."""
    _secret()


def issue_token(user: User) -> str:
    now = datetime.now(UTC)
    claims = {
        "sub": user.id,
        "email": user.email,
        "role": user.role,
        "iat": now,
        "exp": now + timedelta(minutes=settings.JWT_EXPIRES_MINUTES),
    }
    return jwt.encode(claims, _secret(), algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> dict:
    """Return the claims of a valid token; raises jwt.PyJWTError otherwise."""
    return jwt.decode(
        token,
        _secret(),
        algorithms=[settings.JWT_ALGORITHM],
        options={"verify_exp": True, "require": ["sub", "exp"]},
    )
