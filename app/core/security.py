"""
Security Primitives

Password hashing (Argon2id via argon2-cffi) and bearer token
issuance/verification (HS256 JWT via PyJWT). Tokens carry only the
user id in ``sub``; there is no server-side session store, so a token
is valid for exactly as long as its signature and ``exp`` say so.
"""

import logging
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Optional

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

from app.core.config import get_settings
from app.core.exceptions import UnauthorizedError

logger = logging.getLogger(__name__)


@lru_cache()
def get_password_hasher() -> PasswordHasher:
    """Argon2id hasher: time_cost=2, memory_cost=64MB, parallelism=4."""
    return PasswordHasher(
        time_cost=2,
        memory_cost=65536,
        parallelism=4,
        hash_len=32,
        salt_len=16,
    )


def hash_password(password: str) -> str:
    """
    Hash a password with a random salt.

    Returns the encoded hash, e.g.
        $argon2id$v=19$m=65536,t=2,p=4$saltbase64$hashbase64
    """
    return get_password_hasher().hash(password)


def verify_password(password_hash: str, password: str) -> bool:
    """Return True if ``password`` matches ``password_hash``."""
    try:
        return get_password_hasher().verify(password_hash, password)
    except (VerificationError, InvalidHashError):
        return False


def create_access_token(
    user_id: int,
    expires_minutes: Optional[int] = None,
) -> str:
    """
    Issue a signed token bound to ``user_id``.

    Args:
        user_id: Subject of the token
        expires_minutes: Override for JWT_EXPIRE_MINUTES (None = use setting)
    """
    settings = get_settings()
    now = datetime.now(timezone.utc)
    lifetime = expires_minutes if expires_minutes is not None else settings.jwt_expire_minutes

    claims = {"sub": str(user_id), "iat": now}
    if lifetime:
        claims["exp"] = now + timedelta(minutes=lifetime)

    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> int:
    """
    Verify a token and return the user id it is bound to.

    Raises:
        UnauthorizedError: Bad signature, expired, or malformed subject
    """
    settings = get_settings()

    try:
        claims = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["sub"]},
        )
    except jwt.ExpiredSignatureError:
        raise UnauthorizedError("Token expired, login again")
    except jwt.InvalidTokenError as e:
        logger.debug(f"Rejected token: {e}")
        raise UnauthorizedError()

    try:
        return int(claims["sub"])
    except (TypeError, ValueError):
        raise UnauthorizedError()
