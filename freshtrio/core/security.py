"""Security utilities for JWT and password handling."""

from datetime import UTC, datetime, timedelta
from typing import Any

from jose import jwt
from passlib.context import CryptContext

# Single supported signing algorithm, never negotiated from the token header
JWT_ALGORITHM = "HS256"

BEARER_PREFIX = "Bearer "

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against a hash."""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash a password."""
    return pwd_context.hash(password)


def dummy_verify_password() -> None:
    """Spend the same time as a real verification when there is no hash to check."""
    pwd_context.dummy_verify()


def strip_bearer_prefix(token: str) -> str:
    """Remove a leading ``Bearer `` scheme if present."""
    if token.startswith(BEARER_PREFIX):
        return token[len(BEARER_PREFIX) :]
    return token


def create_access_token(
    data: dict[str, Any],
    secret_key: str,
    expires_delta: timedelta,
) -> str:
    """
    Create a JWT access token.

    Args:
        data: Payload data to encode
        secret_key: HMAC signing secret
        expires_delta: Lifetime of the token, may be negative

    Returns:
        Encoded JWT token
    """
    to_encode = data.copy()
    now = datetime.now(UTC)

    to_encode.update(
        {
            "exp": now + expires_delta,
            "iat": now,
        }
    )

    return jwt.encode(to_encode, secret_key, algorithm=JWT_ALGORITHM)


def decode_token(
    token: str,
    secret_key: str,
    issuer: str,
    verify_exp: bool = True,
) -> dict[str, Any]:
    """
    Decode a JWT and verify its signature and issuer.

    Args:
        token: JWT token to decode
        secret_key: HMAC signing secret
        issuer: Expected ``iss`` claim
        verify_exp: Whether an expired token is rejected

    Returns:
        Decoded payload

    Raises:
        jose.JWTError: If the token is malformed, forged or expired
    """
    return jwt.decode(
        token,
        secret_key,
        algorithms=[JWT_ALGORITHM],
        issuer=issuer,
        options={"verify_exp": verify_exp},
    )
