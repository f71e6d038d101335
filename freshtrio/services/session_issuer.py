"""Session token issuing and validation."""

from datetime import UTC, datetime, timedelta
from typing import Any

import structlog
from jose import JWTError

from freshtrio.config import Settings
from freshtrio.core.exceptions import TokenDecodeException
from freshtrio.core.security import create_access_token, decode_token, strip_bearer_prefix
from freshtrio.schemas.auth import TokenClaims
from freshtrio.schemas.users import Role

logger = structlog.get_logger(__name__)


class SessionIssuer:
    """Issue and check HS256 session tokens for reconciled users."""

    def __init__(
        self,
        secret_key: str,
        issuer: str = "freshtrio-api",
        ttl: timedelta = timedelta(hours=24),
        refresh_grace: timedelta = timedelta(hours=24),
    ):
        """Initialize issuer with signing configuration."""
        self.secret_key = secret_key
        self.issuer = issuer
        self.ttl = ttl
        self.refresh_grace = refresh_grace

    @classmethod
    def from_settings(cls, settings: Settings) -> "SessionIssuer":
        """Build an issuer from application settings."""
        return cls(
            secret_key=settings.jwt_secret_key,
            issuer=settings.jwt_issuer,
            ttl=timedelta(seconds=settings.jwt_expiration_seconds),
            refresh_grace=timedelta(seconds=settings.refresh_grace_seconds),
        )

    def issue(self, user: dict) -> str:
        """
        Create a signed session token for a user.

        Args:
            user: User row with ``email``, ``role`` and ``provider_subject_id``

        Returns:
            Compact JWT string
        """
        return create_access_token(
            data={
                "iss": self.issuer,
                "sub": user["email"],
                "role": Role(user["role"]).value,
                "provider_subject_id": user.get("provider_subject_id"),
            },
            secret_key=self.secret_key,
            expires_delta=self.ttl,
        )

    def validate(self, token: str) -> TokenClaims:
        """
        Decode a session token, rejecting expired ones.

        Raises:
            TokenDecodeException: If the token is malformed, forged or expired
        """
        return self._to_claims(self._decode(token))

    def is_valid(self, token: str) -> bool:
        """Return True for a well-formed, correctly signed, unexpired token."""
        try:
            expires_at = self._expires_at(self._decode(token, verify_exp=False))
        except TokenDecodeException:
            return False
        return expires_at >= datetime.now(UTC)

    def is_expired(self, token: str) -> bool:
        """Return True for an expired token; undecodable tokens count as expired."""
        try:
            expires_at = self._expires_at(self._decode(token, verify_exp=False))
        except TokenDecodeException:
            return True
        return expires_at < datetime.now(UTC)

    def extract_subject(self, token: str) -> str:
        """Return the subject (email) of a valid token."""
        return self.validate(token).subject

    def extract_role(self, token: str) -> Role:
        """Return the role of a valid token."""
        return self.validate(token).role

    def decode_for_refresh(self, token: str) -> TokenClaims:
        """
        Decode a token presented for refresh.

        The token must be correctly signed and either unexpired or expired
        for less than the refresh grace window.

        Raises:
            TokenDecodeException: If the token is invalid or too old
        """
        payload = self._decode(token, verify_exp=False)
        claims = self._to_claims(payload)

        if claims.expires_at + self.refresh_grace < datetime.now(UTC):
            logger.info("refresh_rejected_stale_token", subject=claims.subject)
            raise TokenDecodeException("Token expired beyond the refresh window")

        return claims

    def _decode(self, token: str, verify_exp: bool = True) -> dict[str, Any]:
        try:
            return decode_token(
                strip_bearer_prefix(token),
                self.secret_key,
                issuer=self.issuer,
                verify_exp=verify_exp,
            )
        except JWTError as e:
            logger.debug("session_token_rejected", error=str(e))
            raise TokenDecodeException(f"Invalid token: {e!s}")

    @staticmethod
    def _expires_at(payload: dict[str, Any]) -> datetime:
        exp = payload.get("exp")
        if not isinstance(exp, int | float):
            raise TokenDecodeException("Token has no expiry")
        return datetime.fromtimestamp(exp, UTC)

    def _to_claims(self, payload: dict[str, Any]) -> TokenClaims:
        subject = payload.get("sub")
        if not subject:
            raise TokenDecodeException("Token has no subject")

        try:
            role = Role(payload.get("role"))
        except ValueError:
            raise TokenDecodeException("Token carries an unknown role")

        return TokenClaims(
            subject=subject,
            role=role,
            expires_at=self._expires_at(payload),
            provider_subject_id=payload.get("provider_subject_id"),
        )
