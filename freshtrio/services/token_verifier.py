"""Adapters that turn identity-provider tokens into verified claim sets."""

import asyncio
from typing import Protocol

import structlog
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token

from freshtrio.core.exceptions import UpstreamVerificationException
from freshtrio.core.firebase import verify_firebase_token
from freshtrio.schemas.auth import ClaimSet

logger = structlog.get_logger(__name__)

DEFAULT_PROVIDER_NAME = "email"


class TokenVerifier(Protocol):
    """Verify an opaque identity token against a trusted provider."""

    async def verify(self, raw_token: str) -> ClaimSet:
        """Return the verified claims or raise UpstreamVerificationException."""
        ...


def firebase_provider_name(decoded_token: dict) -> str:
    """
    Pick the sign-in provider out of a decoded Firebase token.

    Uses ``firebase.sign_in_provider`` when present, otherwise the first key
    of ``firebase.identities``, otherwise the ``email`` fallback.
    """
    firebase_claims = decoded_token.get("firebase")
    if not isinstance(firebase_claims, dict):
        return DEFAULT_PROVIDER_NAME

    sign_in_provider = firebase_claims.get("sign_in_provider")
    if isinstance(sign_in_provider, str) and sign_in_provider:
        return sign_in_provider

    identities = firebase_claims.get("identities")
    if isinstance(identities, dict):
        for provider in identities:
            return provider

    return DEFAULT_PROVIDER_NAME


class FirebaseTokenVerifier:
    """Verify Firebase ID tokens with the Admin SDK."""

    async def verify(self, raw_token: str) -> ClaimSet:
        """
        Verify a Firebase ID token.

        Raises:
            UpstreamVerificationException: If the token cannot be verified
        """
        try:
            decoded_token = await verify_firebase_token(raw_token)
        except ValueError as e:
            raise UpstreamVerificationException(str(e))

        return ClaimSet(
            subject_id=decoded_token["uid"],
            email=decoded_token.get("email"),
            display_name=decoded_token.get("name"),
            phone_number=decoded_token.get("phone_number"),
            provider_name=firebase_provider_name(decoded_token),
        )


class GoogleTokenVerifier:
    """Verify Google Sign-In ID tokens issued for our OAuth client."""

    PROVIDER_NAME = "google.com"

    def __init__(self, client_id: str | None):
        """Initialize verifier with the expected audience."""
        self.client_id = client_id

    async def verify(self, raw_token: str) -> ClaimSet:
        """
        Verify a Google ID token.

        Raises:
            UpstreamVerificationException: If the token cannot be verified or
                Google Sign-In is not configured
        """
        if not self.client_id:
            raise UpstreamVerificationException("Google Sign-In is not configured")

        try:
            # Fetches Google's signing certificates over HTTP
            claims = await asyncio.to_thread(
                id_token.verify_oauth2_token,
                raw_token,
                google_requests.Request(),
                audience=self.client_id,
                clock_skew_in_seconds=10,
            )
        except Exception as e:
            logger.warning("google_token_invalid", error=str(e))
            raise UpstreamVerificationException(f"Invalid Google ID token: {e!s}")

        return ClaimSet(
            subject_id=claims["sub"],
            email=claims.get("email"),
            display_name=claims.get("name"),
            phone_number=None,
            provider_name=self.PROVIDER_NAME,
        )
