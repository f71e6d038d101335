"""Firebase Admin SDK bootstrap and ID token verification."""

import asyncio
import json
import os

import firebase_admin
from firebase_admin import auth, credentials
from structlog import get_logger

logger = get_logger(__name__)

# Tolerated clock difference between the mobile client, Google and this host
CLOCK_SKEW_SECONDS = 10

_firebase_app: firebase_admin.App | None = None


def _load_credentials(
    firebase_config_json: str | None, firebase_credentials_path: str | None
) -> credentials.Base | None:
    """Service-account credentials from inline JSON or a file, or None for ADC."""
    if firebase_config_json:
        logger.info("firebase_credentials_source", source="json")
        return credentials.Certificate(json.loads(firebase_config_json))

    if firebase_credentials_path:
        if os.path.exists(firebase_credentials_path):
            logger.info("firebase_credentials_source", source="file")
            return credentials.Certificate(firebase_credentials_path)
        logger.warning("firebase_credentials_file_missing", path=firebase_credentials_path)

    return None


def initialize_firebase(
    firebase_credentials_path: str | None = None, firebase_config_json: str | None = None
) -> None:
    """
    Create the Admin SDK app once per process.

    Inline JSON (FIREBASE_CONFIG_JSON) wins over a file path
    (FIREBASE_CREDENTIALS_PATH); with neither, Application Default
    Credentials are used.

    Raises:
        Exception: Whatever the SDK raises for unusable credentials
    """
    global _firebase_app

    if _firebase_app is not None:
        return

    cred = _load_credentials(firebase_config_json, firebase_credentials_path)
    try:
        _firebase_app = (
            firebase_admin.initialize_app(cred) if cred else firebase_admin.initialize_app()
        )
    except Exception as e:
        logger.error("firebase_init_error", error=str(e))
        raise

    logger.info("firebase_app_created", default_credentials=cred is None)


def is_firebase_initialized() -> bool:
    """Return whether the Admin SDK app has been created."""
    return _firebase_app is not None


async def verify_firebase_token(id_token: str) -> dict:
    """
    Verify a Firebase ID token and return its decoded claims.

    The SDK call may fetch Google's signing certificates, so it runs in a
    worker thread.

    Raises:
        ValueError: If the token is invalid or expired, or verification
            could not be carried out
    """
    try:
        decoded_token = await asyncio.to_thread(
            auth.verify_id_token, id_token, clock_skew_seconds=CLOCK_SKEW_SECONDS
        )
    except auth.ExpiredIdTokenError as e:
        logger.info("firebase_token_expired")
        raise ValueError(f"Firebase ID token expired: {e!s}")
    except auth.InvalidIdTokenError as e:
        logger.warning("firebase_token_invalid", error=str(e))
        raise ValueError(f"Invalid Firebase ID token: {e!s}")
    except Exception as e:
        logger.error("firebase_verification_error", error=str(e))
        raise ValueError(f"Token verification failed: {e!s}")

    logger.debug("firebase_token_verified", uid=decoded_token.get("uid"))
    return decoded_token
