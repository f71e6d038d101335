"""FastAPI dependencies."""

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from freshtrio.config import settings
from freshtrio.core.exceptions import TokenDecodeException
from freshtrio.database import get_db
from freshtrio.schemas.users import Role
from freshtrio.services.auth_service import AuthService
from freshtrio.services.identity_reconciler import IdentityReconciler
from freshtrio.services.product_service import ProductService
from freshtrio.services.session_issuer import SessionIssuer
from freshtrio.services.token_verifier import (
    FirebaseTokenVerifier,
    GoogleTokenVerifier,
    TokenVerifier,
)
from freshtrio.services.user_service import UserService

# Security
security = HTTPBearer()


def get_session_issuer() -> SessionIssuer:
    """Session issuer built from settings."""
    return SessionIssuer.from_settings(settings)


def get_firebase_verifier() -> TokenVerifier:
    """Firebase ID token verifier."""
    return FirebaseTokenVerifier()


def get_google_verifier() -> TokenVerifier:
    """Google ID token verifier."""
    return GoogleTokenVerifier(settings.google_client_id)


def get_identity_reconciler(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> IdentityReconciler:
    """Identity reconciler bound to the request's session."""
    return IdentityReconciler(UserService(db))


def get_auth_service(
    reconciler: Annotated[IdentityReconciler, Depends(get_identity_reconciler)],
    session_issuer: Annotated[SessionIssuer, Depends(get_session_issuer)],
) -> AuthService:
    """Auth service for password flows, refresh and logout."""
    return AuthService(reconciler, session_issuer)


def get_firebase_auth_service(
    reconciler: Annotated[IdentityReconciler, Depends(get_identity_reconciler)],
    session_issuer: Annotated[SessionIssuer, Depends(get_session_issuer)],
    verifier: Annotated[TokenVerifier, Depends(get_firebase_verifier)],
) -> AuthService:
    """Auth service that verifies Firebase ID tokens."""
    return AuthService(reconciler, session_issuer, verifier)


def get_google_auth_service(
    reconciler: Annotated[IdentityReconciler, Depends(get_identity_reconciler)],
    session_issuer: Annotated[SessionIssuer, Depends(get_session_issuer)],
    verifier: Annotated[TokenVerifier, Depends(get_google_verifier)],
) -> AuthService:
    """Auth service that verifies Google ID tokens."""
    return AuthService(reconciler, session_issuer, verifier)


def get_product_service(db: Annotated[AsyncSession, Depends(get_db)]) -> ProductService:
    """Product service bound to the request's session."""
    return ProductService(db)


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
    session_issuer: Annotated[SessionIssuer, Depends(get_session_issuer)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    """
    Resolve the user behind a bearer session token.

    Raises:
        HTTPException: If the token is invalid or the user no longer exists
    """
    try:
        claims = session_issuer.validate(credentials.credentials)
    except TokenDecodeException:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = await UserService(db).get_user_by_email(claims.subject)

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return user


async def get_current_admin(
    user: Annotated[dict, Depends(get_current_user)],
) -> dict:
    """
    Require the current user to be an admin.

    Raises:
        HTTPException: If the user is not an admin
    """
    if user["role"] != Role.ADMIN.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin role required",
        )

    return user


# Type aliases for dependency injection
CurrentUser = Annotated[dict, Depends(get_current_user)]
CurrentAdmin = Annotated[dict, Depends(get_current_admin)]
