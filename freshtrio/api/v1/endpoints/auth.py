"""Authentication endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Header, status

from freshtrio.dependencies import (
    get_auth_service,
    get_firebase_auth_service,
    get_google_auth_service,
)
from freshtrio.schemas.auth import (
    AuthResponse,
    ClientProfile,
    FirebaseAuthRequest,
    GoogleAuthRequest,
    LoginRequest,
    RegisterRequest,
)
from freshtrio.services.auth_service import AuthService

router = APIRouter()


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_200_OK,
    summary="Register with email and password",
)
async def register(
    request: RegisterRequest,
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
) -> AuthResponse:
    """
    Create a customer account and return a session token.

    Raises:
        ConflictException: If the email is already registered (409)
    """
    return await auth_service.register(request)


@router.post(
    "/login",
    response_model=AuthResponse,
    status_code=status.HTTP_200_OK,
    summary="Log in with email and password",
)
async def login(
    request: LoginRequest,
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
) -> AuthResponse:
    """Return a session token for valid credentials."""
    return await auth_service.login(request.email, request.password)


@router.post(
    "/google",
    response_model=AuthResponse,
    status_code=status.HTTP_200_OK,
    summary="Google Sign-In",
)
async def google_auth(
    request: GoogleAuthRequest,
    auth_service: Annotated[AuthService, Depends(get_google_auth_service)],
) -> AuthResponse:
    """
    Verify a Google ID token and return a session token.

    The client's first/last name is used only when the token carries no name.
    """
    profile = ClientProfile(
        first_name=request.first_name,
        last_name=request.last_name,
        picture_url=request.picture_url,
    )
    return await auth_service.federated_login(request.id_token, profile)


@router.post(
    "/firebase",
    response_model=AuthResponse,
    status_code=status.HTTP_200_OK,
    summary="Firebase ID token sign-in",
)
async def firebase_auth(
    request: FirebaseAuthRequest,
    auth_service: Annotated[AuthService, Depends(get_firebase_auth_service)],
) -> AuthResponse:
    """
    Verify a Firebase ID token from the mobile app and return a session token.

    Works for every provider configured in Firebase (Google, Facebook, Apple,
    email link); the user is matched by email.
    """
    return await auth_service.federated_login(request.id_token)


@router.post(
    "/refresh",
    response_model=AuthResponse,
    status_code=status.HTTP_200_OK,
    summary="Refresh session token",
)
async def refresh_token(
    authorization: Annotated[str, Header()],
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
) -> AuthResponse:
    """Exchange the bearer token for a new one."""
    return await auth_service.refresh(authorization)


@router.post(
    "/logout",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Log out",
)
async def logout(
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
    authorization: Annotated[str | None, Header()] = None,
) -> None:
    """
    Log out. Always succeeds.

    Tokens are not revoked; the client discards its token and it expires.
    """
    auth_service.logout(authorization)
