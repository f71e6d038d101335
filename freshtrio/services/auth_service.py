"""Authentication service for password, Google and Firebase sign-in."""

import structlog

from freshtrio.core.exceptions import NotFoundException
from freshtrio.schemas.auth import (
    AuthResponse,
    ClientProfile,
    RegisterRequest,
    UserSummary,
)
from freshtrio.services.identity_reconciler import IdentityReconciler
from freshtrio.services.session_issuer import SessionIssuer
from freshtrio.services.token_verifier import TokenVerifier

logger = structlog.get_logger(__name__)


def to_user_summary(user: dict) -> UserSummary:
    """Build the user summary returned with a session token."""
    return UserSummary(
        id=user["id"],
        email=user["email"],
        first_name=user.get("first_name"),
        last_name=user.get("last_name"),
        role=str(user["role"]).lower(),
    )


class AuthService:
    """Sequence verification, reconciliation and token issuing per request."""

    def __init__(
        self,
        reconciler: IdentityReconciler,
        session_issuer: SessionIssuer,
        token_verifier: TokenVerifier | None = None,
    ):
        """Initialize auth service with its collaborators."""
        self.reconciler = reconciler
        self.session_issuer = session_issuer
        self.token_verifier = token_verifier

    async def register(self, request: RegisterRequest) -> AuthResponse:
        """
        Register a new email/password user and sign them in.

        Raises:
            ConflictException: If the email is already registered
        """
        user = await self.reconciler.reconcile_by_email_password(
            request.email, request.password, request
        )
        return self._respond(user)

    async def login(self, email: str, password: str) -> AuthResponse:
        """
        Sign in with email and password.

        Raises:
            NotFoundException: If the email is unknown
            InvalidCredentialsException: If the password does not match
        """
        user = await self.reconciler.reconcile_by_password_login(email, password)
        logger.info("user_logged_in", user_id=str(user["id"]), method="password")
        return self._respond(user)

    async def federated_login(
        self, id_token: str, client_profile: ClientProfile | None = None
    ) -> AuthResponse:
        """
        Sign in with an identity-provider token.

        Raises:
            UpstreamVerificationException: If the provider rejects the token
            MissingEmailException: If the verified claims carry no email
        """
        if self.token_verifier is None:
            raise RuntimeError("AuthService was built without a token verifier")

        claims = await self.token_verifier.verify(id_token)
        user = await self.reconciler.reconcile_by_federated_claim(claims, client_profile)
        logger.info(
            "user_logged_in",
            user_id=str(user["id"]),
            method="federated",
            provider_name=claims.provider_name,
        )
        return self._respond(user)

    async def refresh(self, token: str) -> AuthResponse:
        """
        Exchange a current or recently expired token for a fresh one.

        Raises:
            TokenDecodeException: If the token is invalid or too old
            NotFoundException: If the token's user no longer exists
        """
        claims = self.session_issuer.decode_for_refresh(token)

        user = await self.reconciler.users.get_user_by_email(claims.subject)
        if user is None:
            raise NotFoundException("User not found")

        return self._respond(user)

    def logout(self, token: str | None = None) -> None:
        """
        Log out.

        Session tokens are stateless and there is no revocation store, so
        this always succeeds and the token stays usable until it expires.
        """
        logger.info("user_logged_out", token_presented=token is not None)

    def _respond(self, user: dict) -> AuthResponse:
        return AuthResponse(
            access_token=self.session_issuer.issue(user),
            user=to_user_summary(user),
        )
