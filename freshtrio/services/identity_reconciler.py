"""Identity reconciliation across email/password and federated sign-in."""

from datetime import UTC, datetime

import structlog

from freshtrio.core.exceptions import (
    ConflictException,
    InvalidCredentialsException,
    MissingEmailException,
    NotFoundException,
)
from freshtrio.core.security import dummy_verify_password, get_password_hash, verify_password
from freshtrio.schemas.auth import ClaimSet, ClientProfile, RegisterRequest
from freshtrio.schemas.users import AuthProvider, Role, UserCreate
from freshtrio.services.user_service import UserService

logger = structlog.get_logger(__name__)

# Keys are lower case; raw claims are lower-cased before lookup on every path
PROVIDER_MAP: dict[str, AuthProvider] = {
    "google.com": AuthProvider.GOOGLE,
    "facebook.com": AuthProvider.FACEBOOK,
    "apple.com": AuthProvider.APPLE,
}


def map_provider(provider_name: str | None) -> AuthProvider:
    """Map a raw identity-provider id to the internal vocabulary, defaulting to EMAIL."""
    if not provider_name:
        return AuthProvider.EMAIL
    return PROVIDER_MAP.get(provider_name.strip().lower(), AuthProvider.EMAIL)


def split_display_name(display_name: str | None) -> tuple[str, str] | None:
    """
    Split a full name on the first whitespace run.

    Returns:
        (first_name, last_name) with an empty last name for single-word
        names, or None when there is no usable name.
    """
    if not display_name or not display_name.strip():
        return None

    parts = display_name.strip().split(maxsplit=1)
    return parts[0], parts[1] if len(parts) > 1 else ""


class IdentityReconciler:
    """Map credentials or verified claims to exactly one user per email."""

    def __init__(self, user_service: UserService):
        """Initialize reconciler with the user store."""
        self.users = user_service

    async def reconcile_by_email_password(
        self, email: str, raw_password: str, profile: RegisterRequest
    ) -> dict:
        """
        Create a user for a password registration.

        Registration is create-only: an existing email is a conflict, whether
        the pre-check sees it or the unique index rejects the insert.

        Raises:
            ConflictException: If the email is already registered
        """
        if await self.users.get_user_by_email(email):
            raise ConflictException(f"User already exists with email: {email}")

        user = await self.users.create_user(
            UserCreate(
                email=email,
                password_hash=get_password_hash(raw_password),
                phone=profile.phone,
                first_name=profile.first_name,
                last_name=profile.last_name,
                auth_provider=AuthProvider.EMAIL,
                role=Role.CUSTOMER,
                # Auto-verify policy for password sign-ups
                is_verified=True,
                gdpr_consent=profile.gdpr_consent,
                gdpr_consent_date=datetime.now(UTC),
            )
        )

        logger.info("user_registered", user_id=str(user["id"]), provider=AuthProvider.EMAIL.value)
        return user

    async def reconcile_by_password_login(self, email: str, raw_password: str) -> dict:
        """
        Authenticate an email/password pair without mutating the user.

        Raises:
            NotFoundException: If no user has this email
            InvalidCredentialsException: If the password does not match or
                the account has no password (federated only)
        """
        user = await self.users.get_user_by_email(email)

        if user is None:
            dummy_verify_password()
            raise NotFoundException("User not found")

        password_hash = user.get("password_hash")
        if not password_hash:
            dummy_verify_password()
            raise InvalidCredentialsException()

        if not verify_password(raw_password, password_hash):
            logger.info("password_login_rejected", user_id=str(user["id"]))
            raise InvalidCredentialsException()

        return user

    async def reconcile_by_federated_claim(
        self, claims: ClaimSet, client_profile: ClientProfile | None = None
    ) -> dict:
        """
        Find or create the user behind a verified federated identity.

        An existing user gains a provider linkage only if it has none yet;
        once linked, later federated logins leave identity fields alone.

        Raises:
            MissingEmailException: If the claims carry no email
        """
        email = claims.email
        if not email:
            raise MissingEmailException()

        provider = map_provider(claims.provider_name)

        user = await self.users.get_user_by_email(email)

        if user is None:
            first_name, last_name = self._resolve_name(claims, client_profile)
            try:
                user = await self.users.create_user(
                    UserCreate(
                        email=email,
                        phone=claims.phone_number,
                        first_name=first_name,
                        last_name=last_name,
                        auth_provider=provider,
                        provider_subject_id=claims.subject_id,
                        role=Role.CUSTOMER,
                        is_verified=True,
                        gdpr_consent=True,
                        gdpr_consent_date=datetime.now(UTC),
                    )
                )
            except ConflictException:
                # Lost a race with a concurrent sign-in; reconcile against the winner
                user = await self.users.get_user_by_email(email)
                if user is None:
                    raise
                return await self._link_if_unlinked(user, provider, claims.subject_id)

            logger.info("user_registered", user_id=str(user["id"]), provider=provider.value)
            return user

        return await self._link_if_unlinked(user, provider, claims.subject_id)

    async def _link_if_unlinked(
        self, user: dict, provider: AuthProvider, subject_id: str
    ) -> dict:
        if user.get("provider_subject_id"):
            return user

        linked = await self.users.link_provider(user["id"], provider, subject_id)
        if linked is None:
            # Linked by a concurrent sign-in since our read; the stored linkage stands
            logger.info("federated_link_skipped", user_id=str(user["id"]))
            return await self.users.get_user_by_id(user["id"]) or user

        logger.info("federated_link_added", user_id=str(user["id"]), provider=provider.value)
        return linked

    @staticmethod
    def _resolve_name(
        claims: ClaimSet, client_profile: ClientProfile | None
    ) -> tuple[str, str]:
        split = split_display_name(claims.display_name)
        if split is not None:
            return split

        if client_profile is not None:
            return client_profile.first_name or "", client_profile.last_name or ""

        return "", ""
