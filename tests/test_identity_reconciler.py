"""Tests for identity reconciliation."""

import pytest
from conftest import TEST_PASSWORD, count_users
from sqlalchemy.ext.asyncio import AsyncSession

from freshtrio.core.exceptions import (
    ConflictException,
    InvalidCredentialsException,
    MissingEmailException,
    NotFoundException,
)
from freshtrio.core.security import verify_password
from freshtrio.schemas.auth import ClaimSet, ClientProfile, RegisterRequest
from freshtrio.schemas.users import AuthProvider, Role, UserCreate
from freshtrio.services.identity_reconciler import (
    IdentityReconciler,
    map_provider,
    split_display_name,
)
from freshtrio.services.user_service import UserService


def register_request(email: str = "jane@example.com", **overrides) -> RegisterRequest:
    data = {
        "email": email,
        "password": TEST_PASSWORD,
        "first_name": "Jane",
        "last_name": "Doe",
        "phone": "+4915112345678",
        "gdpr_consent": True,
    }
    data.update(overrides)
    return RegisterRequest(**data)


class TestProviderMapping:
    """Tests for mapping raw provider ids."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("google.com", AuthProvider.GOOGLE),
            ("facebook.com", AuthProvider.FACEBOOK),
            ("apple.com", AuthProvider.APPLE),
            ("Facebook.com", AuthProvider.FACEBOOK),
            ("twitter.com", AuthProvider.EMAIL),
            ("password", AuthProvider.EMAIL),
            ("email", AuthProvider.EMAIL),
            ("", AuthProvider.EMAIL),
            (None, AuthProvider.EMAIL),
        ],
    )
    def test_map_provider(self, raw, expected):
        assert map_provider(raw) is expected


class TestDisplayNameSplitting:
    """Tests for splitting a full name."""

    def test_two_words(self):
        assert split_display_name("Jane Doe") == ("Jane", "Doe")

    def test_single_word(self):
        assert split_display_name("Madonna") == ("Madonna", "")

    def test_splits_on_first_whitespace_run(self):
        assert split_display_name("  Mary   Jane  Watson ") == ("Mary", "Jane  Watson")

    @pytest.mark.parametrize("name", [None, "", "   "])
    def test_no_name(self, name):
        assert split_display_name(name) is None


@pytest.mark.asyncio
class TestPasswordRegistration:
    """Tests for create-only password registration."""

    async def test_creates_customer_with_hashed_password(self, reconciler: IdentityReconciler):
        request = register_request()

        user = await reconciler.reconcile_by_email_password(
            request.email, request.password, request
        )

        assert user["email"] == "jane@example.com"
        assert user["role"] == Role.CUSTOMER.value
        assert user["auth_provider"] == AuthProvider.EMAIL.value
        assert user["provider_subject_id"] is None
        assert user["is_verified"] is True
        assert user["gdpr_consent"] is True
        assert user["gdpr_consent_date"] is not None
        assert user["password_hash"] != TEST_PASSWORD
        assert verify_password(TEST_PASSWORD, user["password_hash"])

    async def test_duplicate_email_conflicts_without_second_write(
        self, reconciler: IdentityReconciler, db_session: AsyncSession
    ):
        request = register_request()
        first = await reconciler.reconcile_by_email_password(
            request.email, request.password, request
        )

        with pytest.raises(ConflictException):
            await reconciler.reconcile_by_email_password(
                request.email, "AnotherPass456", register_request(first_name="Other")
            )

        assert await count_users(db_session) == 1
        stored = await reconciler.users.get_user_by_email(request.email)
        assert stored["password_hash"] == first["password_hash"]
        assert stored["first_name"] == "Jane"

    async def test_unique_index_conflict_maps_to_conflict(
        self, db_session: AsyncSession, monkeypatch
    ):
        service = UserService(db_session)
        await service.create_user(UserCreate(email="race@example.com"))
        reconciler = IdentityReconciler(service)

        async def stale_lookup(email: str) -> None:
            return None

        # Pre-check misses the row as if another request inserted it meanwhile
        monkeypatch.setattr(service, "get_user_by_email", stale_lookup)

        with pytest.raises(ConflictException):
            await reconciler.reconcile_by_email_password(
                "race@example.com", TEST_PASSWORD, register_request("race@example.com")
            )

        assert await count_users(db_session, "race@example.com") == 1

    async def test_role_is_always_customer(self, reconciler: IdentityReconciler):
        request = register_request("driver@example.com")

        user = await reconciler.reconcile_by_email_password(
            request.email, request.password, request
        )

        assert user["role"] == Role.CUSTOMER.value


@pytest.mark.asyncio
class TestPasswordLogin:
    """Tests for password login."""

    async def test_valid_credentials(self, reconciler: IdentityReconciler, customer: dict):
        user = await reconciler.reconcile_by_password_login(customer["email"], TEST_PASSWORD)

        assert user["id"] == customer["id"]
        assert user["updated_at"] == customer["updated_at"]

    async def test_unknown_email(self, reconciler: IdentityReconciler):
        with pytest.raises(NotFoundException):
            await reconciler.reconcile_by_password_login("ghost@example.com", TEST_PASSWORD)

    async def test_wrong_password(self, reconciler: IdentityReconciler, customer: dict):
        with pytest.raises(InvalidCredentialsException):
            await reconciler.reconcile_by_password_login(customer["email"], "WrongPass999")

    async def test_federated_only_account_has_no_password(
        self, reconciler: IdentityReconciler
    ):
        await reconciler.reconcile_by_federated_claim(
            ClaimSet(subject_id="g-1", email="fed@example.com", provider_name="google.com")
        )

        with pytest.raises(InvalidCredentialsException):
            await reconciler.reconcile_by_password_login("fed@example.com", TEST_PASSWORD)


@pytest.mark.asyncio
class TestFederatedReconciliation:
    """Tests for federated find-or-create and linking."""

    async def test_creates_user_for_unseen_email(
        self, reconciler: IdentityReconciler, db_session: AsyncSession
    ):
        claims = ClaimSet(
            subject_id="fb-123",
            email="jane@example.com",
            display_name="Jane Doe",
            phone_number="+4915100000000",
            provider_name="facebook.com",
        )

        user = await reconciler.reconcile_by_federated_claim(claims)

        assert await count_users(db_session) == 1
        assert user["auth_provider"] == AuthProvider.FACEBOOK.value
        assert user["provider_subject_id"] == "fb-123"
        assert user["first_name"] == "Jane"
        assert user["last_name"] == "Doe"
        assert user["phone"] == "+4915100000000"
        assert user["role"] == Role.CUSTOMER.value
        assert user["is_verified"] is True
        assert user["gdpr_consent"] is True
        assert user["gdpr_consent_date"] is not None
        assert user["password_hash"] is None

    async def test_unmapped_provider_is_stored_as_email(self, reconciler: IdentityReconciler):
        user = await reconciler.reconcile_by_federated_claim(
            ClaimSet(subject_id="tw-1", email="tw@example.com", provider_name="twitter.com")
        )

        assert user["auth_provider"] == AuthProvider.EMAIL.value

    async def test_single_word_name(self, reconciler: IdentityReconciler):
        user = await reconciler.reconcile_by_federated_claim(
            ClaimSet(subject_id="g-2", email="m@example.com", display_name="Madonna")
        )

        assert (user["first_name"], user["last_name"]) == ("Madonna", "")

    async def test_client_profile_used_when_token_has_no_name(
        self, reconciler: IdentityReconciler
    ):
        user = await reconciler.reconcile_by_federated_claim(
            ClaimSet(subject_id="g-3", email="ab@example.com", provider_name="google.com"),
            ClientProfile(first_name="A", last_name="B"),
        )

        assert (user["first_name"], user["last_name"]) == ("A", "B")

    async def test_token_name_wins_over_client_profile(self, reconciler: IdentityReconciler):
        user = await reconciler.reconcile_by_federated_claim(
            ClaimSet(subject_id="g-4", email="jd@example.com", display_name="Jane Doe"),
            ClientProfile(first_name="A", last_name="B"),
        )

        assert (user["first_name"], user["last_name"]) == ("Jane", "Doe")

    async def test_no_name_anywhere_gives_blanks(self, reconciler: IdentityReconciler):
        user = await reconciler.reconcile_by_federated_claim(
            ClaimSet(subject_id="fb-5", email="anon@example.com", provider_name="facebook.com")
        )

        assert (user["first_name"], user["last_name"]) == ("", "")

    async def test_missing_email(self, reconciler: IdentityReconciler, db_session: AsyncSession):
        with pytest.raises(MissingEmailException):
            await reconciler.reconcile_by_federated_claim(
                ClaimSet(subject_id="apple-1", email=None, provider_name="apple.com")
            )

        assert await count_users(db_session) == 0

    async def test_links_existing_unlinked_user(
        self, reconciler: IdentityReconciler, customer: dict, db_session: AsyncSession
    ):
        user = await reconciler.reconcile_by_federated_claim(
            ClaimSet(
                subject_id="g-42",
                email=customer["email"],
                display_name="Someone Else",
                provider_name="google.com",
            )
        )

        assert await count_users(db_session) == 1
        assert user["id"] == customer["id"]
        assert user["provider_subject_id"] == "g-42"
        assert user["auth_provider"] == AuthProvider.GOOGLE.value
        # Established identity is kept
        assert user["first_name"] == "Casey"
        assert user["last_name"] == "Customer"
        assert user["role"] == customer["role"]
        assert user["password_hash"] == customer["password_hash"]

    async def test_second_provider_after_link_is_noop(
        self, reconciler: IdentityReconciler, db_session: AsyncSession
    ):
        first = await reconciler.reconcile_by_federated_claim(
            ClaimSet(subject_id="g-1", email="jane@example.com", provider_name="google.com")
        )

        second = await reconciler.reconcile_by_federated_claim(
            ClaimSet(
                subject_id="fb-9",
                email="jane@example.com",
                display_name="Janet Different",
                provider_name="facebook.com",
            )
        )

        assert await count_users(db_session) == 1
        assert second["id"] == first["id"]
        assert second["auth_provider"] == AuthProvider.GOOGLE.value
        assert second["provider_subject_id"] == "g-1"
        assert second["first_name"] == first["first_name"]
        assert second["updated_at"] == first["updated_at"]

    async def test_stale_read_does_not_overwrite_existing_link(
        self, reconciler: IdentityReconciler, customer: dict, monkeypatch
    ):
        await reconciler.users.link_provider(customer["id"], AuthProvider.GOOGLE, "g-1")

        async def stale_lookup(email: str) -> dict:
            return customer

        # Lookup returns the row as it was before the link was stored
        monkeypatch.setattr(reconciler.users, "get_user_by_email", stale_lookup)

        user = await reconciler.reconcile_by_federated_claim(
            ClaimSet(subject_id="fb-1", email=customer["email"], provider_name="facebook.com")
        )

        assert user["provider_subject_id"] == "g-1"
        assert user["auth_provider"] == AuthProvider.GOOGLE.value

    async def test_link_provider_skips_linked_user(self, user_service: UserService, customer: dict):
        await user_service.link_provider(customer["id"], AuthProvider.GOOGLE, "g-1")

        assert await user_service.link_provider(customer["id"], AuthProvider.APPLE, "a-1") is None
        stored = await user_service.get_user_by_id(customer["id"])
        assert stored["provider_subject_id"] == "g-1"


class TestClaimEmailNormalization:
    """Tests for the email key carried by federated claims."""

    def test_domain_is_lower_cased(self):
        claims = ClaimSet(subject_id="g-1", email=" Jane@Example.COM ")

        assert claims.email == "Jane@example.com"

    @pytest.mark.parametrize("email", [None, "", "   "])
    def test_blank_is_no_email(self, email):
        assert ClaimSet(subject_id="g-1", email=email).email is None

    def test_unparseable_kept_as_given(self):
        assert ClaimSet(subject_id="g-1", email="not-an-email").email == "not-an-email"

    @pytest.mark.asyncio
    async def test_registered_and_federated_share_one_user(
        self, reconciler: IdentityReconciler, db_session: AsyncSession
    ):
        request = register_request("jane@Example.com")
        registered = await reconciler.reconcile_by_email_password(
            request.email, request.password, request
        )

        user = await reconciler.reconcile_by_federated_claim(
            ClaimSet(subject_id="g-1", email="jane@Example.com", provider_name="google.com")
        )

        assert user["id"] == registered["id"]
        assert await count_users(db_session) == 1
