import os
from collections.abc import AsyncGenerator

# Settings are read at import time; provide test values before importing the app
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-that-is-at-least-32-characters")
os.environ.setdefault("GOOGLE_CLIENT_ID", "test-client-id.apps.googleusercontent.com")
os.environ.setdefault("LOG_FORMAT", "console")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from freshtrio.config import settings
from freshtrio.core.security import get_password_hash
from freshtrio.database import get_db
from freshtrio.main import app
from freshtrio.models import metadata
from freshtrio.models.users import users
from freshtrio.schemas.auth import ClaimSet
from freshtrio.schemas.users import Role, UserCreate
from freshtrio.services.identity_reconciler import IdentityReconciler
from freshtrio.services.session_issuer import SessionIssuer
from freshtrio.services.user_service import UserService

TEST_PASSWORD = "Password123"


class StubTokenVerifier:
    """Token verifier double that returns fixed claims or raises."""

    def __init__(self, claims: ClaimSet | None = None, error: Exception | None = None):
        self.claims = claims
        self.error = error
        self.tokens: list[str] = []

    async def verify(self, raw_token: str) -> ClaimSet:
        self.tokens.append(raw_token)
        if self.error is not None:
            raise self.error
        assert self.claims is not None
        return self.claims


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh in-memory database and a session on it."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session

    await engine.dispose()


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def session_issuer() -> SessionIssuer:
    """Session issuer configured like the application."""
    return SessionIssuer.from_settings(settings)


@pytest.fixture
def user_service(db_session: AsyncSession) -> UserService:
    return UserService(db_session)


@pytest.fixture
def reconciler(user_service: UserService) -> IdentityReconciler:
    return IdentityReconciler(user_service)


@pytest_asyncio.fixture
async def customer(user_service: UserService) -> dict:
    """A password-registered customer."""
    return await user_service.create_user(
        UserCreate(
            email="customer@example.com",
            password_hash=get_password_hash(TEST_PASSWORD),
            first_name="Casey",
            last_name="Customer",
            is_verified=True,
            gdpr_consent=True,
        )
    )


@pytest_asyncio.fixture
async def admin_user(user_service: UserService) -> dict:
    """An admin account."""
    return await user_service.create_user(
        UserCreate(
            email="admin@freshtrio.com",
            password_hash=get_password_hash(TEST_PASSWORD),
            first_name="Ada",
            last_name="Admin",
            role=Role.ADMIN,
            is_verified=True,
        )
    )


@pytest.fixture
def auth_headers(customer: dict, session_issuer: SessionIssuer) -> dict:
    """Authentication headers for the customer."""
    return {"Authorization": f"Bearer {session_issuer.issue(customer)}"}


@pytest.fixture
def admin_headers(admin_user: dict, session_issuer: SessionIssuer) -> dict:
    """Authentication headers for the admin."""
    return {"Authorization": f"Bearer {session_issuer.issue(admin_user)}"}


async def count_users(db: AsyncSession, email: str | None = None) -> int:
    """Count stored users, optionally for one email."""
    query = select(func.count()).select_from(users)
    if email is not None:
        query = query.where(users.c.email == email)
    return (await db.execute(query)).scalar_one()
