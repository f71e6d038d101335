"""User model definition using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    MetaData,
    String,
    Table,
    Text,
    Uuid,
    func,
    text,
)

metadata = MetaData()

users = Table(
    "users",
    metadata,
    Column("id", Uuid(as_uuid=True), primary_key=True, default=uuid4),
    # Global join key for every sign-in path
    Column("email", Text, nullable=False, unique=True, index=True),
    Column("phone", String(20)),
    # bcrypt hash, NULL for federated-only accounts
    Column("password_hash", Text),
    # Single provider linkage
    Column("auth_provider", Text, nullable=False, server_default=text("'EMAIL'")),
    Column("provider_subject_id", Text),
    # Profile
    Column("first_name", Text),
    Column("last_name", Text),
    Column("role", Text, nullable=False, server_default=text("'CUSTOMER'")),
    # Account state
    Column("is_verified", Boolean, nullable=False, server_default=text("false")),
    Column("gdpr_consent", Boolean, nullable=False, server_default=text("false")),
    Column("gdpr_consent_date", DateTime(timezone=True)),
    # Audit
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)
