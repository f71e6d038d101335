"""Product catalog model definition using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    MetaData,
    Numeric,
    String,
    Table,
    Text,
    Uuid,
    func,
    text,
)

metadata = MetaData()

products = Table(
    "products",
    metadata,
    Column("id", Uuid(as_uuid=True), primary_key=True, default=uuid4),
    Column("name", Text, nullable=False),
    Column("description", Text),
    Column("category", Text, index=True),
    Column("price", Numeric(precision=10, scale=2), nullable=False),
    # kg, piece, bunch, ...
    Column("unit", String(20)),
    Column("image_url", Text),
    # Soft delete flag
    Column("is_active", Boolean, nullable=False, server_default=text("true")),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)
