"""Database models."""

from sqlalchemy import MetaData

from freshtrio.models.products import metadata as products_metadata
from freshtrio.models.products import products
from freshtrio.models.users import metadata as users_metadata
from freshtrio.models.users import users

# Combined metadata for create_all and Alembic autogenerate
metadata = MetaData()
for _source in (users_metadata, products_metadata):
    for _table in _source.tables.values():
        _table.to_metadata(metadata)

__all__ = [
    "metadata",
    "products",
    "users",
]
