"""Product catalog service."""

from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from freshtrio.models.products import products
from freshtrio.schemas.products import ProductCreate, ProductUpdate

ALL_CATEGORIES = "all"


class ProductService:
    """Service for product catalog operations."""

    def __init__(self, db: AsyncSession):
        """Initialize service with a database session."""
        self.db = db

    async def _page(self, conditions: list, page: int, size: int) -> tuple[list[dict], int]:
        where = and_(*conditions)

        count_query = select(func.count()).select_from(products).where(where)
        total = (await self.db.execute(count_query)).scalar_one()

        query = (
            select(products)
            .where(where)
            .order_by(products.c.name, products.c.id)
            .offset(page * size)
            .limit(size)
        )
        result = await self.db.execute(query)
        return [dict(row) for row in result.mappings().all()], total

    async def list_products(
        self, category: str | None = None, page: int = 0, size: int = 20
    ) -> tuple[list[dict], int]:
        """List active products, optionally in one category ("all" means any)."""
        conditions = [products.c.is_active.is_(True)]

        if category and category != ALL_CATEGORIES:
            conditions.append(products.c.category == category)

        return await self._page(conditions, page, size)

    async def search_products(
        self, query: str, category: str | None = None, page: int = 0, size: int = 20
    ) -> tuple[list[dict], int]:
        """Case-insensitive substring search over name and description."""
        pattern = f"%{query.lower()}%"
        conditions = [
            products.c.is_active.is_(True),
            or_(
                func.lower(products.c.name).like(pattern),
                func.lower(products.c.description).like(pattern),
            ),
        ]

        if category and category != ALL_CATEGORIES:
            conditions.append(products.c.category == category)

        return await self._page(conditions, page, size)

    async def get_product(self, product_id: UUID) -> dict | None:
        """Get product by ID."""
        query = select(products).where(products.c.id == product_id)
        result = await self.db.execute(query)
        product = result.mappings().first()
        return dict(product) if product else None

    async def get_categories(self) -> list[str]:
        """Return "all" followed by the distinct categories of active products."""
        query = (
            select(products.c.category)
            .where(products.c.is_active.is_(True), products.c.category.is_not(None))
            .distinct()
            .order_by(products.c.category)
        )
        result = await self.db.execute(query)
        return [ALL_CATEGORIES, *result.scalars().all()]

    async def list_all_products(self) -> list[dict]:
        """List every product, including inactive ones."""
        query = select(products).order_by(products.c.name, products.c.id)
        result = await self.db.execute(query)
        return [dict(row) for row in result.mappings().all()]

    async def create_product(self, product_data: ProductCreate) -> dict:
        """Create a new product."""
        now = datetime.now(UTC)
        query = (
            products.insert()
            .values(**product_data.model_dump(), is_active=True, created_at=now, updated_at=now)
            .returning(products)
        )

        result = await self.db.execute(query)
        product = result.mappings().first()
        await self.db.commit()

        if not product:
            raise ValueError("Failed to create product")

        return dict(product)

    async def update_product(self, product_id: UUID, product_data: ProductUpdate) -> dict | None:
        """Update product fields that were set in the request."""
        update_data = product_data.model_dump(exclude_unset=True)
        if not update_data:
            return await self.get_product(product_id)

        update_data["updated_at"] = datetime.now(UTC)

        query = (
            update(products)
            .where(products.c.id == product_id)
            .values(**update_data)
            .returning(products)
        )

        result = await self.db.execute(query)
        product = result.mappings().first()
        await self.db.commit()

        return dict(product) if product else None

    async def deactivate_product(self, product_id: UUID) -> bool:
        """Soft delete a product. Returns False if it does not exist."""
        query = (
            update(products)
            .where(products.c.id == product_id)
            .values(is_active=False, updated_at=datetime.now(UTC))
        )

        result = await self.db.execute(query)
        await self.db.commit()

        return result.rowcount > 0  # type: ignore[attr-defined]
