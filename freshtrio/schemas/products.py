"""Product catalog schemas for request/response validation."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field, field_serializer, field_validator


class ProductBase(BaseModel):
    """Base schema for products."""

    name: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    category: str | None = Field(None, max_length=100)
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    unit: str | None = Field(None, max_length=20, description="kg, piece, bunch, ...")
    image_url: str | None = None


class ProductCreate(ProductBase):
    """Schema for creating a product."""


class ProductUpdate(BaseModel):
    """Schema for updating a product."""

    name: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = None
    category: str | None = Field(None, max_length=100)
    price: Decimal | None = Field(None, ge=0, max_digits=10, decimal_places=2)
    unit: str | None = Field(None, max_length=20)
    image_url: str | None = None
    is_active: bool | None = None

    @field_validator("name", "price", "is_active")
    @classmethod
    def reject_null(cls, value):
        """Omit a field to leave it unchanged; these columns cannot be null."""
        if value is None:
            raise ValueError("must not be null")
        return value


class ProductResponse(ProductBase):
    """Product schema for API responses."""

    id: UUID
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @field_serializer("price")
    def serialize_price(self, price: Decimal) -> float:
        """Serialize price as a JSON number."""
        return float(price)


class ProductPage(BaseModel):
    """One page of products."""

    items: list[ProductResponse]
    total: int
    page: int
    size: int
    pages: int
