"""Product-related Pydantic schemas."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class ProductCreate(BaseModel):
    """Schema for creating a product."""

    id: str | None = Field(None, max_length=50, pattern=r"^[a-z0-9]+(-[a-z0-9]+)*$")
    name: str = Field(..., min_length=2, max_length=100)
    description: str = Field(..., min_length=10, max_length=500)
    price: Decimal = Field(..., ge=0, decimal_places=2)
    category: str = Field("juice", max_length=50)
    image_url: str | None = Field(None, max_length=500, pattern=r"^https?://\S+$")
    available: bool = True
    stock: int | None = Field(None, ge=0)


class ProductUpdate(BaseModel):
    """Schema for updating a product."""

    name: str | None = Field(None, min_length=2, max_length=100)
    description: str | None = Field(None, min_length=10, max_length=500)
    price: Decimal | None = Field(None, ge=0, decimal_places=2)
    category: str | None = Field(None, max_length=50)
    image_url: str | None = Field(None, max_length=500, pattern=r"^https?://\S+$")
    available: bool | None = None


class ProductStockUpdate(BaseModel):
    quantity: int = Field(..., ge=0)


class ProductResponse(BaseModel):
    """Schema for product response."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    description: str | None
    price: Decimal
    category: str
    image_url: str | None
    available: bool
    stock: int | None
    created_at: datetime
    updated_at: datetime


class ProductListResponse(BaseModel):
    """Schema for paginated product list."""

    products: list[ProductResponse]
    total: int
    page: int
    page_size: int
    total_pages: int
