"""Product catalogue service."""

import logging
import re
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from sunsano.core.exceptions import NotFoundError, ValidationError
from sunsano.models.product import Product
from sunsano.schemas.product import ProductCreate, ProductUpdate

logger = logging.getLogger(__name__)

SAMPLE_PRODUCTS = [
    {
        "id": "sunny-orange",
        "name": "Sunny Orange",
        "description": "Frisch gepresster Orangensaft mit einem Hauch Mango.",
        "price": Decimal("3.90"),
        "category": "juice",
    },
    {
        "id": "green-power",
        "name": "Green Power",
        "description": "Apfel, Spinat, Gurke und Ingwer für den grünen Energieschub.",
        "price": Decimal("4.50"),
        "category": "juice",
    },
    {
        "id": "berry-boost",
        "name": "Berry Boost",
        "description": "Erdbeere, Himbeere und Heidelbeere, cremig gemixt.",
        "price": Decimal("4.20"),
        "category": "smoothie",
    },
    {
        "id": "carrot-zing",
        "name": "Carrot Zing",
        "description": "Karotte, Orange und Kurkuma mit frischer Zitrone.",
        "price": Decimal("3.80"),
        "category": "juice",
    },
    {
        "id": "tropic-wave",
        "name": "Tropic Wave",
        "description": "Ananas, Maracuja und Kokoswasser für Urlaubsgefühle.",
        "price": Decimal("4.90"),
        "category": "smoothie",
    },
    {
        "id": "citrus-splash",
        "name": "Citrus Splash",
        "description": "Grapefruit, Limette und Minze, spritzig und erfrischend.",
        "price": Decimal("4.10"),
        "category": "juice",
    },
]

SORT_ORDERS = {
    "name": Product.name.asc(),
    "price": Product.price.asc(),
    "price_desc": Product.price.desc(),
    "newest": Product.created_at.desc(),
}


def slugify(name: str) -> str:
    """Turn a product name into a URL-safe id ('Sunny Orange' -> 'sunny-orange')."""
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower())
    return slug.strip("-")[:50]


class ProductService:
    """Service for the product catalogue."""

    async def list_products(
        self,
        db: AsyncSession,
        category: str | None = None,
        available: bool | None = None,
        sort: str = "name",
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[Product], int]:
        """List products with filters and pagination."""
        query = select(Product)
        if category:
            query = query.where(Product.category == category)
        if available is not None:
            query = query.where(Product.available == available)

        count_result = await db.execute(select(func.count()).select_from(query.subquery()))
        total = count_result.scalar() or 0

        query = query.order_by(SORT_ORDERS.get(sort, SORT_ORDERS["name"]), Product.id)
        query = query.offset((page - 1) * page_size).limit(page_size)
        result = await db.execute(query)
        return list(result.scalars().all()), total

    async def get_categories(self, db: AsyncSession) -> list[str]:
        result = await db.execute(
            select(Product.category).distinct().order_by(Product.category)
        )
        return list(result.scalars().all())

    async def get_product(self, db: AsyncSession, product_id: str) -> Product:
        product = await db.get(Product, product_id)
        if not product:
            raise NotFoundError("Product", product_id)
        return product

    async def get_products_by_ids(self, db: AsyncSession, product_ids: list[str]) -> dict[str, Product]:
        if not product_ids:
            return {}
        result = await db.execute(select(Product).where(Product.id.in_(product_ids)))
        return {product.id: product for product in result.scalars().all()}

    async def create_product(self, db: AsyncSession, data: ProductCreate) -> Product:
        product_id = data.id or slugify(data.name)
        if not product_id:
            raise ValidationError("Product name must contain letters or digits")
        if await db.get(Product, product_id):
            raise ValidationError(f"Product '{product_id}' already exists")

        product = Product(**data.model_dump(exclude={"id"}), id=product_id)
        db.add(product)
        await db.flush()

        logger.info(f"Product created: {product.id} ({product.name})")
        return product

    async def update_product(self, db: AsyncSession, product_id: str, data: ProductUpdate) -> Product:
        product = await self.get_product(db, product_id)
        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(product, field, value)
        await db.flush()

        logger.info(f"Product updated: {product.id}")
        return product

    async def delete_product(self, db: AsyncSession, product_id: str) -> Product:
        product = await self.get_product(db, product_id)
        await db.delete(product)
        await db.flush()

        logger.info(f"Product deleted: {product_id}")
        return product

    async def update_stock(self, db: AsyncSession, product_id: str, quantity: int) -> Product:
        """Set the stock level; a product with no stock is unavailable."""
        product = await self.get_product(db, product_id)
        product.stock = quantity
        product.available = quantity > 0
        await db.flush()

        logger.info(f"Product stock updated: {product_id} -> {quantity}")
        return product

    async def seed_catalogue(self, db: AsyncSession) -> int:
        """Insert the sample products that are not in the catalogue yet.

        Returns:
            int: Number of products created
        """
        existing = await self.get_products_by_ids(db, [p["id"] for p in SAMPLE_PRODUCTS])
        created = 0
        for data in SAMPLE_PRODUCTS:
            if data["id"] in existing:
                continue
            db.add(Product(**data, available=True))
            created += 1
        await db.flush()

        if created:
            logger.info(f"Seeded {created} products")
        return created


product_service = ProductService()
