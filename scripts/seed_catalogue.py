#!/usr/bin/env python3
"""Create the tables and seed the sample products and reviews."""

import asyncio

from sunsano.database import close_db, get_db_context, init_db
from sunsano.services.product_service import product_service
from sunsano.services.review_service import review_service


async def seed() -> None:
    """Insert sample data that is not present yet."""
    await init_db()
    try:
        async with get_db_context() as db:
            products = await product_service.seed_catalogue(db)
            reviews = await review_service.seed_reviews(db)
    finally:
        await close_db()

    print(f"Products created: {products}")
    print(f"Reviews created: {reviews}")


if __name__ == "__main__":
    asyncio.run(seed())
