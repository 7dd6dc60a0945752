"""Seed script for store test data.

Creates a few sample fragrances with images so the catalog and checkout
flow can be exercised end-to-end.

Usage:
    python -m services.store_service.seed_store_data
"""

import asyncio
from decimal import Decimal

from libs.common.logging import configure_logging, get_logger
from libs.db.config import AsyncSessionLocal
from services.store_service.models import Product, ProductImage
from sqlalchemy import func, select

logger = get_logger(__name__)

PRODUCTS = [
    {
        "name": "Midnight Elegance",
        "description": "A sophisticated night fragrance with deep, mysterious notes.",
        "top_notes": "Bergamot, Black Pepper",
        "middle_notes": "Rose, Jasmine",
        "base_notes": "Sandalwood, Vanilla",
        "category": "Night",
        "price_30ml": Decimal("250000"),
        "price_50ml": Decimal("400000"),
        "stock_30ml": 50,
        "stock_50ml": 30,
    },
    {
        "name": "Sunrise Bloom",
        "description": "Fresh and vibrant day fragrance perfect for everyday wear.",
        "top_notes": "Citrus, Green Apple",
        "middle_notes": "Lavender, Mint",
        "base_notes": "Musk, Cedar",
        "category": "Day",
        "price_30ml": Decimal("200000"),
        "price_50ml": Decimal("350000"),
        "stock_30ml": 60,
        "stock_50ml": 40,
    },
    {
        "name": "Ocean Breeze",
        "description": "Crisp and clean aquatic fragrance for a refreshing day.",
        "top_notes": "Sea Salt, Lemon",
        "middle_notes": "Water Lily, Seaweed",
        "base_notes": "Driftwood, Amber",
        "category": "Day",
        "price_30ml": Decimal("220000"),
        "price_50ml": Decimal("380000"),
        "stock_30ml": 45,
        "stock_50ml": 35,
    },
]


async def seed_store_data():
    async with AsyncSessionLocal() as db:
        count = (await db.execute(select(func.count(Product.id)))).scalar_one()
        if count:
            logger.info("Store data already exists (%d products). Skipping seed.", count)
            return

        for data in PRODUCTS:
            product = Product(
                **data,
                images=[
                    ProductImage(url="products/placeholder-30ml.jpg", is_50ml=False),
                    ProductImage(url="products/placeholder-50ml.jpg", is_50ml=True),
                ],
            )
            db.add(product)

        await db.commit()
        logger.info("Seeded %d products", len(PRODUCTS))


if __name__ == "__main__":
    configure_logging()
    asyncio.run(seed_store_data())
