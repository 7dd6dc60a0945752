"""Shared helpers for store routers."""

from typing import Iterable

from fastapi import Depends, HTTPException, status
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.store_service.models import Product, Rating, User
from services.store_service.schemas import ProductResponse
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload


async def get_or_create_user(db: AsyncSession, auth_user: AuthUser) -> User:
    """Return the local profile for a token subject, creating it on first sight."""
    result = await db.execute(select(User).where(User.auth_id == auth_user.user_id))
    user = result.scalar_one_or_none()
    if user is not None:
        return user

    user = User(
        auth_id=auth_user.user_id,
        email=auth_user.email,
        name=auth_user.name,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


async def get_current_customer(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
) -> User:
    return await get_or_create_user(db, current_user)


def product_query():
    return select(Product).options(selectinload(Product.images))


async def get_product_or_404(db: AsyncSession, product_id: int) -> Product:
    result = await db.execute(
        product_query()
        .where(Product.id == product_id)
        .execution_options(populate_existing=True)
    )
    product = result.scalar_one_or_none()
    if product is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Product not found"
        )
    return product


async def serialize_products(
    db: AsyncSession, products: Iterable[Product]
) -> list[ProductResponse]:
    """Build product responses with visible-rating averages in one query."""
    products = list(products)
    stats = {}
    if products:
        result = await db.execute(
            select(Rating.product_id, func.avg(Rating.stars), func.count(Rating.id))
            .where(Rating.product_id.in_([p.id for p in products]))
            .where(Rating.is_visible.is_(True))
            .group_by(Rating.product_id)
        )
        stats = {pid: (avg, count) for pid, avg, count in result.all()}

    responses = []
    for product in products:
        avg, count = stats.get(product.id, (None, 0))
        response = ProductResponse.model_validate(product)
        response.average_rating = round(float(avg), 1) if avg is not None else None
        response.rating_count = count
        responses.append(response)
    return responses
