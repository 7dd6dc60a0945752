"""Public catalog router: product listing, search, best sellers, details."""

from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from libs.db.session import get_async_db
from services.store_service.models import (
    COMPLETED_ORDER_STATUSES,
    Order,
    OrderDetail,
    Product,
    Rating,
)
from services.store_service.routers._helpers import (
    get_product_or_404,
    product_query,
    serialize_products,
)
from services.store_service.schemas import (
    BestSellerResponse,
    ProductListResponse,
    ProductResponse,
    RatingResponse,
)
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["catalog"])


@router.get("/products", response_model=ProductListResponse)
async def list_products(
    search: Optional[str] = Query(None, description="Match name or notes"),
    category: Optional[str] = None,
    sort: Literal["newest", "price_asc", "price_desc", "name", "rating"] = "newest",
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_async_db),
):
    """List products with search, category filter and sorting."""
    query = product_query()
    count_query = select(func.count(Product.id))

    filters = []
    if search:
        pattern = f"%{search}%"
        filters.append(
            or_(
                Product.name.ilike(pattern),
                Product.top_notes.ilike(pattern),
                Product.middle_notes.ilike(pattern),
                Product.base_notes.ilike(pattern),
            )
        )
    if category:
        filters.append(Product.category == category)
    for condition in filters:
        query = query.where(condition)
        count_query = count_query.where(condition)

    if sort == "rating":
        ratings = (
            select(Rating.product_id, func.avg(Rating.stars).label("avg_stars"))
            .where(Rating.is_visible.is_(True))
            .group_by(Rating.product_id)
            .subquery()
        )
        query = query.outerjoin(ratings, ratings.c.product_id == Product.id)
        ordering = (func.coalesce(ratings.c.avg_stars, 0).desc(), Product.id)
    else:
        ordering = {
            "newest": (Product.created_at.desc(), Product.id.desc()),
            "price_asc": (Product.price_30ml.asc(), Product.id),
            "price_desc": (Product.price_30ml.desc(), Product.id),
            "name": (Product.name.asc(),),
        }[sort]
    query = query.order_by(*ordering).offset((page - 1) * page_size).limit(page_size)

    total = (await db.execute(count_query)).scalar_one()
    products = (await db.execute(query)).scalars().all()

    return ProductListResponse(
        items=await serialize_products(db, products),
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/products/best-sellers", response_model=list[BestSellerResponse])
async def best_sellers(
    limit: int = Query(5, ge=1, le=20),
    db: AsyncSession = Depends(get_async_db),
):
    """Products ranked by bottles sold in completed orders."""
    sold = func.sum(OrderDetail.quantity).label("sold")
    result = await db.execute(
        select(OrderDetail.product_id, sold)
        .join(Order, Order.id == OrderDetail.order_id)
        .where(Order.status.in_(COMPLETED_ORDER_STATUSES))
        .where(OrderDetail.product_id.is_not(None))
        .group_by(OrderDetail.product_id)
        .order_by(sold.desc())
        .limit(limit)
    )
    ranking = result.all()
    if not ranking:
        return []

    products = (
        await db.execute(
            product_query().where(Product.id.in_([pid for pid, _ in ranking]))
        )
    ).scalars().all()
    by_id = {p.id: p for p in await serialize_products(db, products)}
    return [
        BestSellerResponse(product=by_id[pid], quantity_sold=int(quantity))
        for pid, quantity in ranking
        if pid in by_id
    ]


@router.get("/products/{product_id}", response_model=ProductResponse)
async def get_product(product_id: int, db: AsyncSession = Depends(get_async_db)):
    product = await get_product_or_404(db, product_id)
    return (await serialize_products(db, [product]))[0]


@router.get("/products/{product_id}/ratings", response_model=list[RatingResponse])
async def list_product_ratings(
    product_id: int, db: AsyncSession = Depends(get_async_db)
):
    """Visible ratings for a product, newest first."""
    await get_product_or_404(db, product_id)
    result = await db.execute(
        select(Rating)
        .where(Rating.product_id == product_id)
        .where(Rating.is_visible.is_(True))
        .order_by(Rating.created_at.desc())
    )
    return result.scalars().all()
