"""Wishlist router."""

from fastapi import APIRouter, Depends, HTTPException, status
from libs.db.session import get_async_db
from services.store_service.models import Product, User, WishlistItem
from services.store_service.routers._helpers import (
    get_current_customer,
    get_product_or_404,
    serialize_products,
)
from services.store_service.schemas import WishlistItemCreate, WishlistItemResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

router = APIRouter(tags=["wishlist"])


async def _list_wishlist(db: AsyncSession, user_id: int) -> list[WishlistItemResponse]:
    result = await db.execute(
        select(WishlistItem)
        .where(WishlistItem.user_id == user_id)
        .options(selectinload(WishlistItem.product).selectinload(Product.images))
        .order_by(WishlistItem.created_at.desc(), WishlistItem.id.desc())
    )
    items = list(result.scalars().all())
    products = await serialize_products(db, [item.product for item in items])
    return [
        WishlistItemResponse(
            id=item.id,
            product_id=item.product_id,
            product=product,
            created_at=item.created_at,
        )
        for item, product in zip(items, products)
    ]


@router.get("/wishlist", response_model=list[WishlistItemResponse])
async def get_wishlist(
    user: User = Depends(get_current_customer),
    db: AsyncSession = Depends(get_async_db),
):
    return await _list_wishlist(db, user.id)


@router.post("/wishlist", response_model=list[WishlistItemResponse], status_code=201)
async def add_to_wishlist(
    item_in: WishlistItemCreate,
    user: User = Depends(get_current_customer),
    db: AsyncSession = Depends(get_async_db),
):
    """Add a product; adding one that is already there is a no-op."""
    await get_product_or_404(db, item_in.product_id)
    result = await db.execute(
        select(WishlistItem).where(
            WishlistItem.user_id == user.id,
            WishlistItem.product_id == item_in.product_id,
        )
    )
    if result.scalar_one_or_none() is None:
        db.add(WishlistItem(user_id=user.id, product_id=item_in.product_id))
        await db.commit()
    return await _list_wishlist(db, user.id)


@router.delete("/wishlist/{product_id}", status_code=204)
async def remove_from_wishlist(
    product_id: int,
    user: User = Depends(get_current_customer),
    db: AsyncSession = Depends(get_async_db),
):
    result = await db.execute(
        select(WishlistItem).where(
            WishlistItem.user_id == user.id, WishlistItem.product_id == product_id
        )
    )
    item = result.scalar_one_or_none()
    if item is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Product not in wishlist"
        )
    await db.delete(item)
    await db.commit()
