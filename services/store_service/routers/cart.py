"""Store cart router: cart lines priced live from the catalog."""

from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException, status
from libs.db.session import get_async_db
from services.store_service.models import CartItem, User
from services.store_service.routers._helpers import (
    get_current_customer,
    get_product_or_404,
)
from services.store_service.schemas import (
    CartItemCreate,
    CartItemResponse,
    CartItemUpdate,
    CartResponse,
)
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

router = APIRouter(tags=["cart"])


# ============================================================================
# CART HELPERS
# ============================================================================


async def load_cart(db: AsyncSession, user_id: int) -> list[CartItem]:
    result = await db.execute(
        select(CartItem)
        .where(CartItem.user_id == user_id)
        .options(selectinload(CartItem.product))
        .order_by(CartItem.id)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


def calculate_cart_totals(items: list[CartItem]) -> CartResponse:
    """Price every line at the current catalog price."""
    lines = []
    total = Decimal("0")
    for item in items:
        unit_price = Decimal(item.product.price_for(item.size))
        line_total = unit_price * item.quantity
        total += line_total
        lines.append(
            CartItemResponse(
                id=item.id,
                product_id=item.product_id,
                product_name=item.product.name,
                size=item.size,
                quantity=item.quantity,
                unit_price=unit_price,
                line_total=line_total,
                stock_available=item.product.stock_for(item.size),
            )
        )
    return CartResponse(
        items=lines, item_count=sum(i.quantity for i in items), total=total
    )


async def get_cart_item_or_404(db: AsyncSession, item_id: int, user_id: int) -> CartItem:
    item = await db.get(CartItem, item_id)
    if item is None or item.user_id != user_id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Cart item not found"
        )
    return item


# ============================================================================
# CART ENDPOINTS
# ============================================================================


@router.get("/cart", response_model=CartResponse)
async def get_cart(
    user: User = Depends(get_current_customer),
    db: AsyncSession = Depends(get_async_db),
):
    return calculate_cart_totals(await load_cart(db, user.id))


@router.post("/cart/items", response_model=CartResponse, status_code=201)
async def add_to_cart(
    item_in: CartItemCreate,
    user: User = Depends(get_current_customer),
    db: AsyncSession = Depends(get_async_db),
):
    """Add a product size to the cart, merging with an existing line."""
    product = await get_product_or_404(db, item_in.product_id)

    result = await db.execute(
        select(CartItem).where(
            CartItem.user_id == user.id,
            CartItem.product_id == product.id,
            CartItem.size == item_in.size,
        )
    )
    existing = result.scalar_one_or_none()
    quantity = item_in.quantity + (existing.quantity if existing else 0)

    if quantity > product.stock_for(item_in.size):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Only {product.stock_for(item_in.size)} in stock",
        )

    if existing:
        existing.quantity = quantity
    else:
        db.add(
            CartItem(
                user_id=user.id,
                product_id=product.id,
                size=item_in.size,
                quantity=quantity,
            )
        )
    await db.commit()

    return calculate_cart_totals(await load_cart(db, user.id))


@router.patch("/cart/items/{item_id}", response_model=CartResponse)
async def update_cart_item(
    item_id: int,
    item_in: CartItemUpdate,
    user: User = Depends(get_current_customer),
    db: AsyncSession = Depends(get_async_db),
):
    item = await get_cart_item_or_404(db, item_id, user.id)
    product = await get_product_or_404(db, item.product_id)
    if item_in.quantity > product.stock_for(item.size):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Only {product.stock_for(item.size)} in stock",
        )

    item.quantity = item_in.quantity
    await db.commit()
    return calculate_cart_totals(await load_cart(db, user.id))


@router.delete("/cart/items/{item_id}", response_model=CartResponse)
async def remove_cart_item(
    item_id: int,
    user: User = Depends(get_current_customer),
    db: AsyncSession = Depends(get_async_db),
):
    item = await get_cart_item_or_404(db, item_id, user.id)
    await db.delete(item)
    await db.commit()
    return calculate_cart_totals(await load_cart(db, user.id))
