"""Checkout: turning cart lines (or a single buy-now line) into an order."""

from decimal import Decimal
from typing import Optional

from fastapi import HTTPException, status
from libs.common.logging import get_logger
from libs.common.phone import normalize_phone
from services.store_service.midtrans_client import MidtransClient, MidtransError
from services.store_service.models import (
    CartItem,
    Order,
    OrderDetail,
    OrderStatus,
    Payment,
    PaymentMethod,
    PaymentStatus,
    Product,
    ProductSize,
    User,
)
from services.store_service.services import notification_ops, order_ops, payment_ops
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

logger = get_logger(__name__)

SHIPPING_FIELDS = (
    "recipient_name",
    "phone",
    "address_line",
    "district",
    "city",
    "province",
    "postal_code",
)
REQUIRED_SHIPPING_FIELDS = ("phone", "address_line", "city")


def resolve_shipping(user: User, shipping: Optional[dict]) -> dict:
    """Merge request shipping details over the saved profile."""
    profile = {
        "recipient_name": user.name,
        "phone": user.phone,
        "address_line": user.address_line,
        "district": user.district,
        "city": user.city,
        "province": user.province,
        "postal_code": user.postal_code,
    }
    overrides = {k: v for k, v in (shipping or {}).items() if v not in (None, "")}
    resolved = {field: overrides.get(field, profile[field]) for field in SHIPPING_FIELDS}
    resolved["phone"] = normalize_phone(resolved["phone"])

    missing = [field for field in REQUIRED_SHIPPING_FIELDS if not resolved[field]]
    if missing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Shipping details incomplete: {', '.join(missing)}",
        )
    return resolved


async def create_order_from_cart(
    db: AsyncSession,
    *,
    user: User,
    cart_item_ids: Optional[list[int]],
    payment_method: PaymentMethod,
    shipping: Optional[dict] = None,
    client: Optional[MidtransClient] = None,
) -> Order:
    """Check out the selected cart lines (all lines when none are selected).

    Order, lines, stock decrement, payment record, cart cleanup and the
    first notification commit together or not at all.
    """
    query = (
        select(CartItem)
        .where(CartItem.user_id == user.id)
        .options(selectinload(CartItem.product))
        .order_by(CartItem.id)
    )
    if cart_item_ids:
        query = query.where(CartItem.id.in_(cart_item_ids))
    result = await db.execute(query)
    cart_items = list(result.scalars().all())

    if not cart_items:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Cart is empty"
        )
    if cart_item_ids and len(cart_items) != len(set(cart_item_ids)):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Cart item not found"
        )

    lines = [(item.product, item.size, item.quantity) for item in cart_items]
    return await _place_order(
        db,
        user=user,
        lines=lines,
        payment_method=payment_method,
        shipping=shipping,
        client=client,
        cart_item_ids=[item.id for item in cart_items],
    )


async def create_buy_now_order(
    db: AsyncSession,
    *,
    user: User,
    product_id: int,
    size: ProductSize,
    quantity: int,
    payment_method: PaymentMethod,
    shipping: Optional[dict] = None,
    client: Optional[MidtransClient] = None,
) -> Order:
    """Single-product checkout that bypasses the cart."""
    product = await db.get(Product, product_id)
    if product is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Product not found"
        )
    return await _place_order(
        db,
        user=user,
        lines=[(product, size, quantity)],
        payment_method=payment_method,
        shipping=shipping,
        client=client,
    )


async def _place_order(
    db: AsyncSession,
    *,
    user: User,
    lines: list[tuple[Product, ProductSize, int]],
    payment_method: PaymentMethod,
    shipping: Optional[dict],
    client: Optional[MidtransClient],
    cart_item_ids: Optional[list[int]] = None,
) -> Order:
    if payment_method == PaymentMethod.QRIS and client is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="QRIS payments are not configured",
        )
    shipping_details = resolve_shipping(user, shipping)

    try:
        # Fixed row order so concurrent checkouts lock products the same way.
        for product, size, quantity in sorted(
            lines, key=lambda line: (line[0].id, line[1].value)
        ):
            await order_ops.take_stock(
                db, product_id=product.id, size=size, quantity=quantity
            )

        details = []
        for product, size, quantity in lines:
            price = Decimal(product.price_for(size))
            details.append(
                OrderDetail(
                    product_id=product.id,
                    product_name=product.name,
                    size=size,
                    quantity=quantity,
                    price=price,
                    subtotal=price * quantity,
                )
            )

        total = sum((detail.subtotal for detail in details), Decimal("0"))
        order = Order(
            user_id=user.id,
            status=(
                OrderStatus.PACKAGING
                if payment_method == PaymentMethod.CASH
                else OrderStatus.PENDING
            ),
            payment_method=payment_method,
            subtotal=total,
            total_price=total,
            details=details,
            payment=Payment(
                method=payment_method, amount=total, status=PaymentStatus.PENDING
            ),
            **shipping_details,
        )
        db.add(order)
        await db.flush()  # Get order ID

        if cart_item_ids:
            await db.execute(
                delete(CartItem)
                .where(CartItem.id.in_(cart_item_ids))
                .execution_options(synchronize_session=False)
            )

        await notification_ops.notify_payment(
            db, order, notification_ops.PAYMENT_PENDING_MESSAGE
        )

        if payment_method == PaymentMethod.QRIS:
            await payment_ops.create_gateway_transaction(
                db, order, client=client, user=user
            )
    except MidtransError as exc:
        await db.rollback()
        logger.error("Checkout aborted, QRIS charge failed: %s", exc.message)
        raise payment_ops.gateway_http_error(exc)
    except Exception:
        await db.rollback()
        raise

    await db.commit()
    logger.info(
        "Created order %s for user %s (total=%s, method=%s)",
        order.id,
        user.id,
        order.total_price,
        payment_method.value,
        extra={"extra_fields": {"order_id": order.id}},
    )
    return await order_ops.load_order(db, order.id)
