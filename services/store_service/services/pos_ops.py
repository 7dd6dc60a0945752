"""Point-of-sale: counter sales that reduce stock and count as delivered orders."""

from datetime import datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Optional

from fastapi import HTTPException, status
from libs.common.datetime_utils import store_timezone, to_store_time, utc_now
from libs.common.logging import get_logger
from libs.common.phone import is_valid_phone, normalize_phone
from services.store_service.models import (
    Order,
    OrderDetail,
    OrderStatus,
    Payment,
    PaymentMethod,
    PaymentStatus,
    PosItem,
    PosTransaction,
    Product,
    ProductSize,
)
from services.store_service.services import order_ops
from services.store_service.services.order_codes import format_pos_code
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

logger = get_logger(__name__)


def pos_query():
    return select(PosTransaction).options(
        selectinload(PosTransaction.items), selectinload(PosTransaction.order)
    )


async def load_pos_transaction(db: AsyncSession, transaction_id: int) -> PosTransaction:
    result = await db.execute(
        pos_query()
        .where(PosTransaction.id == transaction_id)
        .execution_options(populate_existing=True)
    )
    transaction = result.scalar_one_or_none()
    if transaction is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Transaction not found"
        )
    return transaction


async def _next_daily_sequence(db: AsyncSession, now: datetime) -> int:
    local_day = to_store_time(now).date()
    local_start = datetime.combine(local_day, time.min, tzinfo=store_timezone())
    start = local_start.astimezone(timezone.utc)
    result = await db.execute(
        select(func.count(PosTransaction.id))
        .where(PosTransaction.created_at >= start)
        .where(PosTransaction.created_at < start + timedelta(days=1))
    )
    return result.scalar_one() + 1


async def create_pos_transaction(
    db: AsyncSession,
    *,
    cashier_auth_id: str,
    customer_name: str,
    phone: str,
    payment_method: PaymentMethod,
    items: list[tuple[int, ProductSize, int]],
    cash_received: Optional[Decimal] = None,
) -> PosTransaction:
    """Record a counter sale.

    Stock is taken immediately and a Delivered order (already paid) is
    created alongside, so the sale shows up in reports and best sellers.
    """
    phone = normalize_phone(phone)
    if not is_valid_phone(phone):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Phone number must be in +62 format",
        )
    if not items:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="No items in transaction"
        )

    now = utc_now()
    try:
        products = {}
        for product_id, _, _ in items:
            product = await db.get(Product, product_id)
            if product is None:
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND,
                    detail=f"Product {product_id} not found",
                )
            products[product_id] = product

        for product_id, size, quantity in sorted(
            items, key=lambda item: (item[0], item[1].value)
        ):
            await order_ops.take_stock(
                db, product_id=product_id, size=size, quantity=quantity
            )

        pos_items = []
        details = []
        for product_id, size, quantity in items:
            product = products[product_id]
            price = Decimal(product.price_for(size))
            line = dict(
                product_id=product_id,
                product_name=product.name,
                size=size,
                quantity=quantity,
                price=price,
                subtotal=price * quantity,
            )
            pos_items.append(PosItem(**line))
            details.append(OrderDetail(**line))

        total = sum((item.subtotal for item in pos_items), Decimal("0"))

        cash_change = None
        if payment_method == PaymentMethod.CASH:
            if cash_received is None or cash_received < total:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Cash received is less than the total",
                )
            cash_change = cash_received - total
        else:
            cash_received = None

        order = Order(
            user_id=None,
            status=OrderStatus.DELIVERED,
            payment_method=payment_method,
            recipient_name=customer_name,
            phone=phone,
            subtotal=total,
            total_price=total,
            is_pos=True,
            created_at=now,
            details=details,
            payment=Payment(
                method=payment_method,
                amount=total,
                status=PaymentStatus.SUCCESS,
                transaction_time=now,
            ),
        )
        db.add(order)
        await db.flush()

        transaction = PosTransaction(
            code=format_pos_code(now, await _next_daily_sequence(db, now)),
            cashier_auth_id=cashier_auth_id,
            order_id=order.id,
            customer_name=customer_name,
            phone=phone,
            payment_method=payment_method,
            total_price=total,
            cash_received=cash_received,
            cash_change=cash_change,
            created_at=now,
            items=pos_items,
        )
        db.add(transaction)
        await db.flush()
    except Exception:
        await db.rollback()
        raise

    await db.commit()
    logger.info(
        "POS sale %s recorded by %s (total=%s)",
        transaction.code,
        cashier_auth_id,
        total,
    )
    return await load_pos_transaction(db, transaction.id)
