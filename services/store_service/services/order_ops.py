"""Order lifecycle: stock movements, status transitions, customer actions."""

from typing import Optional

from fastapi import HTTPException, status
from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from services.store_service.models import (
    NotificationType,
    Order,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    Product,
    ProductSize,
    stock_column,
)
from services.store_service.services import notification_ops
from services.store_service.services.transitions import (
    ORDER_SEQUENCE,
    ORDER_TRANSITIONS,
    PAYMENT_TRANSITIONS,
    can_transition,
)
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def order_query():
    return select(Order).options(
        selectinload(Order.details),
        selectinload(Order.payment),
        selectinload(Order.transaction),
    )


async def load_order(
    db: AsyncSession,
    order_id: int,
    *,
    user_id: Optional[int] = None,
    for_update: bool = False,
) -> Order:
    """Fetch an order with its lines and payment, 404 if missing or not the user's."""
    query = order_query().where(Order.id == order_id).execution_options(
        populate_existing=True
    )
    if user_id is not None:
        query = query.where(Order.user_id == user_id)
    if for_update:
        query = query.with_for_update()
    result = await db.execute(query)
    order = result.scalar_one_or_none()
    if order is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Order not found"
        )
    return order


# ---------------------------------------------------------------------------
# Stock
# ---------------------------------------------------------------------------


async def take_stock(
    db: AsyncSession, *, product_id: int, size: ProductSize, quantity: int
) -> None:
    """Atomically decrement stock; 400 if it would go negative.

    The guarded UPDATE makes two concurrent checkouts of the last bottle
    safe: only one of them matches the ``stock >= quantity`` predicate.
    """
    column = stock_column(size)
    result = await db.execute(
        update(Product)
        .where(Product.id == product_id)
        .where(column >= quantity)
        .values({column: column - quantity})
        .execution_options(synchronize_session="evaluate")
    )
    if result.rowcount != 1:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Insufficient stock for product {product_id} ({size.value})",
        )


async def restore_stock(db: AsyncSession, order: Order) -> None:
    """Put every line of the order back on the shelf."""
    lines = [detail for detail in order.details if detail.product_id is not None]
    for detail in sorted(lines, key=lambda d: (d.product_id, d.size.value)):
        column = stock_column(detail.size)
        await db.execute(
            update(Product)
            .where(Product.id == detail.product_id)
            .values({column: column + detail.quantity})
            .execution_options(synchronize_session="evaluate")
        )
    logger.info("Restored stock for order %s (%d lines)", order.id, len(order.details))


# ---------------------------------------------------------------------------
# Transitions (no commit; callers own the transaction)
# ---------------------------------------------------------------------------


async def set_order_status(
    db: AsyncSession, order: Order, target: OrderStatus, *, notify: bool = True
) -> None:
    """Move an order along the allowed-transition table.

    Cancelling restores stock in the same transaction. Raises 409 for a
    transition the table does not allow.
    """
    current = order.status
    if not can_transition(ORDER_TRANSITIONS, current, target):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Cannot change order status from {current.value} to {target.value}",
        )

    order.status = target
    order.updated_at = utc_now()
    if target == OrderStatus.CANCELLED:
        await restore_stock(db, order)

    if notify:
        await notification_ops.notify_order_status(db, order)

    logger.info(
        "Order %s status %s -> %s",
        order.id,
        current.value,
        target.value,
        extra={"extra_fields": {"order_id": order.id, "status": target.value}},
    )


async def set_payment_status(
    db: AsyncSession, order: Order, target: PaymentStatus, *, notify: bool = True
) -> None:
    payment = order.payment
    if payment is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Payment not found"
        )
    current = payment.status
    if not can_transition(PAYMENT_TRANSITIONS, current, target):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Cannot change payment status from {current.value} to {target.value}",
        )

    payment.status = target
    payment.updated_at = utc_now()
    if target == PaymentStatus.SUCCESS:
        payment.transaction_time = utc_now()

    if notify:
        if target == PaymentStatus.SUCCESS:
            await notification_ops.notify_payment(
                db, order, notification_ops.PAYMENT_SUCCESS_MESSAGE
            )
        elif target == PaymentStatus.FAILED:
            await notification_ops.notify_payment(
                db, order, notification_ops.PAYMENT_FAILED_MESSAGE
            )
        elif target == PaymentStatus.REFUNDED:
            await notification_ops.emit(
                db,
                user_id=order.user_id,
                order_id=order.id,
                type=NotificationType.REFUND,
                message=notification_ops.REFUND_MESSAGE.format(code=order.code),
            )

    logger.info("Payment for order %s %s -> %s", order.id, current.value, target.value)


# ---------------------------------------------------------------------------
# Customer actions
# ---------------------------------------------------------------------------


async def cancel_order(db: AsyncSession, *, order_id: int, user_id: int) -> Order:
    """Customer cancellation. Only allowed while the order is being packaged."""
    order = await load_order(db, order_id, user_id=user_id, for_update=True)
    if order.status != OrderStatus.PACKAGING:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Only orders in Packaging can be cancelled",
        )

    await set_order_status(db, order, OrderStatus.CANCELLED)
    await db.commit()
    return await load_order(db, order_id)


async def finish_order(db: AsyncSession, *, order_id: int, user_id: int) -> Order:
    """Customer confirms receipt of a shipped order."""
    order = await load_order(db, order_id, user_id=user_id, for_update=True)
    if order.status != OrderStatus.SHIPPING:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Only shipped orders can be marked as received",
        )

    await _deliver(db, order)
    await db.commit()
    return await load_order(db, order_id)


async def _deliver(db: AsyncSession, order: Order) -> None:
    await set_order_status(db, order, OrderStatus.DELIVERED)
    # Cash is collected on delivery
    if (
        order.payment_method == PaymentMethod.CASH
        and order.payment is not None
        and order.payment.status == PaymentStatus.PENDING
    ):
        await set_payment_status(db, order, PaymentStatus.SUCCESS, notify=False)
    await notification_ops.emit(
        db,
        user_id=order.user_id,
        order_id=order.id,
        type=NotificationType.DELIVERY,
        message=notification_ops.DELIVERY_REVIEW_MESSAGE.format(code=order.code),
    )


# ---------------------------------------------------------------------------
# Admin actions
# ---------------------------------------------------------------------------


async def advance_status(
    db: AsyncSession,
    *,
    order_id: int,
    new_status: Optional[OrderStatus] = None,
    tracking_number: Optional[str] = None,
    payment_status: Optional[PaymentStatus] = None,
) -> Order:
    """Admin order update: status, tracking number and payment status.

    Status only moves one step forward along Pending, Packaging, Shipping,
    Delivered, or to Cancelled where the table allows it.
    """
    order = await load_order(db, order_id, for_update=True)

    if tracking_number is not None:
        order.tracking_number = tracking_number.strip() or None

    if payment_status is not None and payment_status != (
        order.payment.status if order.payment else None
    ):
        await set_payment_status(db, order, payment_status)

    if new_status is not None and new_status != order.status:
        if new_status != OrderStatus.CANCELLED:
            _require_forward_step(order.status, new_status)
        if new_status == OrderStatus.DELIVERED:
            await _deliver(db, order)
        else:
            await set_order_status(db, order, new_status)

    await db.commit()
    return await load_order(db, order_id)


def _require_forward_step(current: OrderStatus, target: OrderStatus) -> None:
    if current not in ORDER_SEQUENCE or target not in ORDER_SEQUENCE:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Cannot change order status from {current.value} to {target.value}",
        )
    if ORDER_SEQUENCE.index(target) != ORDER_SEQUENCE.index(current) + 1:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Order status can only advance one step from {current.value}",
        )
