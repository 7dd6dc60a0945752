"""In-app notifications: emitting, reading and the profile reminder."""

from typing import Optional

from fastapi import HTTPException, status
from libs.common.logging import get_logger
from services.store_service.models import (
    Notification,
    NotificationType,
    Order,
    OrderStatus,
    User,
)
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

PROFILE_REMINDER_MESSAGE = (
    "Complete your profile to enjoy a faster checkout experience. "
    "Add your shipping address and phone number."
)

# ---------------------------------------------------------------------------
# Message templates
# ---------------------------------------------------------------------------

ORDER_STATUS_MESSAGES = {
    OrderStatus.PACKAGING: "Your order {code} is being carefully packaged.",
    OrderStatus.SHIPPING: (
        "Your order {code} has been shipped. "
        "Track your package for delivery updates."
    ),
    OrderStatus.DELIVERED: "Your order {code} has been delivered.",
    OrderStatus.CANCELLED: "Your order {code} has been cancelled.",
}

PAYMENT_PENDING_MESSAGE = (
    "Your payment for order {code} is pending and is being processed."
)
PAYMENT_SUCCESS_MESSAGE = (
    "Your payment for order {code} was successful. Thank you for your purchase."
)
PAYMENT_FAILED_MESSAGE = (
    "Your payment for order {code} failed. "
    "Please try again or use another payment method."
)
PAYMENT_EXPIRED_MESSAGE = "Payment for order {code} has expired."
REFUND_MESSAGE = (
    "Your payment for order {code} has been refunded. "
    "The funds will be returned to your account shortly."
)
DELIVERY_REVIEW_MESSAGE = (
    "Great news! Your order {code} has been delivered. "
    "We'd love to hear your thoughts."
)


async def emit(
    db: AsyncSession,
    *,
    user_id: Optional[int],
    message: str,
    type: NotificationType,
    order_id: Optional[int] = None,
) -> Optional[Notification]:
    """Queue a notification in the caller's transaction.

    Orders without a customer (walk-in POS) produce no notification.
    """
    if user_id is None:
        return None
    notification = Notification(
        user_id=user_id, order_id=order_id, type=type, message=message
    )
    db.add(notification)
    await db.flush()
    return notification


async def notify_order_status(db: AsyncSession, order: Order) -> None:
    """Emit the OrderUpdate message for the order's current status."""
    template = ORDER_STATUS_MESSAGES.get(order.status)
    if template is None:
        return
    await emit(
        db,
        user_id=order.user_id,
        order_id=order.id,
        type=NotificationType.ORDER_UPDATE,
        message=template.format(code=order.code),
    )


async def notify_payment(db: AsyncSession, order: Order, template: str) -> None:
    await emit(
        db,
        user_id=order.user_id,
        order_id=order.id,
        type=NotificationType.PAYMENT,
        message=template.format(code=order.code),
    )


async def ensure_profile_reminder(db: AsyncSession, user: User) -> bool:
    """Create the ProfileReminder once per user while the profile is incomplete.

    Returns True when a reminder was created. A reminder that was already
    read still counts, so the user is never nagged twice.
    """
    if user.profile_complete:
        return False

    existing = await db.execute(
        select(Notification.id)
        .where(Notification.user_id == user.id)
        .where(Notification.type == NotificationType.PROFILE_REMINDER)
        .limit(1)
    )
    if existing.scalar_one_or_none() is not None:
        return False

    await emit(
        db,
        user_id=user.id,
        type=NotificationType.PROFILE_REMINDER,
        message=PROFILE_REMINDER_MESSAGE,
    )
    logger.info("Profile reminder created for user %s", user.id)
    return True


# ---------------------------------------------------------------------------
# Reading
# ---------------------------------------------------------------------------


async def list_notifications(
    db: AsyncSession, *, user_id: int, unread_only: bool = False
) -> list[Notification]:
    query = select(Notification).where(Notification.user_id == user_id)
    if unread_only:
        query = query.where(Notification.is_read.is_(False))
    query = query.order_by(Notification.created_at.desc(), Notification.id.desc())
    result = await db.execute(query)
    return list(result.scalars().all())


async def count_unread(db: AsyncSession, *, user_id: int) -> int:
    result = await db.execute(
        select(func.count(Notification.id))
        .where(Notification.user_id == user_id)
        .where(Notification.is_read.is_(False))
    )
    return result.scalar_one()


async def mark_read(
    db: AsyncSession, *, notification_id: int, user_id: int
) -> Notification:
    notification = await db.get(Notification, notification_id)
    if notification is None or notification.user_id != user_id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found"
        )
    if not notification.is_read:
        notification.is_read = True
        await db.commit()
        await db.refresh(notification)
    return notification


async def mark_all_read(db: AsyncSession, *, user_id: int) -> int:
    result = await db.execute(
        update(Notification)
        .where(Notification.user_id == user_id)
        .where(Notification.is_read.is_(False))
        .values(is_read=True)
    )
    await db.commit()
    return result.rowcount or 0
