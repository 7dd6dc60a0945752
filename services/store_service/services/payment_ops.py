"""Payment bridge: QRIS charges, gateway notifications and the expiry sweep.

The webhook and the sweep are the two writers of PaymentTransaction.status.
Both go through ``apply_transaction_outcome`` so a transaction leaves
``pending`` exactly once and the order/payment cascade runs exactly once.
"""

from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Optional

from fastapi import HTTPException, status
from libs.common.config import get_settings
from libs.common.currency import to_whole_rupiah
from libs.common.datetime_utils import ensure_utc, utc_now
from libs.common.logging import get_logger
from services.store_service.midtrans_client import MidtransClient, MidtransError
from services.store_service.models import (
    Order,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    PaymentTransaction,
    TransactionStatus,
    User,
)
from services.store_service.services import notification_ops, order_ops
from services.store_service.services.order_codes import make_gateway_order_id
from services.store_service.services.transitions import (
    PAYMENT_TRANSITIONS,
    TRANSACTION_TRANSITIONS,
    can_transition,
)
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

# Midtrans transaction_status -> stored status. "pending" is deliberately absent.
GATEWAY_STATUS_MAP = {
    "capture": TransactionStatus.SETTLEMENT,
    "settlement": TransactionStatus.SETTLEMENT,
    "expire": TransactionStatus.EXPIRE,
    "cancel": TransactionStatus.CANCEL,
    "deny": TransactionStatus.DENY,
    "failure": TransactionStatus.DENY,
}


def map_gateway_status(
    transaction_status: Optional[str], fraud_status: Optional[str] = None
) -> Optional[TransactionStatus]:
    if transaction_status == "capture" and fraud_status == "challenge":
        return None
    return GATEWAY_STATUS_MAP.get(transaction_status or "")


# ---------------------------------------------------------------------------
# Charge creation
# ---------------------------------------------------------------------------


async def create_gateway_transaction(
    db: AsyncSession,
    order: Order,
    *,
    client: MidtransClient,
    user: Optional[User] = None,
) -> PaymentTransaction:
    """Create the QRIS charge for an order inside the caller's transaction.

    Returns the existing transaction when a live one is already attached.
    Raises ``MidtransError`` when the gateway rejects the charge; callers
    map it to a 502 and roll back.
    """
    result = await db.execute(
        select(PaymentTransaction).where(PaymentTransaction.order_id == order.id)
    )
    existing = result.scalar_one_or_none()
    if existing is not None:
        if existing.status == TransactionStatus.PENDING and not is_lapsed(existing):
            return existing
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="QRIS payment for this order is no longer available",
        )

    gateway_order_id = make_gateway_order_id(order.id)
    charge = await client.charge_qris(
        gateway_order_id=gateway_order_id,
        gross_amount=to_whole_rupiah(order.total_price),
        customer_name=(user.name if user else None) or order.recipient_name,
        customer_email=user.email if user else None,
        customer_phone=order.phone,
    )

    transaction = PaymentTransaction(
        order_id=order.id,
        gateway_order_id=charge.gateway_order_id,
        gateway_transaction_id=charge.transaction_id,
        payment_type="qris",
        gross_amount=charge.gross_amount,
        qr_url=charge.qr_url,
        status=TransactionStatus.PENDING,
        expired_at=charge.expires_at,
        raw_response=charge.raw,
    )
    db.add(transaction)
    await db.flush()
    return transaction


async def issue_qris(
    db: AsyncSession, *, order_id: int, user: User, client: MidtransClient
) -> PaymentTransaction:
    """(Re)issue the QRIS for one of the user's unpaid QRIS orders."""
    order = await order_ops.load_order(db, order_id, user_id=user.id, for_update=True)
    if order.payment_method != PaymentMethod.QRIS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Order is not paid with QRIS",
        )
    if order.status != OrderStatus.PENDING or (
        order.payment is not None and order.payment.status != PaymentStatus.PENDING
    ):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Order is not awaiting payment",
        )

    try:
        transaction = await create_gateway_transaction(
            db, order, client=client, user=user
        )
    except MidtransError as exc:
        await db.rollback()
        raise gateway_http_error(exc)

    await db.commit()
    return transaction


def gateway_http_error(exc: MidtransError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail={"message": exc.message, "gateway_response": exc.response_data},
    )


def is_lapsed(transaction: PaymentTransaction, now: Optional[datetime] = None) -> bool:
    return ensure_utc(transaction.expired_at) <= (now or utc_now())


# ---------------------------------------------------------------------------
# State cascade shared by webhook, sweep and status polling
# ---------------------------------------------------------------------------


async def apply_transaction_outcome(
    db: AsyncSession,
    transaction: PaymentTransaction,
    order: Order,
    target: TransactionStatus,
) -> bool:
    """Move a transaction out of ``pending`` and cascade to payment and order.

    Returns False (and changes nothing) when the transaction already left
    ``pending``, which makes duplicate deliveries harmless.
    """
    if not can_transition(TRANSACTION_TRANSITIONS, transaction.status, target):
        logger.info(
            "Transaction %s already %s; ignoring %s",
            transaction.gateway_order_id,
            transaction.status.value,
            target.value,
        )
        return False

    transaction.status = target
    transaction.updated_at = utc_now()
    payment = order.payment

    if target == TransactionStatus.SETTLEMENT:
        if payment is not None and can_transition(
            PAYMENT_TRANSITIONS, payment.status, PaymentStatus.SUCCESS
        ):
            await order_ops.set_payment_status(db, order, PaymentStatus.SUCCESS)
        if order.status == OrderStatus.PENDING:
            await order_ops.set_order_status(db, order, OrderStatus.PACKAGING)
        else:
            logger.warning(
                "Settlement for order %s in status %s",
                order.id,
                order.status.value,
            )
        return True

    if payment is not None and payment.status == PaymentStatus.PENDING:
        await order_ops.set_payment_status(
            db, order, PaymentStatus.FAILED, notify=False
        )
    if order.status == OrderStatus.PENDING:
        await order_ops.set_order_status(
            db, order, OrderStatus.CANCELLED, notify=False
        )
        message = (
            notification_ops.PAYMENT_EXPIRED_MESSAGE
            if target == TransactionStatus.EXPIRE
            else notification_ops.PAYMENT_FAILED_MESSAGE
        )
        await notification_ops.notify_payment(db, order, message)
    return True


# ---------------------------------------------------------------------------
# Webhook
# ---------------------------------------------------------------------------


def _parse_amount(value) -> Optional[int]:
    try:
        return to_whole_rupiah(Decimal(str(value)))
    except (InvalidOperation, ValueError, TypeError):
        return None


async def handle_notification(db: AsyncSession, payload: dict) -> str:
    """Apply a verified Midtrans notification. Returns a short outcome label.

    Unknown orders, amount mismatches and unmapped statuses are logged and
    ignored; the gateway always gets a 200 so it stops retrying.
    """
    gateway_order_id = payload.get("order_id")
    if not gateway_order_id:
        logger.warning("Notification without order_id ignored")
        return "ignored"

    result = await db.execute(
        select(PaymentTransaction)
        .where(PaymentTransaction.gateway_order_id == gateway_order_id)
        .with_for_update()
    )
    transaction = result.scalar_one_or_none()
    if transaction is None:
        logger.warning("Notification for unknown transaction %s", gateway_order_id)
        return "ignored"

    amount = _parse_amount(payload.get("gross_amount"))
    if amount != transaction.gross_amount:
        logger.warning(
            "Amount mismatch for %s: expected %s, got %s",
            gateway_order_id,
            transaction.gross_amount,
            payload.get("gross_amount"),
        )
        return "ignored"

    target = map_gateway_status(
        payload.get("transaction_status"), payload.get("fraud_status")
    )
    if target is None:
        logger.info(
            "No state change for %s (%s)",
            gateway_order_id,
            payload.get("transaction_status"),
        )
        return "ignored"

    order = await order_ops.load_order(db, transaction.order_id, for_update=True)
    applied = await apply_transaction_outcome(db, transaction, order, target)
    if not applied:
        return "duplicate"

    transaction.raw_notification = payload
    if payload.get("transaction_id"):
        transaction.gateway_transaction_id = payload["transaction_id"]
    await db.commit()

    logger.info(
        "Applied %s to order %s",
        target.value,
        order.id,
        extra={"extra_fields": {"order_id": order.id, "gateway_status": target.value}},
    )
    return "applied"


# ---------------------------------------------------------------------------
# Expiry sweep
# ---------------------------------------------------------------------------


async def expire_stale_transactions(
    db: AsyncSession, *, now: Optional[datetime] = None, batch_size: int = None
) -> int:
    """Expire pending QRIS transactions past their deadline.

    One database transaction per batch: either every selected row is expired
    (with its payment/order cascade) or none is. Rows are locked, so a
    concurrent webhook for the same transaction waits and then sees a
    terminal status.
    """
    now = now or utc_now()
    batch_size = batch_size or get_settings().EXPIRY_SWEEP_BATCH_SIZE

    try:
        result = await db.execute(
            select(PaymentTransaction)
            .where(PaymentTransaction.status == TransactionStatus.PENDING)
            .where(PaymentTransaction.expired_at <= now)
            .order_by(PaymentTransaction.id)
            .limit(batch_size)
            .with_for_update(skip_locked=True)
        )
        transactions = list(result.scalars().all())

        expired = 0
        for transaction in transactions:
            order = await order_ops.load_order(
                db, transaction.order_id, for_update=True
            )
            if await apply_transaction_outcome(
                db, transaction, order, TransactionStatus.EXPIRE
            ):
                expired += 1

        await db.commit()
    except Exception:
        await db.rollback()
        logger.exception("Expiry sweep failed; batch rolled back")
        raise

    if expired:
        logger.info("Expired %d stale QRIS transactions", expired)
    return expired


# ---------------------------------------------------------------------------
# Status polling
# ---------------------------------------------------------------------------


async def refresh_payment_status(
    db: AsyncSession,
    *,
    order_id: int,
    user_id: int,
    client: Optional[MidtransClient] = None,
) -> Order:
    """Return the order after reconciling a pending QRIS.

    A lapsed transaction is expired on read. A live one is checked against
    the gateway when a client is available, which covers lost webhooks.
    """
    order = await order_ops.load_order(db, order_id, user_id=user_id)
    transaction = order.transaction
    if transaction is None or transaction.status != TransactionStatus.PENDING:
        return order

    target: Optional[TransactionStatus] = None
    if is_lapsed(transaction):
        target = TransactionStatus.EXPIRE
    elif client is not None:
        try:
            data = await client.get_status(transaction.gateway_order_id)
        except MidtransError as exc:
            logger.warning(
                "Status check for %s failed: %s", transaction.gateway_order_id, exc
            )
        else:
            target = map_gateway_status(
                data.get("transaction_status"), data.get("fraud_status")
            )

    if target is None:
        return order

    # Same lock order as the webhook and the sweep: transaction, then order.
    result = await db.execute(
        select(PaymentTransaction)
        .where(PaymentTransaction.id == transaction.id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    transaction = result.scalar_one()
    order = await order_ops.load_order(db, order_id, for_update=True)
    await apply_transaction_outcome(db, transaction, order, target)
    await db.commit()
    return await order_ops.load_order(db, order_id)
