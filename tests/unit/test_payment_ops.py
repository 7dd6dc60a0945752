"""Unit tests for payment_ops: webhook handling, expiry sweep and polling.

QRIS orders are created through checkout_ops against the Midtrans stub, so
every test starts from a real pending transaction.
"""

from datetime import timedelta

import pytest
from fastapi import HTTPException
from libs.common.datetime_utils import utc_now
from services.store_service.models import (
    Notification,
    NotificationType,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    ProductSize,
    TransactionStatus,
)
from services.store_service.services import checkout_ops, order_ops, payment_ops
from services.store_service.services.notification_ops import PAYMENT_EXPIRED_MESSAGE
from sqlalchemy import select
from tests.factories import ProductFactory, UserFactory, signed_notification

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _qris_order(db, midtrans, user=None, product=None, quantity=1):
    if user is None:
        user = UserFactory.create()
        db.add(user)
    if product is None:
        product = ProductFactory.create(stock_30ml=10)
        db.add(product)
    await db.commit()

    order = await checkout_ops.create_buy_now_order(
        db,
        user=user,
        product_id=product.id,
        size=ProductSize.ML_30,
        quantity=quantity,
        payment_method=PaymentMethod.QRIS,
        client=midtrans.client(),
    )
    return user, product, order


async def _lapse(db, transaction, minutes=1):
    transaction.expired_at = utc_now() - timedelta(minutes=minutes)
    await db.commit()


async def _notifications(db, user_id):
    result = await db.execute(
        select(Notification)
        .where(Notification.user_id == user_id)
        .order_by(Notification.id)
    )
    return list(result.scalars().all())


def _notification_for(order, transaction_status, gross_amount=None, **extra):
    return signed_notification(
        order.transaction.gateway_order_id,
        gross_amount or f"{order.transaction.gross_amount}.00",
        transaction_status,
        **extra,
    )


# ---------------------------------------------------------------------------
# Gateway status mapping
# ---------------------------------------------------------------------------


@pytest.mark.unit
@pytest.mark.parametrize(
    "transaction_status, fraud_status, expected",
    [
        ("settlement", None, TransactionStatus.SETTLEMENT),
        ("capture", "accept", TransactionStatus.SETTLEMENT),
        ("capture", "challenge", None),
        ("expire", None, TransactionStatus.EXPIRE),
        ("cancel", None, TransactionStatus.CANCEL),
        ("deny", None, TransactionStatus.DENY),
        ("failure", None, TransactionStatus.DENY),
        ("pending", None, None),
        (None, None, None),
    ],
)
def test_map_gateway_status(transaction_status, fraud_status, expected):
    assert payment_ops.map_gateway_status(transaction_status, fraud_status) == expected


# ---------------------------------------------------------------------------
# handle_notification
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_settlement_marks_order_paid_and_packaging(db_session, midtrans):
    user, _, order = await _qris_order(db_session, midtrans)
    payload = _notification_for(order, "settlement")

    outcome = await payment_ops.handle_notification(db_session, payload)

    assert outcome == "applied"
    order = await order_ops.load_order(db_session, order.id)
    assert order.status == OrderStatus.PACKAGING
    assert order.payment.status == PaymentStatus.SUCCESS
    assert order.payment.transaction_time is not None
    assert order.transaction.status == TransactionStatus.SETTLEMENT
    assert order.transaction.raw_notification["transaction_status"] == "settlement"

    types = [n.type for n in await _notifications(db_session, user.id)]
    assert types == [
        NotificationType.PAYMENT,
        NotificationType.PAYMENT,
        NotificationType.ORDER_UPDATE,
    ]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_duplicate_settlement_is_a_no_op(db_session, midtrans):
    user, _, order = await _qris_order(db_session, midtrans)
    payload = _notification_for(order, "settlement")

    assert await payment_ops.handle_notification(db_session, payload) == "applied"
    before = len(await _notifications(db_session, user.id))
    assert await payment_ops.handle_notification(db_session, payload) == "duplicate"

    assert len(await _notifications(db_session, user.id)) == before
    order = await order_ops.load_order(db_session, order.id)
    assert order.status == OrderStatus.PACKAGING


@pytest.mark.asyncio
@pytest.mark.unit
async def test_amount_mismatch_is_ignored(db_session, midtrans):
    _, _, order = await _qris_order(db_session, midtrans)
    payload = _notification_for(order, "settlement", gross_amount="1.00")

    assert await payment_ops.handle_notification(db_session, payload) == "ignored"

    order = await order_ops.load_order(db_session, order.id)
    assert order.status == OrderStatus.PENDING
    assert order.transaction.status == TransactionStatus.PENDING


@pytest.mark.asyncio
@pytest.mark.unit
async def test_unknown_transaction_is_ignored(db_session):
    payload = signed_notification("ORDER-999-1700000000", "150000.00", "settlement")

    assert await payment_ops.handle_notification(db_session, payload) == "ignored"


@pytest.mark.asyncio
@pytest.mark.unit
@pytest.mark.parametrize("transaction_status", ["pending", "capture"])
async def test_non_final_statuses_change_nothing(
    db_session, midtrans, transaction_status
):
    _, _, order = await _qris_order(db_session, midtrans)
    payload = _notification_for(order, transaction_status, fraud_status="challenge")

    assert await payment_ops.handle_notification(db_session, payload) == "ignored"

    order = await order_ops.load_order(db_session, order.id)
    assert order.transaction.status == TransactionStatus.PENDING


@pytest.mark.asyncio
@pytest.mark.unit
async def test_expire_notification_cancels_and_restocks(db_session, midtrans):
    user, product, order = await _qris_order(db_session, midtrans, quantity=3)
    await db_session.refresh(product)
    assert product.stock_30ml == 7

    outcome = await payment_ops.handle_notification(
        db_session, _notification_for(order, "expire", status_code="407")
    )

    assert outcome == "applied"
    order = await order_ops.load_order(db_session, order.id)
    assert order.status == OrderStatus.CANCELLED
    assert order.payment.status == PaymentStatus.FAILED
    assert order.transaction.status == TransactionStatus.EXPIRE
    await db_session.refresh(product)
    assert product.stock_30ml == 10

    notifications = await _notifications(db_session, user.id)
    assert len(notifications) == 2
    assert notifications[-1].message == PAYMENT_EXPIRED_MESSAGE.format(code=order.code)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_late_settlement_after_expiry_is_ignored(db_session, midtrans):
    _, product, order = await _qris_order(db_session, midtrans)
    await payment_ops.handle_notification(
        db_session, _notification_for(order, "expire", status_code="407")
    )

    outcome = await payment_ops.handle_notification(
        db_session, _notification_for(order, "settlement")
    )

    assert outcome == "duplicate"
    order = await order_ops.load_order(db_session, order.id)
    assert order.status == OrderStatus.CANCELLED
    assert order.payment.status == PaymentStatus.FAILED
    await db_session.refresh(product)
    assert product.stock_30ml == 10


# ---------------------------------------------------------------------------
# expire_stale_transactions
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_sweep_expires_only_lapsed_transactions(db_session, midtrans):
    user, product, stale = await _qris_order(db_session, midtrans)
    _, _, fresh = await _qris_order(db_session, midtrans, user=user, product=product)
    await _lapse(db_session, stale.transaction)

    assert await payment_ops.expire_stale_transactions(db_session) == 1
    assert await payment_ops.expire_stale_transactions(db_session) == 0

    stale = await order_ops.load_order(db_session, stale.id)
    fresh = await order_ops.load_order(db_session, fresh.id)
    assert stale.status == OrderStatus.CANCELLED
    assert stale.payment.status == PaymentStatus.FAILED
    assert stale.transaction.status == TransactionStatus.EXPIRE
    assert fresh.status == OrderStatus.PENDING
    assert fresh.transaction.status == TransactionStatus.PENDING

    await db_session.refresh(product)
    assert product.stock_30ml == 9


@pytest.mark.asyncio
@pytest.mark.unit
async def test_sweep_respects_batch_size(db_session, midtrans):
    user, product, first = await _qris_order(db_session, midtrans)
    orders = [first]
    for _ in range(2):
        orders.append(
            (await _qris_order(db_session, midtrans, user=user, product=product))[2]
        )
    for order in orders:
        await _lapse(db_session, order.transaction)

    assert await payment_ops.expire_stale_transactions(db_session, batch_size=2) == 2
    assert await payment_ops.expire_stale_transactions(db_session, batch_size=2) == 1


@pytest.mark.asyncio
@pytest.mark.unit
async def test_webhook_after_sweep_does_not_resurrect_order(db_session, midtrans):
    user, _, order = await _qris_order(db_session, midtrans)
    await _lapse(db_session, order.transaction)
    await payment_ops.expire_stale_transactions(db_session)
    before = len(await _notifications(db_session, user.id))

    outcome = await payment_ops.handle_notification(
        db_session, _notification_for(order, "settlement")
    )

    assert outcome == "duplicate"
    order = await order_ops.load_order(db_session, order.id)
    assert order.status == OrderStatus.CANCELLED
    assert len(await _notifications(db_session, user.id)) == before


@pytest.mark.asyncio
@pytest.mark.unit
async def test_sweep_skips_notice_when_order_moved_on(db_session, midtrans):
    user, _, order = await _qris_order(db_session, midtrans)
    await order_ops.advance_status(
        db_session, order_id=order.id, new_status=OrderStatus.PACKAGING
    )
    await _lapse(db_session, order.transaction)
    before = len(await _notifications(db_session, user.id))

    assert await payment_ops.expire_stale_transactions(db_session) == 1

    order = await order_ops.load_order(db_session, order.id)
    assert order.status == OrderStatus.PACKAGING
    assert order.transaction.status == TransactionStatus.EXPIRE
    assert len(await _notifications(db_session, user.id)) == before


@pytest.mark.asyncio
@pytest.mark.unit
async def test_denial_skips_notice_when_order_moved_on(db_session, midtrans):
    user, _, order = await _qris_order(db_session, midtrans)
    await order_ops.advance_status(
        db_session, order_id=order.id, new_status=OrderStatus.PACKAGING
    )
    before = len(await _notifications(db_session, user.id))

    outcome = await payment_ops.handle_notification(
        db_session, _notification_for(order, "deny", status_code="202")
    )

    assert outcome == "applied"
    order = await order_ops.load_order(db_session, order.id)
    assert order.status == OrderStatus.PACKAGING
    assert len(await _notifications(db_session, user.id)) == before


# ---------------------------------------------------------------------------
# refresh_payment_status and issue_qris
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_polling_a_lapsed_qris_expires_it(db_session, midtrans):
    user, _, order = await _qris_order(db_session, midtrans)
    await _lapse(db_session, order.transaction)

    refreshed = await payment_ops.refresh_payment_status(
        db_session, order_id=order.id, user_id=user.id
    )

    assert refreshed.status == OrderStatus.CANCELLED
    assert refreshed.transaction.status == TransactionStatus.EXPIRE


@pytest.mark.asyncio
@pytest.mark.unit
async def test_polling_picks_up_a_missed_settlement(db_session, midtrans):
    user, _, order = await _qris_order(db_session, midtrans)
    midtrans.status_body = {"status_code": "200", "transaction_status": "settlement"}

    refreshed = await payment_ops.refresh_payment_status(
        db_session, order_id=order.id, user_id=user.id, client=midtrans.client()
    )

    assert refreshed.status == OrderStatus.PACKAGING
    assert refreshed.payment.status == PaymentStatus.SUCCESS
    assert midtrans.requests[-1].url.path.endswith("/status")


class _GatewayRacingWebhook:
    """Status lookup during which the settlement webhook lands first."""

    def __init__(self, db, payload):
        self.db = db
        self.payload = payload
        self.lookups = 0

    async def get_status(self, gateway_order_id):
        self.lookups += 1
        await payment_ops.handle_notification(self.db, self.payload)
        return {"status_code": "202", "transaction_status": "deny"}


@pytest.mark.asyncio
@pytest.mark.unit
async def test_polling_rechecks_transaction_after_gateway_lookup(db_session, midtrans):
    user, _, order = await _qris_order(db_session, midtrans)
    gateway = _GatewayRacingWebhook(
        db_session, _notification_for(order, "settlement")
    )

    refreshed = await payment_ops.refresh_payment_status(
        db_session, order_id=order.id, user_id=user.id, client=gateway
    )

    assert gateway.lookups == 1
    assert refreshed.status == OrderStatus.PACKAGING
    assert refreshed.payment.status == PaymentStatus.SUCCESS
    assert refreshed.transaction.status == TransactionStatus.SETTLEMENT


@pytest.mark.asyncio
@pytest.mark.unit
async def test_issue_qris_reuses_live_transaction(db_session, midtrans):
    user, _, order = await _qris_order(db_session, midtrans)

    transaction = await payment_ops.issue_qris(
        db_session, order_id=order.id, user=user, client=midtrans.client()
    )

    assert transaction.gateway_order_id == order.transaction.gateway_order_id
    assert len(midtrans.charges) == 1


@pytest.mark.asyncio
@pytest.mark.unit
async def test_issue_qris_for_lapsed_transaction_is_conflict(db_session, midtrans):
    user, _, order = await _qris_order(db_session, midtrans)
    await _lapse(db_session, order.transaction)

    with pytest.raises(HTTPException) as exc:
        await payment_ops.issue_qris(
            db_session, order_id=order.id, user=user, client=midtrans.client()
        )

    assert exc.value.status_code == 409


@pytest.mark.asyncio
@pytest.mark.unit
async def test_issue_qris_rejects_other_payment_methods(db_session, midtrans):
    user = UserFactory.create()
    product = ProductFactory.create()
    db_session.add_all([user, product])
    await db_session.commit()
    order = await checkout_ops.create_buy_now_order(
        db_session,
        user=user,
        product_id=product.id,
        size=ProductSize.ML_50,
        quantity=1,
        payment_method=PaymentMethod.VIRTUAL_ACCOUNT,
    )

    with pytest.raises(HTTPException) as exc:
        await payment_ops.issue_qris(
            db_session, order_id=order.id, user=user, client=midtrans.client()
        )

    assert exc.value.status_code == 400
