"""Unit tests for the expiry sweep entry points used by the worker and CLI."""

from datetime import timedelta

import pytest
from libs.common.datetime_utils import utc_now
from services.store_service import tasks
from services.store_service.models import OrderStatus, PaymentMethod, ProductSize
from services.store_service.services import checkout_ops, order_ops
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from tests.factories import ProductFactory, UserFactory


@pytest.mark.asyncio
@pytest.mark.unit
async def test_expire_stale_payments_uses_its_own_session(
    db_session, test_engine, midtrans, monkeypatch
):
    user = UserFactory.create()
    product = ProductFactory.create()
    db_session.add_all([user, product])
    await db_session.commit()
    order = await checkout_ops.create_buy_now_order(
        db_session,
        user=user,
        product_id=product.id,
        size=ProductSize.ML_30,
        quantity=1,
        payment_method=PaymentMethod.QRIS,
        client=midtrans.client(),
    )
    order.transaction.expired_at = utc_now() - timedelta(minutes=1)
    await db_session.commit()

    monkeypatch.setattr(
        tasks,
        "AsyncSessionLocal",
        async_sessionmaker(bind=test_engine, class_=AsyncSession, expire_on_commit=False),
    )

    assert await tasks.expire_stale_payments() == 1

    order = await order_ops.load_order(db_session, order.id)
    assert order.status == OrderStatus.CANCELLED


@pytest.mark.unit
def test_main_exits_non_zero_when_the_sweep_fails(monkeypatch):
    async def broken_sweep():
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(tasks, "expire_stale_payments", broken_sweep)

    assert tasks.main() == 1


@pytest.mark.unit
def test_main_exits_zero_after_a_sweep(monkeypatch):
    async def quiet_sweep():
        return 0

    monkeypatch.setattr(tasks, "expire_stale_payments", quiet_sweep)

    assert tasks.main() == 0
