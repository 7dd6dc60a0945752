"""Integration tests for the payments router and the Midtrans webhook."""

import pytest
from services.store_service.models import ProductSize
from tests.factories import (
    OrderFactory,
    ProductFactory,
    UserFactory,
    signed_notification,
)

WEBHOOK = "/api/payments/midtrans/notification"


async def _qris_order(client, db_session):
    product = ProductFactory.create()
    db_session.add(product)
    await db_session.commit()
    await client.put(
        "/api/profile",
        json={"phone": "081234567890", "address_line": "Jl. Melati 5", "city": "Bandung"},
    )
    response = await client.post(
        "/api/orders/buy-now",
        json={
            "product_id": product.id,
            "size": "30ml",
            "quantity": 1,
            "payment_method": "QRIS",
        },
    )
    assert response.status_code == 201, response.text
    return product, response.json()


@pytest.mark.asyncio
@pytest.mark.integration
async def test_webhook_rejects_bad_signature(client, db_session, midtrans):
    _, order = await _qris_order(client, db_session)
    payload = signed_notification(
        order["transaction"]["gateway_order_id"], "150000.00", "settlement"
    )
    payload["signature_key"] = "0" * 128

    response = await client.post(WEBHOOK, json=payload)

    assert response.status_code == 401
    status = (await client.get(f"/api/orders/{order['id']}/payment-status")).json()
    assert status["order_status"] == "Pending"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_webhook_acknowledges_unusable_bodies(client):
    not_json = await client.post(
        WEBHOOK, content=b"not json", headers={"Content-Type": "application/json"}
    )
    not_object = await client.post(WEBHOOK, json=["settlement"])

    assert not_json.status_code == 200
    assert not_json.json() == {"status": "ok"}
    assert not_object.json() == {"status": "ok"}


@pytest.mark.asyncio
@pytest.mark.integration
async def test_webhook_for_unknown_order_is_ignored(client):
    response = await client.post(
        WEBHOOK,
        json=signed_notification("ORDER-404-1700000000", "150000.00", "settlement"),
    )

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "result": "ignored"}


@pytest.mark.asyncio
@pytest.mark.integration
async def test_expire_notification_cancels_order(client, db_session, midtrans):
    product, order = await _qris_order(client, db_session)

    response = await client.post(
        WEBHOOK,
        json=signed_notification(
            order["transaction"]["gateway_order_id"],
            "150000.00",
            "expire",
            status_code="407",
        ),
    )

    assert response.json()["result"] == "applied"
    detail = (await client.get(f"/api/orders/{order['id']}")).json()
    assert detail["status"] == "Cancelled"
    assert detail["payment"]["status"] == "Failed"
    assert (await client.get(f"/api/products/{product.id}")).json()["stock_30ml"] == 10


@pytest.mark.asyncio
@pytest.mark.integration
async def test_qris_endpoint_reuses_live_charge(client, db_session, midtrans):
    _, order = await _qris_order(client, db_session)

    response = await client.post("/api/payments/qris", json={"order_id": order["id"]})

    assert response.status_code == 200
    data = response.json()
    assert data["gateway_order_id"] == order["transaction"]["gateway_order_id"]
    assert data["qr_url"].endswith("/qr-code")
    assert data["gross_amount"] == 150000
    assert len(midtrans.charges) == 1


@pytest.mark.asyncio
@pytest.mark.integration
async def test_qris_endpoint_for_someone_elses_order(client, db_session, midtrans):
    other = UserFactory.create()
    product = ProductFactory.create()
    db_session.add_all([other, product])
    await db_session.commit()
    order = OrderFactory.create(
        user_id=other.id, lines=[(product, ProductSize.ML_30, 1)]
    )
    db_session.add(order)
    await db_session.commit()

    response = await client.post("/api/payments/qris", json={"order_id": order.id})

    assert response.status_code == 404
    assert midtrans.charges == []
