"""Integration tests for the cart and wishlist endpoints."""

from decimal import Decimal

import pytest
from tests.factories import ProductFactory


async def _product(db_session, **overrides):
    product = ProductFactory.create(**overrides)
    db_session.add(product)
    await db_session.commit()
    return product


# ---------------------------------------------------------------------------
# Cart
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_add_to_cart_merges_lines_and_prices_them(client, db_session):
    product = await _product(db_session)

    await client.post(
        "/api/cart/items", json={"product_id": product.id, "size": "30ml"}
    )
    await client.post(
        "/api/cart/items",
        json={"product_id": product.id, "size": "30ml", "quantity": 2},
    )
    response = await client.post(
        "/api/cart/items", json={"product_id": product.id, "size": "50ml"}
    )

    assert response.status_code == 201
    cart = response.json()
    assert [(i["size"], i["quantity"]) for i in cart["items"]] == [
        ("30ml", 3),
        ("50ml", 1),
    ]
    assert Decimal(cart["items"][0]["unit_price"]) == Decimal("150000")
    assert Decimal(cart["items"][0]["line_total"]) == Decimal("450000")
    assert cart["items"][0]["stock_available"] == 10
    assert cart["item_count"] == 4
    assert Decimal(cart["total"]) == Decimal("671000")


@pytest.mark.asyncio
@pytest.mark.integration
async def test_add_to_cart_is_limited_by_stock(client, db_session):
    product = await _product(db_session, stock_50ml=2)
    await client.post(
        "/api/cart/items",
        json={"product_id": product.id, "size": "50ml", "quantity": 2},
    )

    response = await client.post(
        "/api/cart/items", json={"product_id": product.id, "size": "50ml"}
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Only 2 in stock"
    assert (await client.get("/api/cart")).json()["item_count"] == 2


@pytest.mark.asyncio
@pytest.mark.integration
async def test_add_unknown_product_or_size(client):
    unknown = await client.post(
        "/api/cart/items", json={"product_id": 4040, "size": "30ml"}
    )
    bad_size = await client.post(
        "/api/cart/items", json={"product_id": 1, "size": "100ml"}
    )

    assert unknown.status_code == 404
    assert bad_size.status_code == 422


@pytest.mark.asyncio
@pytest.mark.integration
async def test_update_and_remove_cart_line(client, db_session):
    product = await _product(db_session, stock_30ml=5)
    cart = (
        await client.post(
            "/api/cart/items", json={"product_id": product.id, "size": "30ml"}
        )
    ).json()
    item_id = cart["items"][0]["id"]

    updated = await client.patch(f"/api/cart/items/{item_id}", json={"quantity": 4})
    too_many = await client.patch(f"/api/cart/items/{item_id}", json={"quantity": 6})
    zero = await client.patch(f"/api/cart/items/{item_id}", json={"quantity": 0})

    assert updated.status_code == 200
    assert updated.json()["items"][0]["quantity"] == 4
    assert too_many.status_code == 400
    assert zero.status_code == 422

    removed = await client.delete(f"/api/cart/items/{item_id}")
    assert removed.status_code == 200
    assert removed.json() == {"items": [], "item_count": 0, "total": "0"}

    assert (await client.delete(f"/api/cart/items/{item_id}")).status_code == 404


@pytest.mark.asyncio
@pytest.mark.integration
async def test_cart_reflects_current_catalog_price(client, db_session):
    product = await _product(db_session)
    await client.post(
        "/api/cart/items", json={"product_id": product.id, "size": "30ml"}
    )

    product.price_30ml = Decimal("175000")
    await db_session.commit()

    cart = (await client.get("/api/cart")).json()
    assert Decimal(cart["total"]) == Decimal("175000")


# ---------------------------------------------------------------------------
# Wishlist
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_wishlist_add_is_idempotent(client, db_session):
    product = await _product(db_session, name="Amber Nights")

    first = await client.post("/api/wishlist", json={"product_id": product.id})
    second = await client.post("/api/wishlist", json={"product_id": product.id})

    assert first.status_code == 201
    assert len(second.json()) == 1
    assert second.json()[0]["product"]["name"] == "Amber Nights"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_wishlist_remove(client, db_session):
    product = await _product(db_session)
    await client.post("/api/wishlist", json={"product_id": product.id})

    removed = await client.delete(f"/api/wishlist/{product.id}")
    again = await client.delete(f"/api/wishlist/{product.id}")

    assert removed.status_code == 204
    assert again.status_code == 404
    assert (await client.get("/api/wishlist")).json() == []


@pytest.mark.asyncio
@pytest.mark.integration
async def test_wishlist_unknown_product(client):
    response = await client.post("/api/wishlist", json={"product_id": 4040})

    assert response.status_code == 404
