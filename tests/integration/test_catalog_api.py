"""Integration tests for the public catalog and admin product management."""

from decimal import Decimal

import pytest
from services.store_service.app.main import app
from services.store_service.models import OrderStatus, ProductSize, Rating
from tests.conftest import make_admin_user, override_auth
from tests.factories import OrderFactory, ProductFactory, UserFactory


async def _products(db_session, *overrides):
    products = [ProductFactory.create(**fields) for fields in overrides]
    db_session.add_all(products)
    await db_session.commit()
    return products


# ---------------------------------------------------------------------------
# Public catalog
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_list_products_searches_name_and_notes(client, db_session):
    await _products(
        db_session,
        {"name": "Ocean Breeze", "top_notes": "Sea Salt"},
        {"name": "Velvet Oud", "base_notes": "Oud, Amber"},
        {"name": "Citrus Day", "top_notes": "Lemon"},
    )

    by_name = (await client.get("/api/products", params={"search": "velvet"})).json()
    by_note = (await client.get("/api/products", params={"search": "amber"})).json()

    assert [p["name"] for p in by_name["items"]] == ["Velvet Oud"]
    assert [p["name"] for p in by_note["items"]] == ["Velvet Oud"]
    assert by_note["total"] == 1


@pytest.mark.asyncio
@pytest.mark.integration
async def test_list_products_filters_sorts_and_pages(client, db_session):
    await _products(
        db_session,
        {"name": "B", "category": "Women", "price_30ml": Decimal("200000")},
        {"name": "A", "category": "Women", "price_30ml": Decimal("120000")},
        {"name": "C", "category": "Men", "price_30ml": Decimal("90000")},
    )

    women = (
        await client.get(
            "/api/products", params={"category": "Women", "sort": "price_asc"}
        )
    ).json()
    page = (
        await client.get(
            "/api/products", params={"sort": "name", "page": 2, "page_size": 2}
        )
    ).json()

    assert [p["name"] for p in women["items"]] == ["A", "B"]
    assert page["total"] == 3
    assert page["page"] == 2
    assert [p["name"] for p in page["items"]] == ["C"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_best_sellers_count_completed_orders_only(client, db_session):
    popular, quiet = await _products(db_session, {"name": "Popular"}, {"name": "Quiet"})
    db_session.add_all(
        [
            OrderFactory.create(
                lines=[(popular, ProductSize.ML_30, 3)], status=OrderStatus.DELIVERED
            ),
            OrderFactory.create(
                lines=[(quiet, ProductSize.ML_50, 1)], status=OrderStatus.PACKAGING
            ),
            OrderFactory.create(
                lines=[(quiet, ProductSize.ML_50, 9)], status=OrderStatus.CANCELLED
            ),
        ]
    )
    await db_session.commit()

    response = await client.get("/api/products/best-sellers")

    assert response.status_code == 200
    assert [(b["product"]["name"], b["quantity_sold"]) for b in response.json()] == [
        ("Popular", 3),
        ("Quiet", 1),
    ]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_product_detail_and_missing_product(client, db_session):
    (product,) = await _products(db_session, {"name": "Rose Garden"})

    found = await client.get(f"/api/products/{product.id}")
    missing = await client.get("/api/products/99999")

    assert found.status_code == 200
    assert found.json()["name"] == "Rose Garden"
    assert found.json()["average_rating"] is None
    assert found.json()["rating_count"] == 0
    assert Decimal(found.json()["price_50ml"]) == Decimal("221000")
    assert missing.status_code == 404


@pytest.mark.asyncio
@pytest.mark.integration
async def test_sort_by_rating_puts_unrated_last(client, db_session):
    user = UserFactory.create()
    _, loved, liked = await _products(
        db_session, {"name": "Unrated"}, {"name": "Loved"}, {"name": "Liked"}
    )
    db_session.add(user)
    await db_session.commit()
    for product, stars in ((loved, 5), (liked, 3)):
        order = OrderFactory.create(
            user_id=user.id,
            lines=[(product, ProductSize.ML_30, 1)],
            status=OrderStatus.DELIVERED,
        )
        db_session.add(order)
        await db_session.flush()
        db_session.add(
            Rating(
                user_id=user.id, product_id=product.id, order_id=order.id, stars=stars
            )
        )
    await db_session.commit()

    response = await client.get("/api/products", params={"sort": "rating"})

    assert [p["name"] for p in response.json()["items"]] == ["Loved", "Liked", "Unrated"]


# ---------------------------------------------------------------------------
# Admin products
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_customers_cannot_manage_products(client):
    response = await client.post(
        "/api/admin/products",
        json={"name": "Nope", "price_30ml": "100000", "price_50ml": "150000"},
    )

    assert response.status_code == 403


@pytest.mark.asyncio
@pytest.mark.integration
async def test_admin_product_lifecycle(client):
    with override_auth(app, make_admin_user()):
        created = await client.post(
            "/api/admin/products",
            json={
                "name": "Midnight Musk",
                "category": "Unisex",
                "top_notes": "Pink Pepper",
                "price_30ml": "150000",
                "price_50ml": "221000",
                "stock_30ml": 4,
            },
        )
        assert created.status_code == 201, created.text
        product_id = created.json()["id"]

        image = await client.post(
            f"/api/admin/products/{product_id}/images",
            json={"url": "https://cdn.example/midnight-50.jpg", "is_50ml": True},
        )
        assert image.status_code == 201
        assert image.json()["product_id"] == product_id

        restocked = await client.patch(
            f"/api/admin/products/{product_id}",
            json={"stock_30ml": 25, "stock_50ml": 12},
        )
        assert restocked.status_code == 200
        assert restocked.json()["stock_30ml"] == 25
        assert restocked.json()["name"] == "Midnight Musk"

        removed_image = await client.delete(
            f"/api/admin/products/{product_id}/images/{image.json()['id']}"
        )
        assert removed_image.status_code == 204

        deleted = await client.delete(f"/api/admin/products/{product_id}")
        assert deleted.status_code == 204

    assert (await client.get(f"/api/products/{product_id}")).status_code == 404


@pytest.mark.asyncio
@pytest.mark.integration
async def test_product_images_show_in_detail(client, db_session):
    (product,) = await _products(db_session, {})

    with override_auth(app, make_admin_user()):
        await client.post(
            f"/api/admin/products/{product.id}/images",
            json={"url": "https://cdn.example/30.jpg"},
        )

    detail = (await client.get(f"/api/products/{product.id}")).json()
    assert [(i["url"], i["is_50ml"]) for i in detail["images"]] == [
        ("https://cdn.example/30.jpg", False)
    ]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_negative_prices_are_rejected(client):
    with override_auth(app, make_admin_user()):
        response = await client.post(
            "/api/admin/products",
            json={"name": "Broken", "price_30ml": "-1", "price_50ml": "150000"},
        )

    assert response.status_code == 422
