"""FastAPI application for the 5SCENT store."""

from fastapi import FastAPI
from libs.common.middleware import add_observability_middleware
from services.store_service.routers import (
    admin_catalog_router,
    admin_orders_router,
    admin_ratings_router,
    cart_router,
    catalog_router,
    notifications_router,
    orders_router,
    payments_router,
    pos_router,
    profile_router,
    ratings_router,
    wishlist_router,
)


def create_app() -> FastAPI:
    """Create and configure the store FastAPI app."""
    app = FastAPI(
        title="5SCENT Store Service",
        version="0.1.0",
        description="Perfume storefront - catalog, cart, checkout, QRIS payments, orders.",
    )
    add_observability_middleware(app)

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "store"}

    # Customer routes
    app.include_router(profile_router, prefix="/api")
    app.include_router(catalog_router, prefix="/api")
    app.include_router(cart_router, prefix="/api")
    app.include_router(wishlist_router, prefix="/api")
    app.include_router(orders_router, prefix="/api")
    app.include_router(ratings_router, prefix="/api")
    app.include_router(notifications_router, prefix="/api")
    # Includes the unauthenticated gateway webhook
    app.include_router(payments_router, prefix="/api")

    # Admin routes
    app.include_router(admin_catalog_router, prefix="/api/admin")
    app.include_router(admin_orders_router, prefix="/api/admin")
    app.include_router(admin_ratings_router, prefix="/api/admin")
    app.include_router(pos_router, prefix="/api/admin")

    return app


app = create_app()
