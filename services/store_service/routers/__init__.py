"""Store service routers package."""

from services.store_service.routers.admin_catalog import router as admin_catalog_router
from services.store_service.routers.admin_orders import router as admin_orders_router
from services.store_service.routers.admin_ratings import router as admin_ratings_router
from services.store_service.routers.cart import router as cart_router
from services.store_service.routers.catalog import router as catalog_router
from services.store_service.routers.notifications import (
    router as notifications_router,
)
from services.store_service.routers.orders import router as orders_router
from services.store_service.routers.payments import router as payments_router
from services.store_service.routers.pos import router as pos_router
from services.store_service.routers.profile import router as profile_router
from services.store_service.routers.ratings import router as ratings_router
from services.store_service.routers.wishlist import router as wishlist_router

__all__ = [
    "admin_catalog_router",
    "admin_orders_router",
    "admin_ratings_router",
    "cart_router",
    "catalog_router",
    "notifications_router",
    "orders_router",
    "payments_router",
    "pos_router",
    "profile_router",
    "ratings_router",
    "wishlist_router",
]
