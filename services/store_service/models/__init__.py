"""Store Service models package."""

from services.store_service.models.catalog import (
    Product,
    ProductImage,
    Rating,
    WishlistItem,
    stock_column,
)
from services.store_service.models.commerce import CartItem, Order, OrderDetail
from services.store_service.models.customers import User
from services.store_service.models.enums import (
    COMPLETED_ORDER_STATUSES,
    NotificationType,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    ProductSize,
    TransactionStatus,
)
from services.store_service.models.notifications import Notification
from services.store_service.models.payments import Payment, PaymentTransaction
from services.store_service.models.pos import PosItem, PosTransaction

__all__ = [
    "COMPLETED_ORDER_STATUSES",
    "CartItem",
    "Notification",
    "NotificationType",
    "Order",
    "OrderDetail",
    "OrderStatus",
    "Payment",
    "PaymentMethod",
    "PaymentStatus",
    "PaymentTransaction",
    "PosItem",
    "PosTransaction",
    "Product",
    "ProductImage",
    "ProductSize",
    "Rating",
    "TransactionStatus",
    "User",
    "WishlistItem",
    "stock_column",
]
