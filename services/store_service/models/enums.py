"""Enum definitions for store service models."""

import enum


def enum_values(enum_cls):
    """Return persistent DB values for SAEnum mappings."""
    return [member.value for member in enum_cls]


class ProductSize(str, enum.Enum):
    ML_30 = "30ml"
    ML_50 = "50ml"


class OrderStatus(str, enum.Enum):
    PENDING = "Pending"
    PACKAGING = "Packaging"
    SHIPPING = "Shipping"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"


class PaymentMethod(str, enum.Enum):
    QRIS = "QRIS"
    VIRTUAL_ACCOUNT = "Virtual_Account"
    CASH = "Cash"


class PaymentStatus(str, enum.Enum):
    PENDING = "Pending"
    SUCCESS = "Success"
    FAILED = "Failed"
    REFUNDED = "Refunded"


class TransactionStatus(str, enum.Enum):
    """Status of a gateway (Midtrans) transaction as we store it."""

    PENDING = "pending"
    SETTLEMENT = "settlement"
    EXPIRE = "expire"
    CANCEL = "cancel"
    DENY = "deny"


class NotificationType(str, enum.Enum):
    ORDER_UPDATE = "OrderUpdate"
    PAYMENT = "Payment"
    DELIVERY = "Delivery"
    REFUND = "Refund"
    PROFILE_REMINDER = "ProfileReminder"


# Orders that count as sales for reporting and best sellers
COMPLETED_ORDER_STATUSES = (
    OrderStatus.PACKAGING,
    OrderStatus.SHIPPING,
    OrderStatus.DELIVERED,
)
