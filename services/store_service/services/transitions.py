"""Allowed status transitions for orders, payments and gateway transactions.

Every writer (customer, admin, webhook, expiry sweep) goes through these
tables. A transition that is not listed is rejected; writers that must not
fail (webhook, sweep) treat it as a no-op.
"""

from typing import Mapping, TypeVar

from services.store_service.models.enums import (
    OrderStatus,
    PaymentStatus,
    TransactionStatus,
)

S = TypeVar("S")

ORDER_TRANSITIONS: Mapping[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.PACKAGING, OrderStatus.CANCELLED}),
    OrderStatus.PACKAGING: frozenset({OrderStatus.SHIPPING, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPING: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

PAYMENT_TRANSITIONS: Mapping[PaymentStatus, frozenset[PaymentStatus]] = {
    PaymentStatus.PENDING: frozenset({PaymentStatus.SUCCESS, PaymentStatus.FAILED}),
    PaymentStatus.SUCCESS: frozenset({PaymentStatus.REFUNDED}),
    PaymentStatus.FAILED: frozenset(),
    PaymentStatus.REFUNDED: frozenset(),
}

TRANSACTION_TRANSITIONS: Mapping[TransactionStatus, frozenset[TransactionStatus]] = {
    TransactionStatus.PENDING: frozenset(
        {
            TransactionStatus.SETTLEMENT,
            TransactionStatus.EXPIRE,
            TransactionStatus.CANCEL,
            TransactionStatus.DENY,
        }
    ),
    TransactionStatus.SETTLEMENT: frozenset(),
    TransactionStatus.EXPIRE: frozenset(),
    TransactionStatus.CANCEL: frozenset(),
    TransactionStatus.DENY: frozenset(),
}

# Customer-facing forward order; used to reject backwards admin moves.
ORDER_SEQUENCE = (
    OrderStatus.PENDING,
    OrderStatus.PACKAGING,
    OrderStatus.SHIPPING,
    OrderStatus.DELIVERED,
)


def can_transition(table: Mapping[S, frozenset[S]], current: S, target: S) -> bool:
    return target in table.get(current, frozenset())


def is_terminal(table: Mapping[S, frozenset[S]], current: S) -> bool:
    return not table.get(current)
