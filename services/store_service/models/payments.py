"""Payment models: the order's payment record and its gateway transaction."""

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from services.store_service.models.enums import (
    PaymentMethod,
    PaymentStatus,
    TransactionStatus,
    enum_values,
)
from sqlalchemy import JSON, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

if TYPE_CHECKING:
    from services.store_service.models.commerce import Order


class Payment(Base):
    """The shop's view of how an order is being paid."""

    __tablename__ = "payments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[int] = mapped_column(
        ForeignKey("orders.id", ondelete="CASCADE"), unique=True
    )
    method: Mapped[PaymentMethod] = mapped_column(
        SAEnum(PaymentMethod, values_callable=enum_values, name="payment_method_enum")
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    status: Mapped[PaymentStatus] = mapped_column(
        SAEnum(PaymentStatus, values_callable=enum_values, name="payment_status_enum"),
        default=PaymentStatus.PENDING,
    )
    transaction_time: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    order: Mapped["Order"] = relationship("Order", back_populates="payment")


class PaymentTransaction(Base):
    """A Midtrans charge for an order (QRIS).

    ``gateway_order_id`` is the id we sent to the gateway
    (``ORDER-<order id>-<epoch>``); notifications are matched on it.
    """

    __tablename__ = "payment_transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[int] = mapped_column(
        ForeignKey("orders.id", ondelete="CASCADE"), unique=True
    )
    gateway_order_id: Mapped[str] = mapped_column(String(100), unique=True, index=True)
    gateway_transaction_id: Mapped[Optional[str]] = mapped_column(
        String(100), nullable=True
    )
    payment_type: Mapped[str] = mapped_column(String(30), default="qris")
    gross_amount: Mapped[int] = mapped_column(Integer)
    qr_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    status: Mapped[TransactionStatus] = mapped_column(
        SAEnum(
            TransactionStatus,
            values_callable=enum_values,
            name="transaction_status_enum",
        ),
        default=TransactionStatus.PENDING,
        index=True,
    )
    expired_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)

    raw_response: Mapped[Optional[dict]] = mapped_column(
        JSON().with_variant(JSONB, "postgresql"), nullable=True
    )
    raw_notification: Mapped[Optional[dict]] = mapped_column(
        JSON().with_variant(JSONB, "postgresql"), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    order: Mapped["Order"] = relationship("Order", back_populates="transaction")
