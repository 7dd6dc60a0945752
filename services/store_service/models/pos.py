"""Point-of-sale models for walk-in sales."""

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from services.store_service.models.enums import (
    PaymentMethod,
    ProductSize,
    enum_values,
)
from sqlalchemy import DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

if TYPE_CHECKING:
    from services.store_service.models.commerce import Order


class PosTransaction(Base):
    """A counter sale. Each one is mirrored by a Delivered order for reporting."""

    __tablename__ = "pos_transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column(String(32), unique=True)
    cashier_auth_id: Mapped[str] = mapped_column(String(255), index=True)
    order_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("orders.id", ondelete="SET NULL"), nullable=True
    )

    customer_name: Mapped[str] = mapped_column(String(255))
    phone: Mapped[str] = mapped_column(String(20))
    payment_method: Mapped[PaymentMethod] = mapped_column(
        SAEnum(PaymentMethod, values_callable=enum_values, name="payment_method_enum")
    )
    total_price: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    cash_received: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(12, 2), nullable=True
    )
    cash_change: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(12, 2), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    items: Mapped[list["PosItem"]] = relationship(
        "PosItem", back_populates="transaction", cascade="all, delete-orphan"
    )
    order: Mapped[Optional["Order"]] = relationship("Order")


class PosItem(Base):
    __tablename__ = "pos_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    transaction_id: Mapped[int] = mapped_column(
        ForeignKey("pos_transactions.id", ondelete="CASCADE"), index=True
    )
    product_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("products.id", ondelete="SET NULL"), nullable=True
    )
    product_name: Mapped[str] = mapped_column(String(255))
    size: Mapped[ProductSize] = mapped_column(
        SAEnum(ProductSize, values_callable=enum_values, name="product_size_enum")
    )
    quantity: Mapped[int] = mapped_column(Integer)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    subtotal: Mapped[Decimal] = mapped_column(Numeric(12, 2))

    transaction: Mapped["PosTransaction"] = relationship(
        "PosTransaction", back_populates="items"
    )
