"""Store commerce models: cart lines, orders, order lines."""

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from services.store_service.models.enums import (
    OrderStatus,
    PaymentMethod,
    ProductSize,
    enum_values,
)
from services.store_service.services.order_codes import format_order_code
from sqlalchemy import Boolean, CheckConstraint, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

if TYPE_CHECKING:
    from services.store_service.models.catalog import Product
    from services.store_service.models.customers import User
    from services.store_service.models.payments import Payment, PaymentTransaction

# ============================================================================
# CART
# ============================================================================


class CartItem(Base):
    """A line in a customer's cart. Prices are read live from the product."""

    __tablename__ = "cart_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    product_id: Mapped[int] = mapped_column(
        ForeignKey("products.id", ondelete="CASCADE")
    )
    size: Mapped[ProductSize] = mapped_column(
        SAEnum(ProductSize, values_callable=enum_values, name="product_size_enum")
    )
    quantity: Mapped[int] = mapped_column(Integer, default=1)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    product: Mapped["Product"] = relationship("Product")

    __table_args__ = (
        UniqueConstraint("user_id", "product_id", "size", name="uq_cart_line"),
        CheckConstraint("quantity > 0", name="cart_quantity_positive"),
    )


# ============================================================================
# ORDERS
# ============================================================================


class Order(Base):
    """Customer (or POS) orders.

    ``total_price`` always equals the sum of the line subtotals. Shipping
    details are copied from the profile at checkout so later profile edits
    do not rewrite history.
    """

    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )

    status: Mapped[OrderStatus] = mapped_column(
        SAEnum(OrderStatus, values_callable=enum_values, name="order_status_enum"),
        default=OrderStatus.PENDING,
        index=True,
    )
    payment_method: Mapped[PaymentMethod] = mapped_column(
        SAEnum(PaymentMethod, values_callable=enum_values, name="payment_method_enum")
    )

    # Shipping snapshot
    recipient_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    address_line: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    district: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    province: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    postal_code: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)

    subtotal: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    total_price: Mapped[Decimal] = mapped_column(Numeric(12, 2))

    tracking_number: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    is_pos: Mapped[bool] = mapped_column(Boolean, default=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    user: Mapped[Optional["User"]] = relationship("User")
    details: Mapped[list["OrderDetail"]] = relationship(
        "OrderDetail",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderDetail.id",
    )
    payment: Mapped[Optional["Payment"]] = relationship(
        "Payment", back_populates="order", uselist=False, cascade="all, delete-orphan"
    )
    transaction: Mapped[Optional["PaymentTransaction"]] = relationship(
        "PaymentTransaction",
        back_populates="order",
        uselist=False,
        cascade="all, delete-orphan",
    )

    @property
    def code(self) -> str:
        return format_order_code(self.id, self.created_at)

    def __repr__(self):
        return f"<Order {self.id} {self.status.value}>"


class OrderDetail(Base):
    """A priced line of an order (price captured at checkout)."""

    __tablename__ = "order_details"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[int] = mapped_column(
        ForeignKey("orders.id", ondelete="CASCADE"), index=True
    )
    product_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True
    )
    product_name: Mapped[str] = mapped_column(String(255))
    size: Mapped[ProductSize] = mapped_column(
        SAEnum(ProductSize, values_callable=enum_values, name="product_size_enum")
    )
    quantity: Mapped[int] = mapped_column(Integer)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    subtotal: Mapped[Decimal] = mapped_column(Numeric(12, 2))

    order: Mapped["Order"] = relationship("Order", back_populates="details")
    product: Mapped[Optional["Product"]] = relationship("Product")

    __table_args__ = (CheckConstraint("quantity > 0", name="detail_quantity_positive"),)
