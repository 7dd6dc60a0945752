"""Store catalog models: products, images, ratings, wishlist."""

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from services.store_service.models.enums import ProductSize
from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    SmallInteger,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

if TYPE_CHECKING:
    from services.store_service.models.customers import User

# ============================================================================
# PRODUCTS
# ============================================================================


class Product(Base):
    """A fragrance sold in 30ml and 50ml bottles."""

    __tablename__ = "products"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255))
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    category: Mapped[Optional[str]] = mapped_column(
        String(50), nullable=True, index=True
    )  # e.g. "Day", "Night"

    top_notes: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    middle_notes: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    base_notes: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    price_30ml: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    price_50ml: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    stock_30ml: Mapped[int] = mapped_column(Integer, default=0)
    stock_50ml: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    images: Mapped[list["ProductImage"]] = relationship(
        "ProductImage",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductImage.id",
    )

    __table_args__ = (
        CheckConstraint("stock_30ml >= 0", name="stock_30ml_non_negative"),
        CheckConstraint("stock_50ml >= 0", name="stock_50ml_non_negative"),
    )

    def price_for(self, size: ProductSize) -> Decimal:
        return self.price_30ml if size == ProductSize.ML_30 else self.price_50ml

    def stock_for(self, size: ProductSize) -> int:
        return self.stock_30ml if size == ProductSize.ML_30 else self.stock_50ml

    def __repr__(self):
        return f"<Product {self.id} {self.name}>"


def stock_column(size: ProductSize):
    """Return the Product stock column for a bottle size."""
    return Product.stock_30ml if size == ProductSize.ML_30 else Product.stock_50ml


class ProductImage(Base):
    """Product images. ``is_50ml`` marks the shot of the large bottle."""

    __tablename__ = "product_images"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_id: Mapped[int] = mapped_column(
        ForeignKey("products.id", ondelete="CASCADE"), index=True
    )
    url: Mapped[str] = mapped_column(String(1024))
    is_50ml: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    product: Mapped["Product"] = relationship("Product", back_populates="images")


# ============================================================================
# CUSTOMER FEEDBACK
# ============================================================================


class Rating(Base):
    """A star rating left for a product from a delivered order."""

    __tablename__ = "ratings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    product_id: Mapped[int] = mapped_column(
        ForeignKey("products.id", ondelete="CASCADE"), index=True
    )
    order_id: Mapped[int] = mapped_column(
        ForeignKey("orders.id", ondelete="CASCADE"), index=True
    )
    stars: Mapped[int] = mapped_column(SmallInteger)
    comment: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_visible: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    user: Mapped["User"] = relationship("User")
    product: Mapped["Product"] = relationship("Product")

    __table_args__ = (
        UniqueConstraint(
            "user_id", "product_id", "order_id", name="uq_rating_user_product_order"
        ),
        CheckConstraint("stars BETWEEN 1 AND 5", name="stars_range"),
    )


class WishlistItem(Base):
    __tablename__ = "wishlist_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    product_id: Mapped[int] = mapped_column(
        ForeignKey("products.id", ondelete="CASCADE")
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    product: Mapped["Product"] = relationship("Product")

    __table_args__ = (
        UniqueConstraint("user_id", "product_id", name="uq_wishlist_user_product"),
    )
