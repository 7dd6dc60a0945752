"""initial store schema

Revision ID: 0001_initial_store
Revises:
Create Date: 2025-12-01 09:00:00

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0001_initial_store"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ENUMS = {
    "product_size_enum": ("30ml", "50ml"),
    "order_status_enum": ("Pending", "Packaging", "Shipping", "Delivered", "Cancelled"),
    "payment_method_enum": ("QRIS", "Virtual_Account", "Cash"),
    "payment_status_enum": ("Pending", "Success", "Failed", "Refunded"),
    "transaction_status_enum": ("pending", "settlement", "expire", "cancel", "deny"),
    "notification_type_enum": (
        "OrderUpdate",
        "Payment",
        "Delivery",
        "Refund",
        "ProfileReminder",
    ),
}


def _enum(name: str) -> postgresql.ENUM:
    return postgresql.ENUM(*ENUMS[name], name=name, create_type=False)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    bind = op.get_bind()
    for name, values in ENUMS.items():
        postgresql.ENUM(*values, name=name).create(bind, checkfirst=True)

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("auth_id", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255)),
        sa.Column("name", sa.String(255)),
        sa.Column("phone", sa.String(20)),
        sa.Column("address_line", sa.Text()),
        sa.Column("district", sa.String(100)),
        sa.Column("city", sa.String(100)),
        sa.Column("province", sa.String(100)),
        sa.Column("postal_code", sa.String(10)),
        *_timestamps(),
    )
    op.create_index("ix_users_auth_id", "users", ["auth_id"], unique=True)

    op.create_table(
        "products",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("category", sa.String(50)),
        sa.Column("top_notes", sa.String(255)),
        sa.Column("middle_notes", sa.String(255)),
        sa.Column("base_notes", sa.String(255)),
        sa.Column("price_30ml", sa.Numeric(12, 2), nullable=False),
        sa.Column("price_50ml", sa.Numeric(12, 2), nullable=False),
        sa.Column("stock_30ml", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("stock_50ml", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
        sa.CheckConstraint("stock_30ml >= 0", name="ck_products_stock_30ml_non_negative"),
        sa.CheckConstraint("stock_50ml >= 0", name="ck_products_stock_50ml_non_negative"),
    )
    op.create_index("ix_products_category", "products", ["category"])

    op.create_table(
        "product_images",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "product_id",
            sa.Integer(),
            sa.ForeignKey("products.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("url", sa.String(1024), nullable=False),
        sa.Column("is_50ml", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_product_images_product_id", "product_images", ["product_id"])

    op.create_table(
        "cart_items",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "product_id",
            sa.Integer(),
            sa.ForeignKey("products.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("size", _enum("product_size_enum"), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "product_id", "size", name="uq_cart_line"),
        sa.CheckConstraint("quantity > 0", name="ck_cart_items_cart_quantity_positive"),
    )
    op.create_index("ix_cart_items_user_id", "cart_items", ["user_id"])

    op.create_table(
        "orders",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL")
        ),
        sa.Column("status", _enum("order_status_enum"), nullable=False),
        sa.Column("payment_method", _enum("payment_method_enum"), nullable=False),
        sa.Column("recipient_name", sa.String(255)),
        sa.Column("phone", sa.String(20)),
        sa.Column("address_line", sa.Text()),
        sa.Column("district", sa.String(100)),
        sa.Column("city", sa.String(100)),
        sa.Column("province", sa.String(100)),
        sa.Column("postal_code", sa.String(10)),
        sa.Column("subtotal", sa.Numeric(12, 2), nullable=False),
        sa.Column("total_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("tracking_number", sa.String(100)),
        sa.Column("is_pos", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
    )
    op.create_index("ix_orders_user_id", "orders", ["user_id"])
    op.create_index("ix_orders_status", "orders", ["status"])
    op.create_index("ix_orders_created_at", "orders", ["created_at"])

    op.create_table(
        "order_details",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "order_id",
            sa.Integer(),
            sa.ForeignKey("orders.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "product_id",
            sa.Integer(),
            sa.ForeignKey("products.id", ondelete="SET NULL"),
        ),
        sa.Column("product_name", sa.String(255), nullable=False),
        sa.Column("size", _enum("product_size_enum"), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.Column("subtotal", sa.Numeric(12, 2), nullable=False),
        sa.CheckConstraint(
            "quantity > 0", name="ck_order_details_detail_quantity_positive"
        ),
    )
    op.create_index("ix_order_details_order_id", "order_details", ["order_id"])
    op.create_index("ix_order_details_product_id", "order_details", ["product_id"])

    op.create_table(
        "payments",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "order_id",
            sa.Integer(),
            sa.ForeignKey("orders.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("method", _enum("payment_method_enum"), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("status", _enum("payment_status_enum"), nullable=False),
        sa.Column("transaction_time", sa.DateTime(timezone=True)),
        *_timestamps(),
    )

    op.create_table(
        "payment_transactions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "order_id",
            sa.Integer(),
            sa.ForeignKey("orders.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("gateway_order_id", sa.String(100), nullable=False),
        sa.Column("gateway_transaction_id", sa.String(100)),
        sa.Column("payment_type", sa.String(30), nullable=False),
        sa.Column("gross_amount", sa.Integer(), nullable=False),
        sa.Column("qr_url", sa.Text()),
        sa.Column("status", _enum("transaction_status_enum"), nullable=False),
        sa.Column("expired_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("raw_response", postgresql.JSONB()),
        sa.Column("raw_notification", postgresql.JSONB()),
        *_timestamps(),
    )
    op.create_index(
        "ix_payment_transactions_gateway_order_id",
        "payment_transactions",
        ["gateway_order_id"],
        unique=True,
    )
    op.create_index(
        "ix_payment_transactions_status", "payment_transactions", ["status"]
    )
    op.create_index(
        "ix_payment_transactions_expired_at", "payment_transactions", ["expired_at"]
    )

    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "order_id", sa.Integer(), sa.ForeignKey("orders.id", ondelete="SET NULL")
        ),
        sa.Column("type", _enum("notification_type_enum"), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "ix_notifications_user_read", "notifications", ["user_id", "is_read"]
    )

    op.create_table(
        "ratings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "product_id",
            sa.Integer(),
            sa.ForeignKey("products.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "order_id",
            sa.Integer(),
            sa.ForeignKey("orders.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("stars", sa.SmallInteger(), nullable=False),
        sa.Column("comment", sa.Text()),
        sa.Column("is_visible", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.UniqueConstraint(
            "user_id", "product_id", "order_id", name="uq_rating_user_product_order"
        ),
        sa.CheckConstraint("stars BETWEEN 1 AND 5", name="ck_ratings_stars_range"),
    )
    op.create_index("ix_ratings_user_id", "ratings", ["user_id"])
    op.create_index("ix_ratings_product_id", "ratings", ["product_id"])
    op.create_index("ix_ratings_order_id", "ratings", ["order_id"])

    op.create_table(
        "wishlist_items",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "product_id",
            sa.Integer(),
            sa.ForeignKey("products.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("user_id", "product_id", name="uq_wishlist_user_product"),
    )
    op.create_index("ix_wishlist_items_user_id", "wishlist_items", ["user_id"])

    op.create_table(
        "pos_transactions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("code", sa.String(32), nullable=False, unique=True),
        sa.Column("cashier_auth_id", sa.String(255), nullable=False),
        sa.Column(
            "order_id", sa.Integer(), sa.ForeignKey("orders.id", ondelete="SET NULL")
        ),
        sa.Column("customer_name", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(20), nullable=False),
        sa.Column("payment_method", _enum("payment_method_enum"), nullable=False),
        sa.Column("total_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("cash_received", sa.Numeric(12, 2)),
        sa.Column("cash_change", sa.Numeric(12, 2)),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "ix_pos_transactions_cashier_auth_id", "pos_transactions", ["cashier_auth_id"]
    )

    op.create_table(
        "pos_items",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "transaction_id",
            sa.Integer(),
            sa.ForeignKey("pos_transactions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "product_id",
            sa.Integer(),
            sa.ForeignKey("products.id", ondelete="SET NULL"),
        ),
        sa.Column("product_name", sa.String(255), nullable=False),
        sa.Column("size", _enum("product_size_enum"), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.Column("subtotal", sa.Numeric(12, 2), nullable=False),
    )
    op.create_index("ix_pos_items_transaction_id", "pos_items", ["transaction_id"])


def downgrade() -> None:
    for table in (
        "pos_items",
        "pos_transactions",
        "wishlist_items",
        "ratings",
        "notifications",
        "payment_transactions",
        "payments",
        "order_details",
        "orders",
        "cart_items",
        "product_images",
        "products",
        "users",
    ):
        op.drop_table(table)

    bind = op.get_bind()
    for name in ENUMS:
        postgresql.ENUM(name=name).drop(bind, checkfirst=True)
