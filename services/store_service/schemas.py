"""Pydantic schemas for store service."""

from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Literal, Optional

from libs.common.phone import is_valid_phone, normalize_phone
from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    model_validator,
)
from services.store_service.models import (
    NotificationType,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    ProductSize,
    TransactionStatus,
)


def _validate_phone(value: str) -> str:
    phone = normalize_phone(value)
    if not is_valid_phone(phone):
        raise ValueError("Phone number must be in +62 format")
    return phone


Phone = Annotated[str, AfterValidator(_validate_phone)]


# ============================================================================
# PRODUCT SCHEMAS
# ============================================================================


class ProductBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    category: Optional[str] = Field(None, max_length=50)
    top_notes: Optional[str] = Field(None, max_length=255)
    middle_notes: Optional[str] = Field(None, max_length=255)
    base_notes: Optional[str] = Field(None, max_length=255)
    price_30ml: Decimal = Field(..., ge=0)
    price_50ml: Decimal = Field(..., ge=0)
    stock_30ml: int = Field(0, ge=0)
    stock_50ml: int = Field(0, ge=0)


class ProductCreate(ProductBase):
    pass


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    category: Optional[str] = Field(None, max_length=50)
    top_notes: Optional[str] = Field(None, max_length=255)
    middle_notes: Optional[str] = Field(None, max_length=255)
    base_notes: Optional[str] = Field(None, max_length=255)
    price_30ml: Optional[Decimal] = Field(None, ge=0)
    price_50ml: Optional[Decimal] = Field(None, ge=0)
    stock_30ml: Optional[int] = Field(None, ge=0)
    stock_50ml: Optional[int] = Field(None, ge=0)


class ProductImageCreate(BaseModel):
    url: str = Field(..., min_length=1, max_length=1024)
    is_50ml: bool = False


class ProductImageResponse(ProductImageCreate):
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: int


class ProductResponse(ProductBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    images: list[ProductImageResponse] = []
    average_rating: Optional[float] = None
    rating_count: int = 0
    created_at: datetime
    updated_at: datetime


class ProductListResponse(BaseModel):
    items: list[ProductResponse]
    total: int
    page: int
    page_size: int


class BestSellerResponse(BaseModel):
    product: ProductResponse
    quantity_sold: int


# ============================================================================
# PROFILE SCHEMAS
# ============================================================================


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: Optional[EmailStr] = None
    name: Optional[str] = None
    phone: Optional[str] = None
    address_line: Optional[str] = None
    district: Optional[str] = None
    city: Optional[str] = None
    province: Optional[str] = None
    postal_code: Optional[str] = None
    profile_complete: bool
    is_admin: bool = False
    created_at: datetime


class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=255)
    phone: Optional[Phone] = None
    address_line: Optional[str] = None
    district: Optional[str] = Field(None, max_length=100)
    city: Optional[str] = Field(None, max_length=100)
    province: Optional[str] = Field(None, max_length=100)
    postal_code: Optional[str] = Field(None, max_length=10)


# ============================================================================
# CART & WISHLIST SCHEMAS
# ============================================================================


class CartItemCreate(BaseModel):
    product_id: int
    size: ProductSize
    quantity: int = Field(1, ge=1)


class CartItemUpdate(BaseModel):
    quantity: int = Field(..., ge=1)


class CartItemResponse(BaseModel):
    id: int
    product_id: int
    product_name: str
    size: ProductSize
    quantity: int
    unit_price: Decimal
    line_total: Decimal
    stock_available: int


class CartResponse(BaseModel):
    items: list[CartItemResponse]
    item_count: int
    total: Decimal


class WishlistItemCreate(BaseModel):
    product_id: int


class WishlistItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: int
    product: ProductResponse
    created_at: datetime


# ============================================================================
# CHECKOUT & ORDER SCHEMAS
# ============================================================================


class ShippingDetails(BaseModel):
    """Overrides for the saved profile address; omitted fields use the profile."""

    recipient_name: Optional[str] = Field(None, max_length=255)
    phone: Optional[Phone] = None
    address_line: Optional[str] = None
    district: Optional[str] = Field(None, max_length=100)
    city: Optional[str] = Field(None, max_length=100)
    province: Optional[str] = Field(None, max_length=100)
    postal_code: Optional[str] = Field(None, max_length=10)


class CheckoutRequest(BaseModel):
    cart_item_ids: Optional[list[int]] = None  # None = whole cart
    payment_method: PaymentMethod
    shipping: Optional[ShippingDetails] = None


class BuyNowRequest(BaseModel):
    product_id: int
    size: ProductSize
    quantity: int = Field(1, ge=1)
    payment_method: PaymentMethod
    shipping: Optional[ShippingDetails] = None


class OrderDetailResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: Optional[int] = None
    product_name: str
    size: ProductSize
    quantity: int
    price: Decimal
    subtotal: Decimal


class PaymentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    method: PaymentMethod
    amount: Decimal
    status: PaymentStatus
    transaction_time: Optional[datetime] = None


class TransactionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    gateway_order_id: str
    payment_type: str
    gross_amount: int
    qr_url: Optional[str] = None
    status: TransactionStatus
    expired_at: datetime


class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    code: str
    user_id: Optional[int] = None
    status: OrderStatus
    payment_method: PaymentMethod
    recipient_name: Optional[str] = None
    phone: Optional[str] = None
    address_line: Optional[str] = None
    district: Optional[str] = None
    city: Optional[str] = None
    province: Optional[str] = None
    postal_code: Optional[str] = None
    subtotal: Decimal
    total_price: Decimal
    tracking_number: Optional[str] = None
    is_pos: bool
    created_at: datetime
    updated_at: datetime
    details: list[OrderDetailResponse] = []
    payment: Optional[PaymentResponse] = None
    transaction: Optional[TransactionResponse] = None


class OrderListResponse(BaseModel):
    items: list[OrderResponse]
    total: int


class GroupedOrdersResponse(BaseModel):
    in_process: list[OrderResponse]
    shipping: list[OrderResponse]
    completed: list[OrderResponse]
    canceled: list[OrderResponse]


# ============================================================================
# PAYMENT SCHEMAS
# ============================================================================


class QrisRequest(BaseModel):
    order_id: int


class QrisResponse(BaseModel):
    order_id: int
    code: str
    gateway_order_id: str
    qr_url: Optional[str]
    gross_amount: int
    expires_at: datetime
    status: TransactionStatus


class PaymentStatusResponse(BaseModel):
    order_id: int
    code: str
    order_status: OrderStatus
    payment_status: Optional[PaymentStatus] = None
    transaction_status: Optional[TransactionStatus] = None
    expires_at: Optional[datetime] = None


# ============================================================================
# NOTIFICATION SCHEMAS
# ============================================================================


class NotificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    order_id: Optional[int] = None
    type: NotificationType
    message: str
    is_read: bool
    created_at: datetime


class UnreadCountResponse(BaseModel):
    unread: int


# ============================================================================
# RATING SCHEMAS
# ============================================================================


class RatingCreate(BaseModel):
    order_id: int
    product_id: int
    stars: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=2000)


class RatingUpdate(BaseModel):
    stars: Optional[int] = Field(None, ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=2000)


class RatingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    product_id: int
    order_id: int
    stars: int
    comment: Optional[str] = None
    is_visible: bool
    created_at: datetime


class RatingVisibilityUpdate(BaseModel):
    is_visible: bool


# ============================================================================
# ADMIN SCHEMAS
# ============================================================================


class OrderStatusUpdate(BaseModel):
    status: Optional[OrderStatus] = None
    tracking_number: Optional[str] = Field(None, max_length=100)
    payment_status: Optional[PaymentStatus] = None


class MostSoldProduct(BaseModel):
    product_id: int
    name: str
    quantity_sold: int


class DashboardStats(BaseModel):
    total_orders: int
    orders_by_status: dict[str, int]
    total_revenue: Decimal
    average_order_value: Decimal
    total_products: int
    low_stock_products: int
    most_sold_product: Optional[MostSoldProduct] = None


class SalesBucketResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    label: str
    start: date
    end: date
    orders: int
    revenue: Decimal
    avg_revenue: int


class SalesReportResponse(BaseModel):
    period: Literal["day", "week", "month", "year"]
    reference_date: date
    buckets: list[SalesBucketResponse]
    total_orders: int
    total_revenue: Decimal
    avg_revenue: int


# ============================================================================
# POS SCHEMAS
# ============================================================================


class PosItemCreate(BaseModel):
    product_id: int
    size: ProductSize
    quantity: int = Field(..., ge=1)


class PosTransactionCreate(BaseModel):
    customer_name: str = Field(..., min_length=1, max_length=255)
    phone: Phone
    payment_method: PaymentMethod
    cash_received: Optional[Decimal] = Field(None, ge=0)
    items: list[PosItemCreate] = Field(..., min_length=1)

    @model_validator(mode="after")
    def cash_requires_amount(self):
        if self.payment_method == PaymentMethod.CASH and self.cash_received is None:
            raise ValueError("cash_received is required for cash payments")
        return self


class PosItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: Optional[int] = None
    product_name: str
    size: ProductSize
    quantity: int
    price: Decimal
    subtotal: Decimal


class PosTransactionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    code: str
    order_id: Optional[int] = None
    cashier_auth_id: str
    customer_name: str
    phone: str
    payment_method: PaymentMethod
    total_price: Decimal
    cash_received: Optional[Decimal] = None
    cash_change: Optional[Decimal] = None
    created_at: datetime
    items: list[PosItemResponse] = []
