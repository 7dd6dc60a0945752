"""Store orders router: checkout, order history and customer order actions."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from libs.db.session import get_async_db
from services.store_service.midtrans_client import MidtransClient, get_midtrans_client
from services.store_service.models import Order, OrderStatus, User
from services.store_service.routers._helpers import get_current_customer
from services.store_service.schemas import (
    BuyNowRequest,
    CheckoutRequest,
    GroupedOrdersResponse,
    OrderListResponse,
    OrderResponse,
    PaymentStatusResponse,
    QrisResponse,
)
from services.store_service.services import checkout_ops, order_ops, payment_ops
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["orders"])

ORDER_GROUPS = {
    "in_process": (OrderStatus.PENDING, OrderStatus.PACKAGING),
    "shipping": (OrderStatus.SHIPPING,),
    "completed": (OrderStatus.DELIVERED,),
    "canceled": (OrderStatus.CANCELLED,),
}


# ============================================================================
# CHECKOUT
# ============================================================================


@router.post("/orders/checkout", response_model=OrderResponse, status_code=201)
async def checkout(
    request: CheckoutRequest,
    user: User = Depends(get_current_customer),
    db: AsyncSession = Depends(get_async_db),
    midtrans: Optional[MidtransClient] = Depends(get_midtrans_client),
):
    """Create an order from selected cart lines (or the whole cart)."""
    return await checkout_ops.create_order_from_cart(
        db,
        user=user,
        cart_item_ids=request.cart_item_ids,
        payment_method=request.payment_method,
        shipping=request.shipping.model_dump() if request.shipping else None,
        client=midtrans,
    )


@router.post("/orders/buy-now", response_model=OrderResponse, status_code=201)
async def buy_now(
    request: BuyNowRequest,
    user: User = Depends(get_current_customer),
    db: AsyncSession = Depends(get_async_db),
    midtrans: Optional[MidtransClient] = Depends(get_midtrans_client),
):
    return await checkout_ops.create_buy_now_order(
        db,
        user=user,
        product_id=request.product_id,
        size=request.size,
        quantity=request.quantity,
        payment_method=request.payment_method,
        shipping=request.shipping.model_dump() if request.shipping else None,
        client=midtrans,
    )


# ============================================================================
# ORDER HISTORY
# ============================================================================


@router.get("/orders", response_model=OrderListResponse)
async def list_my_orders(
    status_filter: Optional[OrderStatus] = Query(None, alias="status"),
    user: User = Depends(get_current_customer),
    db: AsyncSession = Depends(get_async_db),
):
    query = order_ops.order_query().where(Order.user_id == user.id)
    if status_filter:
        query = query.where(Order.status == status_filter)
    query = query.order_by(Order.created_at.desc(), Order.id.desc())
    orders = (await db.execute(query)).scalars().all()
    return OrderListResponse(items=orders, total=len(orders))


@router.get("/orders/grouped", response_model=GroupedOrdersResponse)
async def list_my_orders_grouped(
    user: User = Depends(get_current_customer),
    db: AsyncSession = Depends(get_async_db),
):
    """Orders bucketed the way the account page tabs show them."""
    query = (
        order_ops.order_query()
        .where(Order.user_id == user.id)
        .order_by(Order.created_at.desc(), Order.id.desc())
    )
    orders = (await db.execute(query)).scalars().all()
    return GroupedOrdersResponse(
        **{
            group: [o for o in orders if o.status in statuses]
            for group, statuses in ORDER_GROUPS.items()
        }
    )


@router.get("/orders/{order_id}", response_model=OrderResponse)
async def get_my_order(
    order_id: int,
    user: User = Depends(get_current_customer),
    db: AsyncSession = Depends(get_async_db),
):
    return await order_ops.load_order(db, order_id, user_id=user.id)


# ============================================================================
# CUSTOMER ACTIONS
# ============================================================================


@router.post("/orders/{order_id}/cancel", response_model=OrderResponse)
async def cancel_my_order(
    order_id: int,
    user: User = Depends(get_current_customer),
    db: AsyncSession = Depends(get_async_db),
):
    return await order_ops.cancel_order(db, order_id=order_id, user_id=user.id)


@router.post("/orders/{order_id}/finish", response_model=OrderResponse)
async def finish_my_order(
    order_id: int,
    user: User = Depends(get_current_customer),
    db: AsyncSession = Depends(get_async_db),
):
    """Confirm a shipped order was received."""
    return await order_ops.finish_order(db, order_id=order_id, user_id=user.id)


# ============================================================================
# PAYMENT STATE
# ============================================================================


@router.get("/orders/{order_id}/qris", response_model=QrisResponse)
async def get_order_qris(
    order_id: int,
    user: User = Depends(get_current_customer),
    db: AsyncSession = Depends(get_async_db),
):
    order = await order_ops.load_order(db, order_id, user_id=user.id)
    transaction = order.transaction
    if transaction is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No QRIS payment for this order",
        )
    return QrisResponse(
        order_id=order.id,
        code=order.code,
        gateway_order_id=transaction.gateway_order_id,
        qr_url=transaction.qr_url,
        gross_amount=transaction.gross_amount,
        expires_at=transaction.expired_at,
        status=transaction.status,
    )


@router.get("/orders/{order_id}/payment-status", response_model=PaymentStatusResponse)
async def get_order_payment_status(
    order_id: int,
    user: User = Depends(get_current_customer),
    db: AsyncSession = Depends(get_async_db),
    midtrans: Optional[MidtransClient] = Depends(get_midtrans_client),
):
    """Polled by the QRIS screen. Expires a lapsed QR on read."""
    order = await payment_ops.refresh_payment_status(
        db, order_id=order_id, user_id=user.id, client=midtrans
    )
    transaction = order.transaction
    return PaymentStatusResponse(
        order_id=order.id,
        code=order.code,
        order_status=order.status,
        payment_status=order.payment.status if order.payment else None,
        transaction_status=transaction.status if transaction else None,
        expires_at=transaction.expired_at if transaction else None,
    )
