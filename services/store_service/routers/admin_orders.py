"""Admin orders router: dashboard stats, order management, sales reports."""

from datetime import date
from decimal import Decimal
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from libs.auth.dependencies import require_admin
from libs.auth.models import AuthUser
from libs.common.datetime_utils import store_now, utc_now
from libs.common.logging import get_logger
from libs.db.session import get_async_db
from services.store_service.models import (
    COMPLETED_ORDER_STATUSES,
    Order,
    OrderDetail,
    OrderStatus,
    Product,
)
from services.store_service.schemas import (
    DashboardStats,
    MostSoldProduct,
    OrderListResponse,
    OrderResponse,
    OrderStatusUpdate,
    SalesBucketResponse,
    SalesReportResponse,
)
from services.store_service.services import order_ops, sales_report
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["admin-store"])
logger = get_logger(__name__)

LOW_STOCK_THRESHOLD = 5

EXPORT_MEDIA_TYPES = {
    "pdf": "application/pdf",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}


# ============================================================================
# DASHBOARD
# ============================================================================


@router.get("/dashboard", response_model=DashboardStats)
async def dashboard_stats(
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Headline numbers for the admin dashboard."""
    result = await db.execute(
        select(Order.status, func.count(Order.id)).group_by(Order.status)
    )
    by_status = {s.value: 0 for s in OrderStatus}
    for order_status, count in result.all():
        by_status[order_status.value] = count

    revenue_row = (
        await db.execute(
            select(func.count(Order.id), func.coalesce(func.sum(Order.total_price), 0))
            .where(Order.status.in_(COMPLETED_ORDER_STATUSES))
        )
    ).one()
    completed_orders, revenue = revenue_row
    revenue = Decimal(revenue)
    average = (
        (revenue / completed_orders).quantize(Decimal("0.01"))
        if completed_orders
        else Decimal("0")
    )

    total_products = (await db.execute(select(func.count(Product.id)))).scalar_one()
    low_stock = (
        await db.execute(
            select(func.count(Product.id)).where(
                or_(
                    Product.stock_30ml < LOW_STOCK_THRESHOLD,
                    Product.stock_50ml < LOW_STOCK_THRESHOLD,
                )
            )
        )
    ).scalar_one()

    sold = func.sum(OrderDetail.quantity).label("sold")
    top = (
        await db.execute(
            select(OrderDetail.product_id, OrderDetail.product_name, sold)
            .join(Order, Order.id == OrderDetail.order_id)
            .where(Order.status.in_(COMPLETED_ORDER_STATUSES))
            .where(OrderDetail.product_id.is_not(None))
            .group_by(OrderDetail.product_id, OrderDetail.product_name)
            .order_by(sold.desc())
            .limit(1)
        )
    ).first()

    return DashboardStats(
        total_orders=sum(by_status.values()),
        orders_by_status=by_status,
        total_revenue=revenue,
        average_order_value=average,
        total_products=total_products,
        low_stock_products=low_stock,
        most_sold_product=(
            MostSoldProduct(product_id=top[0], name=top[1], quantity_sold=int(top[2]))
            if top
            else None
        ),
    )


# ============================================================================
# ORDERS
# ============================================================================


@router.get("/orders", response_model=OrderListResponse)
async def list_orders(
    status_filter: Optional[OrderStatus] = Query(None, alias="status"),
    search: Optional[str] = Query(None, description="Recipient name or phone"),
    pos: Optional[bool] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    query = order_ops.order_query()
    count_query = select(func.count(Order.id))
    filters = []
    if status_filter:
        filters.append(Order.status == status_filter)
    if search:
        pattern = f"%{search}%"
        filters.append(
            or_(Order.recipient_name.ilike(pattern), Order.phone.ilike(pattern))
        )
    if pos is not None:
        filters.append(Order.is_pos.is_(pos))
    for condition in filters:
        query = query.where(condition)
        count_query = count_query.where(condition)

    total = (await db.execute(count_query)).scalar_one()
    orders = (
        await db.execute(
            query.order_by(Order.created_at.desc(), Order.id.desc())
            .offset(skip)
            .limit(limit)
        )
    ).scalars().all()
    return OrderListResponse(items=orders, total=total)


@router.get("/orders/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: int,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await order_ops.load_order(db, order_id)


@router.patch("/orders/{order_id}", response_model=OrderResponse)
async def update_order(
    order_id: int,
    update_in: OrderStatusUpdate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Advance status, set tracking number and/or change payment status."""
    order = await order_ops.advance_status(
        db,
        order_id=order_id,
        new_status=update_in.status,
        tracking_number=update_in.tracking_number,
        payment_status=update_in.payment_status,
    )
    logger.info(
        "Order %s updated by %s", order_id, current_user.user_id
    )
    return order


# ============================================================================
# SALES REPORTS
# ============================================================================


@router.get("/reports/sales", response_model=SalesReportResponse)
async def sales_report_data(
    period: Literal["day", "week", "month", "year"] = "month",
    reference_date: Optional[date] = None,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    reference_date = reference_date or store_now().date()
    buckets = await sales_report.aggregate(db, period, reference_date)
    # The export's total row is the single source for the totals
    _, total_orders, total_revenue, avg = sales_report.build_sheet_rows(
        period, buckets
    )[-1]
    return SalesReportResponse(
        period=period,
        reference_date=reference_date,
        buckets=[SalesBucketResponse.model_validate(b) for b in buckets],
        total_orders=total_orders,
        total_revenue=Decimal(total_revenue),
        avg_revenue=avg,
    )


@router.get("/reports/sales/export")
async def export_sales_report(
    format: Literal["pdf", "xlsx"] = "pdf",
    reference_date: Optional[date] = None,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Download the daily/weekly/monthly/yearly report as PDF or XLSX."""
    generated_at = utc_now()
    report = await sales_report.build_report(
        db,
        reference_date=reference_date or store_now().date(),
        exported_by=current_user.name or current_user.email or current_user.user_id,
        generated_at=generated_at,
    )
    content = (
        sales_report.render_pdf(report)
        if format == "pdf"
        else sales_report.render_xlsx(report)
    )
    filename = sales_report.export_filename(format, generated_at)
    logger.info("Sales report exported as %s by %s", filename, current_user.user_id)
    return Response(
        content=content,
        media_type=EXPORT_MEDIA_TYPES[format],
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
