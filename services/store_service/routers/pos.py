"""Admin POS router: walk-in sales and receipts."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from libs.auth.dependencies import require_admin
from libs.auth.models import AuthUser
from libs.common.config import get_settings
from libs.common.currency import format_rupiah
from libs.common.datetime_utils import to_store_time
from libs.common.pdf import generate_receipt_pdf
from libs.db.session import get_async_db
from services.store_service.models import PosTransaction, Product
from services.store_service.routers._helpers import product_query, serialize_products
from services.store_service.schemas import (
    PosTransactionCreate,
    PosTransactionResponse,
    ProductResponse,
)
from services.store_service.services import pos_ops
from sqlalchemy import or_
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["admin-pos"])


@router.get("/pos/products", response_model=list[ProductResponse])
async def search_pos_products(
    q: Optional[str] = Query(None, description="Product name"),
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Products with stock in either size, for the cashier's search box."""
    query = product_query().where(or_(Product.stock_30ml > 0, Product.stock_50ml > 0))
    if q:
        query = query.where(Product.name.ilike(f"%{q}%"))
    products = (await db.execute(query.order_by(Product.name).limit(50))).scalars().all()
    return await serialize_products(db, products)


@router.post(
    "/pos/transactions", response_model=PosTransactionResponse, status_code=201
)
async def create_pos_transaction(
    transaction_in: PosTransactionCreate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await pos_ops.create_pos_transaction(
        db,
        cashier_auth_id=current_user.user_id,
        customer_name=transaction_in.customer_name,
        phone=transaction_in.phone,
        payment_method=transaction_in.payment_method,
        cash_received=transaction_in.cash_received,
        items=[(i.product_id, i.size, i.quantity) for i in transaction_in.items],
    )


@router.get("/pos/transactions", response_model=list[PosTransactionResponse])
async def list_pos_transactions(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    query = (
        pos_ops.pos_query()
        .order_by(PosTransaction.created_at.desc(), PosTransaction.id.desc())
        .offset(skip)
        .limit(limit)
    )
    return (await db.execute(query)).scalars().all()


@router.get("/pos/transactions/{transaction_id}", response_model=PosTransactionResponse)
async def get_pos_transaction(
    transaction_id: int,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await pos_ops.load_pos_transaction(db, transaction_id)


@router.get("/pos/transactions/{transaction_id}/receipt")
async def get_pos_receipt(
    transaction_id: int,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Printable PDF receipt."""
    transaction = await pos_ops.load_pos_transaction(db, transaction_id)

    totals = [("Total", format_rupiah(transaction.total_price))]
    if transaction.cash_received is not None:
        totals.append(("Cash", format_rupiah(transaction.cash_received)))
        totals.append(("Change", format_rupiah(transaction.cash_change or 0)))
    else:
        totals.append(("Paid via", transaction.payment_method.value.replace("_", " ")))

    content = generate_receipt_pdf(
        store_name=get_settings().STORE_NAME,
        receipt_code=transaction.code,
        issued_at=to_store_time(transaction.created_at),
        customer_name=transaction.customer_name,
        cashier=current_user.name or current_user.email,
        lines=[
            (
                f"{item.product_name} {item.size.value}",
                item.quantity,
                format_rupiah(item.price),
                format_rupiah(item.subtotal),
            )
            for item in transaction.items
        ],
        totals=totals,
    )
    filename = f"{transaction.code.lstrip('#')}.pdf"
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
