"""Payments router: QRIS issuance and the Midtrans notification webhook."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from libs.common.config import get_settings
from libs.common.logging import get_logger
from libs.db.session import get_async_db
from services.store_service.midtrans_client import (
    MidtransClient,
    get_midtrans_client,
    verify_signature,
)
from services.store_service.models import User
from services.store_service.routers._helpers import get_current_customer
from services.store_service.schemas import QrisRequest, QrisResponse
from services.store_service.services import order_ops, payment_ops
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["payments"])
logger = get_logger(__name__)


@router.post("/payments/qris", response_model=QrisResponse)
async def create_qris(
    request: QrisRequest,
    user: User = Depends(get_current_customer),
    db: AsyncSession = Depends(get_async_db),
    midtrans: Optional[MidtransClient] = Depends(get_midtrans_client),
):
    """Return the live QRIS for an unpaid order, creating the charge if needed."""
    if midtrans is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="QRIS payments are not configured",
        )
    transaction = await payment_ops.issue_qris(
        db, order_id=request.order_id, user=user, client=midtrans
    )
    order = await order_ops.load_order(db, request.order_id)
    return QrisResponse(
        order_id=order.id,
        code=order.code,
        gateway_order_id=transaction.gateway_order_id,
        qr_url=transaction.qr_url,
        gross_amount=transaction.gross_amount,
        expires_at=transaction.expired_at,
        status=transaction.status,
    )


@router.post("/payments/midtrans/notification")
async def midtrans_notification(
    request: Request,
    db: AsyncSession = Depends(get_async_db),
):
    """
    Handle Midtrans HTTP notifications.

    The signature is verified first; anything after that is logged rather
    than raised so the gateway does not keep retrying a payload we cannot
    use.
    """
    try:
        payload = await request.json()
    except ValueError:
        logger.warning("Midtrans notification with invalid JSON body")
        return {"status": "ok"}
    if not isinstance(payload, dict):
        logger.warning("Midtrans notification body is not an object")
        return {"status": "ok"}

    if not verify_signature(payload, get_settings().MIDTRANS_SERVER_KEY):
        logger.warning(
            "Invalid Midtrans signature for %s", payload.get("order_id")
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid signature"
        )

    try:
        outcome = await payment_ops.handle_notification(db, payload)
    except Exception:
        await db.rollback()
        logger.exception(
            "Failed to process Midtrans notification for %s", payload.get("order_id")
        )
        return {"status": "ok"}

    return {"status": "ok", "result": outcome}
