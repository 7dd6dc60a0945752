"""Notifications router."""

from fastapi import APIRouter, Depends
from libs.db.session import get_async_db
from services.store_service.models import User
from services.store_service.routers._helpers import get_current_customer
from services.store_service.schemas import NotificationResponse, UnreadCountResponse
from services.store_service.services import notification_ops
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["notifications"])


@router.get("/notifications", response_model=list[NotificationResponse])
async def list_notifications(
    unread_only: bool = False,
    user: User = Depends(get_current_customer),
    db: AsyncSession = Depends(get_async_db),
):
    return await notification_ops.list_notifications(
        db, user_id=user.id, unread_only=unread_only
    )


@router.get("/notifications/unread-count", response_model=UnreadCountResponse)
async def unread_count(
    user: User = Depends(get_current_customer),
    db: AsyncSession = Depends(get_async_db),
):
    return UnreadCountResponse(
        unread=await notification_ops.count_unread(db, user_id=user.id)
    )


@router.post("/notifications/read-all", response_model=UnreadCountResponse)
async def mark_all_read(
    user: User = Depends(get_current_customer),
    db: AsyncSession = Depends(get_async_db),
):
    await notification_ops.mark_all_read(db, user_id=user.id)
    return UnreadCountResponse(unread=0)


@router.post(
    "/notifications/{notification_id}/read", response_model=NotificationResponse
)
async def mark_read(
    notification_id: int,
    user: User = Depends(get_current_customer),
    db: AsyncSession = Depends(get_async_db),
):
    return await notification_ops.mark_read(
        db, notification_id=notification_id, user_id=user.id
    )
