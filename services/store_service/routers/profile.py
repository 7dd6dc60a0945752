"""Profile router: the signed-in customer's account details."""

from fastapi import APIRouter, Depends
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.common.logging import get_logger
from libs.db.session import get_async_db
from services.store_service.models import User
from services.store_service.routers._helpers import (
    get_current_customer,
    get_or_create_user,
)
from services.store_service.schemas import ProfileUpdate, UserResponse
from services.store_service.services import notification_ops
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["profile"])
logger = get_logger(__name__)


def _user_response(user: User, auth_user: AuthUser) -> UserResponse:
    response = UserResponse.model_validate(user)
    response.is_admin = auth_user.is_admin
    return response


@router.get("/auth/me", response_model=UserResponse)
async def get_me(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Return the caller's profile, provisioning it on first call.

    An incomplete profile gets a one-time ProfileReminder notification.
    """
    user = await get_or_create_user(db, current_user)
    if await notification_ops.ensure_profile_reminder(db, user):
        await db.commit()
    return _user_response(user, current_user)


@router.put("/profile", response_model=UserResponse)
async def update_profile(
    profile_in: ProfileUpdate,
    current_user: AuthUser = Depends(get_current_user),
    user: User = Depends(get_current_customer),
    db: AsyncSession = Depends(get_async_db),
):
    for field, value in profile_in.model_dump(exclude_unset=True).items():
        setattr(user, field, value)
    await db.commit()
    await db.refresh(user)
    logger.info("Profile updated for user %s", user.id)
    return _user_response(user, current_user)
