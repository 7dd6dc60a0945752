"""Admin ratings router: moderation of customer reviews."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from libs.auth.dependencies import require_admin
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.store_service.models import Rating
from services.store_service.schemas import RatingResponse, RatingVisibilityUpdate
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["admin-store"])


async def _get_rating_or_404(db: AsyncSession, rating_id: int) -> Rating:
    rating = await db.get(Rating, rating_id)
    if rating is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Rating not found"
        )
    return rating


@router.get("/ratings", response_model=list[RatingResponse])
async def list_ratings(
    product_id: Optional[int] = None,
    visible: Optional[bool] = None,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    query = select(Rating).order_by(Rating.created_at.desc(), Rating.id.desc())
    if product_id is not None:
        query = query.where(Rating.product_id == product_id)
    if visible is not None:
        query = query.where(Rating.is_visible.is_(visible))
    return (await db.execute(query)).scalars().all()


@router.patch("/ratings/{rating_id}", response_model=RatingResponse)
async def set_rating_visibility(
    rating_id: int,
    update_in: RatingVisibilityUpdate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    rating = await _get_rating_or_404(db, rating_id)
    rating.is_visible = update_in.is_visible
    await db.commit()
    await db.refresh(rating)
    return rating


@router.delete("/ratings/{rating_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_rating(
    rating_id: int,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    rating = await _get_rating_or_404(db, rating_id)
    await db.delete(rating)
    await db.commit()
