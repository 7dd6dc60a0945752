"""Ratings router: customers rate products from delivered orders."""

from fastapi import APIRouter, Depends, HTTPException, status
from libs.db.session import get_async_db
from services.store_service.models import OrderStatus, Rating, User
from services.store_service.routers._helpers import get_current_customer
from services.store_service.schemas import RatingCreate, RatingResponse, RatingUpdate
from services.store_service.services import order_ops
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["ratings"])


@router.post("/ratings", response_model=RatingResponse, status_code=201)
async def create_rating(
    rating_in: RatingCreate,
    user: User = Depends(get_current_customer),
    db: AsyncSession = Depends(get_async_db),
):
    """Rate a product from one of the caller's delivered orders (once per order)."""
    order = await order_ops.load_order(db, rating_in.order_id, user_id=user.id)
    if order.status != OrderStatus.DELIVERED:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Only delivered orders can be rated",
        )
    if not any(d.product_id == rating_in.product_id for d in order.details):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Product is not part of this order",
        )

    rating = Rating(
        user_id=user.id,
        product_id=rating_in.product_id,
        order_id=order.id,
        stars=rating_in.stars,
        comment=rating_in.comment,
    )
    db.add(rating)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Product already rated for this order",
        )
    await db.refresh(rating)
    return rating


@router.patch("/ratings/{rating_id}", response_model=RatingResponse)
async def update_rating(
    rating_id: int,
    rating_in: RatingUpdate,
    user: User = Depends(get_current_customer),
    db: AsyncSession = Depends(get_async_db),
):
    rating = await db.get(Rating, rating_id)
    if rating is None or rating.user_id != user.id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Rating not found"
        )
    for field, value in rating_in.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(rating, field, value)
    await db.commit()
    await db.refresh(rating)
    return rating


@router.get("/orders/{order_id}/ratings", response_model=list[RatingResponse])
async def list_order_ratings(
    order_id: int,
    user: User = Depends(get_current_customer),
    db: AsyncSession = Depends(get_async_db),
):
    await order_ops.load_order(db, order_id, user_id=user.id)
    result = await db.execute(
        select(Rating)
        .where(Rating.order_id == order_id, Rating.user_id == user.id)
        .order_by(Rating.id)
    )
    return result.scalars().all()
