"""Admin catalog router: products, stock and product images."""

from fastapi import APIRouter, Depends, HTTPException, status
from libs.auth.dependencies import require_admin
from libs.auth.models import AuthUser
from libs.common.logging import get_logger
from libs.db.session import get_async_db
from services.store_service.models import Product, ProductImage
from services.store_service.routers._helpers import (
    get_product_or_404,
    serialize_products,
)
from services.store_service.schemas import (
    ProductCreate,
    ProductImageCreate,
    ProductImageResponse,
    ProductResponse,
    ProductUpdate,
)
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["admin-store"])
logger = get_logger(__name__)


# ============================================================================
# PRODUCTS
# ============================================================================


@router.post(
    "/products", response_model=ProductResponse, status_code=status.HTTP_201_CREATED
)
async def create_product(
    product_in: ProductCreate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    product = Product(**product_in.model_dump())
    db.add(product)
    await db.commit()

    logger.info("Product %s created by %s", product.id, current_user.user_id)
    product = await get_product_or_404(db, product.id)
    return (await serialize_products(db, [product]))[0]


@router.patch("/products/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: int,
    product_in: ProductUpdate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Update product fields, including stock levels (restock)."""
    product = await get_product_or_404(db, product_id)
    for field, value in product_in.model_dump(exclude_unset=True).items():
        if value is None:
            continue
        setattr(product, field, value)
    await db.commit()

    product = await get_product_or_404(db, product_id)
    return (await serialize_products(db, [product]))[0]


@router.delete("/products/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_product(
    product_id: int,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Delete a product. Past order lines keep their captured name and price."""
    product = await get_product_or_404(db, product_id)
    await db.delete(product)
    await db.commit()
    logger.info("Product %s deleted by %s", product_id, current_user.user_id)


# ============================================================================
# IMAGES
# ============================================================================


@router.post(
    "/products/{product_id}/images",
    response_model=ProductImageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_product_image(
    product_id: int,
    image_in: ProductImageCreate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    await get_product_or_404(db, product_id)
    image = ProductImage(product_id=product_id, **image_in.model_dump())
    db.add(image)
    await db.commit()
    await db.refresh(image)
    return image


@router.delete(
    "/products/{product_id}/images/{image_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_product_image(
    product_id: int,
    image_id: int,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    image = await db.get(ProductImage, image_id)
    if image is None or image.product_id != product_id:
        raise HTTPException(status_code=404, detail="Image not found")
    await db.delete(image)
    await db.commit()
