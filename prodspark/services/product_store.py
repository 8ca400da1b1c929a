"""
Data store access for products and reviews.

Thin async SQLAlchemy layer over the `products` and `reviews` tables. Ranking
happens elsewhere (see quality_score); this module only reads and writes rows.
"""
import logging
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from prodspark.database.models import Product, Review
from prodspark.schemas.products import ProductCreate, ReviewCreate

logger = logging.getLogger(__name__)


class ProductNotFoundError(LookupError):
    """No product with the requested id."""

    def __init__(self, product_id: str):
        super().__init__(f"Product {product_id} not found")
        self.product_id = product_id


class LikeConflictError(RuntimeError):
    """The likes list kept changing underneath us."""


async def fetch_products(db: AsyncSession, limit: Optional[int] = None) -> List[Product]:
    """All products, or the first `limit` of them."""
    query = select(Product)
    if limit is not None:
        query = query.limit(limit)
    result = await db.execute(query)
    return list(result.scalars().all())


async def fetch_product(db: AsyncSession, product_id: str) -> Product:
    """One product by id."""
    result = await db.execute(select(Product).where(Product.id == product_id))
    product = result.scalar_one_or_none()
    if product is None:
        raise ProductNotFoundError(product_id)
    return product


async def fetch_reviews(db: AsyncSession, product_ids: Optional[Iterable[str]] = None) -> List[Review]:
    """Reviews newest first, optionally restricted to some products."""
    query = select(Review).order_by(Review.created_at.desc())
    if product_ids is not None:
        ids = list(product_ids)
        if not ids:
            return []
        query = query.where(Review.product_id.in_(ids))
    result = await db.execute(query)
    return list(result.scalars().all())


async def insert_product(
    db: AsyncSession,
    owner_id: str,
    payload: ProductCreate,
    logo_url: str,
    images_urls: List[str],
) -> Product:
    """Create a product. New products start with no views and no likes."""
    product = Product(
        owner_clerk_id=owner_id,
        name=payload.name,
        category=payload.category,
        link=payload.link,
        logo_url=logo_url,
        description=payload.description,
        tags=list(payload.tags),
        pricing=payload.pricing,
        images_urls=list(images_urls),
        views=0,
        likes=[],
        likes_version=0,
    )
    db.add(product)
    await db.flush()
    await db.refresh(product)
    logger.info(f"Created product {product.id} ({product.name}) for owner {owner_id}")
    return product


async def insert_review(
    db: AsyncSession,
    product_id: str,
    user_id: str,
    payload: ReviewCreate,
    user_name: Optional[str] = None,
    user_avatar_url: Optional[str] = None,
) -> Review:
    """Create a review on an existing product, snapshotting the reviewer's name and avatar."""
    await fetch_product(db, product_id)

    review = Review(
        product_id=product_id,
        user_clerk_id=user_id,
        user_name=user_name,
        user_avatar_url=user_avatar_url,
        text=payload.text,
        stars=payload.stars,
    )
    db.add(review)
    await db.flush()
    await db.refresh(review)
    logger.info(f"Created review {review.id} on product {product_id} ({review.stars} stars)")
    return review


async def toggle_like(
    db: AsyncSession,
    product_id: str,
    user_id: str,
    max_retries: int = 3,
) -> Tuple[bool, List[str]]:
    """
    Add the user to the product's likes, or remove them if already present.

    The write only lands if likes_version is unchanged since the read
    (compare-and-swap); a lost race re-reads and tries again.

    Returns:
        (liked, likes) as stored after the write
    """
    for attempt in range(max_retries + 1):
        result = await db.execute(
            select(Product.likes, Product.likes_version).where(Product.id == product_id)
        )
        row = result.one_or_none()
        if row is None:
            raise ProductNotFoundError(product_id)

        current = list(row.likes or [])
        if user_id in current:
            new_likes = [uid for uid in current if uid != user_id]
            liked = False
        else:
            new_likes = current + [user_id]
            liked = True

        swap = await db.execute(
            update(Product)
            .where(Product.id == product_id, Product.likes_version == row.likes_version)
            .values(likes=new_likes, likes_version=row.likes_version + 1)
            .execution_options(synchronize_session=False)
        )
        if swap.rowcount == 1:
            logger.info(f"User {user_id} {'liked' if liked else 'unliked'} product {product_id}")
            return liked, new_likes

        logger.warning(f"Likes on product {product_id} changed concurrently (attempt {attempt + 1})")

    raise LikeConflictError(f"Could not update likes on product {product_id}")


async def increment_views(db: AsyncSession, product_id: str) -> int:
    """Atomically add one view. Returns the new count."""
    result = await db.execute(
        update(Product)
        .where(Product.id == product_id)
        .values(views=Product.views + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise ProductNotFoundError(product_id)

    views = await db.scalar(select(Product.views).where(Product.id == product_id))
    return int(views)
