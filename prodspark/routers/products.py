"""
Product API routes
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Header, HTTPException, Query, UploadFile
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from prodspark.core.auth import get_current_user, get_optional_user
from prodspark.core.config import settings
from prodspark.core.database import get_db
from prodspark.database.models import PricingTier
from prodspark.middleware.logging_middleware import SESSION_HEADER, bind_product_context, get_logger
from prodspark.schemas.products import (
    FeaturedProductsResponse,
    LikeResponse,
    PricingFilter,
    ProductCreate,
    ProductDetailResponse,
    ProductSearchResponse,
    ReviewCreate,
    ReviewCreatedResponse,
    ReviewSchema,
    ScoredProductSchema,
    ViewResponse,
)
from prodspark.services import product_store
from prodspark.services.auth_service import AuthenticatedUser
from prodspark.services.media_service import (
    InvalidMediaError,
    MediaConfigError,
    MediaFile,
    MediaUploadError,
    media_service,
)
from prodspark.services.product_store import LikeConflictError, ProductNotFoundError
from prodspark.services.quality_score import (
    filter_products,
    paginate,
    rank_products,
    score_product,
    select_featured,
)
from prodspark.services.view_tracker import view_tracker

logger = get_logger(__name__)
router = APIRouter(prefix="/products", tags=["products"])


@router.get("", response_model=ProductSearchResponse)
async def get_products(
    page: int = Query(1, ge=1),
    size: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    search: Optional[str] = Query(None, max_length=200),
    pricing: PricingFilter = Query(PricingFilter.all),
    db: AsyncSession = Depends(get_db),
):
    """Ranked product listing, filtered by search text and pricing tier"""
    try:
        products = await product_store.fetch_products(db)
        reviews = await product_store.fetch_reviews(db)

        ranked = rank_products(products, reviews)
        filtered = filter_products(ranked, search or "", pricing.value)
        result = paginate(filtered, page, size)

        logger.info(
            "products_listed",
            products=len(products),
            matched=len(filtered),
            search=search,
            pricing=pricing.value,
            page=page,
            pages=result.pages,
        )

        return ProductSearchResponse(
            items=[ScoredProductSchema.from_scored(sp) for sp in result.items],
            total=result.total,
            page=result.page,
            size=result.size,
            pages=result.pages,
            has_next=result.has_next,
            has_prev=result.has_prev,
            query=search,
            pricing=pricing,
        )

    except Exception as e:
        logger.error("products_list_failed", error=str(e), exc_info=True)
        raise HTTPException(status_code=500, detail="Error fetching products")


@router.get("/featured", response_model=FeaturedProductsResponse)
async def get_featured_products(db: AsyncSession = Depends(get_db)):
    """Top products by quality score, drawn from a small sample"""
    try:
        products = await product_store.fetch_products(db, limit=settings.featured_sample_size)
        reviews = await product_store.fetch_reviews(db, product_ids=[p.id for p in products])

        featured = select_featured(rank_products(products, reviews), settings.featured_count)
        logger.info("featured_selected", sampled=len(products), product_ids=[sp.product.id for sp in featured])
        return FeaturedProductsResponse(items=[ScoredProductSchema.from_scored(sp) for sp in featured])

    except Exception as e:
        logger.error("featured_failed", error=str(e), exc_info=True)
        raise HTTPException(status_code=500, detail="Error fetching featured products")


@router.get("/{product_id}", response_model=ProductDetailResponse)
async def get_product(
    product_id: str,
    db: AsyncSession = Depends(get_db),
    user: Optional[AuthenticatedUser] = Depends(get_optional_user),
):
    """Product with its score, rating and reviews (newest first)"""
    bind_product_context(product_id, user.user_id if user else None)
    try:
        product = await product_store.fetch_product(db, product_id)
        reviews = await product_store.fetch_reviews(db, product_ids=[product_id])

        return ProductDetailResponse(
            product=ScoredProductSchema.from_scored(score_product(product, reviews)),
            reviews=[ReviewSchema.model_validate(r) for r in reviews],
            liked=bool(user and user.user_id in (product.likes or [])),
        )

    except ProductNotFoundError:
        raise HTTPException(status_code=404, detail="Product not found")
    except Exception as e:
        logger.error("product_detail_failed", error=str(e), exc_info=True)
        raise HTTPException(status_code=500, detail="Error fetching product details")


@router.post("", response_model=ScoredProductSchema, status_code=201)
async def submit_product(
    name: str = Form(...),
    category: str = Form(...),
    link: str = Form(...),
    description: str = Form(""),
    tags: str = Form(""),
    pricing: PricingTier = Form(PricingTier.FREE),
    logo: UploadFile = File(...),
    gallery: Optional[List[UploadFile]] = File(None),
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Submit a product. Images are uploaded before the row is written."""
    try:
        try:
            payload = ProductCreate(
                name=name, category=category, link=link, description=description, tags=tags, pricing=pricing
            )
        except ValidationError as e:
            raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False))

        gallery = gallery or []
        if len(gallery) > settings.max_gallery_images:
            raise HTTPException(
                status_code=400, detail=f"Maximum {settings.max_gallery_images} additional images allowed"
            )

        logo_file = await _read_upload(logo)
        gallery_files = [await _read_upload(f) for f in gallery]

        # Reject bad files before anything reaches the CDN
        for media in [logo_file, *gallery_files]:
            media_service.validate(media)

        logo_url = await media_service.upload_image(logo_file)
        gallery_urls = await media_service.upload_images(gallery_files)

        product = await product_store.insert_product(db, user.user_id, payload, logo_url, gallery_urls)
        await db.commit()

        bind_product_context(product.id, user.user_id)
        logger.info("product_submitted", pricing=product.pricing.value, gallery_images=len(gallery_urls))
        return ScoredProductSchema.from_scored(score_product(product, []))

    except HTTPException:
        raise
    except InvalidMediaError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except MediaConfigError as e:
        logger.error("media_unavailable", error=str(e))
        raise HTTPException(status_code=503, detail="Image uploads are not available right now")
    except MediaUploadError as e:
        logger.warning("media_upload_failed", error=str(e))
        raise HTTPException(status_code=502, detail=f"Failed to upload image: {e}")
    except Exception as e:
        logger.error("product_submit_failed", error=str(e), exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to save product")


@router.post("/{product_id}/like", response_model=LikeResponse)
async def toggle_like(
    product_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Like the product, or remove the like if the caller already liked it"""
    bind_product_context(product_id, user.user_id)
    try:
        liked, likes = await product_store.toggle_like(
            db, product_id, user.user_id, max_retries=settings.like_max_retries
        )
        await db.commit()
        logger.info("like_toggled", liked=liked, likes_count=len(likes))
        return LikeResponse(product_id=product_id, liked=liked, likes_count=len(likes))

    except ProductNotFoundError:
        raise HTTPException(status_code=404, detail="Product not found")
    except LikeConflictError as e:
        logger.warning("like_conflict", error=str(e))
        raise HTTPException(status_code=409, detail="Failed to update like status, please retry")
    except Exception as e:
        logger.error("like_failed", error=str(e), exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to update like status")


@router.post("/{product_id}/views", response_model=ViewResponse)
async def record_view(
    product_id: str,
    session_id: Optional[str] = Header(None, alias=SESSION_HEADER),
    db: AsyncSession = Depends(get_db),
):
    """Count a view, at most once per session per product"""
    bind_product_context(product_id)

    if not view_tracker.claim(session_id, product_id):
        try:
            product = await product_store.fetch_product(db, product_id)
        except ProductNotFoundError:
            raise HTTPException(status_code=404, detail="Product not found")
        logger.debug("view_deduplicated", views=product.views)
        return ViewResponse(product_id=product_id, counted=False, views=product.views)

    try:
        views = await product_store.increment_views(db, product_id)
        await db.commit()
        logger.info("view_counted", views=views)
        return ViewResponse(product_id=product_id, counted=True, views=views)

    except ProductNotFoundError:
        view_tracker.release(session_id, product_id)
        raise HTTPException(status_code=404, detail="Product not found")
    except Exception as e:
        view_tracker.release(session_id, product_id)
        logger.error("view_failed", error=str(e), exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to record view")


@router.post("/{product_id}/reviews", response_model=ReviewCreatedResponse, status_code=201)
async def create_review(
    product_id: str,
    payload: ReviewCreate,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Post a review and return the product's refreshed rating and score"""
    bind_product_context(product_id, user.user_id)
    try:
        # The reviewer's name and avatar are a snapshot of the token, never client input
        review = await product_store.insert_review(
            db, product_id, user.user_id, payload, user_name=user.name, user_avatar_url=user.avatar_url
        )
        await db.commit()

        product = await product_store.fetch_product(db, product_id)
        reviews = await product_store.fetch_reviews(db, product_ids=[product_id])
        scored = score_product(product, reviews)

        logger.info("review_posted", stars=review.stars, average_rating=scored.average_rating)
        return ReviewCreatedResponse(
            review=ReviewSchema.model_validate(review),
            average_rating=scored.average_rating,
            quality_score=scored.quality_score,
        )

    except ProductNotFoundError:
        raise HTTPException(status_code=404, detail="Product not found")
    except Exception as e:
        logger.error("review_failed", error=str(e), exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to post review")


async def _read_upload(upload: UploadFile) -> MediaFile:
    content = await upload.read()
    return MediaFile(
        filename=upload.filename or "upload",
        content=content,
        content_type=upload.content_type or "application/octet-stream",
    )
