"""
Pydantic schemas for product-related API endpoints
"""
from datetime import datetime
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator

from prodspark.database.models import PricingTier
from prodspark.services.quality_score import ScoredProduct


class PricingFilter(str, Enum):
    """Pricing filter values accepted by the listing endpoint"""
    all = "All"
    free = "Free"
    premium = "Premium"
    paid = "Paid"


class ReviewSchema(BaseModel):
    """Review schema"""
    id: str
    product_id: str
    user_clerk_id: str
    user_name: Optional[str] = None
    user_avatar_url: Optional[str] = None
    text: str
    stars: int
    created_at: datetime

    class Config:
        from_attributes = True


class ProductSchema(BaseModel):
    """Complete product schema"""
    id: str
    owner_clerk_id: str
    name: str
    category: str
    link: str
    logo_url: str
    description: str = ""
    tags: List[str] = []
    pricing: PricingTier
    images_urls: List[str] = []
    views: int = 0
    likes: List[str] = []
    created_at: datetime

    class Config:
        from_attributes = True


class ScoredProductSchema(ProductSchema):
    """Product with its derived ranking fields"""
    quality_score: float
    average_rating: float
    review_count: int = 0

    @classmethod
    def from_scored(cls, scored: ScoredProduct) -> "ScoredProductSchema":
        base = ProductSchema.model_validate(scored.product)
        return cls(
            **base.model_dump(),
            quality_score=scored.quality_score,
            average_rating=scored.average_rating,
            review_count=scored.review_count,
        )


class ProductCreate(BaseModel):
    """Fields of a product submission (files travel separately)"""
    name: str = Field(..., min_length=1, max_length=200)
    category: str = Field(..., min_length=1, max_length=100)
    link: str = Field(..., min_length=1)
    description: str = Field("", max_length=5000)
    tags: List[str] = []
    pricing: PricingTier = PricingTier.FREE

    @field_validator("tags", mode="before")
    @classmethod
    def split_tags(cls, v: Any) -> List[str]:
        """Accept "a, b, ,c" as well as a list; trim and drop empties."""
        if v is None:
            return []
        if isinstance(v, str):
            v = v.split(",")
        return [t.strip() for t in v if t and t.strip()]


class ReviewCreate(BaseModel):
    """Review submission. The reviewer is always the authenticated caller."""
    text: str = Field(..., min_length=1, max_length=5000)
    stars: int = Field(5, ge=1, le=5)

    @field_validator("text")
    @classmethod
    def text_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Review text cannot be blank")
        return v


class PaginatedResponse(BaseModel):
    """Paginated response schema"""
    items: List[Any]
    total: int
    page: int
    size: int
    pages: int
    has_next: bool
    has_prev: bool


class ProductSearchResponse(PaginatedResponse):
    """Ranked, filtered product listing"""
    items: List[ScoredProductSchema]
    query: Optional[str] = None
    pricing: PricingFilter = PricingFilter.all


class FeaturedProductsResponse(BaseModel):
    """Top products by quality score"""
    items: List[ScoredProductSchema]


class ProductDetailResponse(BaseModel):
    """Single product detail response"""
    product: ScoredProductSchema
    reviews: List[ReviewSchema] = []
    liked: bool = False


class ReviewCreatedResponse(BaseModel):
    """A new review together with the product's refreshed score"""
    review: ReviewSchema
    average_rating: float
    quality_score: float


class LikeResponse(BaseModel):
    """Result of toggling a like"""
    product_id: str
    liked: bool
    likes_count: int


class ViewResponse(BaseModel):
    """Result of recording a view"""
    product_id: str
    counted: bool
    views: int
