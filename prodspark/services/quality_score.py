"""
Deterministic product quality scoring and ranking.

Turns raw product and review rows into the ordered, filtered, paginated
listing the directory renders. Pure functions only: no I/O, no shared state,
inputs are never mutated.

Scoring Formula:
    QUALITY_SCORE =
        1  * views          +
        2  * len(likes)     +
        10 * average_rating

Views carry the least weight per unit, likes more, and the community star
rating the most. The weights must stay exactly as written so that rankings
match across every listing that uses them.

Ordering:
    - quality_score descending
    - ties broken by created_at descending (newest first)
    - then by id ascending
    Products without created_at sort after dated ones among equal scores.
"""
import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence

logger = logging.getLogger(__name__)

PRICING_FILTER_ALL = "All"

VIEW_WEIGHT = 1
LIKE_WEIGHT = 2
RATING_WEIGHT = 10


@dataclass(frozen=True)
class ScoredProduct:
    """A product with its derived ranking fields attached."""
    product: Any
    average_rating: float
    quality_score: float
    review_count: int = 0


@dataclass(frozen=True)
class Page:
    """One page of a ranked listing."""
    items: List[ScoredProduct]
    total: int
    page: int
    size: int
    pages: int
    has_next: bool
    has_prev: bool


def compute_average_rating(reviews: Iterable[Any]) -> float:
    """
    Mean of the reviews' stars.

    Returns 0.0 when there are no reviews; an unreviewed product is a normal
    state, not an error.
    """
    total = 0
    count = 0
    for review in reviews:
        total += review.stars
        count += 1
    if count == 0:
        return 0.0
    return total / count


def compute_quality_score(product: Any, average_rating: float) -> float:
    """
    views + 2 * len(likes) + 10 * average_rating

    Missing views or likes count as zero, so a brand-new product scores 0.
    """
    views = getattr(product, "views", None) or 0
    likes = getattr(product, "likes", None) or []
    return float(VIEW_WEIGHT * views + LIKE_WEIGHT * len(likes) + RATING_WEIGHT * average_rating)


def partition_reviews(reviews: Iterable[Any]) -> Dict[Any, List[Any]]:
    """Group reviews by product_id in a single pass."""
    by_product: Dict[Any, List[Any]] = defaultdict(list)
    for review in reviews:
        by_product[review.product_id].append(review)
    return dict(by_product)


def score_product(product: Any, reviews: Sequence[Any]) -> ScoredProduct:
    """Score one product against the reviews that belong to it."""
    average_rating = compute_average_rating(reviews)
    return ScoredProduct(
        product=product,
        average_rating=average_rating,
        quality_score=compute_quality_score(product, average_rating),
        review_count=len(reviews),
    )


def rank_products(products: Iterable[Any], reviews: Iterable[Any]) -> List[ScoredProduct]:
    """
    Score every product and sort by quality score, highest first.

    Reviews are partitioned by product once, so each product's lookup is O(1)
    and the whole ranking is linear in products + reviews (plus the sort).
    Reviews pointing at products that are not in `products` are ignored.

    Args:
        products: Product rows (ORM instances or any object with the same attributes)
        reviews: Review rows exposing product_id and stars

    Returns:
        New list of ScoredProduct; the inputs are left untouched
    """
    reviews_by_product = partition_reviews(reviews)

    scored = [
        score_product(product, reviews_by_product.get(product.id, ()))
        for product in products
    ]

    # Stable sorts applied from the least to the most significant key
    scored.sort(key=lambda sp: str(sp.product.id))
    scored.sort(key=_created_at_key, reverse=True)
    scored.sort(key=lambda sp: sp.quality_score, reverse=True)

    logger.debug(f"Ranked {len(scored)} products")
    return scored


def _created_at_key(scored: ScoredProduct):
    created_at: Optional[datetime] = getattr(scored.product, "created_at", None)
    if created_at is None:
        return (0, 0.0)
    return (1, created_at.timestamp())


def _pricing_value(pricing: Any) -> str:
    return getattr(pricing, "value", pricing)


def matches_search(product: Any, search_term: str) -> bool:
    """
    Case-insensitive substring match on name, description, category or any tag.

    Only the empty string matches everything; the term is not trimmed.
    """
    if not search_term:
        return True
    needle = search_term.lower()
    for field in (product.name, product.description, product.category):
        if field and needle in field.lower():
            return True
    return any(needle in tag.lower() for tag in (product.tags or []))


def matches_pricing(product: Any, pricing_filter: str) -> bool:
    """Exact tier match, or everything for the "All" sentinel."""
    pricing_filter = _pricing_value(pricing_filter)
    if not pricing_filter or pricing_filter == PRICING_FILTER_ALL:
        return True
    return _pricing_value(product.pricing) == pricing_filter


def filter_products(
    ranked: Iterable[ScoredProduct],
    search_term: str = "",
    pricing_filter: str = PRICING_FILTER_ALL,
) -> List[ScoredProduct]:
    """
    Keep the products matching both the search term and the pricing filter.

    Relative order from rank_products is preserved.
    """
    return [
        sp for sp in ranked
        if matches_search(sp.product, search_term) and matches_pricing(sp.product, pricing_filter)
    ]


def select_featured(ranked: Sequence[ScoredProduct], count: int = 4) -> List[ScoredProduct]:
    """Top `count` entries of an already ranked listing."""
    return list(ranked[:max(count, 0)])


def paginate(items: Sequence[ScoredProduct], page: int, size: int) -> Page:
    """Slice a ranked listing into a 1-based page. A size below 1 yields an empty page."""
    total = len(items)
    if size < 1:
        return Page(items=[], total=total, page=page, size=size, pages=0, has_next=False, has_prev=page > 1)
    pages = (total + size - 1) // size
    offset = (page - 1) * size
    return Page(
        items=list(items[offset:offset + size]),
        total=total,
        page=page,
        size=size,
        pages=pages,
        has_next=page < pages,
        has_prev=page > 1,
    )
