"""
Integration tests for the product store against a temporary SQLite database
"""
from datetime import datetime

import pytest

from prodspark.database.models import PricingTier
from prodspark.schemas.products import ProductCreate, ReviewCreate
from prodspark.services import product_store
from prodspark.services.product_store import ProductNotFoundError


class TestProductStore:

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_insert_product_starts_clean(self, db_session):
        payload = ProductCreate(
            name="Raycast",
            category="Productivity",
            link="https://raycast.com",
            description="Launcher",
            tags="launcher, macos, , productivity ",
            pricing=PricingTier.FREE,
        )

        product = await product_store.insert_product(
            db_session, "owner_9", payload, "https://cdn/logo.png", ["https://cdn/1.png"]
        )
        await db_session.commit()

        assert product.id
        assert product.views == 0
        assert product.likes == []
        assert product.tags == ["launcher", "macos", "productivity"]
        assert product.images_urls == ["https://cdn/1.png"]
        assert product.pricing == PricingTier.FREE
        assert isinstance(product.created_at, datetime)

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_fetch_products_with_limit(self, seed, db_session, product_factory):
        seed(*(product_factory(f"p{i}") for i in range(5)))

        assert len(await product_store.fetch_products(db_session)) == 5
        assert len(await product_store.fetch_products(db_session, limit=3)) == 3

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_fetch_missing_product(self, db_session):
        with pytest.raises(ProductNotFoundError):
            await product_store.fetch_product(db_session, "missing")

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_fetch_reviews_newest_first_and_scoped(self, seed, db_session, product_factory, review_factory):
        seed(
            product_factory("p1"),
            product_factory("p2"),
            review_factory("r1", "p1", 3, created_at=datetime(2026, 1, 1)),
            review_factory("r2", "p1", 5, created_at=datetime(2026, 1, 3)),
            review_factory("r3", "p2", 4, created_at=datetime(2026, 1, 2)),
        )

        everything = await product_store.fetch_reviews(db_session)
        only_p1 = await product_store.fetch_reviews(db_session, product_ids=["p1"])

        assert [r.id for r in everything] == ["r2", "r3", "r1"]
        assert [r.id for r in only_p1] == ["r2", "r1"]
        assert await product_store.fetch_reviews(db_session, product_ids=[]) == []

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_insert_review_requires_product(self, db_session):
        with pytest.raises(ProductNotFoundError):
            await product_store.insert_review(db_session, "missing", "u1", ReviewCreate(text="Nice", stars=4))

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_insert_review_snapshots_reviewer(self, seed, db_session, product_factory):
        seed(product_factory("p1"))

        review = await product_store.insert_review(
            db_session, "p1", "u1", ReviewCreate(text="Nice", stars=4),
            user_name="Alice", user_avatar_url="https://img/alice.png",
        )

        assert (review.user_clerk_id, review.user_name, review.user_avatar_url) == (
            "u1", "Alice", "https://img/alice.png"
        )

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_toggle_like_is_symmetric(self, seed, session_factory, product_factory):
        seed(product_factory("p1", likes=["u1"]))

        async with session_factory() as db:
            liked, likes = await product_store.toggle_like(db, "p1", "u2")
            await db.commit()
        assert (liked, likes) == (True, ["u1", "u2"])

        async with session_factory() as db:
            liked, likes = await product_store.toggle_like(db, "p1", "u2")
            await db.commit()
        assert (liked, likes) == (False, ["u1"])

        async with session_factory() as db:
            product = await product_store.fetch_product(db, "p1")
            assert product.likes == ["u1"]
            assert product.likes_version == 2

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_increment_views(self, seed, session_factory, product_factory):
        seed(product_factory("p1", views=41))

        async with session_factory() as db:
            assert await product_store.increment_views(db, "p1") == 42
            assert await product_store.increment_views(db, "p1") == 43
            await db.commit()

        async with session_factory() as db:
            assert (await product_store.fetch_product(db, "p1")).views == 43

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_increment_views_missing_product(self, db_session):
        with pytest.raises(ProductNotFoundError):
            await product_store.increment_views(db_session, "missing")
