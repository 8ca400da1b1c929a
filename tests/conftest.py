"""
Shared pytest fixtures and configuration for all tests
"""
from datetime import datetime, timedelta
from typing import AsyncGenerator, Callable, Optional
from unittest.mock import AsyncMock

import pytest
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import NullPool

from prodspark.core.config import settings
from prodspark.database.models import Base, PricingTier, Product, Review


@pytest.fixture
def db_path(tmp_path):
    """SQLite database file with the schema created"""
    path = tmp_path / "prodspark_test.db"
    sync_engine = create_engine(f"sqlite:///{path}")
    Base.metadata.create_all(sync_engine)
    sync_engine.dispose()
    return path


@pytest.fixture
def seed(db_path) -> Callable[..., None]:
    """Insert ORM rows synchronously before a test talks to the database"""

    def _seed(*rows):
        engine = create_engine(f"sqlite:///{db_path}")
        with Session(engine) as session:
            session.add_all(rows)
            session.commit()
        engine.dispose()

    return _seed


@pytest.fixture
def session_factory(db_path):
    """Async session factory bound to the test database"""
    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}", poolclass=NullPool)
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test"""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def mock_db_session():
    """Create a mock async database session."""
    session = AsyncMock()
    session.execute = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    return session


@pytest.fixture
def make_token() -> Callable[..., str]:
    """Sign a bearer token the API will accept"""

    def _make(sub: Optional[str] = "user_alice", **claims) -> str:
        payload = {"exp": datetime.utcnow() + timedelta(minutes=5), **claims}
        if sub is not None:
            payload["sub"] = sub
        return jwt.encode(payload, settings.auth_jwt_key, algorithm=settings.auth_algorithm)

    return _make


BASE_TIME = datetime(2026, 1, 1, 12, 0, 0)


def make_product(
    id: str,
    name: str = "Product",
    views: int = 0,
    likes=None,
    pricing: PricingTier = PricingTier.FREE,
    created_at: datetime = BASE_TIME,
    **fields,
) -> Product:
    """Product row with sensible defaults"""
    return Product(
        id=id,
        owner_clerk_id=fields.pop("owner_clerk_id", "owner_1"),
        name=name,
        category=fields.pop("category", "Productivity"),
        link=fields.pop("link", f"https://example.com/{id}"),
        logo_url=fields.pop("logo_url", f"https://res.cloudinary.com/demo/{id}.png"),
        description=fields.pop("description", ""),
        tags=fields.pop("tags", []),
        pricing=pricing,
        images_urls=fields.pop("images_urls", []),
        views=views,
        likes=list(likes or []),
        likes_version=0,
        created_at=created_at,
        **fields,
    )


def make_review(id: str, product_id: str, stars: int, user: str = "user_bob", created_at: datetime = BASE_TIME) -> Review:
    """Review row with sensible defaults"""
    return Review(
        id=id,
        product_id=product_id,
        user_clerk_id=user,
        user_name="Bob",
        text="Solid tool",
        stars=stars,
        created_at=created_at,
    )


@pytest.fixture
def product_factory():
    return make_product


@pytest.fixture
def review_factory():
    return make_review
