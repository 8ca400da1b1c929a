"""
Database models for the ProdSpark product directory
"""
import enum
import uuid
from datetime import datetime

from sqlalchemy import JSON, CheckConstraint, Column, DateTime, Enum, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


class PricingTier(str, enum.Enum):
    FREE = "Free"
    PREMIUM = "Premium"
    PAID = "Paid"


class Product(Base):
    """A listed product. Ranking fields (quality score, rating) are derived per request."""

    __tablename__ = "products"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    owner_clerk_id = Column(String(255), nullable=False, index=True)  # identity provider user id
    name = Column(String(200), nullable=False, index=True)
    category = Column(String(100), nullable=False)
    link = Column(Text, nullable=False)
    logo_url = Column(Text, nullable=False)
    description = Column(Text, nullable=False, default="")
    tags = Column(JSON, nullable=False, default=list)
    pricing = Column(
        Enum(PricingTier, name="pricingtier", values_callable=lambda tiers: [t.value for t in tiers]),
        nullable=False,
        default=PricingTier.FREE,
    )
    images_urls = Column(JSON, nullable=False, default=list)  # gallery, at most 3

    # Engagement
    views = Column(Integer, nullable=False, default=0)
    likes = Column(JSON, nullable=False, default=list)  # user ids, no duplicates
    likes_version = Column(Integer, nullable=False, default=0)  # bumped on every likes write

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    reviews = relationship("Review", back_populates="product", cascade="all, delete-orphan")

    __table_args__ = (
        Index("idx_product_pricing", "pricing"),
        Index("idx_product_created_at", "created_at"),
    )

    def __repr__(self):
        return f"<Product(id={self.id}, name='{self.name[:50]}', pricing={self.pricing}, views={self.views})>"


class Review(Base):
    """A star review. Immutable once written."""

    __tablename__ = "reviews"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    product_id = Column(String(36), ForeignKey("products.id"), nullable=False, index=True)
    user_clerk_id = Column(String(255), nullable=False, index=True)

    # Snapshot of the reviewer at review time
    user_name = Column(String(200), nullable=True)
    user_avatar_url = Column(Text, nullable=True)

    text = Column(Text, nullable=False)
    stars = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    product = relationship("Product", back_populates="reviews")

    __table_args__ = (CheckConstraint("stars >= 1 AND stars <= 5", name="ck_reviews_stars_range"),)

    def __repr__(self):
        return f"<Review(id={self.id}, product_id={self.product_id}, stars={self.stars})>"
