"""create_products_and_reviews

Revision ID: 3f2a9c1d7e42
Revises:
Create Date: 2026-10-19 09:00:12.481223

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy import inspect
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "3f2a9c1d7e42"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create products and reviews - idempotent (safe to run multiple times)."""
    conn = op.get_bind()
    existing_tables = inspect(conn).get_table_names()

    pricing_tier = postgresql.ENUM("Free", "Premium", "Paid", name="pricingtier", create_type=False)
    pricing_tier.create(conn, checkfirst=True)

    if "products" not in existing_tables:
        op.create_table(
            "products",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("owner_clerk_id", sa.String(length=255), nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("category", sa.String(length=100), nullable=False),
            sa.Column("link", sa.Text(), nullable=False),
            sa.Column("logo_url", sa.Text(), nullable=False),
            sa.Column("description", sa.Text(), nullable=False, server_default=""),
            sa.Column("tags", sa.JSON(), nullable=False, server_default="[]"),
            sa.Column("pricing", pricing_tier, nullable=False, server_default="Free"),
            sa.Column("images_urls", sa.JSON(), nullable=False, server_default="[]"),
            sa.Column("views", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("likes", sa.JSON(), nullable=False, server_default="[]"),
            sa.Column("likes_version", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index(op.f("ix_products_owner_clerk_id"), "products", ["owner_clerk_id"], unique=False)
        op.create_index(op.f("ix_products_name"), "products", ["name"], unique=False)
        op.create_index("idx_product_pricing", "products", ["pricing"], unique=False)
        op.create_index("idx_product_created_at", "products", ["created_at"], unique=False)

    if "reviews" not in existing_tables:
        op.create_table(
            "reviews",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("product_id", sa.String(length=36), nullable=False),
            sa.Column("user_clerk_id", sa.String(length=255), nullable=False),
            sa.Column("user_name", sa.String(length=200), nullable=True),
            sa.Column("user_avatar_url", sa.Text(), nullable=True),
            sa.Column("text", sa.Text(), nullable=False),
            sa.Column("stars", sa.Integer(), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
            sa.CheckConstraint("stars >= 1 AND stars <= 5", name="ck_reviews_stars_range"),
            sa.ForeignKeyConstraint(["product_id"], ["products.id"]),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index(op.f("ix_reviews_product_id"), "reviews", ["product_id"], unique=False)
        op.create_index(op.f("ix_reviews_user_clerk_id"), "reviews", ["user_clerk_id"], unique=False)
        op.create_index(op.f("ix_reviews_created_at"), "reviews", ["created_at"], unique=False)


def downgrade() -> None:
    """Drop reviews and products."""
    op.drop_index(op.f("ix_reviews_created_at"), table_name="reviews")
    op.drop_index(op.f("ix_reviews_user_clerk_id"), table_name="reviews")
    op.drop_index(op.f("ix_reviews_product_id"), table_name="reviews")
    op.drop_table("reviews")

    op.drop_index("idx_product_created_at", table_name="products")
    op.drop_index("idx_product_pricing", table_name="products")
    op.drop_index(op.f("ix_products_name"), table_name="products")
    op.drop_index(op.f("ix_products_owner_clerk_id"), table_name="products")
    op.drop_table("products")

    postgresql.ENUM(name="pricingtier").drop(op.get_bind(), checkfirst=True)
