"""
Database module for ProdSpark
"""
from .models import Base, PricingTier, Product, Review

__all__ = [
    "Base",
    "PricingTier",
    "Product",
    "Review",
]
