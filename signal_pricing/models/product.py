"""
Catalog product models
Products, their ordered variants, and the engine-derived pricing/ranking fields
"""
from collections.abc import Mapping
from sqlalchemy import Column, Integer, String, Float, DateTime, Boolean, ForeignKey, Numeric, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.types import TypeDecorator
from datetime import datetime

from signal_pricing.config import get_settings
from signal_pricing.models.base import Base


class VariantAttributes(Mapping):
    """
    Immutable, insertion-ordered attribute map for a variant (e.g. size, colour).

    Two maps are equal only when they hold the same pairs in the same order,
    and hashing follows the same rule, so variants can be deduplicated or used
    as dict keys.
    """

    __slots__ = ("_items",)

    def __init__(self, items=None):
        if items is None:
            pairs = ()
        elif isinstance(items, Mapping):
            pairs = tuple((str(k), v) for k, v in items.items())
        else:
            pairs = tuple((str(k), v) for k, v in items)
        seen = set()
        for key, _ in pairs:
            if key in seen:
                raise ValueError(f"Duplicate variant attribute: {key}")
            seen.add(key)
        self._items = pairs

    def __getitem__(self, key):
        for k, v in self._items:
            if k == key:
                return v
        raise KeyError(key)

    def __iter__(self):
        return (k for k, _ in self._items)

    def __len__(self):
        return len(self._items)

    def __eq__(self, other):
        if not isinstance(other, VariantAttributes):
            return NotImplemented
        return self._items == other._items

    def __hash__(self):
        return hash(self._items)

    def __repr__(self):
        inner = ", ".join(f"{k}={v!r}" for k, v in self._items)
        return f"VariantAttributes({inner})"

    def to_pairs(self) -> list:
        return [[k, v] for k, v in self._items]


class AttributeMapType(TypeDecorator):
    """Stores VariantAttributes as a JSON list of [key, value] pairs (keeps order)"""

    impl = JSON
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if not isinstance(value, VariantAttributes):
            value = VariantAttributes(value)
        return value.to_pairs()

    def process_result_value(self, value, dialect):
        if value is None:
            return VariantAttributes()
        return VariantAttributes(value)


def _default_base_markup():
    return get_settings().default_base_markup_percent


def _empty_attributes():
    return VariantAttributes()


class Product(Base):
    """Catalog product with seller pricing and engine-derived fields"""
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)

    # Basic info
    name = Column(String, index=True)
    category_id = Column(String, index=True, nullable=True)
    merchant_id = Column(Integer, ForeignKey("merchants.id"), index=True, nullable=True)

    # Seller pricing (never written by the engine)
    merchant_price = Column(Numeric(12, 2), nullable=True)
    price = Column(Numeric(12, 2), nullable=True)  # Legacy single price
    discount_price = Column(Numeric(12, 2), nullable=True)  # Legacy discount price
    base_markup_percent = Column(Numeric(6, 2), default=_default_base_markup)

    # Derived pricing
    dynamic_markup_percent = Column(Numeric(5, 2), default=0)  # 0-50
    final_price = Column(Numeric(12, 2), nullable=True)

    # Inventory
    stock = Column(Integer, default=0)

    # Tracking fields (rolling 24h, refreshed once per cycle)
    views_24h = Column(Integer, default=0)
    cart_count_24h = Column(Integer, default=0)
    sales_24h = Column(Integer, default=0)
    favorites_count = Column(Integer, default=0)

    # Ranking fields
    visibility_score = Column(Integer, default=0, index=True)
    priority_score = Column(Integer, default=0)  # 0-100, admin controlled
    featured = Column(Boolean, default=False)  # admin controlled
    conversion_rate = Column(Float, default=0.0)  # 0-100
    store_rating = Column(Float, default=0.0)  # 0-5

    # Lifetime mirrors written alongside the visibility score
    order_count = Column(Integer, default=0)
    view_count = Column(Integer, default=0)
    favorite_count = Column(Integer, default=0)
    discount_boost = Column(Float, default=0.0)
    newness_boost = Column(Float, default=0.0)

    average_rating = Column(Float, nullable=True)

    # Status
    is_active = Column(Boolean, default=True, index=True)
    deleted_at = Column(DateTime, nullable=True)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    score_calculated_at = Column(DateTime, nullable=True)

    # Relationships
    variants = relationship(
        "ProductVariant",
        back_populates="product",
        order_by="ProductVariant.position",
        cascade="all, delete-orphan",
    )
    merchant = relationship("Merchant")

    @property
    def is_eligible(self) -> bool:
        """Eligible for recalculation: active and not soft-deleted"""
        return bool(self.is_active) and self.deleted_at is None

    @property
    def tracking_fields(self) -> dict:
        return {
            "views_24h": self.views_24h or 0,
            "cart_count_24h": self.cart_count_24h or 0,
            "sales_24h": self.sales_24h or 0,
            "favorites_count": self.favorites_count or 0,
        }

    @property
    def ranking_fields(self) -> dict:
        return {
            "visibility_score": self.visibility_score or 0,
            "priority_score": self.priority_score or 0,
            "featured": bool(self.featured),
            "conversion_rate": self.conversion_rate or 0.0,
            "store_rating": self.store_rating or 0.0,
        }

    @property
    def display_price(self):
        """Lowest variant final price, or the product's own final price"""
        variant_prices = [v.final_price for v in self.variants if v.final_price]
        if variant_prices:
            return min(variant_prices)
        return self.final_price


class ProductVariant(Base):
    """Purchasable variant of a product, kept in display order"""
    __tablename__ = "product_variants"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), index=True, nullable=False)
    position = Column(Integer, default=0)

    sku = Column(String, index=True, nullable=True)
    attributes = Column(AttributeMapType, default=_empty_attributes)

    # Seller pricing
    merchant_price = Column(Numeric(12, 2), nullable=True)
    price = Column(Numeric(12, 2), nullable=True)  # Legacy single price
    base_markup_percent = Column(Numeric(6, 2), nullable=True)  # Falls back to product's

    # Derived pricing
    dynamic_markup_percent = Column(Numeric(5, 2), default=0)
    final_price = Column(Numeric(12, 2), nullable=True)

    stock = Column(Integer, default=0)

    product = relationship("Product", back_populates="variants")
