"""
Marketplace activity models

Behavioral sources the engine reads signals from: orders, product views,
carts, wishlists, reviews, and the sellers that own products. The engine
never writes to these tables.
"""
from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, Numeric
from sqlalchemy.orm import relationship
from datetime import datetime

from signal_pricing.models.base import Base

# Order statuses that count as a sale
SALE_STATUSES = ("confirmed", "shipped", "delivered")


class Merchant(Base):
    """Seller / store"""
    __tablename__ = "merchants"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String)
    status = Column(String, default="APPROVED")
    created_at = Column(DateTime, default=datetime.utcnow)


class Order(Base):
    """Customer order"""
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, index=True, nullable=True)
    status = Column(String, index=True)  # pending, confirmed, shipped, delivered, cancelled
    total_amount = Column(Numeric(12, 2), default=0)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")


class OrderItem(Base):
    """Line item with the price charged and the merchant's share at order time"""
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), index=True, nullable=False)
    product_id = Column(Integer, ForeignKey("products.id"), index=True, nullable=False)
    variant_id = Column(Integer, ForeignKey("product_variants.id"), nullable=True)
    merchant_id = Column(Integer, ForeignKey("merchants.id"), index=True, nullable=True)

    quantity = Column(Integer, default=1)
    price = Column(Numeric(12, 2))  # Charged unit price
    merchant_price = Column(Numeric(12, 2), nullable=True)  # Merchant unit price

    order = relationship("Order", back_populates="items")


class ProductView(Base):
    """Per-user view counter for a product"""
    __tablename__ = "product_views"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), index=True, nullable=False)
    view_count = Column(Integer, default=1)
    last_viewed = Column(DateTime, default=datetime.utcnow, index=True)


class CartItem(Base):
    """Product sitting in a user's cart"""
    __tablename__ = "cart_items"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), index=True, nullable=False)
    quantity = Column(Integer, default=1)
    updated_at = Column(DateTime, default=datetime.utcnow, index=True)


class WishlistItem(Base):
    """Product favorited by a user"""
    __tablename__ = "wishlist_items"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), index=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)


class Review(Base):
    """Product review (1-5 stars)"""
    __tablename__ = "reviews"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), index=True, nullable=False)
    user_id = Column(String, nullable=True)
    rating = Column(Float)
    created_at = Column(DateTime, default=datetime.utcnow)
