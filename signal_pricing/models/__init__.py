"""Database models for the signal pricing engine"""

from signal_pricing.models.activity import (
    Merchant,
    Order,
    OrderItem,
    ProductView,
    CartItem,
    WishlistItem,
    Review,
    SALE_STATUSES,
)

from signal_pricing.models.product import (
    Product,
    ProductVariant,
    VariantAttributes,
)

from signal_pricing.models.recalculation import RecalculationRun

__all__ = [
    "Merchant",
    "Order",
    "OrderItem",
    "ProductView",
    "CartItem",
    "WishlistItem",
    "Review",
    "SALE_STATUSES",
    "Product",
    "ProductVariant",
    "VariantAttributes",
    "RecalculationRun",
]
