"""
Pricing Analytics Service

Admin / merchant view of what the markup pipeline is doing: average base and
dynamic markups, revenue earned on top of merchant prices, and how the
catalog's final prices are distributed.

Catalog figures compare a product's own final price with its own merchant
price; variant prices are not mixed in.
"""
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Dict, Optional, Tuple

from sqlalchemy import true
from sqlalchemy.orm import Session

from signal_pricing.config import get_settings
from signal_pricing.models.activity import SALE_STATUSES, Merchant, Order, OrderItem
from signal_pricing.models.product import Product
from signal_pricing.utils.helpers import round_2, safe_divide

HIGH_DYNAMIC_MARKUP = 20.0  # Percent
HIGH_TOTAL_MARKUP_ALERT = 50.0  # Percent over merchant price
LOW_STOCK_MAX = 10
PRICE_BANDS = (100, 500)  # low < 100 <= medium < 500 <= high
APPROVED = "APPROVED"

ZERO = Decimal("0")


def catalog_prices(product: Product) -> Tuple[Decimal, Decimal]:
    """(merchant price, final price) of a product, with legacy price fallbacks"""
    merchant_price = product.merchant_price or product.price or ZERO
    final_price = product.final_price or product.discount_price or product.price or ZERO
    return merchant_price, final_price


def markup_percentage(merchant_price, final_price) -> float:
    """Total markup over the merchant price, in percent"""
    return safe_divide(float(final_price - merchant_price), float(merchant_price)) * 100


class PricingAnalyticsService:
    """Read-only pricing analytics over the active catalog and recent orders"""

    def __init__(self, db: Session):
        self.db = db

    def summary(self, merchant_id: Optional[int] = None, days: int = 30) -> Dict:
        """
        Pricing analytics summary.

        Args:
            merchant_id: restrict to one seller's products and order lines
            days: order lookback window

        Returns:
            Dict with summary, orders, product_performance and pricing_distribution
        """
        default_markup = get_settings().default_base_markup_percent
        products = self._active_products(merchant_id)

        catalog_markup_revenue = ZERO
        base_markups = []
        dynamic_markups = []
        high_markup = 0
        low_stock = 0
        distribution = {"low": 0, "medium": 0, "high": 0}

        for product in products:
            merchant_price, final_price = catalog_prices(product)

            if merchant_price > 0:
                base_markups.append(
                    float(product.base_markup_percent)
                    if product.base_markup_percent is not None else default_markup
                )
                dynamic_markups.append(float(product.dynamic_markup_percent or 0))
            catalog_markup_revenue += max(ZERO, final_price - merchant_price)

            if float(product.dynamic_markup_percent or 0) > HIGH_DYNAMIC_MARKUP:
                high_markup += 1
            if 0 < (product.stock or 0) <= LOW_STOCK_MAX:
                low_stock += 1

            if final_price <= 0:
                continue
            if final_price < PRICE_BANDS[0]:
                distribution["low"] += 1
            elif final_price < PRICE_BANDS[1]:
                distribution["medium"] += 1
            else:
                distribution["high"] += 1

        orders = self._order_totals(merchant_id, days)

        return {
            "summary": {
                "total_products": len(products),
                "catalog_markup_revenue": round_2(catalog_markup_revenue),
                "average_base_markup": round_2(
                    safe_divide(sum(base_markups), len(base_markups), default_markup)
                ),
                "average_dynamic_markup": round_2(
                    safe_divide(sum(dynamic_markups), len(dynamic_markups), 0.0)
                ),
            },
            "orders": orders,
            "product_performance": {
                "products_with_high_markup": high_markup,
                "products_with_low_stock": low_stock,
            },
            "pricing_distribution": distribution,
        }

    def merchant_summary(self, merchant_id: int, days: int = 30) -> Optional[Dict]:
        """
        Seller-facing pricing analytics.

        Averages are taken over products with a merchant price. Products
        marked up more than 50% over their merchant price are listed as alerts.

        Returns:
            Dict with summary, orders and alerts, or None when the merchant is
            unknown or not approved
        """
        merchant = self.db.get(Merchant, merchant_id)
        if merchant is None or merchant.status != APPROVED:
            return None

        products = self._active_products(merchant_id)

        merchant_prices = []
        final_prices = []
        alerts = []
        for product in products:
            merchant_price, final_price = catalog_prices(product)
            if merchant_price <= 0:
                continue
            merchant_prices.append(merchant_price)
            final_prices.append(final_price)

            markup = markup_percentage(merchant_price, final_price)
            if markup > HIGH_TOTAL_MARKUP_ALERT:
                alerts.append({
                    "id": product.id,
                    "name": product.name or "Unknown",
                    "merchant_price": float(merchant_price),
                    "final_price": float(final_price),
                    "markup_percentage": round_2(markup),
                })

        average_merchant = safe_divide(float(sum(merchant_prices, ZERO)), len(merchant_prices))
        average_final = safe_divide(float(sum(final_prices, ZERO)), len(final_prices))
        orders = self._order_totals(merchant_id, days)

        return {
            "merchant_id": merchant_id,
            "summary": {
                "total_products": len(products),
                "average_merchant_price": round_2(average_merchant),
                "average_final_price": round_2(average_final),
                "average_markup": round_2(
                    safe_divide(average_final - average_merchant, average_merchant) * 100
                ),
            },
            "orders": {
                "total_orders": orders["total_orders"],
                "total_merchant_revenue": orders["total_merchant_revenue"],
                "window_days": days,
            },
            "alerts": {
                "products_with_high_markup": len(alerts),
                "products_with_high_markup_list": alerts,
            },
        }

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _active_products(self, merchant_id: Optional[int]):
        query = (
            self.db.query(Product)
            .filter(Product.is_active == true(), Product.deleted_at.is_(None))
        )
        if merchant_id is not None:
            query = query.filter(Product.merchant_id == merchant_id)
        return query.order_by(Product.id).all()

    def _order_totals(self, merchant_id: Optional[int], days: int) -> Dict:
        since = datetime.utcnow() - timedelta(days=days)
        query = (
            self.db.query(OrderItem)
            .join(Order, Order.id == OrderItem.order_id)
            .filter(Order.status.in_(SALE_STATUSES), Order.created_at >= since)
        )
        if merchant_id is not None:
            query = query.filter(OrderItem.merchant_id == merchant_id)

        order_ids = set()
        order_revenue = ZERO
        merchant_revenue = ZERO
        markup_revenue = ZERO

        for item in query.all():
            order_ids.add(item.order_id)
            quantity = item.quantity or 1
            charged = item.price or ZERO
            merchant_price = item.merchant_price if item.merchant_price is not None else charged
            order_revenue += charged * quantity
            merchant_revenue += merchant_price * quantity
            markup_revenue += max(ZERO, charged - merchant_price) * quantity

        return {
            "total_orders": len(order_ids),
            "total_order_revenue": round_2(order_revenue),
            "total_merchant_revenue": round_2(merchant_revenue),
            "total_markup_revenue": round_2(markup_revenue),
            "markup_percentage": round_2(
                safe_divide(float(markup_revenue), float(order_revenue)) * 100
            ),
            "window_days": days,
        }
