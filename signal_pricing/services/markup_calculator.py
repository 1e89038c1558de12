"""
Dynamic Markup Calculator

Maps a product's signal snapshot and current stock to a bounded markup
percentage. The markup is the sum of four independently capped parts:

- Trending boost    (0 to +15)   sales velocity in the last 24h
- Demand boost      (0 to +12)   conversion rate + favorites
- Interaction boost (0 to +10)   views + cart adds in the last 24h
- Stock adjustment  (-5 to +8)   scarce stock raises, deep stock lowers

The total is clamped to [0, 50] and rounded to 2 decimal places.
"""
from dataclasses import dataclass
from decimal import Decimal

from signal_pricing.services.signal_reader import SignalSnapshot
from signal_pricing.services.tuning import (
    DEFAULT_TUNING, MarkupTuning, Tuning, tier_value, ceiling_tier_value,
)
from signal_pricing.utils.helpers import to_cents

ZERO_MARKUP = Decimal("0.00")


@dataclass(frozen=True)
class MarkupBreakdown:
    trending_boost: float
    demand_boost: float
    interaction_boost: float
    stock_adjustment: float
    total: Decimal
    fallback: bool = False

    def to_dict(self) -> dict:
        return {
            "trending_boost": self.trending_boost,
            "demand_boost": self.demand_boost,
            "interaction_boost": self.interaction_boost,
            "stock_adjustment": self.stock_adjustment,
            "total": float(self.total),
            "fallback": self.fallback,
        }


def trending_boost(sales_24h: int, tuning: MarkupTuning = DEFAULT_TUNING.markup) -> float:
    return min(tuning.trending_cap, tier_value(sales_24h, tuning.trending_tiers))


def demand_boost(conversion_rate: float, favorites_count: int,
                 tuning: MarkupTuning = DEFAULT_TUNING.markup) -> float:
    boost = tier_value(conversion_rate, tuning.conversion_tiers)
    boost += tier_value(favorites_count, tuning.favorites_tiers)
    return min(tuning.demand_cap, boost)


def interaction_boost(views_24h: int, cart_count_24h: int,
                      tuning: MarkupTuning = DEFAULT_TUNING.markup) -> float:
    boost = tier_value(views_24h, tuning.views_tiers)
    boost += tier_value(cart_count_24h, tuning.cart_tiers)
    return min(tuning.interaction_cap, boost)


def stock_adjustment(stock: int, tuning: MarkupTuning = DEFAULT_TUNING.markup) -> float:
    if stock <= 0:
        return tuning.out_of_stock_adjustment
    return ceiling_tier_value(stock, tuning.stock_tiers, tuning.overstock_adjustment)


def calculate_dynamic_markup(
    snapshot: SignalSnapshot,
    stock: int,
    tuning: Tuning = DEFAULT_TUNING,
) -> MarkupBreakdown:
    """
    Compute the dynamic markup for a product.

    A degraded snapshot (any signal read fell back) yields a zero markup for
    this cycle rather than pricing on stale counters.

    Args:
        snapshot: signal snapshot from SignalSnapshotReader
        stock: current sellable stock (sum of variant stock for variant products)
        tuning: scoring tunables

    Returns:
        MarkupBreakdown with the four parts and the clamped total
    """
    t = tuning.markup
    parts = (
        trending_boost(snapshot.sales_24h, t),
        demand_boost(snapshot.conversion_rate, snapshot.favorites_count, t),
        interaction_boost(snapshot.views_24h, snapshot.cart_count_24h, t),
        stock_adjustment(stock or 0, t),
    )

    if snapshot.degraded:
        return MarkupBreakdown(*parts, total=ZERO_MARKUP, fallback=True)

    total = min(t.max_markup, max(t.min_markup, sum(parts)))
    return MarkupBreakdown(*parts, total=to_cents(total))
