"""
Visibility Score Calculator

base = round(orders*5 + views*1 + favorites*3 + conversionRate*10 +
             storeRating*4 + discountBoost + newnessBoost)
visibilityScore = round(base + trending + demand + interaction + featured)

The 24h boosts reuse the markup signals with visibility-specific caps.
"""
from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Optional

from signal_pricing.services.signal_reader import SignalSnapshot
from signal_pricing.services.tuning import DEFAULT_TUNING, Tuning, VisibilityTuning, tier_value
from signal_pricing.utils.helpers import round_half_up, to_decimal


@dataclass(frozen=True)
class VisibilityBreakdown:
    base_score: int
    discount_boost: float
    newness_boost: float
    trending_boost: float
    demand_boost: float
    interaction_boost: float
    featured_boost: float
    visibility_score: int

    def to_dict(self) -> dict:
        return asdict(self)


def discount_percent(price, discount_price) -> float:
    """Legacy discount as a percentage of the list price"""
    price = to_decimal(price)
    discount_price = to_decimal(discount_price)
    if not price or not discount_price or price <= 0 or discount_price <= 0:
        return 0.0
    return float((price - discount_price) / price * 100)


def age_in_days(created_at: Optional[datetime], now: datetime) -> int:
    """Whole days since creation (0 when unknown)"""
    if created_at is None:
        return 0
    return max(0, (now - created_at).days)


def discount_boost(percent: float, tuning: VisibilityTuning = DEFAULT_TUNING.visibility) -> float:
    return min(tuning.discount_cap, max(0.0, percent) * tuning.discount_multiplier)


def newness_boost(age_days: float, tuning: VisibilityTuning = DEFAULT_TUNING.visibility) -> float:
    if age_days > tuning.newness_days:
        return 0.0
    return max(0.0, tuning.newness_boost_max * (1 - age_days / tuning.newness_days))


def trending_boost(sales_24h: int, tuning: VisibilityTuning = DEFAULT_TUNING.visibility) -> float:
    return tier_value(sales_24h, tuning.trending_tiers)


def demand_boost(sales_24h: int, views_24h: int,
                 tuning: VisibilityTuning = DEFAULT_TUNING.visibility) -> float:
    if views_24h <= 0 or sales_24h <= 0:
        return 0.0
    return min(tuning.demand_cap, sales_24h / views_24h * 100)


def interaction_boost(views_24h: int, cart_count_24h: int,
                      tuning: VisibilityTuning = DEFAULT_TUNING.visibility) -> float:
    raw = views_24h * tuning.interaction_view_weight + cart_count_24h * tuning.interaction_cart_weight
    return min(tuning.interaction_cap, raw)


def calculate_visibility(
    snapshot: SignalSnapshot,
    discount_pct: float,
    age_days: float,
    featured: bool,
    tuning: Tuning = DEFAULT_TUNING,
) -> VisibilityBreakdown:
    """
    Compute the visibility score of a product.

    Args:
        snapshot: signal snapshot from SignalSnapshotReader
        discount_pct: legacy discount percentage (0-100)
        age_days: whole days since the product was created
        featured: admin featured flag
        tuning: scoring tunables

    Returns:
        VisibilityBreakdown; visibility_score is never negative
    """
    t = tuning.visibility
    d_boost = discount_boost(discount_pct, t)
    n_boost = newness_boost(age_days, t)

    base_score = round_half_up(
        snapshot.lifetime_order_count * t.order_weight
        + snapshot.lifetime_view_count * t.view_weight
        + snapshot.lifetime_favorite_count * t.favorite_weight
        + snapshot.conversion_rate * t.conversion_weight
        + snapshot.store_rating * t.rating_weight
        + d_boost
        + n_boost
    )

    trending = trending_boost(snapshot.sales_24h, t)
    demand = demand_boost(snapshot.sales_24h, snapshot.views_24h, t)
    interaction = interaction_boost(snapshot.views_24h, snapshot.cart_count_24h, t)
    featured_boost = t.featured_boost if featured else 0.0

    score = round_half_up(base_score + trending + demand + interaction + featured_boost)

    return VisibilityBreakdown(
        base_score=base_score,
        discount_boost=d_boost,
        newness_boost=n_boost,
        trending_boost=trending,
        demand_boost=demand,
        interaction_boost=interaction,
        featured_boost=featured_boost,
        visibility_score=max(0, score),
    )
