"""
Scoring & Pricing Tunables

Every cap, threshold and weight used by the markup, visibility and ranking
calculators lives here, in one struct that is passed into each calculator.
Alternate tunings (A/B tests, what-if analysis) are built with
dataclasses.replace() instead of editing the calculators.

Tier tables are tuples of (threshold, value) in ascending threshold order.
"""
from dataclasses import dataclass, field
from typing import Tuple

Tiers = Tuple[Tuple[float, float], ...]


def tier_value(value: float, tiers: Tiers, default: float = 0) -> float:
    """Value of the highest tier whose threshold is <= value"""
    result = default
    for threshold, tier in tiers:
        if value >= threshold:
            result = tier
        else:
            break
    return result


def ceiling_tier_value(value: float, tiers: Tiers, default: float) -> float:
    """Value of the first tier whose threshold is >= value (upper-bound tiers)"""
    for threshold, tier in tiers:
        if value <= threshold:
            return tier
    return default


@dataclass(frozen=True)
class MarkupTuning:
    """Dynamic markup (percentage points)"""
    # Trending: sales in the last 24h
    trending_tiers: Tiers = ((1, 2), (5, 5), (10, 8), (20, 12), (50, 15))
    trending_cap: float = 15

    # Demand: conversion rate (%) + favorites
    conversion_tiers: Tiers = ((1, 1), (2, 3), (5, 5), (10, 7))
    favorites_tiers: Tiers = ((10, 1), (20, 2), (50, 3), (100, 5))
    demand_cap: float = 12

    # Interaction: views and cart adds in the last 24h
    views_tiers: Tiers = ((50, 1), (100, 2), (200, 3), (500, 4), (1000, 6))
    cart_tiers: Tiers = ((5, 1), (10, 2), (20, 3), (50, 4))
    interaction_cap: float = 10

    # Stock: scarce stock raises the markup, deep stock lowers it
    out_of_stock_adjustment: float = 8
    stock_tiers: Tiers = ((5, 6), (10, 4), (20, 2), (50, 0), (100, -2), (200, -4))
    overstock_adjustment: float = -5

    min_markup: float = 0
    max_markup: float = 50


@dataclass(frozen=True)
class VisibilityTuning:
    """Visibility score (points)"""
    # Lifetime weights
    order_weight: float = 5
    view_weight: float = 1
    favorite_weight: float = 3
    conversion_weight: float = 10
    rating_weight: float = 4

    # Discount: 2 points per discount %, max 20
    discount_multiplier: float = 2
    discount_cap: float = 20

    # Newness: linear decay from 15 to 0 over 30 days
    newness_boost_max: float = 15
    newness_days: int = 30

    # 24h boosts
    trending_tiers: Tiers = ((5, 10), (10, 20), (20, 30), (50, 50))
    demand_cap: float = 30
    interaction_view_weight: float = 0.1
    interaction_cart_weight: float = 2
    interaction_cap: float = 20

    featured_boost: float = 100


@dataclass(frozen=True)
class RankingTuning:
    """Query-time ranking score; admin intent carries the largest weights"""
    featured_boost: int = 1000
    priority_weight: int = 100  # priority 0-100 becomes 0-10000
    freshness_max_days: int = 30
    freshness_boost_max: int = 50
    stock_boost_threshold: int = 10  # Saturates at twice the threshold
    stock_boost_max: int = 30
    personalization_boost: int = 20


@dataclass(frozen=True)
class Tuning:
    markup: MarkupTuning = field(default_factory=MarkupTuning)
    visibility: VisibilityTuning = field(default_factory=VisibilityTuning)
    ranking: RankingTuning = field(default_factory=RankingTuning)


DEFAULT_TUNING = Tuning()
