"""
Dynamic markup tier, cap and clamp tests.

Guards against:
1. Tier boundaries drifting (>= thresholds)
2. Parts exceeding their own caps
3. Totals escaping [0, 50]
4. Markup decreasing when demand signals grow
5. Stale counters being priced after a failed signal read
"""
from decimal import Decimal

import pytest

from signal_pricing.services.markup_calculator import (
    calculate_dynamic_markup,
    demand_boost,
    interaction_boost,
    stock_adjustment,
    trending_boost,
)
from signal_pricing.services.signal_reader import SignalSnapshot


# ---------------------------------------------------------------------------
# Part tiers
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("sales, expected", [
    (0, 0), (1, 2), (4, 2), (5, 5), (10, 8), (19, 8), (20, 12), (50, 15), (5000, 15),
])
def test_trending_tiers(sales, expected):
    assert trending_boost(sales) == expected


def test_demand_combines_conversion_and_favorites():
    assert demand_boost(0, 0) == 0
    assert demand_boost(2.5, 20) == 3 + 2
    assert demand_boost(10, 100) == 12  # 7 + 5 hits the cap exactly


def test_demand_is_capped():
    assert demand_boost(100, 10_000) == 12


def test_interaction_combines_views_and_carts():
    assert interaction_boost(49, 4) == 0
    assert interaction_boost(100, 10) == 2 + 2
    assert interaction_boost(1000, 50) == 10


@pytest.mark.parametrize("stock, expected", [
    (0, 8), (-3, 8), (1, 6), (5, 6), (6, 4), (10, 4), (20, 2), (21, 0), (50, 0),
    (51, -2), (100, -2), (200, -4), (201, -5), (500, -5),
])
def test_stock_adjustment_tiers(stock, expected):
    assert stock_adjustment(stock) == expected


# ---------------------------------------------------------------------------
# Totals
# ---------------------------------------------------------------------------

def test_documented_example_reaches_45():
    snapshot = SignalSnapshot(
        sales_24h=60, views_24h=1200, cart_count_24h=60,
        conversion_rate=10, favorites_count=100,
    )
    result = calculate_dynamic_markup(snapshot, stock=0)

    assert result.trending_boost == 15
    assert result.demand_boost == 12
    assert result.interaction_boost == 10
    assert result.stock_adjustment == 8
    assert result.total == Decimal("45.00")
    assert not result.fallback


def test_no_signals_and_deep_stock_clamps_to_zero():
    result = calculate_dynamic_markup(SignalSnapshot(), stock=500)
    assert result.stock_adjustment == -5
    assert result.total == Decimal("0.00")


def test_huge_counters_stay_within_bounds():
    snapshot = SignalSnapshot(
        sales_24h=10**9, views_24h=10**9, cart_count_24h=10**9,
        favorites_count=10**9, conversion_rate=100,
    )
    result = calculate_dynamic_markup(snapshot, stock=0)
    assert Decimal("0") <= result.total <= Decimal("50")


def test_total_has_two_decimal_places():
    result = calculate_dynamic_markup(SignalSnapshot(sales_24h=5), stock=30)
    assert result.total == Decimal("5.00")
    assert result.total.as_tuple().exponent == -2


def test_markup_is_monotonic_in_demand_signals():
    previous = Decimal("-1")
    for sales in (0, 1, 5, 10, 20, 50, 100):
        total = calculate_dynamic_markup(SignalSnapshot(sales_24h=sales), stock=30).total
        assert total >= previous
        previous = total

    previous = Decimal("-1")
    for views in (0, 50, 100, 200, 500, 1000, 5000):
        total = calculate_dynamic_markup(SignalSnapshot(views_24h=views), stock=30).total
        assert total >= previous
        previous = total


def test_scarce_stock_never_lowers_markup():
    snapshot = SignalSnapshot(sales_24h=10)
    totals = [calculate_dynamic_markup(snapshot, stock=s).total for s in (500, 200, 100, 50, 20, 10, 5, 0)]
    assert totals == sorted(totals)


def test_degraded_snapshot_uses_zero_markup():
    snapshot = SignalSnapshot(sales_24h=60, failed_reads=["views_24h"])
    result = calculate_dynamic_markup(snapshot, stock=0)
    assert result.fallback
    assert result.total == Decimal("0.00")
