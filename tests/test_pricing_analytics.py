"""
Pricing analytics summary tests.
"""
from datetime import datetime, timedelta
from decimal import Decimal

from signal_pricing.services.pricing_analytics_service import PricingAnalyticsService


def _seed(make_product, merchant):
    make_product(
        merchant_id=merchant.id, base_markup_percent=Decimal("10.00"),
        dynamic_markup_percent=Decimal("25.00"), final_price=Decimal("110.00"), stock=5,
    )
    make_product(
        merchant_price=Decimal("400.00"), base_markup_percent=Decimal("20.00"),
        dynamic_markup_percent=Decimal("0.00"), final_price=Decimal("600.00"), stock=50,
    )
    make_product(is_active=False, final_price=Decimal("50.00"))


def test_catalog_summary(db, make_product, merchant):
    _seed(make_product, merchant)

    result = PricingAnalyticsService(db).summary()

    assert result["summary"] == {
        "total_products": 2,
        "catalog_markup_revenue": 210.0,
        "average_base_markup": 15.0,
        "average_dynamic_markup": 12.5,
    }
    assert result["product_performance"] == {
        "products_with_high_markup": 1,
        "products_with_low_stock": 1,
    }
    assert result["pricing_distribution"] == {"low": 0, "medium": 1, "high": 1}


def test_order_totals_use_charged_and_merchant_prices(db, make_product, merchant, record_activity):
    product = make_product(merchant_id=merchant.id)
    recent = datetime.utcnow() - timedelta(hours=1)
    record_activity(product.id, sales=2, at=recent, merchant_id=merchant.id)
    record_activity(product.id, sales=1, at=recent, status="cancelled", merchant_id=merchant.id)
    record_activity(product.id, sales=1, at=recent - timedelta(days=60), merchant_id=merchant.id)

    orders = PricingAnalyticsService(db).summary(days=30)["orders"]

    assert orders["total_orders"] == 2
    assert orders["total_order_revenue"] == 220.0
    assert orders["total_merchant_revenue"] == 200.0
    assert orders["total_markup_revenue"] == 20.0
    assert orders["markup_percentage"] == 9.09
    assert orders["window_days"] == 30


def test_merchant_filter(db, make_product, merchant):
    _seed(make_product, merchant)

    result = PricingAnalyticsService(db).summary(merchant_id=merchant.id)

    assert result["summary"]["total_products"] == 1
    assert result["pricing_distribution"] == {"low": 0, "medium": 1, "high": 0}
    assert result["orders"]["total_orders"] == 0


def test_variant_product_uses_its_own_final_price(db, service, make_product):
    product = make_product(variants=[dict(merchant_price=Decimal("20.00"), stock=30)])
    service.recalculate_one(product.id)
    db.expire_all()

    result = PricingAnalyticsService(db).summary()

    assert result["summary"]["catalog_markup_revenue"] == 10.0
    assert result["pricing_distribution"] == {"low": 0, "medium": 1, "high": 0}


# ---------------------------------------------------------------------------
# Merchant view
# ---------------------------------------------------------------------------

def test_merchant_summary_averages_and_alerts(db, make_product, merchant, record_activity):
    modest = make_product(name="modest", merchant_id=merchant.id, final_price=Decimal("110.00"))
    steep = make_product(name="steep", merchant_id=merchant.id,
                         merchant_price=Decimal("40.00"), final_price=Decimal("70.00"))
    make_product(name="unpriced", merchant_id=merchant.id,
                 merchant_price=None, price=None, final_price=Decimal("50.00"))
    make_product(name="elsewhere", final_price=Decimal("900.00"))
    record_activity(modest.id, sales=1, at=datetime.utcnow() - timedelta(hours=1), merchant_id=merchant.id)

    result = PricingAnalyticsService(db).merchant_summary(merchant.id)

    assert result["summary"] == {
        "total_products": 3,
        "average_merchant_price": 70.0,
        "average_final_price": 90.0,
        "average_markup": 28.57,
    }
    assert result["orders"]["total_orders"] == 1
    assert result["orders"]["total_merchant_revenue"] == 100.0
    assert result["alerts"] == {
        "products_with_high_markup": 1,
        "products_with_high_markup_list": [{
            "id": steep.id,
            "name": "steep",
            "merchant_price": 40.0,
            "final_price": 70.0,
            "markup_percentage": 75.0,
        }],
    }


def test_merchant_summary_requires_approved_merchant(db, merchant):
    merchant.status = "PENDING"
    db.commit()

    service = PricingAnalyticsService(db)
    assert service.merchant_summary(merchant.id) is None
    assert service.merchant_summary(9999) is None
